# supabase_client.py
from typing import Optional
from supabase import create_client, Client

# Lazy create client to avoid import-time errors
_client: Optional[Client] = None

def get_supabase(url: Optional[str], key: Optional[str]) -> Client:
    global _client
    if _client:
        return _client
    if not url or not key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_ANON_KEY must be set in environment")
    _client = create_client(url, key)
    return _client

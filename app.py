# app.py
"""
Flask app reporting the track currently (or most recently) playing on Spotify or Apple Music.
"""

import json
from typing import Optional
from flask import Flask, Response, request
from flask_cors import CORS
from config import Config, APPLE_STATE_KEY
from logger import setup_logging
from auth import CredentialManager
from music import MusicManager
from music_tracker import SpotifyTracker, AppleMusicTracker
from recency import RecencyResolver
from store import create_stores
from tasks import BackgroundTasks


def build_music_manager(config: Config) -> MusicManager:
    result_cache, state_cache = create_stores(config)
    credentials = CredentialManager(config)
    resolver = RecencyResolver(state_cache, APPLE_STATE_KEY)
    return MusicManager(
        spotify=SpotifyTracker(credentials, timeout=config.upstream_timeout),
        apple=AppleMusicTracker(credentials, resolver, timeout=config.upstream_timeout),
        result_cache=result_cache,
    )


def create_app(config: Optional[Config] = None, music_manager: Optional[MusicManager] = None,
               background: Optional[BackgroundTasks] = None) -> Flask:
    config = config or Config.from_env()
    setup_logging(config.log_level)

    app = Flask(__name__)
    CORS(app)

    # Initialize managers
    app.extensions['music_manager'] = music_manager or build_music_manager(config)
    app.extensions['background_tasks'] = background or BackgroundTasks()

    # Routes
    @app.route('/', methods=['GET'])
    def now_playing():
        manager: MusicManager = app.extensions['music_manager']
        tasks: BackgroundTasks = app.extensions['background_tasks']

        no_cache = request.args.get('noCache') == 'true'
        body, cache_status = manager.get_now_playing(no_cache=no_cache, schedule=tasks.schedule)

        return Response(
            json.dumps(body, indent=2),
            mimetype='application/json',
            headers={'X-Cache-Status': cache_status},
        )

    return app


if __name__ == "__main__":
    config = Config.from_env()
    create_app(config).run(debug=True, host="0.0.0.0", port=config.port)

# tasks.py
import atexit
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Set

LOGGER = logging.getLogger(__name__)


class BackgroundTasks:
    """Work that must finish after the response has gone out. Futures are kept until done."""

    def __init__(self, max_workers: int = 2):
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="background")
        self.pending: Set[Future] = set()
        self._lock = threading.Lock()
        atexit.register(self.shutdown)

    def schedule(self, fn, *args, **kwargs) -> Future:
        future = self.executor.submit(fn, *args, **kwargs)
        with self._lock:
            self.pending.add(future)
        future.add_done_callback(self._finished)
        return future

    def _finished(self, future: Future):
        with self._lock:
            self.pending.discard(future)
        if not future.cancelled() and future.exception() is not None:
            LOGGER.error(f"Background task failed: {future.exception()}")

    def join(self, timeout=None):
        """Block until every scheduled task has completed."""
        with self._lock:
            outstanding = list(self.pending)
        wait(outstanding, timeout=timeout)

    def shutdown(self):
        atexit.unregister(self.shutdown)
        self.executor.shutdown(wait=True)

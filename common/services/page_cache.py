import threading
import time
from typing import Callable, Dict, Optional, Tuple

from .logging import log_event


class PageCache:
    """In-process cache of rendered pages keyed by (path, viewer).

    Cart mutations call ``invalidate("/cart")`` so the next request for a
    cart-bearing view renders fresh state. Each path has a generation that
    ``invalidate`` bumps; a render that overlapped an invalidation is served
    but not stored.
    """

    def __init__(self, ttl_seconds: int = 60, clock: Callable[[], float] = time.time) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        # (path, viewer) -> (ts, body)
        self._entries: Dict[Tuple[str, str], Tuple[float, str]] = {}
        # path -> invalidation count
        self._generations: Dict[str, int] = {}

    def get(self, path: str, viewer: str) -> Optional[str]:
        with self._lock:
            cached = self._entries.get((path, viewer))
            if cached is None:
                return None
            if self._clock() - cached[0] > self._ttl:
                self._entries.pop((path, viewer), None)
                return None
            return cached[1]

    def put(self, path: str, viewer: str, body: str, *, generation: Optional[int] = None) -> bool:
        """Store ``body``; with ``generation``, only if ``path`` was not invalidated since."""
        with self._lock:
            if generation is not None and generation != self._generations.get(path, 0):
                return False
            self._entries[(path, viewer)] = (self._clock(), body)
            return True

    def generation(self, path: str) -> int:
        with self._lock:
            return self._generations.get(path, 0)

    def get_or_render(self, path: str, viewer: str, render: Callable[[], str]) -> str:
        body = self.get(path, viewer)
        if body is None:
            generation = self.generation(path)
            body = render()
            self.put(path, viewer, body, generation=generation)
        return body

    def invalidate(self, path: str) -> int:
        with self._lock:
            self._generations[path] = self._generations.get(path, 0) + 1
            stale = [key for key in self._entries if key[0] == path]
            for key in stale:
                del self._entries[key]
        if stale:
            log_event("debug", "page_cache.invalidated", path=path, entries=len(stale))
        return len(stale)
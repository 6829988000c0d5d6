# utils/cache.py
import threading
import time
from typing import Any, Callable, Dict, Tuple


class TTLCache:
    """Tiny in-process cache for read-side rollups. Values may be stale for up to `ttl_seconds`."""

    def __init__(self, ttl_seconds: int):
        self.ttl_seconds = max(0, int(ttl_seconds))
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[float, Any]] = {}

    def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        if self.ttl_seconds <= 0:
            return loader()
        now = time.monotonic()
        with self._lock:
            entry = self._entries.get(key)
            if entry and entry[0] > now:
                return entry[1]
        value = loader()
        with self._lock:
            self._entries[key] = (now + self.ttl_seconds, value)
        return value

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

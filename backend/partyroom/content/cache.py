import threading
from typing import Any, Callable, Dict, Optional, Tuple

from partyroom import clock


class ContentCache:
    """TTL cache for third-party content, owned by the adapter layer.

    One instance lives in ``app.extensions`` and is handed to adapters by
    reference. Entries expire ``ttl_sec`` after they were stored;
    ``invalidate`` drops one key or everything.
    """

    def __init__(self, ttl_sec: int = 600):
        self.ttl_ms = ttl_sec * 1000.0
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if clock.now_ms() - stored_at >= self.ttl_ms:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = (clock.now_ms(), value)

    def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        """Return the cached value or call ``loader`` and store its result.

        Loader exceptions propagate and nothing is stored.
        """
        value = self.get(key)
        if value is not None:
            return value
        value = loader()
        self.set(key, value)
        return value

    def invalidate(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def __len__(self):
        return len(self._entries)

import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


class TtlCache:
    """
    Small in-process cache with one expiry per instance.
    Owned by the feed client that creates it; nothing is shared globally.
    """

    def __init__(self, ttl_sec: float, clock: Callable[[], float] = time.monotonic):
        self._ttl = float(ttl_sec)
        self._clock = clock
        self._items: Dict[Hashable, Tuple[float, Any]] = {}

    def get(self, key: Hashable) -> Optional[Any]:
        item = self._items.get(key)
        if item is None:
            return None
        expires_at, value = item
        if self._clock() >= expires_at:
            del self._items[key]
            return None
        return value

    def set(self, key: Hashable, value: Any) -> None:
        if self._ttl <= 0:
            return
        self._items[key] = (self._clock() + self._ttl, value)

    def clear(self) -> None:
        self._items.clear()

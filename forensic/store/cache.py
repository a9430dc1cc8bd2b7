"""
Read-through cache for the property store.

The valuation engine never touches this module: the cache is owned by the
caller (the web layer), has an injected clock for tests, and is invalidated
explicitly after writes.
"""

import threading
import time
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple

from forensic.models import Property

from .repository import PropertyRepository


DEFAULT_TTL_SECONDS = 60

_ALL_PROPERTIES = ("properties", "*")


class TTLCache:
    """
    Key-value cache whose entries expire ttl_seconds after being set.

    Args:
        ttl_seconds: Entry lifetime
        clock: Monotonic time source in seconds (default: time.monotonic)
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Cached value, or default when missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            stored_at, value = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[key]
                return default
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)

    def invalidate(self, key: Optional[Hashable] = None) -> None:
        """Drop one entry, or everything when key is None."""
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class CachedPropertyReader:
    """Property reads through a TTLCache in front of a PropertyRepository."""

    def __init__(self, repository: PropertyRepository, cache: Optional[TTLCache] = None):
        self.repository = repository
        self.cache = cache if cache is not None else TTLCache()

    def get(self, property_id: str) -> Optional[Property]:
        key = ("property", property_id)
        property = self.cache.get(key)
        if property is None:
            property = self.repository.get(property_id)
            if property is not None:
                self.cache.set(key, property)
        return property

    def list_all(self) -> List[Property]:
        properties = self.cache.get(_ALL_PROPERTIES)
        if properties is None:
            properties = self.repository.list_all()
            self.cache.set(_ALL_PROPERTIES, properties)
        return list(properties)

    def invalidate(self, property_id: Optional[str] = None) -> None:
        """Forget one property (and the full listing), or everything."""
        if property_id is None:
            self.cache.invalidate()
            return
        self.cache.invalidate(("property", property_id))
        self.cache.invalidate(_ALL_PROPERTIES)

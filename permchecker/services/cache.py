"""In-memory TTL cache with an injected clock.

Used by the ADB registry to avoid re-reading the device's permission table
for every requested permission. Each registry instance owns its own cache;
there is no module-level or shared instance.
"""

import logging
import threading
import time
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300  # 5 minutes

_MISSING = object()


class TTLCache:
    """Key/value cache whose entries expire ``ttl`` seconds after being set.

    Key scheme used by the registries:
        permissions    parsed ``pm list permissions -f`` table
    """

    def __init__(self, ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.monotonic):
        """Initialize cache.

        Args:
            ttl: Entry lifetime in seconds. ``0`` disables caching.
            clock: Zero-argument callable returning the current time in seconds.
        """
        if ttl < 0:
            raise ValueError(f"ttl must be >= 0, got {ttl}")
        self.ttl = ttl
        self.clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        # Registry reads may come from several scan workers at once
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached value for ``key``, or ``default`` if missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            expires_at, value = entry
            if self.clock() >= expires_at:
                del self._entries[key]
                return default
            return value

    def set(self, key: str, value: Any) -> None:
        """Cache ``value`` under ``key`` for ``ttl`` seconds."""
        if self.ttl == 0:
            return
        with self._lock:
            self._entries[key] = (self.clock() + self.ttl, value)

    def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        """Return the cached value, calling ``loader`` and caching on a miss.

        Exceptions raised by ``loader`` propagate and nothing is cached.
        """
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value
        value = loader()
        self.set(key, value)
        return value

    def invalidate(self, key: str) -> None:
        """Remove a specific key from cache."""
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> int:
        """Clear all entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.debug(f"Cleared {count} cache entries")
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

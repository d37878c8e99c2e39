"""
In-memory TTL cache.

Entries are stored as ``(timestamp, payload)`` and checked lazily on read:
an entry is fresh while ``now - timestamp <= ttl``. Stale entries are evicted
when read and overwritten by the next successful write. There is no
background sweep.
"""

import time
from collections.abc import Callable
from typing import Any


class TTLCache:
    """Keyed cache with a default TTL and an injectable clock (seconds)."""

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str, ttl: float | None = None) -> Any | None:
        """Return the cached payload, or None if absent or expired.

        ``ttl`` overrides the default for this read only; it is measured
        against the entry's original write time.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        written_at, payload = entry
        limit = self.ttl if ttl is None else ttl
        if self._clock() - written_at > limit:
            del self._entries[key]
            return None
        return payload

    def set(self, key: str, payload: Any) -> None:
        self._entries[key] = (self._clock(), payload)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()

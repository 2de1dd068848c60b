"""
Explicit TTL cache for computed reports.

Replaces ambient module-level caches: the cache is an object handed to the
service that uses it, and expiry is computed from an injected Clock so that
tests control time.

Entries are stored as ``(value, stored_at, ttl_seconds)``.  An entry is
expired once ``now - stored_at > ttl``; expired entries are dropped lazily on
``get`` or eagerly by ``clear_expired``.
"""

from __future__ import annotations

import threading
from collections.abc import Hashable
from datetime import datetime
from typing import Any

from metalgest_kernel.domain.clock import Clock, SystemClock
from metalgest_kernel.logging_config import get_logger

logger = get_logger("utils.cache")

DEFAULT_TTL_SECONDS = 300


class TTLCache:
    """Thread-safe in-process key/value cache with per-entry time-to-live."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Clock | None = None,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = ttl_seconds
        self._clock = clock or SystemClock()
        self._entries: dict[Hashable, tuple[Any, datetime, float]] = {}
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def _is_expired(self, stored_at: datetime, ttl: float, now: datetime) -> bool:
        return (now - stored_at).total_seconds() > ttl

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return the cached value, or ``default`` if missing or expired."""
        now = self._clock.now()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            value, stored_at, ttl = entry
            if self._is_expired(stored_at, ttl, now):
                del self._entries[key]
                logger.debug("cache_entry_expired", extra={"key": str(key)})
                return default
            return value

    def set(self, key: Hashable, value: Any, ttl: float | None = None) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds (default: cache TTL)."""
        if ttl is not None and ttl <= 0:
            raise ValueError("ttl must be positive")
        with self._lock:
            self._entries[key] = (value, self._clock.now(), ttl or self._ttl)

    def evict(self, key: Hashable) -> bool:
        """Remove ``key``.  Returns True if an entry was removed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def clear_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock.now()
        with self._lock:
            expired = [
                key
                for key, (_, stored_at, ttl) in self._entries.items()
                if self._is_expired(stored_at, ttl, now)
            ]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def keys(self) -> list[Hashable]:
        with self._lock:
            return list(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_MISSING = object()

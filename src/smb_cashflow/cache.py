# SMB CashFlow - Cash-flow reconciliation dashboard for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
In-memory TTL cache for fetched record collections.

The cache is owned by the fetch layer and injected where it is needed; there
is no module-level instance. Keys are ``(source, filters)`` pairs, where
``filters`` is any hashable value describing the query (for example a date
range).
"""

import logging
import threading
import time
from collections.abc import Callable, Hashable
from typing import Any, Optional

logger = logging.getLogger(__name__)

_MISSING = object()


class RecordCache:
    """
    Thread-safe time-to-live cache.

    Args:
        ttl_seconds: Lifetime of an entry. A value <= 0 disables caching.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[tuple[str, Hashable], tuple[float, Any]] = {}

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def get(self, source: str, filters: Hashable = None, default: Any = None) -> Any:
        """Return the cached value, or ``default`` if absent or expired."""
        if not self.enabled:
            return default
        key = (source, filters)
        with self._lock:
            item = self._entries.get(key, _MISSING)
            if item is _MISSING:
                return default
            expires_at, value = item
            if self._clock() >= expires_at:
                del self._entries[key]
                logger.debug("Cache entry expired: %s %r", source, filters)
                return default
        logger.debug("Cache hit: %s %r", source, filters)
        return value

    def set(self, source: str, filters: Hashable, value: Any) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._entries[(source, filters)] = (
                self._clock() + self.ttl_seconds,
                value,
            )

    def invalidate(self, source: Optional[str] = None) -> int:
        """
        Drop cached entries of one source (all sources when None).

        Returns the number of entries removed.
        """
        with self._lock:
            if source is None:
                removed = len(self._entries)
                self._entries.clear()
            else:
                keys = [k for k in self._entries if k[0] == source]
                for key in keys:
                    del self._entries[key]
                removed = len(keys)
        if removed:
            logger.debug(
                "Invalidated %d cache entrie(s) for %s",
                removed,
                source or "all sources",
            )
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

# src/nodekeeper/core/cache.py
"""
Shared, thread-safe TTL cache for the allocatable capacity observed on real
nodes, keyed by NodePool and instance type.

One instance is created at process start (see ``nodekeeper.operator``) and
handed to every component that reads or writes observed capacity.
"""

import logging
import threading
import time
from datetime import timedelta
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(hours=24)

# Namespaces allocatable entries inside a cache that may hold other keys
ALLOCATABLE_CACHE_PREFIX = "allocatableCache"


def allocatable_cache_key(nodepool: str, instance_type: str) -> str:
    """Returns the cache key for the allocatable of an instance type in a NodePool."""
    return f"{ALLOCATABLE_CACHE_PREFIX};{nodepool};{instance_type}"


def allocatable_cache_prefix(nodepool: str) -> str:
    """Returns the prefix shared by every allocatable entry of a NodePool."""
    return f"{ALLOCATABLE_CACHE_PREFIX};{nodepool};"


class AllocatableCache:
    """
    Maps string keys to values that expire after a per-entry TTL.

    Expired entries are treated as absent on read; they are physically removed
    lazily or by ``purge_expired``. Every operation takes the internal lock, so
    callers never need their own locking.
    """

    def __init__(self, default_ttl: timedelta = DEFAULT_TTL, timer: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._timer = timer
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def _expired(self, expires_at: float, now: float) -> bool:
        return now >= expires_at

    def set(self, key: str, value: Any, ttl: Optional[timedelta] = None):
        ttl = self.default_ttl if ttl is None else ttl
        expires_at = self._timer() + ttl.total_seconds()
        with self._lock:
            self._entries[key] = (value, expires_at)

    def get(self, key: str) -> Optional[Any]:
        """Returns the cached value, or None when the key is absent or expired."""
        now = self._timer()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._expired(expires_at, now):
                del self._entries[key]
                return None
            return value

    def delete(self, key: str):
        with self._lock:
            self._entries.pop(key, None)

    def items(self) -> Dict[str, Any]:
        """Returns a snapshot of all unexpired entries."""
        now = self._timer()
        with self._lock:
            return {k: v for k, (v, exp) in self._entries.items() if not self._expired(exp, now)}

    def delete_if(self, predicate: Callable[[str, Any], bool]) -> int:
        """
        Removes every entry for which ``predicate(key, value)`` is true.

        The scan and the deletions happen under one lock acquisition, so a
        concurrent ``set`` either lands before the sweep or survives it.

        Returns:
            The number of entries removed.
        """
        with self._lock:
            doomed = [k for k, (v, _) in self._entries.items() if predicate(k, v)]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def delete_prefix(self, prefix: str) -> int:
        """Removes every entry whose key starts with ``prefix``."""
        return self.delete_if(lambda key, _: key.startswith(prefix))

    def purge_expired(self) -> int:
        now = self._timer()
        with self._lock:
            doomed = [k for k, (_, exp) in self._entries.items() if self._expired(exp, now)]
            for key in doomed:
                del self._entries[key]
        if doomed:
            logger.debug("Purged %d expired cache entries.", len(doomed))
        return len(doomed)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self.items())

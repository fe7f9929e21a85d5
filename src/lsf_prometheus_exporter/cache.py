"""Thread-safe construct-once cache.

Provides a keyed cache that builds each value at most once, even when many
scrapes ask for the same key concurrently.
"""

from collections.abc import Callable, Hashable
from threading import Lock
from typing import Generic, TypeVar

import structlog

logger = structlog.get_logger()

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


class AtomicLazyCache(Generic[K, T]):
    """Thread-safe memoizing factory cache.

    The lock is held only while a missing value is being constructed; the
    cached values themselves are handed out without further locking.
    """

    def __init__(self):
        self._lock = Lock()
        self._cache: dict[K, T] = {}

    def get_or_create(self, key: K, factory: Callable[[], T]) -> T:
        """Return the cached value for ``key``, building it on first use.

        If ``factory`` raises, nothing is cached and the next call retries.

        Args:
            key: Cache key.
            factory: Zero-argument function building the value.

        Returns:
            The cached or freshly built value.
        """
        with self._lock:
            if key in self._cache:
                return self._cache[key]

            value = factory()
            self._cache[key] = value
            logger.debug("Constructed cached value", key=str(key))
            return value

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._cache

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

"""
Identity cache for document wrappers.

Guarantees at most one live wrapper per key: every caller asking for the
same key gets the same instance until it is evicted. Eviction is driven from
outside (``evict``, ``evict_idle``, ``clear``); wrappers are never dropped
implicitly on access.
"""

from typing import Callable, Dict, Generic, Hashable, List, Optional, Tuple, TypeVar
import time

from modgate.util.logger import get_logger

logger = get_logger("wrapper_cache")

W = TypeVar("W")


class WrapperCache(Generic[W]):
    """
    Keyed cache of wrapper instances with last-access tracking.

    Args:
        name: Label used in log lines.
        clock: Monotonic seconds source, replaceable in tests.
    """

    def __init__(self, name: str, clock: Callable[[], float] = time.monotonic):
        self._name = name
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, W]] = {}

    def get(self, key: Hashable) -> Optional[W]:
        """Return the cached wrapper for ``key`` (refreshing its access time) or None."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        wrapper = entry[1]
        self._entries[key] = (self._clock(), wrapper)
        return wrapper

    def get_or_create(self, key: Hashable, factory: Callable[[], W]) -> W:
        """
        Return the wrapper for ``key``, constructing it with ``factory`` on first use.

        Construction is synchronous, so two coroutines can never race to
        build two instances for the same key.
        """
        wrapper = self.get(key)
        if wrapper is None:
            wrapper = factory()
            self._entries[key] = (self._clock(), wrapper)
            logger.debug("[WRAPPER CACHE] %s: created %s", self._name, key)
        return wrapper

    def evict(self, key: Hashable) -> Optional[W]:
        """Drop ``key`` and return the evicted wrapper, if any."""
        entry = self._entries.pop(key, None)
        if entry is None:
            return None
        logger.debug("[WRAPPER CACHE] %s: evicted %s", self._name, key)
        return entry[1]

    def evict_idle(self, max_idle_seconds: float, pinned: Optional[Callable[[Hashable], bool]] = None) -> int:
        """
        Drop every wrapper not accessed in the last ``max_idle_seconds``.

        Keys for which ``pinned(key)`` is true are kept regardless of age.

        Returns:
            Number of wrappers evicted.
        """
        cutoff = self._clock() - max_idle_seconds
        stale = [
            key for key, (accessed, _) in self._entries.items()
            if accessed < cutoff and not (pinned and pinned(key))
        ]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug("[WRAPPER CACHE] %s: evicted %d idle wrapper(s)", self._name, len(stale))
        return len(stale)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def values(self) -> List[W]:
        """Cached wrappers, without touching their access times."""
        return [wrapper for _, wrapper in self._entries.values()]

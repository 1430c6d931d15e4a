"""Short-lived snapshot cache for read queries."""

from collections.abc import Callable

from browser_journey.config import CACHE_TTL_MS
from browser_journey.core.clock import now_ms
from browser_journey.models.journey import DataSnapshot


class SnapshotCache:
    """Hold the last loaded snapshot for ``ttl_ms``.

    Reads may be stale until ``invalidate()`` is called after a mutation.
    """

    def __init__(self, ttl_ms: int = CACHE_TTL_MS, *, clock: Callable[[], int] = now_ms) -> None:
        self.ttl_ms = ttl_ms
        self.clock = clock
        self._snapshot: DataSnapshot | None = None
        self._loaded_at = 0

    def get(self) -> DataSnapshot | None:
        if self._snapshot is None or self.clock() - self._loaded_at >= self.ttl_ms:
            return None
        return self._snapshot

    def put(self, snapshot: DataSnapshot) -> None:
        self._snapshot = snapshot
        self._loaded_at = self.clock()

    def invalidate(self) -> None:
        self._snapshot = None
        self._loaded_at = 0

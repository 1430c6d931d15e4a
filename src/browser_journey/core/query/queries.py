"""Filtered reads over the journey store, plus the mutations that keep it fresh."""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from loguru import logger

from browser_journey.config import EXPORT_VERSION, RETENTION_MS
from browser_journey.core.aggregate import compactor
from browser_journey.core.aggregate.fold import fold_visits
from browser_journey.core.clock import now_ms
from browser_journey.core.graph import mutator
from browser_journey.core.graph.builder import build_graph
from browser_journey.core.query.cache import SnapshotCache
from browser_journey.core.storage.repository import VisitRepository
from browser_journey.models.graph import JourneyGraph, JourneyPath
from browser_journey.models.journey import (
    ClearResult,
    DataSnapshot,
    DomainStats,
    JourneyStats,
    Transition,
    Visit,
)


@dataclass(frozen=True)
class JourneyFilters:
    """Independent, composable query filters.

    Time bounds are inclusive epoch milliseconds. Callers wanting whole days must
    pass an ``end_time`` at 23:59:59.999 themselves.
    """

    start_time: int | None = None
    end_time: int | None = None
    domain: str | None = None
    min_visits: int | None = None
    search: str | None = None

    @property
    def has_date_range(self) -> bool:
        return self.start_time is not None or self.end_time is not None


class JourneyQueries:
    """Query layer over a repository, with an explicit snapshot cache."""

    def __init__(
        self,
        repository: VisitRepository,
        *,
        cache: SnapshotCache | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.repository = repository
        self.cache = cache or SnapshotCache(clock=clock)
        self.clock = clock

    def invalidate_cache(self) -> None:
        self.cache.invalidate()

    async def get_all_data(self) -> DataSnapshot:
        """Return the stored snapshot, or an empty one if the store cannot be read."""
        cached = self.cache.get()
        if cached is not None:
            return cached
        try:
            snapshot = await self.repository.load()
        except Exception:
            logger.exception("Error getting data")
            return DataSnapshot()
        self.cache.put(snapshot)
        return snapshot

    async def get_visits(self, filters: JourneyFilters | None = None) -> list[Visit]:
        data = await self.get_all_data()
        return _filter_visits(data.visits, filters or JourneyFilters())

    async def get_domains(self, filters: JourneyFilters | None = None) -> dict[str, DomainStats]:
        """Domain aggregates, refolded from the matching visits when a date range is set."""
        filters = filters or JourneyFilters()
        data = await self.get_all_data()

        if filters.has_date_range:
            domains, _ = fold_visits(_filter_visits(data.visits, filters), data.domains)
        else:
            domains = dict(data.domains)

        if filters.domain:
            term = filters.domain.lower()
            domains = {d: s for d, s in domains.items() if term in d.lower()}
        if filters.min_visits:
            domains = {d: s for d, s in domains.items() if s.visit_count >= filters.min_visits}
        if filters.search:
            term = filters.search.lower()
            domains = {d: s for d, s in domains.items() if term in d.lower()}
        return domains

    async def get_transitions(
        self, filters: JourneyFilters | None = None
    ) -> dict[str, Transition]:
        """Transition aggregates, refolded from the matching visits when a date range is set."""
        filters = filters or JourneyFilters()
        data = await self.get_all_data()
        if not filters.has_date_range:
            return dict(data.transitions)
        _, transitions = fold_visits(_filter_visits(data.visits, filters))
        return transitions

    async def get_visits_for_domain(self, domain: str, limit: int = 50) -> list[Visit]:
        """Visits to exactly ``domain``, newest first."""
        data = await self.get_all_data()
        visits = sorted(
            (v for v in data.visits if v.domain == domain),
            key=lambda v: v.timestamp,
            reverse=True,
        )
        return visits[:limit]

    async def get_graph(self, filters: JourneyFilters | None = None) -> JourneyGraph:
        return build_graph(await self.get_visits(filters))

    async def get_stats(self, *, now: int | None = None) -> JourneyStats:
        data = await self.get_all_data()
        now = self.clock() if now is None else now

        midnight = datetime.fromtimestamp(now / 1000).replace(
            hour=0, minute=0, second=0, microsecond=0
        )
        today_start = int(midnight.timestamp() * 1000)

        most_visited: str | None = None
        most_visited_count = 0
        for domain, stats in data.domains.items():
            if stats.visit_count > most_visited_count:
                most_visited, most_visited_count = domain, stats.visit_count

        timestamps = [v.timestamp for v in data.visits]
        return JourneyStats(
            total_domains=len(data.domains),
            total_visits=len(data.visits),
            total_transitions=len(data.transitions),
            today_visits=sum(1 for t in timestamps if t >= today_start),
            most_visited=most_visited,
            most_visited_count=most_visited_count,
            first_visit=min(timestamps) if timestamps else None,
            last_visit=max(timestamps) if timestamps else None,
        )

    async def export_data(self) -> dict[str, Any]:
        """Everything in the store, in the backup file format."""
        data = await self.get_all_data()
        return {
            **data.to_dict(),
            "exportDate": datetime.fromtimestamp(self.clock() / 1000, tz=UTC).isoformat(),
            "version": EXPORT_VERSION,
        }

    async def clear_history(
        self, *, start_time: int | None = None, end_time: int | None = None
    ) -> ClearResult:
        result = await compactor.clear_history(
            self.repository, start_time=start_time, end_time=end_time, now=self.clock()
        )
        self.invalidate_cache()
        return result

    async def prune(self, *, retention_ms: int = RETENTION_MS) -> int | None:
        removed = await compactor.prune_old_visits(
            self.repository, retention_ms=retention_ms, now=self.clock()
        )
        self.invalidate_cache()
        return removed

    async def delete_path(self, path: JourneyPath | Iterable[str]) -> int:
        deleted = await mutator.delete_path(self.repository, path)
        self.invalidate_cache()
        return deleted


def _filter_visits(visits: Iterable[Visit], filters: JourneyFilters) -> list[Visit]:
    term = filters.domain.lower() if filters.domain else None
    return [
        v
        for v in visits
        if (filters.start_time is None or v.timestamp >= filters.start_time)
        and (filters.end_time is None or v.timestamp <= filters.end_time)
        and (term is None or term in v.domain.lower())
    ]

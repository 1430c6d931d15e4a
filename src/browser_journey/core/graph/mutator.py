"""Destructive edits driven by the graph view."""

from collections.abc import Iterable

from loguru import logger

from browser_journey.core.aggregate.fold import rebuild_snapshot
from browser_journey.core.storage.repository import VisitRepository
from browser_journey.models.graph import JourneyPath


async def delete_path(repository: VisitRepository, path: JourneyPath | Iterable[str]) -> int:
    """Delete every visit whose URL belongs to the path, then rebuild aggregates.

    Not reversible; confirmation is the caller's job.

    Args:
        repository: Repository holding the visits.
        path: A journey, or the set of its node URLs.

    Returns:
        Number of visits deleted, or -1 if the store failed.
    """
    urls = path.urls if isinstance(path, JourneyPath) else frozenset(path)
    try:
        async with repository.writing():
            snapshot = await repository.load()
            remaining = rebuild_snapshot(
                (v for v in snapshot.visits if v.url not in urls), snapshot.domains
            )
            await repository.save(remaining)
    except Exception:
        logger.exception("Error deleting path of {} pages", len(urls))
        return -1

    deleted = len(snapshot.visits) - len(remaining.visits)
    logger.info("Deleted path: {} pages, {} visits", len(urls), deleted)
    return deleted

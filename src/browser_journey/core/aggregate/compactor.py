"""Retention pruning and windowed clearing.

Aggregates are never patched on deletion. Every mutation filters the visit list
and folds the domains and transitions again from what is left.
"""

from loguru import logger

from browser_journey.config import RETENTION_MS
from browser_journey.core.aggregate.fold import rebuild_snapshot
from browser_journey.core.clock import now_ms
from browser_journey.core.storage.repository import VisitRepository
from browser_journey.models.journey import ClearResult, DataSnapshot


def retain_recent(snapshot: DataSnapshot, *, cutoff: int) -> DataSnapshot:
    """Keep visits strictly newer than ``cutoff`` and rebuild aggregates."""
    return rebuild_snapshot(
        (v for v in snapshot.visits if v.timestamp > cutoff), snapshot.domains
    )


def exclude_window(snapshot: DataSnapshot, *, start_time: int, end_time: int) -> DataSnapshot:
    """Drop visits in ``[start_time, end_time)`` and rebuild aggregates."""
    return rebuild_snapshot(
        (v for v in snapshot.visits if v.timestamp < start_time or v.timestamp >= end_time),
        snapshot.domains,
    )


async def prune_old_visits(
    repository: VisitRepository,
    *,
    retention_ms: int = RETENTION_MS,
    now: int | None = None,
) -> int | None:
    """Delete visits older than the retention horizon.

    Returns:
        Number of visits removed, or None if the store failed.
    """
    cutoff = (now_ms() if now is None else now) - retention_ms
    try:
        async with repository.writing():
            snapshot = await repository.load()
            pruned = retain_recent(snapshot, cutoff=cutoff)
            await repository.save(pruned)
    except Exception:
        logger.exception("Error during cleanup")
        return None

    removed = len(snapshot.visits) - len(pruned.visits)
    if removed:
        logger.info("Pruned {} visits older than {} days", removed, retention_ms // 86_400_000)
    else:
        logger.debug("Nothing to prune")
    return removed


async def clear_history(
    repository: VisitRepository,
    *,
    start_time: int | None = None,
    end_time: int | None = None,
    now: int | None = None,
) -> ClearResult:
    """Clear all history, or only visits inside ``[start_time, end_time)``.

    A missing start means the beginning of time. A missing end includes visits
    stamped exactly ``now``.
    """
    try:
        async with repository.writing():
            if start_time is None and end_time is None:
                await repository.save(DataSnapshot())
                logger.info("All history cleared")
                return ClearResult(success=True, message="All history cleared")

            if end_time is None:
                end_time = (now_ms() if now is None else now) + 1
            snapshot = await repository.load()
            remaining = exclude_window(snapshot, start_time=start_time or 0, end_time=end_time)
            await repository.save(remaining)
    except Exception:
        logger.exception("Error clearing history")
        return ClearResult(success=False, message="Error clearing history")

    cleared = len(snapshot.visits) - len(remaining.visits)
    logger.info("Cleared {} visits", cleared)
    return ClearResult(success=True, message=f"Cleared {cleared} visits", cleared_count=cleared)

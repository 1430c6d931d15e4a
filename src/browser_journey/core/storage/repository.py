"""Typed access to the journey collections on top of a key-value store."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from loguru import logger

from browser_journey.models.journey import ClosedTab, DataSnapshot, DomainStats, Transition, Visit
from browser_journey.protocols import StoreProtocol

VISITS_KEY = "visits"
DOMAINS_KEY = "domains"
TRANSITIONS_KEY = "transitions"
CLOSED_TABS_KEY = "closedTabs"

SNAPSHOT_KEYS = (VISITS_KEY, DOMAINS_KEY, TRANSITIONS_KEY)


class StoreError(RuntimeError):
    """Persisted data has an unexpected shape."""


class VisitRepository:
    """Read and write the journey collections.

    Every read-modify-write must run inside ``writing()``: the store offers no
    compare-and-swap, so concurrent writers would otherwise lose updates.
    """

    def __init__(self, store: StoreProtocol) -> None:
        self.store = store
        self._write_lock = asyncio.Lock()

    @asynccontextmanager
    async def writing(self) -> AsyncIterator[None]:
        async with self._write_lock:
            yield

    async def load(self) -> DataSnapshot:
        raw = await self.store.get(SNAPSHOT_KEYS)
        visits_raw = raw.get(VISITS_KEY) or []
        domains_raw = raw.get(DOMAINS_KEY) or {}
        transitions_raw = raw.get(TRANSITIONS_KEY) or {}
        if not isinstance(visits_raw, list):
            msg = f"bad {VISITS_KEY!r} value: {type(visits_raw).__name__}"
            raise StoreError(msg)
        if not isinstance(domains_raw, dict) or not isinstance(transitions_raw, dict):
            msg = "bad aggregate values, expected objects"
            raise StoreError(msg)
        try:
            return DataSnapshot(
                visits=tuple(Visit.from_dict(v) for v in visits_raw),
                domains={k: DomainStats.from_dict(v) for k, v in domains_raw.items()},
                transitions={k: Transition.from_dict(v) for k, v in transitions_raw.items()},
            )
        except (KeyError, TypeError, ValueError) as e:
            msg = f"malformed record in store: {e!r}"
            raise StoreError(msg) from e

    async def save(self, snapshot: DataSnapshot) -> None:
        """Write all three collections in one ``set`` call.

        Whether that is atomic depends on the store.
        """
        await self.store.set(snapshot.to_dict())
        logger.debug(
            "Saved {} visits, {} domains, {} transitions",
            len(snapshot.visits), len(snapshot.domains), len(snapshot.transitions),
        )

    async def load_closed_tabs(self) -> dict[str, ClosedTab]:
        raw: dict[str, Any] = (await self.store.get([CLOSED_TABS_KEY])).get(CLOSED_TABS_KEY) or {}
        return {k: ClosedTab.from_dict(v) for k, v in raw.items()}

    async def save_closed_tabs(self, closed_tabs: dict[str, ClosedTab]) -> None:
        await self.store.set({CLOSED_TABS_KEY: {k: v.to_dict() for k, v in closed_tabs.items()}})

"""Turn tab events into persisted visits."""

import secrets
import string
from collections.abc import Callable

from loguru import logger

from browser_journey.core.aggregate.fold import append_visit
from browser_journey.core.clock import now_ms
from browser_journey.core.storage.repository import VisitRepository
from browser_journey.core.tracking.attribution import AttributionResolver
from browser_journey.core.tracking.domain import extract_domain
from browser_journey.models.journey import ClosedTab, Visit
from browser_journey.protocols import TabLookupProtocol

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_visit_id(timestamp: int) -> str:
    """Time-based id with a random suffix, e.g. ``1718000000000-k3j9x0a1b``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{timestamp}-{suffix}"


class EventIngestor:
    """Record navigations from tab events and keep aggregates in step.

    All writes go through the repository's write lock, so events are applied one
    at a time even when delivered concurrently.
    """

    def __init__(
        self,
        repository: VisitRepository,
        *,
        resolver: AttributionResolver | None = None,
        tabs: TabLookupProtocol | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.repository = repository
        self.resolver = resolver or AttributionResolver()
        self.tabs = tabs
        self.clock = clock

    async def handle_tab_updated(
        self,
        tab_id: int,
        url: str | None,
        title: str | None = None,
        status_complete: bool = True,
        *,
        timestamp: int | None = None,
    ) -> Visit | None:
        """Handle a tab update event. Only completed page loads are tracked."""
        if not status_complete or not url:
            return None
        return await self.track_navigation(tab_id, url, title, timestamp=timestamp)

    async def track_navigation(
        self,
        tab_id: int,
        url: str,
        title: str | None = None,
        *,
        timestamp: int | None = None,
    ) -> Visit | None:
        """Record a navigation and update domain and transition aggregates.

        Returns:
            The stored visit, or None when the URL has no domain, repeats the tab's
            last URL, or the store failed.
        """
        domain = extract_domain(url)
        if domain is None:
            return None

        async with self.repository.writing():
            if self.resolver.last_url(tab_id) == url:
                logger.debug("Tab {} still on {}, not a new visit", tab_id, url)
                return None

            attribution = self.resolver.resolve(tab_id)
            ts = self.clock() if timestamp is None else timestamp
            visit = Visit(
                id=generate_visit_id(ts),
                domain=domain,
                url=url,
                title=title or domain,
                timestamp=ts,
                from_domain=attribution.from_domain,
                from_url=attribution.from_url,
                tab_id=tab_id,
            )

            try:
                snapshot = await self.repository.load()
                await self.repository.save(append_visit(snapshot, visit))
            except Exception:
                logger.exception("Error tracking navigation to {}", url)
                return None

            self.resolver.record_visit(tab_id, url)

        logger.debug("Tracked {} (from {})", url, visit.from_domain)
        return visit

    async def handle_navigation_target_created(self, source_tab_id: int, new_tab_id: int) -> None:
        """Remember which page opened ``new_tab_id``. Silently skipped if the source is gone."""
        if self.tabs is None:
            return
        try:
            source_url = await self.tabs.get_url(source_tab_id)
        except Exception as e:
            logger.debug("Source tab {} lookup failed: {}", source_tab_id, e)
            return
        if source_url:
            self.resolver.register_opener(new_tab_id, source_url)

    async def handle_tab_removed(self, tab_id: int) -> None:
        """Mark where the tab's journey ended and drop its tab state."""
        try:
            async with self.repository.writing():
                snapshot = await self.repository.load()
                tab_visits = [v for v in snapshot.visits if v.tab_id == tab_id]
                if tab_visits:
                    last = tab_visits[-1]
                    closed_tabs = await self.repository.load_closed_tabs()
                    closed_tabs[str(tab_id)] = ClosedTab(
                        closed_at=self.clock(), last_url=last.url, last_domain=last.domain
                    )
                    await self.repository.save_closed_tabs(closed_tabs)
        except Exception:
            logger.exception("Error handling removal of tab {}", tab_id)
        finally:
            self.resolver.forget_tab(tab_id)

"""Per-tab state and causal-predecessor attribution."""

from dataclasses import dataclass

from browser_journey.core.tracking.domain import extract_domain


@dataclass(frozen=True)
class Attribution:
    """The page a navigation came from, if known."""

    from_url: str | None = None
    from_domain: str | None = None


class AttributionResolver:
    """Owns the ephemeral tab maps used to attribute navigations.

    - ``last_urls``: tab id -> URL of the last recorded visit in that tab.
    - ``pending_openers``: tab id -> URL of the page that opened the tab. Consumed by
      the tab's first attributed navigation.

    Nothing here is persisted; a restart forgets in-flight opener links.
    """

    def __init__(self) -> None:
        self.last_urls: dict[int, str] = {}
        self.pending_openers: dict[int, str] = {}

    def last_url(self, tab_id: int) -> str | None:
        return self.last_urls.get(tab_id)

    def resolve(self, tab_id: int) -> Attribution:
        """Attribute the next navigation in ``tab_id``.

        The tab's own previous page wins. Otherwise a pending opener URL is used and
        removed, so it can never be attributed twice.
        """
        from_url = self.last_urls.get(tab_id)
        if from_url is None:
            from_url = self.pending_openers.pop(tab_id, None)
        if from_url is None:
            return Attribution()
        return Attribution(from_url=from_url, from_domain=extract_domain(from_url))

    def record_visit(self, tab_id: int, url: str) -> None:
        self.last_urls[tab_id] = url

    def register_opener(self, tab_id: int, opener_url: str) -> None:
        self.pending_openers[tab_id] = opener_url

    def forget_tab(self, tab_id: int) -> None:
        self.last_urls.pop(tab_id, None)
        self.pending_openers.pop(tab_id, None)

"""Persisted records of the browsing journey store.

The stored form uses camelCase keys so exported files stay compatible with
the browser extension's storage layout.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Visit:
    """One recorded instance of a tab navigating to a URL."""

    id: str
    domain: str
    url: str
    title: str
    timestamp: int
    from_domain: str | None = None
    from_url: str | None = None
    tab_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "domain": self.domain,
            "url": self.url,
            "title": self.title,
            "timestamp": self.timestamp,
            "fromDomain": self.from_domain,
            "fromUrl": self.from_url,
            "tabId": self.tab_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Visit":
        return cls(
            id=str(data["id"]),
            domain=data["domain"],
            url=data["url"],
            title=data.get("title") or data["domain"],
            timestamp=int(data["timestamp"]),
            from_domain=data.get("fromDomain"),
            from_url=data.get("fromUrl"),
            tab_id=data.get("tabId"),
        )


@dataclass(frozen=True)
class DomainStats:
    """Aggregate of all visits to one domain."""

    visit_count: int
    first_visit: int
    last_visit: int
    favicon: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "visitCount": self.visit_count,
            "firstVisit": self.first_visit,
            "lastVisit": self.last_visit,
            "favicon": self.favicon,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DomainStats":
        return cls(
            visit_count=int(data["visitCount"]),
            first_visit=int(data["firstVisit"]),
            last_visit=int(data["lastVisit"]),
            favicon=data.get("favicon", ""),
        )


@dataclass(frozen=True)
class Transition:
    """Aggregate of cross-domain navigations for one ``from->to`` pair."""

    count: int
    last_visit: int

    def to_dict(self) -> dict[str, Any]:
        return {"count": self.count, "lastVisit": self.last_visit}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Transition":
        return cls(count=int(data["count"]), last_visit=int(data["lastVisit"]))


@dataclass(frozen=True)
class ClosedTab:
    """Where a tab's journey ended when it was closed."""

    closed_at: int
    last_url: str
    last_domain: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "closedAt": self.closed_at,
            "lastUrl": self.last_url,
            "lastDomain": self.last_domain,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClosedTab":
        return cls(
            closed_at=int(data["closedAt"]),
            last_url=data["lastUrl"],
            last_domain=data["lastDomain"],
        )


@dataclass(frozen=True)
class DataSnapshot:
    """The three persisted collections, read or written together."""

    visits: tuple[Visit, ...] = ()
    domains: dict[str, DomainStats] = field(default_factory=dict)
    transitions: dict[str, Transition] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "visits": [v.to_dict() for v in self.visits],
            "domains": {k: v.to_dict() for k, v in self.domains.items()},
            "transitions": {k: v.to_dict() for k, v in self.transitions.items()},
        }


@dataclass(frozen=True)
class ClearResult:
    """Outcome of a history clear."""

    success: bool
    message: str
    cleared_count: int = 0


@dataclass(frozen=True)
class JourneyStats:
    """Summary counters for the whole store."""

    total_domains: int
    total_visits: int
    total_transitions: int
    today_visits: int
    most_visited: str | None
    most_visited_count: int
    first_visit: int | None
    last_visit: int | None

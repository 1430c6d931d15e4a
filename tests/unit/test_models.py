"""Tests for domain models."""

import pytest

from browser_journey.core.clock import parse_day
from browser_journey.models.graph import Edge, JourneyPath, Node
from browser_journey.models.journey import ClosedTab, DomainStats, Visit


def test_visit_is_frozen() -> None:
    visit = Visit(id="1", domain="a.com", url="https://a.com/", title="A", timestamp=1)
    with pytest.raises(AttributeError):
        visit.url = "changed"  # type: ignore[misc]


def test_visit_dict_uses_camel_case_keys() -> None:
    visit = Visit(
        id="1",
        domain="b.com",
        url="https://b.com/",
        title="B",
        timestamp=5,
        from_domain="a.com",
        from_url="https://a.com/",
        tab_id=3,
    )
    data = visit.to_dict()

    assert data["fromDomain"] == "a.com"
    assert data["fromUrl"] == "https://a.com/"
    assert data["tabId"] == 3
    assert Visit.from_dict(data) == visit


def test_domain_stats_missing_favicon_defaults_to_empty() -> None:
    stats = DomainStats.from_dict({"visitCount": 1, "firstVisit": 2, "lastVisit": 3})
    assert stats.favicon == ""


def test_closed_tab_dict() -> None:
    tab = ClosedTab(closed_at=1, last_url="https://a.com/", last_domain="a.com")
    assert tab.to_dict() == {"closedAt": 1, "lastUrl": "https://a.com/", "lastDomain": "a.com"}


def test_journey_path_properties() -> None:
    nodes = (
        Node("u1", "u1", "a.com", "A", 1, 10, 10),
        Node("u2", "u2", "b.com", "B", 2, 20, 30),
    )
    path = JourneyPath(nodes=nodes, edges=(Edge("u1", "u2"),))
    assert path.urls == frozenset({"u1", "u2"})
    assert path.first_visit == 10


def test_parse_day_end_of_day_is_last_millisecond() -> None:
    start = parse_day("2024-03-01")
    end = parse_day("2024-03-01", end_of_day=True)
    assert parse_day("2024-03-02") - end == 1
    assert end > start


def test_parse_day_rejects_bad_format() -> None:
    with pytest.raises(ValueError):
        parse_day("03/01/2024")

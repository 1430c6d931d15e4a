"""Tests for MCP tool core functions."""

import asyncio
from datetime import datetime

import pytest

from browser_journey.core.aggregate.fold import rebuild_snapshot
from browser_journey.core.query.queries import JourneyQueries
from browser_journey.core.storage.repository import VisitRepository
from browser_journey.mcp.server import (
    journey_domain_visits,
    journey_get_path,
    journey_list_domains,
    journey_list_paths,
    journey_stats,
)
from tests.unit.fakes import FakeStore, make_visit

MAR_1 = int(datetime(2024, 3, 1, 12).timestamp() * 1000)
MAR_5 = int(datetime(2024, 3, 5, 12).timestamp() * 1000)


@pytest.fixture
def queries() -> JourneyQueries:
    repository = VisitRepository(FakeStore())
    visits = [
        make_visit("https://a.com/", MAR_1, title="Home"),
        make_visit("https://b.com/", MAR_1 + 1000, from_domain="a.com", from_url="https://a.com/"),
        make_visit("https://c.com/", MAR_1 + 2000, from_domain="b.com", from_url="https://b.com/"),
        make_visit("https://solo.org/", MAR_5, tab_id=2),
    ]
    asyncio.run(repository.save(rebuild_snapshot(visits)))
    return JourneyQueries(repository)


def test_journey_list_paths_returns_summaries(queries: JourneyQueries) -> None:
    result = asyncio.run(journey_list_paths(queries))

    assert result["count"] == 2
    assert result["total"] == 2
    assert result["has_more"] is False
    first = result["paths"][0]
    assert first["index"] == 0
    assert first["pages"] == 3
    assert first["start_url"] == "https://a.com/"
    assert first["start_title"] == "Home"


def test_journey_list_paths_paginates(queries: JourneyQueries) -> None:
    result = asyncio.run(journey_list_paths(queries, limit=1))
    assert result["count"] == 1
    assert result["has_more"] is True
    assert result["next_offset"] == 1

    second = asyncio.run(journey_list_paths(queries, limit=1, offset=1))
    assert second["paths"][0]["primary_domain"] == "solo.org"
    assert second["has_more"] is False


def test_journey_list_paths_filters(queries: JourneyQueries) -> None:
    assert asyncio.run(journey_list_paths(queries, search="HOME"))["total"] == 1
    assert asyncio.run(journey_list_paths(queries, hide_single_page=True))["total"] == 1
    assert asyncio.run(journey_list_paths(queries, since="2024-03-02"))["total"] == 1


def test_journey_list_paths_bad_date(queries: JourneyQueries) -> None:
    result = asyncio.run(journey_list_paths(queries, since="yesterday"))
    assert "error" in result
    assert result["paths"] == []


def test_journey_get_path_includes_nodes_edges_depths(queries: JourneyQueries) -> None:
    result = asyncio.run(journey_get_path(queries, index=0))

    assert "error" not in result
    depths = {n["url"]: n["depth"] for n in result["nodes"]}
    assert depths == {"https://a.com/": 0, "https://b.com/": 1, "https://c.com/": 2}
    assert {"source": "https://a.com/", "target": "https://b.com/"} in result["edges"]


def test_journey_get_path_not_found(queries: JourneyQueries) -> None:
    result = asyncio.run(journey_get_path(queries, index=5))
    assert result["error"] == "Journey 5 not found."


def test_journey_list_domains_sorted_with_favicons(queries: JourneyQueries) -> None:
    result = asyncio.run(journey_list_domains(queries))

    assert result["total"] == 4
    assert all(d["visit_count"] == 1 for d in result["domains"])
    assert [d["domain"] for d in result["domains"]] == ["a.com", "b.com", "c.com", "solo.org"]
    assert result["domains"][0]["favicon"].endswith("domain=a.com&sz=32")


def test_journey_list_domains_date_range(queries: JourneyQueries) -> None:
    result = asyncio.run(journey_list_domains(queries, until="2024-03-01"))
    assert {d["domain"] for d in result["domains"]} == {"a.com", "b.com", "c.com"}


def test_journey_domain_visits(queries: JourneyQueries) -> None:
    result = asyncio.run(journey_domain_visits(queries, domain="c.com"))
    assert result["count"] == 1
    assert result["visits"][0]["from_domain"] == "b.com"
    assert result["visits"][0]["from_url"] == "https://b.com/"


def test_journey_stats(queries: JourneyQueries) -> None:
    result = asyncio.run(journey_stats(queries))
    assert result["total_visits"] == 4
    assert result["total_transitions"] == 2
    assert result["first_visit"].startswith("2024-03-01")

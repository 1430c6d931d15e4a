"""MCP server exposing browsing journeys, domains and stats."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from browser_journey.config import STORE_BACKEND, resolve_data_directory
from browser_journey.core.clock import parse_day
from browser_journey.core.graph.builder import assign_depths, filter_paths, primary_domain
from browser_journey.core.query.queries import JourneyFilters, JourneyQueries
from browser_journey.core.storage.factory import open_store
from browser_journey.core.storage.repository import VisitRepository
from browser_journey.core.tracking.domain import favicon_url
from browser_journey.models.graph import JourneyPath


def _iso(ms: int | None) -> str | None:
    if ms is None:
        return None
    return datetime.fromtimestamp(ms / 1000, tz=UTC).isoformat()


def _filters(
    *,
    since: str | None = None,
    until: str | None = None,
    domain: str | None = None,
    min_visits: int | None = None,
    search: str | None = None,
) -> JourneyFilters | dict[str, Any]:
    """Build query filters, or an error dict if a date is malformed."""
    try:
        start_time = parse_day(since) if since else None
        end_time = parse_day(until, end_of_day=True) if until else None
    except ValueError:
        return {"error": f"Invalid date in since={since!r} until={until!r}. Expected YYYY-MM-DD."}
    return JourneyFilters(
        start_time=start_time,
        end_time=end_time,
        domain=domain,
        min_visits=min_visits,
        search=search,
    )


def _path_summary(index: int, path: JourneyPath) -> dict[str, Any]:
    return {
        "index": index,
        "primary_domain": primary_domain(path),
        "pages": len(path.nodes),
        "edges": len(path.edges),
        "first_visit": _iso(path.first_visit),
        "start_url": path.nodes[0].url,
        "start_title": path.nodes[0].title,
    }


# --- Core functions (testable without MCP context) ---


async def journey_list_paths(
    queries: JourneyQueries,
    *,
    since: str | None = None,
    until: str | None = None,
    domain: str | None = None,
    search: str | None = None,
    hide_single_page: bool = False,
    limit: int = 20,
    offset: int = 0,
) -> dict[str, Any]:
    """List browsing journeys (connected navigation paths), oldest first.

    Args:
        since: Only visits on or after this date (YYYY-MM-DD).
        until: Only visits on or before this date (YYYY-MM-DD).
        domain: Only visits whose domain contains this text.
        search: Only paths with a page whose URL, title or domain matches.
        hide_single_page: Skip journeys that are a single page.
        limit: Max results (1-100, default 20).
        offset: Pagination offset.
    """
    filters = _filters(since=since, until=until, domain=domain)
    if isinstance(filters, dict):
        return {**filters, "paths": [], "count": 0, "total": 0}
    limit = max(1, min(limit, 100))

    graph = await queries.get_graph(filters)
    selected = filter_paths(graph.paths, search=search, hide_single_page=hide_single_page)
    page = selected[offset : offset + limit]

    output: dict[str, Any] = {
        "paths": [_path_summary(index, path) for index, path in page],
        "count": len(page),
        "total": len(selected),
        "has_more": offset + len(page) < len(selected),
    }
    if output["has_more"]:
        output["next_offset"] = offset + limit
    return output


async def journey_get_path(
    queries: JourneyQueries,
    *,
    index: int,
    since: str | None = None,
    until: str | None = None,
    domain: str | None = None,
) -> dict[str, Any]:
    """Get one journey with its pages, links and tree depths.

    ``index`` refers to the list returned by journey_list_paths with the same
    date and domain filters.
    """
    filters = _filters(since=since, until=until, domain=domain)
    if isinstance(filters, dict):
        return filters

    graph = await queries.get_graph(filters)
    if not 0 <= index < len(graph.paths):
        return {"error": f"Journey {index} not found.", "total": len(graph.paths)}

    path = graph.paths[index]
    depths = assign_depths(path)
    return {
        **_path_summary(index, path),
        "nodes": [
            {
                "url": n.url,
                "domain": n.domain,
                "title": n.title,
                "visit_count": n.visit_count,
                "first_visit": _iso(n.first_visit),
                "last_visit": _iso(n.last_visit),
                "depth": depths[n.url],
            }
            for n in path.nodes
        ],
        "edges": [{"source": e.source, "target": e.target} for e in path.edges],
    }


async def journey_list_domains(
    queries: JourneyQueries,
    *,
    since: str | None = None,
    until: str | None = None,
    search: str | None = None,
    min_visits: int | None = None,
    limit: int = 50,
) -> dict[str, Any]:
    """List domains by visit count, with first and last visit times."""
    filters = _filters(since=since, until=until, min_visits=min_visits, search=search)
    if isinstance(filters, dict):
        return {**filters, "domains": [], "count": 0, "total": 0}
    limit = max(1, min(limit, 500))

    domains = await queries.get_domains(filters)
    ranked = sorted(domains.items(), key=lambda item: (-item[1].visit_count, item[0]))
    return {
        "domains": [
            {
                "domain": name,
                "visit_count": stats.visit_count,
                "first_visit": _iso(stats.first_visit),
                "last_visit": _iso(stats.last_visit),
                "favicon": stats.favicon or favicon_url(name),
            }
            for name, stats in ranked[:limit]
        ],
        "count": min(len(ranked), limit),
        "total": len(ranked),
    }


async def journey_domain_visits(
    queries: JourneyQueries, *, domain: str, limit: int = 50
) -> dict[str, Any]:
    """Most recent visits to exactly ``domain``, with where they came from."""
    limit = max(1, min(limit, 200))
    visits = await queries.get_visits_for_domain(domain, limit)
    return {
        "domain": domain,
        "visits": [
            {
                "url": v.url,
                "title": v.title,
                "time": _iso(v.timestamp),
                "from_domain": v.from_domain,
                "from_url": v.from_url,
            }
            for v in visits
        ],
        "count": len(visits),
    }


async def journey_stats(queries: JourneyQueries) -> dict[str, Any]:
    """Summary counters for the whole store."""
    stats = await queries.get_stats()
    return {
        "total_domains": stats.total_domains,
        "total_visits": stats.total_visits,
        "total_transitions": stats.total_transitions,
        "today_visits": stats.today_visits,
        "most_visited": stats.most_visited,
        "most_visited_count": stats.most_visited_count,
        "first_visit": _iso(stats.first_visit),
        "last_visit": _iso(stats.last_visit),
    }


# --- MCP Server Setup ---


@dataclass
class ServerContext:
    """Shared resources for the MCP server lifetime."""

    queries: JourneyQueries


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Open the store on startup, close on shutdown."""
    data_dir = resolve_data_directory()
    store = open_store(STORE_BACKEND, data_dir)
    logger.info("Serving journeys from {} ({})", data_dir, STORE_BACKEND)
    try:
        yield ServerContext(queries=JourneyQueries(VisitRepository(store)))
    finally:
        store.close()


mcp_server = FastMCP(
    "browser-journey",
    instructions="""\
Browsing history is stored as visits grouped into journeys: connected chains
of pages where one page led to the next.

1. Use journey_list_paths_tool to find journeys (filter by date, domain or text).
2. Call journey_get_path_tool with a journey's index, passing the same date and
   domain filters, to see every page and link in it.
3. Use journey_list_domains_tool and journey_domain_visits_tool for per-site views.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> ServerContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def journey_list_paths_tool(
    ctx: Context,
    since: str | None = None,
    until: str | None = None,
    domain: str | None = None,
    search: str | None = None,
    hide_single_page: bool = False,
    limit: int = 20,
    offset: int = 0,
) -> dict[str, Any]:
    """List browsing journeys, oldest first.

    Pagination: When has_more is true, use next_offset in a follow-up call.

    Args:
        since: Only visits on or after this date (YYYY-MM-DD).
        until: Only visits on or before this date (YYYY-MM-DD).
        domain: Only visits whose domain contains this text.
        search: Only journeys with a page whose URL, title or domain matches.
        hide_single_page: Skip single-page journeys.
        limit: Max results (1-100, default 20).
        offset: Pagination offset.
    """
    return await journey_list_paths(
        _ctx(ctx).queries,
        since=since,
        until=until,
        domain=domain,
        search=search,
        hide_single_page=hide_single_page,
        limit=limit,
        offset=offset,
    )


@mcp_server.tool()
async def journey_get_path_tool(
    ctx: Context,
    index: int,
    since: str | None = None,
    until: str | None = None,
    domain: str | None = None,
) -> dict[str, Any]:
    """Get one journey's pages, links and tree depths.

    Args:
        index: Journey index from journey_list_paths_tool.
        since: Same date filter used when listing.
        until: Same date filter used when listing.
        domain: Same domain filter used when listing.
    """
    return await journey_get_path(
        _ctx(ctx).queries, index=index, since=since, until=until, domain=domain
    )


@mcp_server.tool()
async def journey_list_domains_tool(
    ctx: Context,
    since: str | None = None,
    until: str | None = None,
    search: str | None = None,
    min_visits: int | None = None,
    limit: int = 50,
) -> dict[str, Any]:
    """List visited domains, most visited first.

    With since/until, counts cover only visits in that range.

    Args:
        since: Only visits on or after this date (YYYY-MM-DD).
        until: Only visits on or before this date (YYYY-MM-DD).
        search: Only domains containing this text.
        min_visits: Only domains with at least this many visits.
        limit: Max results (1-500, default 50).
    """
    return await journey_list_domains(
        _ctx(ctx).queries,
        since=since,
        until=until,
        search=search,
        min_visits=min_visits,
        limit=limit,
    )


@mcp_server.tool()
async def journey_domain_visits_tool(ctx: Context, domain: str, limit: int = 50) -> dict[str, Any]:
    """Most recent visits to one domain, with the page each came from.

    Args:
        domain: Exact domain, e.g. "docs.python.org".
        limit: Max results (1-200, default 50).
    """
    return await journey_domain_visits(_ctx(ctx).queries, domain=domain, limit=limit)


@mcp_server.tool()
async def journey_stats_tool(ctx: Context) -> dict[str, Any]:
    """Summary counters: domains, visits, transitions, today's visits, most visited."""
    return await journey_stats(_ctx(ctx).queries)


def run_mcp_server() -> None:
    """Run the MCP server with stdio transport."""
    from browser_journey.logging_config import configure_logging

    configure_logging(verbose=False)
    mcp_server.run(transport="stdio")

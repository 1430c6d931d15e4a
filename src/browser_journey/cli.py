"""CLI for browser-journey (replay, browse journeys, maintenance, MCP server)."""

import asyncio
import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from browser_journey.config import RETENTION_DAYS, STORE_BACKEND, resolve_data_directory
from browser_journey.core.clock import parse_day
from browser_journey.core.graph.builder import assign_depths, filter_paths, primary_domain
from browser_journey.core.query.queries import JourneyFilters, JourneyQueries
from browser_journey.core.storage.factory import open_store
from browser_journey.core.storage.repository import VisitRepository
from browser_journey.core.storage.sqlite_store import SqliteStore
from browser_journey.core.tracking.ingestor import EventIngestor
from browser_journey.core.tracking.replay import (
    ReplayClock,
    ReplayTabs,
    parse_events,
    replay_events,
)
from browser_journey.logging_config import configure_logging
from browser_journey.models.graph import JourneyPath
from browser_journey.writer import JsonFileStore

app = typer.Typer(help="Browser journey: record, browse and prune your navigation graph.")

DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", "-d", help="Journey store directory"),
]
BackendOption = Annotated[
    str | None,
    typer.Option("--backend", "-b", help="Store backend: sqlite or json"),
]
FromOption = Annotated[
    str | None,
    typer.Option("--from", help="Only visits on or after this date (YYYY-MM-DD)"),
]
ToOption = Annotated[
    str | None,
    typer.Option("--to", help="Only visits on or before this date (YYYY-MM-DD)"),
]
DomainOption = Annotated[
    str | None,
    typer.Option("--domain", "-D", help="Only domains containing this text"),
]
DryRunOption = Annotated[
    bool,
    typer.Option("--dry-run", help="Report what would change without writing anything"),
]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose=verbose)


def _open_repository(
    data_dir: Path | None, backend: str | None, *, dry_run: bool = False
) -> tuple[SqliteStore | JsonFileStore, VisitRepository]:
    dst = data_dir or resolve_data_directory()
    try:
        store = open_store(backend or STORE_BACKEND, dst, dry_run=dry_run)
    except ValueError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e
    return store, VisitRepository(store)


def _day_range(start: str | None, end: str | None) -> tuple[int | None, int | None]:
    """Parse ``--from``/``--to``; the end date covers the whole day."""
    try:
        start_time = parse_day(start) if start else None
        end_time = parse_day(end, end_of_day=True) if end else None
    except ValueError as e:
        typer.echo(f"Invalid date: {e}. Expected YYYY-MM-DD.")
        raise typer.Exit(1) from e
    return start_time, end_time


def _fmt(ms: int | None) -> str:
    if ms is None:
        return "-"
    return f"{datetime.fromtimestamp(ms / 1000):%Y-%m-%d %H:%M}"


async def _select_path(
    queries: JourneyQueries, filters: JourneyFilters, index: int
) -> JourneyPath | None:
    graph = await queries.get_graph(filters)
    if not 0 <= index < len(graph.paths):
        return None
    return graph.paths[index]


@app.command()
def replay(
    events_file: Path = typer.Argument(..., help="JSONL file of recorded tab events"),
    data_dir: DataDirOption = None,
    backend: BackendOption = None,
) -> None:
    """Feed recorded tab events through the tracker."""
    if not events_file.exists():
        logger.error("Events file not found: {}", events_file)
        raise typer.Exit(1)
    try:
        events = parse_events(events_file.read_text(encoding="utf-8").splitlines())
    except ValueError as e:
        typer.echo(f"Bad events file: {e}")
        raise typer.Exit(1) from e

    store, repository = _open_repository(data_dir, backend)
    try:
        clock = ReplayClock()
        tabs = ReplayTabs()
        ingestor = EventIngestor(repository, tabs=tabs, clock=clock)
        stats = asyncio.run(replay_events(ingestor, events, clock=clock, tabs=tabs))
        typer.echo(
            f"Replayed {stats.events} events: recorded {stats.visits_recorded} visits, "
            f"skipped {stats.skipped} updates"
        )
    finally:
        store.close()


@app.command()
def paths(
    start: FromOption = None,
    end: ToOption = None,
    domain: DomainOption = None,
    search: Annotated[
        str | None,
        typer.Option("--search", "-s", help="Only paths with a matching URL, title or domain"),
    ] = None,
    hide_single_page: bool = typer.Option(
        False, "--hide-single-page", help="Hide journeys with only one page"
    ),
    data_dir: DataDirOption = None,
    backend: BackendOption = None,
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List browsing journeys, oldest first."""
    start_time, end_time = _day_range(start, end)
    filters = JourneyFilters(start_time=start_time, end_time=end_time, domain=domain)

    store, repository = _open_repository(data_dir, backend)
    try:
        graph = asyncio.run(JourneyQueries(repository).get_graph(filters))
    finally:
        store.close()

    selected = filter_paths(graph.paths, search=search, hide_single_page=hide_single_page)
    if output_json:
        data = {
            "paths": [
                {
                    "index": index,
                    "primary_domain": primary_domain(journey),
                    "pages": len(journey.nodes),
                    "edges": len(journey.edges),
                    "first_visit": journey.first_visit,
                }
                for index, journey in selected
            ],
            "total": len(graph.paths),
        }
        typer.echo(json.dumps(data, indent=2))
        return

    typer.echo(f"{len(selected)} journeys (of {len(graph.paths)}):\n")
    for index, journey in selected:
        typer.echo(
            f"  [{index}] {primary_domain(journey)} - {len(journey.nodes)} pages  "
            f"{_fmt(journey.first_visit)}"
        )


@app.command()
def path(
    index: int = typer.Argument(..., help="Journey index from 'paths'"),
    start: FromOption = None,
    end: ToOption = None,
    domain: DomainOption = None,
    data_dir: DataDirOption = None,
    backend: BackendOption = None,
) -> None:
    """Show one journey as an indented tree."""
    start_time, end_time = _day_range(start, end)
    filters = JourneyFilters(start_time=start_time, end_time=end_time, domain=domain)

    store, repository = _open_repository(data_dir, backend)
    try:
        selected = asyncio.run(_select_path(JourneyQueries(repository), filters, index))
    finally:
        store.close()

    if selected is None:
        typer.echo(f"Journey {index} not found.")
        raise typer.Exit(1)

    depths = assign_depths(selected)
    typer.echo(f"Journey {index}: {primary_domain(selected)}, {len(selected.nodes)} pages\n")
    for node in selected.nodes:
        indent = "  " * (depths[node.url] + 1)
        typer.echo(f"{indent}{node.title[:60]}  ({node.visit_count}x)")
        typer.echo(f"{indent}  {node.url}")


@app.command(name="delete-path")
def delete_path(
    index: int = typer.Argument(..., help="Journey index from 'paths'"),
    start: FromOption = None,
    end: ToOption = None,
    domain: DomainOption = None,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    dry_run: DryRunOption = False,
    data_dir: DataDirOption = None,
    backend: BackendOption = None,
) -> None:
    """Delete every visit to the pages of one journey."""
    start_time, end_time = _day_range(start, end)
    filters = JourneyFilters(start_time=start_time, end_time=end_time, domain=domain)

    store, repository = _open_repository(data_dir, backend, dry_run=dry_run)
    try:
        queries = JourneyQueries(repository)
        selected = asyncio.run(_select_path(queries, filters, index))
        if selected is None:
            typer.echo(f"Journey {index} not found.")
            raise typer.Exit(1)
        if not yes and not dry_run:
            typer.confirm(
                f"Delete all visits to the {len(selected.nodes)} pages of journey {index}?",
                abort=True,
            )
        deleted = asyncio.run(queries.delete_path(selected))
    finally:
        store.close()

    if deleted < 0:
        typer.echo("Failed to delete journey.")
        raise typer.Exit(1)
    verb = "Would delete" if dry_run else "Deleted"
    typer.echo(f"{verb} {deleted} visits.")


@app.command()
def domains(
    start: FromOption = None,
    end: ToOption = None,
    domain: DomainOption = None,
    min_visits: Annotated[
        int | None,
        typer.Option("--min-visits", "-m", help="Only domains with at least this many visits"),
    ] = None,
    search: Annotated[
        str | None,
        typer.Option("--search", "-s", help="Only domains containing this text"),
    ] = None,
    data_dir: DataDirOption = None,
    backend: BackendOption = None,
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List visited domains, most visited first."""
    start_time, end_time = _day_range(start, end)
    filters = JourneyFilters(
        start_time=start_time,
        end_time=end_time,
        domain=domain,
        min_visits=min_visits,
        search=search,
    )

    store, repository = _open_repository(data_dir, backend)
    try:
        result = asyncio.run(JourneyQueries(repository).get_domains(filters))
    finally:
        store.close()

    ranked = sorted(result.items(), key=lambda item: (-item[1].visit_count, item[0]))
    if output_json:
        typer.echo(json.dumps({name: stats.to_dict() for name, stats in ranked}, indent=2))
        return

    typer.echo(f"{len(ranked)} domains:\n")
    for name, stats in ranked:
        typer.echo(
            f"  {name} - {stats.visit_count} visits  "
            f"{_fmt(stats.first_visit)} .. {_fmt(stats.last_visit)}"
        )


@app.command()
def visits(
    domain: str = typer.Argument(..., help="Exact domain, e.g. docs.python.org"),
    limit: int = typer.Option(50, "--limit", "-n", help="Max results"),
    data_dir: DataDirOption = None,
    backend: BackendOption = None,
) -> None:
    """Show the most recent visits to one domain."""
    store, repository = _open_repository(data_dir, backend)
    try:
        result = asyncio.run(JourneyQueries(repository).get_visits_for_domain(domain, limit))
    finally:
        store.close()

    if not result:
        typer.echo(f"No visits to '{domain}'.")
        return
    for v in result:
        typer.echo(f"  {_fmt(v.timestamp)}  {v.title[:80]}")
        source = f"  from {v.from_domain}" if v.from_domain else ""
        typer.echo(f"    {v.url}{source}")


@app.command()
def stats(
    data_dir: DataDirOption = None,
    backend: BackendOption = None,
) -> None:
    """Show summary counters."""
    store, repository = _open_repository(data_dir, backend)
    try:
        result = asyncio.run(JourneyQueries(repository).get_stats())
    finally:
        store.close()

    typer.echo(f"Domains:      {result.total_domains}")
    typer.echo(f"Visits:       {result.total_visits} ({result.today_visits} today)")
    typer.echo(f"Transitions:  {result.total_transitions}")
    if result.most_visited:
        typer.echo(f"Most visited: {result.most_visited} ({result.most_visited_count} visits)")
    typer.echo(f"First visit:  {_fmt(result.first_visit)}")
    typer.echo(f"Last visit:   {_fmt(result.last_visit)}")


@app.command()
def prune(
    days: int = typer.Option(RETENTION_DAYS, "--days", help="Keep visits newer than this"),
    dry_run: DryRunOption = False,
    data_dir: DataDirOption = None,
    backend: BackendOption = None,
) -> None:
    """Drop visits older than the retention horizon."""
    store, repository = _open_repository(data_dir, backend, dry_run=dry_run)
    try:
        removed = asyncio.run(
            JourneyQueries(repository).prune(retention_ms=days * 24 * 60 * 60 * 1000)
        )
    finally:
        store.close()

    if removed is None:
        typer.echo("Prune failed.")
        raise typer.Exit(1)
    verb = "Would prune" if dry_run else "Pruned"
    typer.echo(f"{verb} {removed} visits.")


@app.command()
def clear(
    start: FromOption = None,
    end: ToOption = None,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    dry_run: DryRunOption = False,
    data_dir: DataDirOption = None,
    backend: BackendOption = None,
) -> None:
    """Clear all history, or the visits between two dates."""
    start_time, end_time = _day_range(start, end)
    if end_time is not None:
        # The clear window excludes its end, so move to the next midnight.
        end_time += 1
    if not yes and not dry_run:
        what = "ALL history" if start_time is None and end_time is None else "history in range"
        typer.confirm(f"Clear {what}?", abort=True)

    store, repository = _open_repository(data_dir, backend, dry_run=dry_run)
    try:
        result = asyncio.run(
            JourneyQueries(repository).clear_history(start_time=start_time, end_time=end_time)
        )
    finally:
        store.close()

    typer.echo(f"dry-run: {result.message}" if dry_run else result.message)
    if not result.success:
        raise typer.Exit(1)


@app.command()
def export(
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Export file (.json)"),
    ] = None,
    data_dir: DataDirOption = None,
    backend: BackendOption = None,
) -> None:
    """Write every stored record to a JSON backup file."""
    target = output or Path(f"browser-journey-export-{datetime.now(tz=UTC):%Y-%m-%d}.json")
    if target.suffix != ".json":
        typer.echo(f"Export file must end in .json: {target}")
        raise typer.Exit(1)

    store, repository = _open_repository(data_dir, backend)
    try:
        data = asyncio.run(JourneyQueries(repository).export_data())
    finally:
        store.close()

    JsonFileStore(target.parent).write_json(target.name, data)
    typer.echo(f"Exported {len(data['visits'])} visits to {target}")


@app.command()
def serve() -> None:
    """Start the MCP server (stdio transport)."""
    from browser_journey.mcp.server import run_mcp_server

    run_mcp_server()

"""Tests for the browser-journey CLI."""

import asyncio
import json
from datetime import datetime
from pathlib import Path

import pytest
from typer.testing import CliRunner

from browser_journey.cli import app
from browser_journey.core.storage.factory import open_store
from browser_journey.core.storage.repository import VisitRepository

runner = CliRunner()


def _ms(day: str, hour: int = 12) -> int:
    return int(datetime.strptime(day, "%Y-%m-%d").replace(hour=hour).timestamp() * 1000)


def _updated(tab_id: int, url: str, title: str, timestamp: int) -> dict:
    return {"type": "updated", "tabId": tab_id, "url": url, "title": title, "timestamp": timestamp}


EVENTS = [
    _updated(1, "https://a.com/", "A", _ms("2024-03-01")),
    _updated(1, "https://b.com/", "B", _ms("2024-03-01", 13)),
    _updated(1, "https://a.com/", "A", _ms("2024-03-01", 14)),
    _updated(5, "https://solo.org/", "Solo", _ms("2024-03-05")),
]


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Data directory populated by replaying EVENTS."""
    events_file = tmp_path / "events.jsonl"
    events_file.write_text("\n".join(json.dumps(e) for e in EVENTS) + "\n")
    data = tmp_path / "data"

    result = runner.invoke(app, ["replay", str(events_file), "--data-dir", str(data)])
    assert result.exit_code == 0, result.output
    assert "recorded 4 visits" in result.output
    return data


def _load_visits(data: Path) -> list:
    store = open_store("sqlite", data)
    try:
        return list(asyncio.run(VisitRepository(store).load()).visits)
    finally:
        store.close()


def test_replay_creates_database(data_dir: Path) -> None:
    assert (data_dir / "journey.sqlite").exists()
    assert len(_load_visits(data_dir)) == 4


def test_replay_missing_file_fails(tmp_path: Path) -> None:
    result = runner.invoke(app, ["replay", str(tmp_path / "nope.jsonl")])
    assert result.exit_code == 1


def test_replay_bad_file_fails(tmp_path: Path) -> None:
    events_file = tmp_path / "events.jsonl"
    events_file.write_text("{broken\n")
    result = runner.invoke(app, ["replay", str(events_file), "--data-dir", str(tmp_path)])
    assert result.exit_code == 1
    assert "Bad events file" in result.output


def test_replay_with_json_backend(tmp_path: Path) -> None:
    events_file = tmp_path / "events.jsonl"
    events_file.write_text(json.dumps(EVENTS[0]) + "\n")
    data = tmp_path / "data"

    result = runner.invoke(
        app, ["replay", str(events_file), "--data-dir", str(data), "--backend", "json"]
    )

    assert result.exit_code == 0, result.output
    assert (data / "visits.json").exists()


def test_unknown_backend_fails(tmp_path: Path) -> None:
    result = runner.invoke(app, ["stats", "--data-dir", str(tmp_path), "--backend", "redis"])
    assert result.exit_code == 1


def test_paths_lists_journeys(data_dir: Path) -> None:
    result = runner.invoke(app, ["paths", "--data-dir", str(data_dir)])
    assert result.exit_code == 0, result.output
    assert "2 journeys (of 2)" in result.output
    assert "[0] a.com - 2 pages" in result.output
    assert "[1] solo.org - 1 pages" in result.output


def test_paths_json_hides_single_page(data_dir: Path) -> None:
    result = runner.invoke(
        app, ["paths", "--data-dir", str(data_dir), "--hide-single-page", "--json"]
    )
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["total"] == 2
    assert [p["index"] for p in data["paths"]] == [0]
    assert data["paths"][0]["edges"] == 2


def test_paths_date_range_includes_whole_end_day(data_dir: Path) -> None:
    result = runner.invoke(
        app,
        ["paths", "--data-dir", str(data_dir), "--from", "2024-03-01", "--to", "2024-03-01"],
    )
    assert result.exit_code == 0, result.output
    assert "1 journeys (of 1)" in result.output


def test_paths_invalid_date(data_dir: Path) -> None:
    result = runner.invoke(app, ["paths", "--data-dir", str(data_dir), "--from", "March"])
    assert result.exit_code == 1
    assert "Invalid date" in result.output


def test_path_shows_tree(data_dir: Path) -> None:
    result = runner.invoke(app, ["path", "0", "--data-dir", str(data_dir)])
    assert result.exit_code == 0, result.output
    assert "Journey 0: a.com, 2 pages" in result.output
    assert "  A  (2x)" in result.output
    assert "    B  (1x)" in result.output


def test_path_out_of_range(data_dir: Path) -> None:
    result = runner.invoke(app, ["path", "7", "--data-dir", str(data_dir)])
    assert result.exit_code == 1
    assert "Journey 7 not found" in result.output


def test_delete_path_requires_confirmation(data_dir: Path) -> None:
    result = runner.invoke(app, ["delete-path", "0", "--data-dir", str(data_dir)], input="n\n")
    assert result.exit_code == 1
    assert len(_load_visits(data_dir)) == 4


def test_delete_path_with_yes(data_dir: Path) -> None:
    result = runner.invoke(app, ["delete-path", "0", "--yes", "--data-dir", str(data_dir)])
    assert result.exit_code == 0, result.output
    assert "Deleted 3 visits" in result.output
    assert [v.domain for v in _load_visits(data_dir)] == ["solo.org"]


def test_domains_ranked_by_visits(data_dir: Path) -> None:
    result = runner.invoke(app, ["domains", "--data-dir", str(data_dir)])
    assert result.exit_code == 0, result.output
    lines = [line.strip() for line in result.output.splitlines() if " visits " in line]
    assert lines[0].startswith("a.com - 2 visits")


def test_domains_json_with_min_visits(data_dir: Path) -> None:
    result = runner.invoke(
        app, ["domains", "--data-dir", str(data_dir), "--min-visits", "2", "--json"]
    )
    assert result.exit_code == 0, result.output
    assert list(json.loads(result.stdout)) == ["a.com"]


def test_visits_for_domain(data_dir: Path) -> None:
    result = runner.invoke(app, ["visits", "b.com", "--data-dir", str(data_dir)])
    assert result.exit_code == 0, result.output
    assert "https://b.com/  from a.com" in result.output


def test_visits_for_unknown_domain(data_dir: Path) -> None:
    result = runner.invoke(app, ["visits", "nope.com", "--data-dir", str(data_dir)])
    assert result.exit_code == 0
    assert "No visits to 'nope.com'" in result.output


def test_stats(data_dir: Path) -> None:
    result = runner.invoke(app, ["stats", "--data-dir", str(data_dir)])
    assert result.exit_code == 0, result.output
    assert "Domains:      3" in result.output
    assert "Transitions:  2" in result.output
    assert "Most visited: a.com (2 visits)" in result.output


def test_prune_removes_everything_older_than_days(data_dir: Path) -> None:
    result = runner.invoke(app, ["prune", "--days", "1", "--data-dir", str(data_dir)])
    assert result.exit_code == 0, result.output
    assert "Pruned 4 visits" in result.output


def test_prune_dry_run_keeps_visits(data_dir: Path) -> None:
    result = runner.invoke(
        app, ["prune", "--days", "1", "--dry-run", "--data-dir", str(data_dir)]
    )
    assert result.exit_code == 0, result.output
    assert "Would prune 4 visits" in result.output
    assert len(_load_visits(data_dir)) == 4


def test_delete_path_dry_run_skips_confirmation_and_keeps_visits(data_dir: Path) -> None:
    result = runner.invoke(app, ["delete-path", "0", "--dry-run", "--data-dir", str(data_dir)])
    assert result.exit_code == 0, result.output
    assert "Would delete 3 visits" in result.output
    assert len(_load_visits(data_dir)) == 4


def test_clear_range_with_yes(data_dir: Path) -> None:
    result = runner.invoke(
        app,
        [
            "clear",
            "--from", "2024-03-05",
            "--to", "2024-03-05",
            "--yes",
            "--data-dir", str(data_dir),
        ],
    )
    assert result.exit_code == 0, result.output
    assert "Cleared 1 visits" in result.output
    assert "solo.org" not in {v.domain for v in _load_visits(data_dir)}


def test_clear_all_asks_first(data_dir: Path) -> None:
    result = runner.invoke(app, ["clear", "--data-dir", str(data_dir)], input="y\n")
    assert result.exit_code == 0, result.output
    assert "All history cleared" in result.output
    assert _load_visits(data_dir) == []


def test_clear_dry_run_keeps_visits(data_dir: Path) -> None:
    result = runner.invoke(app, ["clear", "--dry-run", "--data-dir", str(data_dir)])
    assert result.exit_code == 0, result.output
    assert "dry-run: All history cleared" in result.output
    assert len(_load_visits(data_dir)) == 4


def test_export_writes_backup(data_dir: Path, tmp_path: Path) -> None:
    target = tmp_path / "backup.json"
    result = runner.invoke(app, ["export", "-o", str(target), "--data-dir", str(data_dir)])

    assert result.exit_code == 0, result.output
    data = json.loads(target.read_text())
    assert data["version"] == "0.1.0"
    assert len(data["visits"]) == 4
    assert "exportDate" in data


def test_export_rejects_non_json_target(data_dir: Path, tmp_path: Path) -> None:
    result = runner.invoke(
        app, ["export", "-o", str(tmp_path / "backup.txt"), "--data-dir", str(data_dir)]
    )
    assert result.exit_code == 1


def test_verbose_flag_is_accepted(data_dir: Path) -> None:
    result = runner.invoke(app, ["--verbose", "stats", "--data-dir", str(data_dir)])
    assert result.exit_code == 0, result.output

"""Feed recorded tab events through the ingestor.

Events are JSON objects, one per line::

    {"type": "updated", "tabId": 1, "url": "https://a.com/", "title": "A", "timestamp": 1000}
    {"type": "created_navigation_target", "sourceTabId": 1, "tabId": 2, "timestamp": 1500}
    {"type": "removed", "tabId": 1, "timestamp": 2000}

``updated`` events may carry ``"status": "loading"``; only ``complete`` (the
default) records a visit. The event timestamp becomes the ingestor's clock, so a
replay reproduces the original visit times.
"""

import json
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from loguru import logger

from browser_journey.core.tracking.ingestor import EventIngestor

EVENT_TYPES = ("updated", "created_navigation_target", "removed")


class ReplayClock:
    """Clock pinned to the timestamp of the event being replayed."""

    def __init__(self, now: int = 0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


class ReplayTabs:
    """Tab lookup answering from the URLs seen so far in the replay."""

    def __init__(self) -> None:
        self.urls: dict[int, str] = {}

    async def get_url(self, tab_id: int) -> str | None:
        return self.urls.get(tab_id)


@dataclass
class ReplayStats:
    events: int = 0
    visits_recorded: int = 0
    skipped: int = 0


def parse_events(lines: Iterable[str]) -> list[dict[str, Any]]:
    """Parse JSONL event lines, skipping blanks.

    Raises:
        ValueError: A line is not a JSON object with a known ``type``.
    """
    events: list[dict[str, Any]] = []
    for lineno, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            event = json.loads(line)
        except json.JSONDecodeError as e:
            msg = f"line {lineno}: invalid JSON ({e.msg})"
            raise ValueError(msg) from e
        if not isinstance(event, dict) or event.get("type") not in EVENT_TYPES:
            msg = f"line {lineno}: expected an event object with type in {EVENT_TYPES}"
            raise ValueError(msg)
        if not isinstance(event.get("tabId"), int):
            msg = f"line {lineno}: missing integer tabId"
            raise ValueError(msg)
        if event["type"] == "created_navigation_target" and not isinstance(
            event.get("sourceTabId"), int
        ):
            msg = f"line {lineno}: missing integer sourceTabId"
            raise ValueError(msg)
        events.append(event)
    return events


async def replay_events(
    ingestor: EventIngestor,
    events: Iterable[dict[str, Any]],
    *,
    clock: ReplayClock,
    tabs: ReplayTabs,
) -> ReplayStats:
    """Apply events in order. ``clock`` and ``tabs`` must be the ingestor's own."""
    stats = ReplayStats()
    for event in events:
        stats.events += 1
        if "timestamp" in event:
            clock.now = int(event["timestamp"])
        tab_id = event["tabId"]

        match event["type"]:
            case "updated":
                url = event.get("url")
                complete = event.get("status", "complete") == "complete"
                if url and complete:
                    tabs.urls[tab_id] = url
                visit = await ingestor.handle_tab_updated(
                    tab_id, url, event.get("title"), complete
                )
                if visit is None:
                    stats.skipped += 1
                else:
                    stats.visits_recorded += 1
            case "created_navigation_target":
                await ingestor.handle_navigation_target_created(event["sourceTabId"], tab_id)
            case "removed":
                await ingestor.handle_tab_removed(tab_id)
                tabs.urls.pop(tab_id, None)

    logger.info(
        "Replayed {} events: {} visits recorded, {} updates skipped",
        stats.events, stats.visits_recorded, stats.skipped,
    )
    return stats

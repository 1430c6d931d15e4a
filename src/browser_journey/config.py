"""Configuration constants for browser-journey."""

import os
from pathlib import Path

from loguru import logger

DEFAULT_RETENTION_DAYS = 90


def retention_days_from_env() -> int:
    raw = os.environ.get("BROWSER_JOURNEY_RETENTION_DAYS")
    if raw is None:
        return DEFAULT_RETENTION_DAYS
    try:
        days = int(raw)
    except ValueError:
        days = 0
    if days < 1:
        logger.warning(
            "Ignoring BROWSER_JOURNEY_RETENTION_DAYS={!r}, using {} days",
            raw,
            DEFAULT_RETENTION_DAYS,
        )
        return DEFAULT_RETENTION_DAYS
    return days


# Visits older than this are dropped by the scheduled prune.
RETENTION_DAYS: int = retention_days_from_env()
RETENTION_MS: int = RETENTION_DAYS * 24 * 60 * 60 * 1000

# Query cache lifetime. Mutations must invalidate explicitly.
CACHE_TTL_MS: int = 5000

# Version tag written into exported JSON.
EXPORT_VERSION: str = "0.1.0"

FAVICON_URL_TEMPLATE: str = "https://www.google.com/s2/favicons?domain={domain}&sz=32"

# Browser-internal pages never become visits.
IGNORED_URL_PREFIXES: tuple[str, ...] = (
    "chrome://",
    "chrome-extension://",
    "about:",
    "edge://",
)

# Directory with data. First directory which is found is used.
DATA_DIRECTORIES: list[Path] = [
    Path("~/.local/share/browser-journey").expanduser(),
    Path("~/.browser-journey").expanduser(),
    Path("~/.config/browser-journey").expanduser(),
]

# "sqlite" (single archive file) or "json" (one file per key).
STORE_BACKEND: str = os.environ.get("BROWSER_JOURNEY_BACKEND", "sqlite")


def resolve_data_directory() -> Path:
    """Return the data directory: env override, first existing candidate, or the default."""
    env_dir = os.environ.get("BROWSER_JOURNEY_DATA_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    for candidate in DATA_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return DATA_DIRECTORIES[0]

"""Pick and open the configured store backend."""

from pathlib import Path

from browser_journey.core.storage.sqlite_store import SqliteStore
from browser_journey.writer import JsonFileStore

DB_FILENAME = "journey.sqlite"

BACKENDS = ("sqlite", "json")


def open_store(
    backend: str, data_dir: Path, *, dry_run: bool = False
) -> SqliteStore | JsonFileStore:
    """Open the store for ``backend`` inside ``data_dir``.

    Raises:
        ValueError: Unknown backend name.
    """
    if backend == "sqlite":
        return SqliteStore.open(data_dir / DB_FILENAME, dry_run=dry_run)
    if backend == "json":
        return JsonFileStore(data_dir, dry_run=dry_run)
    msg = f"Unknown store backend {backend!r}, expected one of {', '.join(BACKENDS)}"
    raise ValueError(msg)

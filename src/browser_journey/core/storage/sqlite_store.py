"""Key-value store backed by a single SQLite file."""

import asyncio
import json
import sqlite3
import threading
import time
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from loguru import logger

from browser_journey.core.database.schema import migrate_schema


class SqliteStore:
    """JSON values in a ``kv`` table.

    A ``set`` call is one transaction, so the combined write of the journey
    collections is atomic here. Queries run in a worker thread; the connection
    must be opened with ``check_same_thread=False``.

    In dry-run mode writes are rolled back instead of committed.
    """

    def __init__(self, conn: sqlite3.Connection, *, dry_run: bool = False) -> None:
        self.conn = conn
        self.dry_run = dry_run
        self._lock = threading.Lock()
        migrate_schema(conn)

    @classmethod
    def open(cls, db_path: str | Path, *, dry_run: bool = False) -> "SqliteStore":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        logger.debug("Opening journey archive {}, dry_run {!r}", db_path, dry_run)
        return cls(sqlite3.connect(str(db_path), check_same_thread=False), dry_run=dry_run)

    def close(self) -> None:
        self.conn.close()

    def get_sync(self, keys: Iterable[str]) -> dict[str, Any]:
        key_list = list(keys)
        if not key_list:
            return {}
        placeholders = ",".join("?" * len(key_list))
        with self._lock:
            rows = self.conn.execute(
                f"SELECT key, value FROM kv WHERE key IN ({placeholders})", key_list
            ).fetchall()
        return {key: json.loads(value) for key, value in rows}

    def set_sync(self, values: Mapping[str, Any]) -> None:
        now_ms = int(time.time() * 1000)
        rows = [(key, json.dumps(value, sort_keys=True), now_ms) for key, value in values.items()]
        with self._lock:
            try:
                self.conn.executemany(
                    "INSERT OR REPLACE INTO kv (key, value, updated_at) VALUES (?, ?, ?)", rows
                )
                if self.dry_run:
                    logger.info("dry-run: would write {}", ", ".join(sorted(values)))
                    self.conn.rollback()
                else:
                    self.conn.commit()
            except Exception:
                self.conn.rollback()
                raise

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        return await asyncio.to_thread(self.get_sync, list(keys))

    async def set(self, values: Mapping[str, Any]) -> None:
        await asyncio.to_thread(self.set_sync, dict(values))

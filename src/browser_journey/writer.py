"""JSON file store that only touches files whose contents changed."""

import asyncio
import json
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from loguru import logger


class JsonFileStore:
    """Keep each store key in its own ``<key>.json`` file under ``datadir``.

    - Do not rewrite files if contents are the same.
    - Refuse any path that would land outside ``datadir``.
    - In dry-run mode, log what would be written and leave the disk alone.

    Unlike the SQLite backend, a ``set`` touching several keys is not atomic.
    """

    def __init__(self, datadir: str | Path, *, dry_run: bool = False) -> None:
        self.datadir = str(Path(datadir).resolve())
        self.dry_run = dry_run

        if not dry_run:
            Path(self.datadir).mkdir(parents=True, exist_ok=True)

        logger.debug("JSON store ready, datadir {!r}, dry_run {!r}", self.datadir, dry_run)
        self.num_same = 0
        self.num_changed = 0

    def _resolve(self, fname_rel: str) -> Path:
        if Path(fname_rel).is_absolute():
            msg = f"must be relative: {fname_rel!r}"
            raise ValueError(msg)
        fname = str(Path(self.datadir) / fname_rel)
        if not str(Path(fname).resolve()).startswith(self.datadir + "/"):
            msg = f"Path escapes datadir: {fname!r}"
            raise ValueError(msg)
        if not fname.endswith(".json"):
            msg = f"Wanted to write {fname!r} but only .json outputs are allowed"
            raise ValueError(msg)
        return Path(fname)

    def write_json(self, fname_rel: str, data: Any) -> bool:
        """Serialize ``data`` to a file relative to the data directory.

        Returns:
            True if the file was (or in dry-run mode would be) written.
        """
        contents = json.dumps(data, sort_keys=True, indent=4) + "\n"
        path = self._resolve(fname_rel)

        action = "create"
        try:
            if path.read_text(encoding="utf-8") == contents:
                self.num_same += 1
                return False
            self.num_changed += 1
            action = "update"
        except (FileNotFoundError, UnicodeDecodeError):
            pass

        if self.dry_run:
            logger.info("dry-run: would {} {!r}", action, str(path))
        else:
            logger.debug("Writing ({}) {!r}", action, str(path))
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(contents, encoding="utf-8")
        return True

    def try_read_json(self, fname_rel: str) -> Any | None:
        """Try to read json from given relative path.

        Returns:
            Json contents if file is found, None if file is not found.
            Raises on all other errors.
        """
        path = self._resolve(fname_rel)
        try:
            contents = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        return json.loads(contents)

    def get_sync(self, keys: Iterable[str]) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key in keys:
            value = self.try_read_json(f"{key}.json")
            if value is not None:
                result[key] = value
        return result

    def set_sync(self, values: Mapping[str, Any]) -> None:
        for key, value in values.items():
            self.write_json(f"{key}.json", value)

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        return await asyncio.to_thread(self.get_sync, list(keys))

    async def set(self, values: Mapping[str, Any]) -> None:
        await asyncio.to_thread(self.set_sync, dict(values))

    def close(self) -> None:
        """Log the write summary. Files are closed after every write."""
        logger.debug("Outputs: {} same, {} changed", self.num_same, self.num_changed)

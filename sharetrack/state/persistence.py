"""JSON snapshot persistence for the share ledger"""
import asyncio
import json
import logging
import os
import time
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any, Dict, List, Optional

from .ledger import ShareLedger

_logger = logging.getLogger("sharetrack")


class JsonSnapshotStore:
    """
    Whole-history snapshot in a single JSON file.

    Every save overwrites the file. There is no locking, so only one process
    may point at a given path.
    """

    def __init__(self, path: str):
        self.path = Path(path)

    def save(self, records: List[Dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        start = time.monotonic()
        tmp = NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=str(self.path.parent),
            prefix=f".{self.path.name}.",
            suffix=".tmp",
            delete=False,
        )
        try:
            with tmp:
                json.dump(records, tmp, ensure_ascii=False)
            os.replace(tmp.name, self.path)
        except BaseException:
            Path(tmp.name).unlink(missing_ok=True)
            raise
        _logger.debug(
            "Saved snapshot path=%s records=%d elapsed_ms=%d",
            self.path,
            len(records),
            int((time.monotonic() - start) * 1000),
        )

    def load(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            _logger.exception("Error loading snapshot path=%s", self.path)
            return []
        if not isinstance(data, list):
            _logger.error("Snapshot is not a JSON array path=%s", self.path)
            return []
        return [item for item in data if isinstance(item, dict)]


class SnapshotScheduler:
    """Saves the ledger on an interval and once more on stop."""

    def __init__(self, ledger: ShareLedger, store: JsonSnapshotStore, interval: float):
        self.ledger = ledger
        self.store = store
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    def save_now(self) -> None:
        try:
            self.store.save(self.ledger.export())
        except OSError:
            _logger.exception("Error saving snapshot path=%s", self.store.path)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.save_now()

    def start(self) -> None:
        if self._task is None:
            _logger.info("Snapshot scheduler started path=%s interval=%s", self.store.path, self.interval)
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self.save_now()
        _logger.info("Snapshot scheduler stopped path=%s", self.store.path)

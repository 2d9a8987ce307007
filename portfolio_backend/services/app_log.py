from __future__ import annotations

import asyncio
import json
import logging
import os
import socket
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from portfolio_backend.config import get_settings
from portfolio_backend.errors import StorageError
from portfolio_backend.models.schemas import LogEntry

_LOG_PREFIX = "app-"
_LOG_SUFFIX = ".log"

logger = logging.getLogger(__name__)


def log_filename(moment: datetime) -> str:
    return f"{_LOG_PREFIX}{moment.astimezone(timezone.utc):%Y-%m-%d}{_LOG_SUFFIX}"


class AppLogWriter:
    """Append-only JSON-lines log, one file per UTC calendar day.

    Old files are never rotated or pruned; a new file starts when the date in
    the name changes.
    """

    def __init__(self, log_dir: Path, hostname: str | None = None) -> None:
        self.log_dir = log_dir
        self.hostname = hostname or socket.gethostname()

    def _build_entry(self, level: str, message: str, data: dict[str, Any] | None) -> LogEntry:
        return LogEntry(
            timestamp=datetime.now(timezone.utc),
            level=level,
            message=message,
            data=data,
            pid=os.getpid(),
            hostname=self.hostname,
        )

    def _append_sync(self, entry: LogEntry) -> Path:
        self.log_dir.mkdir(parents=True, exist_ok=True)
        path = self.log_dir / log_filename(entry.timestamp)
        line = entry.model_dump_json(exclude_none=True)
        with path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")
        return path

    async def append(self, level: str, message: str, data: dict[str, Any] | None = None) -> LogEntry:
        entry = self._build_entry(level, message, data)
        try:
            await asyncio.to_thread(self._append_sync, entry)
        except OSError as exc:
            # The application log is best effort; stdout logging still has the event.
            logger.warning("app_log.write_failed", extra={"error": str(exc), "log_message": message})
        return entry

    def latest_file(self) -> Path | None:
        if not self.log_dir.is_dir():
            return None
        files = sorted(self.log_dir.glob(f"{_LOG_PREFIX}*{_LOG_SUFFIX}"))
        return files[-1] if files else None

    def _tail_sync(self, lines: int) -> tuple[Path | None, list[dict[str, Any]]]:
        path = self.latest_file()
        if path is None:
            return None, []

        # Torn or non-UTF-8 lines decode with replacement chars and fail json parsing below.
        with path.open("r", encoding="utf-8", errors="replace") as fh:
            last = deque((line for line in fh if line.strip()), maxlen=lines)

        entries: list[dict[str, Any]] = []
        for raw in last:
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError:
                continue
            if isinstance(parsed, dict):
                entries.append(parsed)
        return path, entries

    async def tail(self, lines: int = 100) -> tuple[Path | None, list[dict[str, Any]]]:
        """Return the latest log file and its last `lines` parsed entries."""

        try:
            return await asyncio.to_thread(self._tail_sync, lines)
        except OSError as exc:
            raise StorageError(f"Could not read application log: {exc}") from exc


_APP_LOG: AppLogWriter | None = None


def get_app_log() -> AppLogWriter:
    global _APP_LOG
    if _APP_LOG is None:
        settings = get_settings()
        _APP_LOG = AppLogWriter(settings.log_path, hostname=settings.instance_id)
    return _APP_LOG


def set_app_log(writer: AppLogWriter | None) -> None:
    global _APP_LOG
    _APP_LOG = writer

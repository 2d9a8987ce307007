from __future__ import annotations

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Any

from portfolio_backend.config import get_settings
from portfolio_backend.errors import InvalidKeyError, NotFoundError, StorageError
from portfolio_backend.services.portfolio_store import write_atomic

_KEY_RE = re.compile(r"[A-Za-z0-9_-][A-Za-z0-9_.-]{0,127}")

logger = logging.getLogger(__name__)


def validate_key(key: str) -> str:
    if not isinstance(key, str) or not _KEY_RE.fullmatch(key):
        raise InvalidKeyError("Key must be 1-128 characters of letters, digits, '.', '_' or '-' and not start with '.'")
    return key


class KeyValueStore:
    """One JSON file per key under a directory on the data volume."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def path_for(self, key: str) -> Path:
        return self.root / f"{validate_key(key)}.json"

    async def put(self, key: str, value: Any) -> Path:
        path = self.path_for(key)
        text = json.dumps(value, indent=2, ensure_ascii=False)
        try:
            await asyncio.to_thread(write_atomic, path, text)
        except OSError as exc:
            logger.exception("kv.save_failed", extra={"key": key})
            raise StorageError(f"Could not save data for key {key!r}: {exc}") from exc
        logger.info("kv.saved", extra={"key": key, "bytes": len(text)})
        return path

    async def get(self, key: str) -> Any:
        path = self.path_for(key)
        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError as exc:
            raise NotFoundError("Data not found") from exc
        except UnicodeDecodeError as exc:
            raise StorageError(f"Stored data for key {key!r} is not valid UTF-8") from exc
        except OSError as exc:
            raise StorageError(f"Could not read data for key {key!r}: {exc}") from exc

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise StorageError(f"Stored data for key {key!r} is not valid JSON") from exc


def get_kv_store() -> KeyValueStore:
    return KeyValueStore(get_settings().kv_path)

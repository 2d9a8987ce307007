from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path

from portfolio_backend.errors import StorageError
from portfolio_backend.models.schemas import StorageDirectory, StorageFile


def describe_directory(label: str, root: Path) -> StorageDirectory:
    """
    List every file under `root` with its size and modification time.

    There is no snapshot: files created or removed while we walk the tree
    may or may not show up, and a file that vanishes before `stat` is skipped.
    """
    if not root.is_dir():
        return StorageDirectory(label=label, path=str(root), exists=False)

    files: list[StorageFile] = []
    for path in sorted(root.rglob("*")):
        try:
            if not path.is_file():
                continue
            st = path.stat()
        except FileNotFoundError:
            continue
        files.append(
            StorageFile(
                name=path.relative_to(root).as_posix(),
                size=st.st_size,
                modified_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            )
        )
    return StorageDirectory(label=label, path=str(root), exists=True, files=files)


async def get_storage_info(roots: dict[str, Path]) -> list[StorageDirectory]:
    directories: list[StorageDirectory] = []
    for label, root in roots.items():
        try:
            directories.append(await asyncio.to_thread(describe_directory, label, root))
        except OSError as exc:
            raise StorageError(f"Could not list {label} directory: {exc}") from exc
    return directories

from __future__ import annotations

import asyncio
import fcntl
import json
import logging
import os
import tempfile
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal, TypeVar

from pydantic import ValidationError

from portfolio_backend.config import get_settings
from portfolio_backend.errors import ConflictError, NotFoundError, StorageError
from portfolio_backend.models.schemas import (
    DocumentMetadata,
    PortfolioDocument,
    Project,
    ProjectCreate,
    Skill,
)
from portfolio_backend.services.app_log import AppLogWriter, get_app_log

T = TypeVar("T")

StoreState = Literal["loaded", "defaulted"]

logger = logging.getLogger(__name__)


def default_document(now: datetime | None = None) -> PortfolioDocument:
    now = now or datetime.now(timezone.utc)
    return PortfolioDocument(
        projects=[
            Project(
                id=1,
                title="Kubernetes Portfolio",
                description="A comprehensive Kubernetes portfolio demonstrating stateless and stateful applications",
                technologies=["Kubernetes", "Docker", "Python", "PostgreSQL"],
                featured=True,
                github_url="https://github.com/portfolio/k8s-portfolio",
                created_at=now,
            ),
            Project(
                id=2,
                title="Microservices E-commerce",
                description="Full-stack e-commerce platform using microservices architecture",
                technologies=["Python", "React", "MongoDB", "Redis", "Docker"],
                featured=False,
                github_url="https://github.com/portfolio/microservices-ecommerce",
                created_at=now,
            ),
        ],
        skills=[
            Skill(id=1, name="Kubernetes", category="devops", proficiency=8),
            Skill(id=2, name="Docker", category="devops", proficiency=9),
            Skill(id=3, name="Python", category="backend", proficiency=8),
            Skill(id=4, name="React", category="frontend", proficiency=7),
            Skill(id=5, name="PostgreSQL", category="database", proficiency=7),
        ],
        metadata=DocumentMetadata(initialized_at=now, last_updated=now, revision=0),
    )


def next_project_id(projects: list[Project]) -> int:
    """`max(existing ids) + 1`; an empty collection starts at 1."""

    return max((p.id for p in projects), default=0) + 1


def serialize_document(document: PortfolioDocument) -> str:
    return json.dumps(document.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"


def _read_revision(path: Path) -> int | None:
    """Revision stored in the file at `path`, or None if it has none we can read."""

    try:
        raw = json.loads(path.read_bytes())
        # Documents written before revisions existed count as revision 0.
        return int(raw["metadata"].get("revision", 0))
    except FileNotFoundError:
        return None
    except (ValueError, KeyError, TypeError):
        return None


@contextmanager
def exclusive_file_lock(path: Path) -> Iterator[None]:
    """Hold an flock on `<path>.lock` so the revision check and write are one step."""

    lock_path = path.with_name(path.name + ".lock")
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with lock_path.open("a") as fh:
        fcntl.flock(fh.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(fh.fileno(), fcntl.LOCK_UN)


def write_atomic(path: Path, text: str) -> None:
    """Write `text` to a temp file beside `path`, fsync, then rename over it."""

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class PortfolioStore:
    """JSON-file-backed portfolio document with a single-writer contract.

    Writes are serialized by an asyncio lock and run in a worker thread. Every
    save compares the revision on disk with the one this store last saw, under
    an flock on a sidecar lock file, so a second process writing the same file
    is rejected with ConflictError instead of overwriting.
    """

    def __init__(self, path: Path, app_log: AppLogWriter | None = None) -> None:
        self.path = path
        self.app_log = app_log
        self._lock = asyncio.Lock()
        self._document: PortfolioDocument | None = None
        self._state: StoreState | None = None
        # Revision on disk as of our last load or save; None means no file yet.
        self._disk_revision: int | None = None

    @property
    def state(self) -> StoreState | None:
        return self._state

    @property
    def revision(self) -> int:
        return self.document.metadata.revision

    @property
    def document(self) -> PortfolioDocument:
        if self._document is None:
            raise RuntimeError("PortfolioStore.load() has not been called")
        return self._document

    async def ensure_loaded(self) -> PortfolioDocument:
        if self._document is not None:
            return self._document
        async with self._lock:
            if self._document is None:
                await self._load_locked()
        return self.document

    async def load(self) -> PortfolioDocument:
        async with self._lock:
            return await self._load_locked()

    reload = load

    async def save(self) -> PortfolioDocument:
        async with self._lock:
            saved = await self._save_locked(self.document.model_copy(deep=True))
            self._document = saved
            return saved

    async def mutate(self, fn: Callable[[PortfolioDocument], T]) -> T:
        """Apply `fn` to a copy of the document, persist it, then publish it.

        If the save fails the in-memory document is left untouched. When
        another writer got there first, the document is reloaded from disk
        and `fn` is applied once more to the fresh copy; a second conflict
        is raised to the caller.
        """

        async with self._lock:
            draft = self.document.model_copy(deep=True)
            result = fn(draft)
            try:
                self._document = await self._save_locked(draft)
            except ConflictError:
                logger.warning("store.conflict_retry", extra={"path": str(self.path)})
                await self._load_locked()
                draft = self.document.model_copy(deep=True)
                result = fn(draft)
                self._document = await self._save_locked(draft)
            return result

    async def add_project(self, payload: ProjectCreate) -> Project:
        def _add(doc: PortfolioDocument) -> Project:
            project = Project(
                id=next_project_id(doc.projects),
                title=payload.title,
                description=payload.description,
                technologies=payload.technologies,
                featured=False,
                github_url=payload.github_url,
                created_at=datetime.now(timezone.utc),
            )
            doc.projects.append(project)
            return project

        project = await self.mutate(_add)
        logger.info("project.created", extra={"project_id": project.id, "title": project.title})
        if self.app_log is not None:
            await self.app_log.append("info", "Project created", {"id": project.id, "title": project.title})
        return project

    def get_project(self, project_id: int) -> Project:
        for project in self.document.projects:
            if project.id == project_id:
                return project
        raise NotFoundError("Project not found")

    def list_projects(self) -> list[Project]:
        return list(self.document.projects)

    def list_skills(self) -> list[Skill]:
        return list(self.document.skills)

    async def _load_locked(self) -> PortfolioDocument:
        try:
            raw = await asyncio.to_thread(self._read_bytes)
        except OSError as exc:
            logger.exception("store.read_failed", extra={"path": str(self.path)})
            return await self._use_defaults(reason=f"read failed: {exc}", keep_corrupt=False)

        if raw is None:
            return await self._use_defaults(reason="missing", keep_corrupt=False)

        try:
            document = PortfolioDocument.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning(
                "store.parse_failed",
                extra={"path": str(self.path), "errors": exc.error_count()},
            )
            return await self._use_defaults(reason="unparseable", keep_corrupt=True)

        self._document = document
        self._disk_revision = document.metadata.revision
        self._state = "loaded"
        logger.info(
            "store.loaded",
            extra={"path": str(self.path), "projects": len(document.projects), "revision": self._disk_revision},
        )
        return document

    def _read_bytes(self) -> bytes | None:
        try:
            return self.path.read_bytes()
        except FileNotFoundError:
            return None

    async def _use_defaults(self, *, reason: str, keep_corrupt: bool) -> PortfolioDocument:
        document = default_document()
        if keep_corrupt:
            corrupt_path = self.path.with_name(self.path.name + ".corrupt")
            try:
                await asyncio.to_thread(os.replace, self.path, corrupt_path)
            except OSError:
                logger.exception("store.quarantine_failed", extra={"path": str(self.path)})

        try:
            self._disk_revision = await asyncio.to_thread(_read_revision, self.path)
        except OSError:
            self._disk_revision = None
        try:
            document = await self._save_locked(document)
        except (StorageError, ConflictError):
            # Still serve defaults from memory; the next successful save persists them.
            logger.exception("store.default_persist_failed", extra={"path": str(self.path)})

        self._document = document
        self._state = "defaulted"
        logger.warning("store.defaulted", extra={"path": str(self.path), "reason": reason})
        if self.app_log is not None:
            await self.app_log.append("warn", "Portfolio document initialised with defaults", {"reason": reason})
        return document

    async def _save_locked(self, document: PortfolioDocument) -> PortfolioDocument:
        expected = self._disk_revision
        document.metadata.last_updated = datetime.now(timezone.utc)
        document.metadata.revision = (expected or 0) + 1

        def _write() -> None:
            with exclusive_file_lock(self.path):
                on_disk = _read_revision(self.path)
                if on_disk != expected:
                    raise ConflictError(
                        f"Portfolio document changed on disk (expected revision {expected}, found {on_disk})"
                    )
                write_atomic(self.path, serialize_document(document))

        try:
            await asyncio.to_thread(_write)
        except OSError as exc:
            logger.exception("store.save_failed", extra={"path": str(self.path)})
            raise StorageError(f"Could not save portfolio document: {exc}") from exc

        self._disk_revision = document.metadata.revision
        return document


_STORE: PortfolioStore | None = None


async def get_store() -> PortfolioStore:
    """FastAPI dependency: the process-wide store, loaded on first use."""

    global _STORE
    if _STORE is None:
        _STORE = PortfolioStore(get_settings().portfolio_path, app_log=get_app_log())
    await _STORE.ensure_loaded()
    return _STORE


def set_store(store: PortfolioStore | None) -> None:
    global _STORE
    _STORE = store

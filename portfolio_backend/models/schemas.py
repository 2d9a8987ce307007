from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from portfolio_backend.config import get_settings


def _instance_id() -> str:
    return get_settings().instance_id


class Project(BaseModel):
    id: int
    title: str
    description: str = ""
    technologies: list[str] = Field(default_factory=list)
    featured: bool = False
    github_url: str | None = None
    created_at: datetime | None = None

    @field_validator("technologies")
    @classmethod
    def _dedupe_technologies(cls, value: list[str]) -> list[str]:
        # Set semantics, first occurrence wins.
        return list(dict.fromkeys(value))


class Skill(BaseModel):
    id: int
    name: str
    category: str
    proficiency: int = Field(ge=1, le=10)


class DocumentMetadata(BaseModel):
    initialized_at: datetime
    last_updated: datetime
    revision: int = 0


class PortfolioDocument(BaseModel):
    projects: list[Project] = Field(default_factory=list)
    skills: list[Skill] = Field(default_factory=list)
    metadata: DocumentMetadata


class ProjectCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    technologies: list[str] = Field(default_factory=list)
    github_url: str | None = None


class DataSaveRequest(BaseModel):
    key: str
    value: Any = None


class LogEntry(BaseModel):
    timestamp: datetime
    level: str
    message: str
    data: dict[str, Any] | None = None
    pid: int
    hostname: str


class StorageFile(BaseModel):
    name: str
    size: int
    modified_at: datetime


class StorageDirectory(BaseModel):
    label: str
    path: str
    exists: bool
    files: list[StorageFile] = Field(default_factory=list)


class DatabaseStatus(BaseModel):
    host: str
    database: str
    status: Literal["simulated_connected"] = "simulated_connected"


class StoreStatus(BaseModel):
    state: Literal["loaded", "defaulted"]
    revision: int


class Envelope(BaseModel):
    success: bool = True
    pod: str = Field(default_factory=_instance_id)


class HealthResponse(Envelope):
    status: Literal["healthy"] = "healthy"
    timestamp: datetime
    uptime: float
    environment: str


class ReadyResponse(Envelope):
    status: Literal["ready"] = "ready"
    timestamp: datetime
    database: DatabaseStatus
    store: StoreStatus


class RuntimeInfo(BaseModel):
    environment: str
    python_version: str
    platform: str
    hostname: str


class Stats(BaseModel):
    total_projects: int
    featured_projects: int
    total_skills: int
    categories: list[str]
    uptime: float
    max_rss_kb: int
    runtime: RuntimeInfo


class ErrorResponse(Envelope):
    success: bool = False
    error: str


class ProjectsResponse(Envelope):
    data: list[Project]
    count: int


class ProjectResponse(Envelope):
    data: Project


class SkillsResponse(Envelope):
    data: list[Skill]
    count: int


class StatsResponse(Envelope):
    data: Stats


class DataSavedResponse(Envelope):
    message: str


class DataResponse(Envelope):
    data: Any = None


class StorageResponse(Envelope):
    data: list[StorageDirectory]


class LogsResponse(Envelope):
    data: list[dict[str, Any]]
    count: int
    file: str | None = None

"""Entity models shared by the storage port, the agent and the HTTP layer."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

SessionStatus = Literal["active", "pending_approval", "completed", "failed"]
ChangeType = Literal["create", "modify", "delete"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


class RemeModel(BaseModel):
    """Base model: snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ProjectSettings(RemeModel):
    strict_mode: bool = False
    max_lines: int | None = None
    max_files: int | None = None
    forbidden_globs: list[str] = Field(default_factory=list)
    style_freeze: bool = False

    @field_validator("forbidden_globs", mode="before")
    @classmethod
    def _ensure_list(cls, value: Any):
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value


class Project(RemeModel):
    id: str = Field(default_factory=new_id)
    name: str
    repo_url: str | None = None
    default_branch: str = "main"
    settings: ProjectSettings = Field(default_factory=ProjectSettings)
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Project name must not be empty")
        return normalized


class Message(RemeModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=utcnow)


class Budget(RemeModel):
    max_tokens: int = Field(default=1000, ge=1)
    max_cost: float = Field(default=0.5, ge=0)


class Scope(RemeModel):
    """Minimal set of files and symbols a session may touch."""

    goal: str
    files: list[str] = Field(default_factory=list)
    symbols: list[str] = Field(default_factory=list)
    forbidden: list[str] = Field(default_factory=list)
    budget: Budget = Field(default_factory=Budget)

    @field_validator("files")
    @classmethod
    def _unique_paths(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(path.strip() for path in value if path.strip()))


class Session(RemeModel):
    id: str = Field(default_factory=new_id)
    project_id: str
    prompt: str
    messages: list[Message] = Field(default_factory=list)
    scope: Scope | None = None
    diff_summary: str | None = None
    status: SessionStatus = "active"
    created_at: datetime = Field(default_factory=utcnow)


class Hunk(RemeModel):
    id: str
    old_start: int = Field(ge=0)
    old_lines: int = Field(ge=0)
    new_start: int = Field(ge=0)
    new_lines: int = Field(ge=0)
    content: str
    rationale: str = ""
    approved: bool = False


class FileChange(RemeModel):
    id: str = Field(default_factory=new_id)
    session_id: str
    file_path: str
    change_type: ChangeType
    hunks: list[Hunk] = Field(default_factory=list)
    applied: bool = False
    pre_image: str | None = None
    pre_image_captured: bool = False
    post_image: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class GitState(RemeModel):
    project_id: str
    branch: str = "main"
    ahead: int = 0
    behind: int = 0
    last_commit: str | None = None
    updated_at: datetime = Field(default_factory=utcnow)


class MemoryNote(RemeModel):
    id: str = Field(default_factory=new_id)
    project_id: str
    content: str
    tags: list[str] = Field(default_factory=list)
    links: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)


class FileEntry(RemeModel):
    path: str
    size: int


__all__ = [
    "Budget",
    "ChangeType",
    "FileChange",
    "FileEntry",
    "GitState",
    "Hunk",
    "MemoryNote",
    "Message",
    "Project",
    "ProjectSettings",
    "RemeModel",
    "Scope",
    "Session",
    "SessionStatus",
    "new_id",
    "utcnow",
]

"""Request bodies accepted by the HTTP API."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from ..routing.models import RoutingTask
from ..storage.models import ProjectSettings, RemeModel


class CreateProjectRequest(RemeModel):
    name: str
    repo_url: str | None = None
    default_branch: str = "main"
    settings: ProjectSettings | None = None


class InitializeProjectRequest(RemeModel):
    repo_url: str | None = None


class CreateSessionRequest(RemeModel):
    project_id: str
    prompt: str


class ApproveRequest(RemeModel):
    allow: bool = True
    add_files: list[str] = Field(default_factory=list)
    add_symbols: list[str] = Field(default_factory=list)


class ApplyRequest(RemeModel):
    hunks: list[str] | None = None
    commit_message: str | None = None


class CommitRequest(RemeModel):
    message: str
    stage: Literal["all", "approved_hunks"] = "approved_hunks"


class BranchRequest(RemeModel):
    action: Literal["create", "switch", "delete"]
    name: str


class MemoryNoteRequest(RemeModel):
    content: str
    tags: list[str] = Field(default_factory=list)
    links: list[str] = Field(default_factory=list)


class FileContentRequest(RemeModel):
    content: str


class CreateFromTemplateRequest(RemeModel):
    name: str | None = None


class RouteRequest(RemeModel):
    task: RoutingTask
    messages: list[dict[str, str]]
    options: dict[str, Any] = Field(default_factory=dict)


__all__ = [
    "ApplyRequest",
    "ApproveRequest",
    "BranchRequest",
    "CommitRequest",
    "CreateFromTemplateRequest",
    "CreateProjectRequest",
    "CreateSessionRequest",
    "FileContentRequest",
    "InitializeProjectRequest",
    "MemoryNoteRequest",
    "RouteRequest",
]

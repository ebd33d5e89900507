"""Project template models."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from ..storage.models import ProjectSettings, RemeModel


class TemplateFile(RemeModel):
    """A file written into a project created from a template."""

    path: str = Field(..., description="Project-relative path of the file.")
    content: str = Field(default="", description="Initial file content.")

    @field_validator("path")
    @classmethod
    def _normalize_path(cls, value: str) -> str:
        normalized = value.strip().replace("\\", "/")
        if not normalized or normalized.startswith("/") or ".." in normalized.split("/"):
            raise ValueError(f"Template file path must be relative and inside the project: {value!r}")
        return normalized


class Template(RemeModel):
    """Starter project definition loaded from YAML."""

    id: str = Field(..., description="Stable identifier used in URLs.")
    name: str = Field(..., description="Display name.")
    description: str = Field(default="", description="What the template sets up.")
    category: str = Field(default="general", description="Grouping used for filtering.")
    tags: list[str] = Field(default_factory=list)
    author: str | None = None
    files: list[TemplateFile] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    settings: ProjectSettings = Field(
        default_factory=lambda: ProjectSettings(
            max_lines=1000,
            max_files=50,
            forbidden_globs=["node_modules/", ".git/"],
        ),
        description="Settings applied to projects created from this template.",
    )

    @field_validator("id", "name")
    @classmethod
    def _require_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Template id and name must not be empty")
        return normalized

    @field_validator("tags", "dependencies", mode="before")
    @classmethod
    def _ensure_list(cls, value: Any):
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            return list(value)
        raise TypeError("Tags and dependencies must be sequences of strings")

    def matches(self, search: str) -> bool:
        needle = search.lower()
        return (
            needle in self.name.lower()
            or needle in self.description.lower()
            or any(needle in tag.lower() for tag in self.tags)
        )


__all__ = ["Template", "TemplateFile"]

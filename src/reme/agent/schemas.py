"""Strict schemas for model-produced intent and patch JSON."""

from __future__ import annotations

import json
from typing import Any

from pydantic import Field, ValidationError, field_validator

from ..storage.models import ChangeType, RemeModel, Scope
from .errors import ParseError


class ProposedHunk(RemeModel):
    old_start: int = Field(ge=0)
    old_lines: int = Field(ge=0)
    new_start: int = Field(ge=0)
    new_lines: int = Field(ge=0)
    content: str
    rationale: str = ""


class PatchFile(RemeModel):
    path: str
    change_type: ChangeType = "modify"
    hunks: list[ProposedHunk] = Field(default_factory=list)

    @field_validator("path")
    @classmethod
    def _relative_path(cls, value: str) -> str:
        normalized = value.strip().replace("\\", "/")
        if not normalized:
            raise ValueError("path must not be empty")
        if normalized.startswith("/") or ".." in normalized.split("/"):
            raise ValueError(f"path must stay inside the project: {value}")
        return normalized


class PatchProposal(RemeModel):
    summary: str
    files: list[PatchFile] = Field(default_factory=list)


def extract_json(raw: str) -> Any:
    """Decode a JSON document, tolerating a surrounding markdown code fence."""

    text = (raw or "").strip()
    if text.startswith("```json"):
        text = text[7:].strip()
    elif text.startswith("```"):
        text = text[3:].strip()
    if text.endswith("```"):
        text = text[:-3].strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Model output is not valid JSON: {exc.msg}") from exc


def parse_scope(raw: str) -> Scope:
    data = extract_json(raw)
    if not isinstance(data, dict):
        raise ParseError("Scope must be a JSON object")
    try:
        scope = Scope.model_validate(data)
    except ValidationError as exc:
        raise ParseError(f"Scope does not match schema: {exc.error_count()} error(s)") from exc
    if not scope.goal.strip():
        raise ParseError("Scope goal must not be empty")
    return scope


def parse_patch(raw: str) -> PatchProposal:
    data = extract_json(raw)
    if not isinstance(data, dict):
        raise ParseError("Patch must be a JSON object")
    try:
        return PatchProposal.model_validate(data)
    except ValidationError as exc:
        raise ParseError(f"Patch does not match schema: {exc.error_count()} error(s)") from exc


__all__ = [
    "PatchFile",
    "PatchProposal",
    "ProposedHunk",
    "extract_json",
    "parse_patch",
    "parse_scope",
]

"""Prompt builders for intent extraction and patch proposal."""

from __future__ import annotations

import json
from typing import Iterable, Sequence

from ..storage.models import MemoryNote, Project, Scope

CONTEXT_FILE_CHARS = 2000

INTENT_SYSTEM_PROMPT = """You are Reme, a strict scope AI coding agent.
Parse the user's intent and determine the minimal scope needed.

STRICT RULES:
- Only touch files explicitly requested
- No refactoring unless asked
- No style changes unless permitted
- Ask permission for scope expansion with ONE concise question"""

INTENT_RESPONSE_FORMAT = """Return JSON with:
{
  "goal": "concise goal statement",
  "files": ["list of files to modify"],
  "symbols": ["list of symbols to change"],
  "forbidden": ["paths/patterns to avoid"],
  "budget": {"maxTokens": 1000, "maxCost": 0.50}
}"""

PATCH_SYSTEM_PROMPT = """You are Reme. Generate the minimal patch to achieve the goal."""

PATCH_RESPONSE_FORMAT = """Return JSON with:
{
  "summary": "Brief change description",
  "files": [
    {
      "path": "file/path.ts",
      "changeType": "modify|create|delete",
      "hunks": [
        {
          "oldStart": 10,
          "oldLines": 3,
          "newStart": 10,
          "newLines": 5,
          "content": "unified diff lines prefixed with ' ', '-' or '+'",
          "rationale": "why this change is needed"
        }
      ]
    }
  ]
}"""


def build_intent_messages(
    prompt: str,
    project: Project,
    hot_notes: Sequence[MemoryNote],
    symbols: Sequence[str],
) -> list[dict[str, str]]:
    settings = project.settings
    rules = [f"- Max files per change: {settings.max_files}"] if settings.max_files else []
    if settings.forbidden_globs:
        rules.append(f"- Forbidden paths: {', '.join(settings.forbidden_globs)}")
    if settings.style_freeze:
        rules.append("- Style is frozen: do not reformat code")

    sections = [
        INTENT_SYSTEM_PROMPT,
        f"Project context: {project.name}",
        "Recent memory: " + json.dumps([note.content for note in hot_notes[:3]]),
        "Available symbols: " + json.dumps(list(symbols[:20])),
    ]
    if rules:
        sections.append("Project rules:\n" + "\n".join(rules))
    sections.append(INTENT_RESPONSE_FORMAT)

    return [
        {"role": "system", "content": "\n\n".join(sections)},
        {"role": "user", "content": prompt},
    ]


def build_patch_messages(
    scope: Scope,
    context_files: Iterable[tuple[str, str]],
    warm_notes: Sequence[MemoryNote],
) -> list[dict[str, str]]:
    rules = "\n".join(
        [
            f"- Only modify specified files: {', '.join(scope.files)}",
            "- Provide rationale for each hunk",
            "- Generate working code, no placeholders",
            "- Follow project style patterns",
        ]
    )
    if scope.forbidden:
        rules += f"\n- Never touch: {', '.join(scope.forbidden)}"

    files_text = "\n\n".join(
        f"=== {path} ===\n{content[:CONTEXT_FILE_CHARS]}" for path, content in context_files
    )
    memory_text = "\n".join(note.content for note in warm_notes)

    sections = [
        PATCH_SYSTEM_PROMPT,
        "RULES:\n" + rules,
        "Context files:\n" + (files_text or "(none)"),
        "Relevant memory:\n" + (memory_text or "(none)"),
        "Goal: " + scope.goal,
        PATCH_RESPONSE_FORMAT,
    ]
    return [
        {"role": "system", "content": "\n\n".join(sections)},
        {"role": "user", "content": f"Generate patch for: {scope.goal}"},
    ]


__all__ = ["build_intent_messages", "build_patch_messages"]

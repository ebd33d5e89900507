"""Apply unified-diff style hunks to file content."""

from __future__ import annotations

from typing import Sequence

from ..storage.models import Hunk
from .errors import HunkApplyConflictError


def _split_hunk(file_path: str, hunk: Hunk) -> tuple[list[str], list[str]]:
    old_block: list[str] = []
    new_block: list[str] = []
    in_body = False
    for line in hunk.content.splitlines():
        if not in_body and (line.startswith("--- ") or line.startswith("+++ ")):
            continue
        if line.startswith("@@") or line.startswith("\\"):
            continue
        in_body = True
        if line == "":
            old_block.append("")
            new_block.append("")
            continue
        marker, text = line[0], line[1:]
        if marker == " ":
            old_block.append(text)
            new_block.append(text)
        elif marker == "-":
            old_block.append(text)
        elif marker == "+":
            new_block.append(text)
        else:
            raise HunkApplyConflictError(file_path, hunk.id, f"malformed hunk line {line!r}")
    return old_block, new_block


def apply_hunks(file_path: str, original: str | None, hunks: Sequence[Hunk]) -> str:
    """Return ``original`` with ``hunks`` applied in line order.

    Hunk coordinates refer to ``original``; earlier hunks shift later ones by
    the number of lines they add or remove. Removed and context lines must
    match exactly, otherwise ``HunkApplyConflictError`` is raised and nothing
    is returned.
    """

    source = original or ""
    result = source.splitlines()
    trailing_newline = source.endswith("\n") or not source

    offset = 0
    cursor = 0
    for hunk in sorted(hunks, key=lambda item: item.old_start):
        old_block, new_block = _split_hunk(file_path, hunk)
        if old_block:
            index = max(hunk.old_start - 1, 0)
        else:
            index = hunk.old_start

        position = index + offset
        if position < cursor:
            raise HunkApplyConflictError(file_path, hunk.id, "overlaps a previous hunk")
        if position > len(result):
            raise HunkApplyConflictError(
                file_path, hunk.id, f"starts at line {hunk.old_start} beyond end of file"
            )
        if result[position : position + len(old_block)] != old_block:
            raise HunkApplyConflictError(
                file_path, hunk.id, f"content mismatch at line {hunk.old_start}"
            )

        result[position : position + len(old_block)] = new_block
        offset += len(new_block) - len(old_block)
        cursor = position + len(new_block)

    if not result:
        return ""
    return "\n".join(result) + ("\n" if trailing_newline else "")


__all__ = ["apply_hunks"]

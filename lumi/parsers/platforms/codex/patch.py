"""Parse plain `codex exec` output carrying `*** Begin Patch` blocks."""
from __future__ import annotations

import re

from lumi.models import FileChange, ParsedResult, ResultSummary
from lumi.parsers.text import classify_output_type, first_summary_line

_PATCH_BLOCK_RE = re.compile(r"\*\*\* Begin Patch\s+([\s\S]*?)\*\*\* End Patch")
_FILE_OP_SPLIT_RE = re.compile(r"\n(?=\*\*\* (?:Add|Update|Delete) File: )")
_FILE_OP_HEAD_RE = re.compile(r"\*\*\* (Add|Update|Delete) File: (.+)")
_ADDITION_RE = re.compile(r"^\+(?!\+\+)", re.MULTILINE)
_DELETION_RE = re.compile(r"^-(?!--)", re.MULTILINE)
_HUNK_RE = re.compile(r"@@")


def count_patch_stats(patch: str) -> tuple[int, int, int]:
    """Return ``(additions, deletions, hunks)``.

    `+++`/`---` file headers are not counted; every `@@` marker counts as a hunk.
    """
    return (
        len(_ADDITION_RE.findall(patch)),
        len(_DELETION_RE.findall(patch)),
        len(_HUNK_RE.findall(patch)),
    )


def extract_patch_changes(text: str) -> list[FileChange]:
    changes: list[FileChange] = []
    for block in _PATCH_BLOCK_RE.findall(text):
        for file_op in _FILE_OP_SPLIT_RE.split(block):
            head = _FILE_OP_HEAD_RE.search(file_op)
            if not head:
                continue
            patch = f"*** Begin Patch\n{file_op.rstrip()}\n*** End Patch"
            additions, deletions, hunks = count_patch_stats(patch)
            changes.append(
                FileChange(
                    path=head.group(2).strip(),
                    op=head.group(1).lower(),
                    patch=patch,
                    additions=additions,
                    deletions=deletions,
                    hunks=hunks,
                )
            )
    return changes


def parse_codex_output(stdout: str = "") -> ParsedResult:
    result = ParsedResult(
        engine="codex",
        summary=ResultSummary(title="Proposed code changes"),
        rawOutput=stdout if isinstance(stdout, str) else "",
    )
    if not isinstance(stdout, str):
        return result

    full_text = stdout.strip()
    if not full_text:
        return result

    result.summary = ResultSummary(
        title=first_summary_line(full_text) or result.summary.title,
        description=full_text,
    )
    result.changes = extract_patch_changes(stdout)
    result.outputType = "patch" if _PATCH_BLOCK_RE.search(stdout) else classify_output_type(full_text)
    return result

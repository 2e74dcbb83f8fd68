"""Free-text helpers shared by the engine parsers."""
from __future__ import annotations

import json
import re
from typing import Any

from lumi import config
from lumi.models import Chunk
from lumi.parsers.chunks import ChunkFactory
from lumi.parsers.noise import CONSOLE_NOISE_PATTERNS, is_noisy_line

_MARKDOWN_RE = re.compile(r"```|^#\s", re.MULTILINE)
_LINE_SPLIT_RE = re.compile(r"\r?\n")
_BOLD_LINE_RE = re.compile(r"^\*\*(.+)\*\*$")
_GIT_DIFF_RE = re.compile(r"^diff --git a/(.+?) b/(.+)")
_STATUS_LINE_RE = re.compile(r"^(M|A|D)\s+(.+)")
_BASH_RUN_RE = re.compile(r"^bash\s+-lc\s+", re.IGNORECASE)
_PATCH_NOISE_RE = re.compile(r"^(file update|apply_patch\()", re.IGNORECASE)


def stringify_if_needed(output: Any) -> str:
    if isinstance(output, str):
        return output
    return json.dumps(output or "", ensure_ascii=False, default=str)


def classify_output_type(text: str) -> str:
    return "markdown" if _MARKDOWN_RE.search(text or "") else "text"


def first_summary_line(text: str, limit: int | None = None) -> str:
    """First non-empty line that is not patch scaffolding, truncated."""
    max_chars = limit or config.TITLE_MAX_CHARS
    for line in _LINE_SPLIT_RE.split(text or ""):
        candidate = line.strip()
        if candidate and not candidate.startswith("***"):
            return candidate[:max_chars]
    return ""


def derive_chunks_from_text(stdout: str = "", stderr: str = "", stamp: ChunkFactory | None = None) -> list[Chunk]:
    """Best-effort chunks from plain console output (no JSON event stream).

    Recognizes the ``thinking`` / ``exec`` section markers printed by the Codex
    console renderer, ``bash -lc`` commands, and git-style file markers.
    """
    stamp = stamp or ChunkFactory()
    chunks: list[Chunk] = []
    expect_run = False
    expect_thinking = False

    for raw in _LINE_SPLIT_RE.split(f"{stderr or ''}\n{stdout or ''}"):
        line = raw.strip()
        if not line or is_noisy_line(line, CONSOLE_NOISE_PATTERNS):
            continue
        lowered = line.lower()
        if lowered == "thinking":
            expect_thinking = True
            continue
        if lowered == "exec":
            expect_run = True
            continue

        diff = _GIT_DIFF_RE.match(line)
        if diff:
            chunks.append(stamp(type="edit", file=diff.group(2).strip()))
            continue

        if expect_thinking:
            expect_thinking = False
            bold = _BOLD_LINE_RE.match(line)
            text = bold.group(1).strip() if bold else line
            if text.lower() != "preparing final message summary":
                chunks.append(stamp(type="thinking", text=text))
            continue

        if expect_run or _BASH_RUN_RE.match(line):
            expect_run = False
            chunks.append(stamp(type="run", cmd=line))
            continue

        if _PATCH_NOISE_RE.match(line) or line.startswith("*** Begin Patch"):
            continue

        status = _STATUS_LINE_RE.match(line)
        if status:
            chunks.append(stamp(type="edit", file=status.group(2).strip()))
            continue

        chunks.append(stamp(type="log", text=line, stream="mixed"))
    return chunks

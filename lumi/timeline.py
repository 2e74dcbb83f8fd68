"""Roll a chunk sequence up into timeline entries and a turn summary.

The builder is a single forward scan. Each grouping rule looks at the chunk
under the cursor (plus any lookahead it needs) and returns the entry it built
together with how many chunks it consumed, so every chunk lands in at most one
entry and rules can be tested on their own.
"""
from __future__ import annotations

import logging
import math
import re
from typing import Any, Callable, Iterable, Mapping, NamedTuple, Optional, Sequence

from pydantic import ValidationError

from lumi import config
from lumi.models import (
    Chunk,
    EntryKind,
    EntryStatus,
    SummaryMeta,
    TimelineEntry,
    TimelineResult,
    TurnSummary,
)

logger = logging.getLogger("lumi.timeline")

TEST_COMMAND_RE = re.compile(r"(?:npm|pnpm|yarn)\s+test\b|pytest\b|go test\b", re.IGNORECASE)
FILE_COUNT_RE = re.compile(r"Updated\s+\d+\s+file(s)?\.?", re.IGNORECASE)
_TESTS_PASSING_RE = re.compile(r"\b\d+\s+(passing|passed)\b", re.IGNORECASE)
_BOLD_RE = re.compile(r"\*\*(.*?)\*\*")
_ITALIC_RE = re.compile(r"\*(.*?)\*")
_CODE_RE = re.compile(r"`(.*?)`")
_PLACEHOLDER_FILES = {"unknown"}


class Draft(NamedTuple):
    """An entry without its id, plus the number of chunks it consumed."""

    kind: str
    status: str
    title: str
    body: Optional[str] = None
    files: Optional[list[str]] = None
    source_ids: tuple[str, ...] = ()


class RuleResult(NamedTuple):
    draft: Optional[Draft]
    consumed: int


Rule = Callable[[Sequence[Chunk], int], RuleResult]


def strip_file_count(text: str) -> str:
    return FILE_COUNT_RE.sub("", text or "").strip()


def clean_text(text: str) -> str:
    cleaned = _BOLD_RE.sub(r"\1", text or "")
    cleaned = _ITALIC_RE.sub(r"\1", cleaned)
    return _CODE_RE.sub(r"\1", cleaned).strip()


def is_test_command(cmd: str | None) -> bool:
    return bool(TEST_COMMAND_RE.search(cmd or ""))


def _ids(chunks: Iterable[Chunk]) -> tuple[str, ...]:
    return tuple(chunk.id for chunk in chunks if chunk.id)


# ── Grouping rules ──────────────────────────────────────────────────

def plan_rule(chunks: Sequence[Chunk], i: int) -> RuleResult:
    chunk = chunks[i]
    text = chunk.text or chunk.resultSummary
    if not text:
        return RuleResult(None, 1)
    return RuleResult(
        Draft(EntryKind.PLAN, EntryStatus.DONE, "Plan", clean_text(text), source_ids=_ids([chunk])),
        1,
    )


def run_rule(chunks: Sequence[Chunk], i: int) -> RuleResult:
    run = chunks[i]
    j = i + 1
    logs: list[str] = []
    while j < len(chunks) and chunks[j].type == "log":
        if chunks[j].text:
            logs.append(chunks[j].text)
        j += 1

    error_text: Optional[str] = None
    if j < len(chunks) and chunks[j].type == "error" and run.runId and chunks[j].runId == run.runId:
        error_text = chunks[j].text or "Command failed"
        j += 1

    status = EntryStatus.FAILED if error_text is not None else EntryStatus.DONE
    kind = EntryKind.TEST if is_test_command(run.cmd) else EntryKind.COMMAND
    title = run.cmd or "Run command"
    if kind == EntryKind.TEST:
        if status == EntryStatus.FAILED:
            title = "Tests failed"
        elif any(_TESTS_PASSING_RE.search(line) for line in logs):
            title = "Tests passed"
        else:
            title = "Ran tests"

    body_lines = ([error_text] if error_text is not None else []) + logs
    body = "\n".join(body_lines) or None
    return RuleResult(Draft(kind, status, title, body, source_ids=_ids(chunks[i:j])), j - i)


def edit_rule(chunks: Sequence[Chunk], i: int) -> RuleResult:
    j = i
    files: list[str] = []
    while j < len(chunks) and chunks[j].type == "edit":
        path = (chunks[j].file or "").strip()
        if path and path not in _PLACEHOLDER_FILES and path not in files:
            files.append(path)
        j += 1

    if len(files) == 1:
        title = f"Edited {files[0]}"
    elif files:
        title = f"Edited {len(files)} files"
    else:
        title = "Modified code"
    return RuleResult(
        Draft(EntryKind.FILE_CHANGE, EntryStatus.DONE, title, files=files, source_ids=_ids(chunks[i:j])),
        j - i,
    )


def result_rule(chunks: Sequence[Chunk], i: int) -> RuleResult:
    chunk = chunks[i]
    text = chunk.resultSummary or chunk.text
    if not text:
        return RuleResult(None, 1)
    body = strip_file_count(text) or None
    return RuleResult(
        Draft(EntryKind.FINAL, EntryStatus.DONE, "Result", body, source_ids=_ids([chunk])),
        1,
    )


def error_rule(chunks: Sequence[Chunk], i: int) -> RuleResult:
    chunk = chunks[i]
    return RuleResult(
        Draft(EntryKind.ERROR, EntryStatus.FAILED, "Error", chunk.text or "Unknown error", source_ids=_ids([chunk])),
        1,
    )


RULES: Mapping[str, Rule] = {
    "thinking": plan_rule,
    "run": run_rule,
    "edit": edit_rule,
    "result": result_rule,
    "error": error_rule,
}


# ── Builder ─────────────────────────────────────────────────────────

def coerce_chunks(raw_chunks: Iterable[Any] | None) -> list[Chunk]:
    """Accept Chunk models or plain dicts; skip anything else."""
    chunks: list[Chunk] = []
    for item in raw_chunks or []:
        if isinstance(item, Chunk):
            chunks.append(item)
        elif isinstance(item, Mapping):
            try:
                chunks.append(Chunk.model_validate(dict(item)))
            except ValidationError:
                logger.debug("Skipping invalid chunk: %.120r", item)
    return chunks


def build_entries(chunks: Sequence[Chunk]) -> list[TimelineEntry]:
    entries: list[TimelineEntry] = []
    i = 0
    while i < len(chunks):
        rule = RULES.get(chunks[i].type)
        if rule is None:
            i += 1
            continue
        draft, consumed = rule(chunks, i)
        i += max(consumed, 1)
        if draft is None:
            continue
        entries.append(
            TimelineEntry(
                id=f"{draft.kind}_{len(entries) + 1}",
                kind=draft.kind,
                status=draft.status,
                title=draft.title,
                body=draft.body,
                files=draft.files,
                sourceChunkIds=list(draft.source_ids) or None,
            )
        )
    return entries


def summarize(entries: Sequence[TimelineEntry], duration_ms: Optional[int] = None) -> TurnSummary:
    has_error = any(e.status == EntryStatus.FAILED or e.kind == EntryKind.ERROR for e in entries)
    tests = [e for e in entries if e.kind == EntryKind.TEST]
    if not tests:
        tests_status = None
    elif any(e.status == EntryStatus.FAILED for e in tests):
        tests_status = "failed"
    else:
        tests_status = "passed"

    title: Optional[str] = None
    if tests_status == "failed":
        title = "Tests failed"
    elif has_error:
        title = "Execution failed"

    files: list[str] = []
    for entry in entries:
        for path in entry.files or []:
            if path not in files:
                files.append(path)

    bullets: list[str] = []
    finals = [e for e in entries if e.kind == EntryKind.FINAL]
    if finals and finals[-1].body:
        bullets.append(finals[-1].body[: config.BULLET_MAX_CHARS])

    return TurnSummary(
        status="failed" if has_error else "success",
        title=title,
        meta=SummaryMeta(
            durationMs=duration_ms,
            testsStatus=tests_status,
            commandCount=sum(1 for e in entries if e.kind in (EntryKind.COMMAND, EntryKind.TEST)),
            fileCount=len(files),
        ),
        bullets=bullets,
    )


def _duration(timing: Any) -> Optional[int]:
    """``timing["durationMs"]`` as whole milliseconds; None when absent or unusable."""
    if not isinstance(timing, Mapping):
        return None
    value = timing.get("durationMs")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return int(value)


def build_timeline_from_chunks(
    chunks: Iterable[Any] | None = None,
    timing: Mapping[str, Any] | None = None,
) -> TimelineResult:
    """Build ``{summary, timeline}`` from an ordered chunk sequence.

    Pure function of its input. Never raises: an internal failure yields a
    failed summary carrying ``parseErrors`` and an empty timeline. An unusable
    ``timing`` only leaves ``durationMs`` unset.
    """
    duration_ms = _duration(timing)
    try:
        entries = build_entries(coerce_chunks(chunks))
        return TimelineResult(summary=summarize(entries, duration_ms), timeline=entries)
    except Exception:
        logger.warning("Failed to build timeline", exc_info=True)
        return TimelineResult(
            summary=TurnSummary(
                status="failed",
                title="Execution failed",
                meta=SummaryMeta(durationMs=duration_ms),
                parseErrors=["Failed to build timeline"],
            ),
            timeline=[],
        )

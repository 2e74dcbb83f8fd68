"""Pydantic models matching the JSON consumed by the browser extension."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

# ── Chunk kinds / timeline vocabulary ───────────────────────────────

CHUNK_TYPES = ("thinking", "run", "log", "edit", "result", "error")


class EntryKind:
    PLAN = "plan"
    COMMAND = "command"
    FILE_CHANGE = "file-change"
    TEST = "test"
    FINAL = "final-message"
    ERROR = "error"


class EntryStatus:
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


# ── Streaming / timeline models ─────────────────────────────────────

class Chunk(BaseModel):
    """Smallest normalized unit of agent activity."""

    model_config = ConfigDict(extra="ignore")

    type: str  # "thinking" | "run" | "log" | "edit" | "result" | "error"
    seq: int = 0
    ts: int = 0  # epoch milliseconds
    id: Optional[str] = None
    text: Optional[str] = None
    cmd: Optional[str] = None
    runId: Optional[str] = None
    file: Optional[str] = None
    resultSummary: Optional[str] = None
    stream: Optional[str] = None  # "stdout" | "stderr" | "mixed"


class EventTranslation(BaseModel):
    """Chunks produced from one raw engine event."""

    chunks: list[Chunk] = Field(default_factory=list)
    aggregatedText: list[str] = Field(default_factory=list)
    summary: Optional[str] = None
    usage: Optional[dict[str, Any]] = None  # passthrough for the caller, never a chunk


class TimelineEntry(BaseModel):
    id: str
    kind: str  # see EntryKind
    status: str = EntryStatus.DONE
    title: str = ""
    body: Optional[str] = None
    files: Optional[list[str]] = None
    sourceChunkIds: Optional[list[str]] = None


class SummaryMeta(BaseModel):
    durationMs: Optional[int] = None
    testsStatus: Optional[str] = None  # None | "passed" | "failed"
    commandCount: int = 0
    fileCount: int = 0


class TurnSummary(BaseModel):
    status: str = "success"  # "success" | "failed"
    title: Optional[str] = None
    meta: SummaryMeta = Field(default_factory=SummaryMeta)
    bullets: list[str] = Field(default_factory=list)
    parseErrors: Optional[list[str]] = None


class TimelineResult(BaseModel):
    summary: TurnSummary
    timeline: list[TimelineEntry] = Field(default_factory=list)


# ── Batch (legacy) result models ────────────────────────────────────

class FileChange(BaseModel):
    path: str
    op: str = "update"  # "add" | "update" | "delete"
    patch: Optional[str] = None
    content: Optional[str] = None
    additions: int = 0
    deletions: int = 0
    hunks: int = 0


class ResultSummary(BaseModel):
    title: str = ""
    description: str = ""


class ParsedResult(BaseModel):
    engine: Optional[str] = None
    model: Optional[str] = None
    summary: ResultSummary = Field(default_factory=ResultSummary)
    changes: list[FileChange] = Field(default_factory=list)
    rawOutput: str = ""
    outputType: str = "text"  # "text" | "markdown" | "patch" | "json"
    parseErrors: Optional[list[str]] = None


class TurnOutcome(BaseModel):
    """Everything one stream-json parse session produced."""

    chunks: list[Chunk] = Field(default_factory=list)
    summary: str = ""
    usage: Optional[dict[str, Any]] = None
    stdout: str = ""

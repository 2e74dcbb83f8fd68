"""Typed event vocabularies for the two engine stream formats.

Each engine's JSON-Lines events are parsed into a discriminated union. The
parse helpers never raise: values that fit no variant come back as ``None``
(Codex) or as :class:`ClaudeUnknownEvent` (Claude, so the translator can still
surface them).
"""
from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, TypeAdapter, ValidationError, field_validator


class _Event(BaseModel):
    model_config = ConfigDict(extra="ignore")


def _coerce_optional_text(value: Any) -> Any:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return None


# ── Codex (`codex exec --json`) ─────────────────────────────────────

class CodexItem(_Event):
    type: str = ""
    id: Optional[str] = None
    command: Optional[str] = None
    aggregated_output: Optional[str] = None
    exit_code: Optional[int] = None
    text: Optional[str] = None

    @field_validator("id", "command", "aggregated_output", "text", mode="before")
    @classmethod
    def _text_fields(cls, value: Any) -> Any:
        return _coerce_optional_text(value)

    @field_validator("exit_code", mode="before")
    @classmethod
    def _exit_code(cls, value: Any) -> Any:
        if isinstance(value, bool):
            return None
        try:
            return int(value) if value is not None else None
        except (TypeError, ValueError, OverflowError):
            return None


class CodexItemStarted(_Event):
    type: Literal["item.started"]
    item: CodexItem


class CodexItemCompleted(_Event):
    type: Literal["item.completed"]
    item: CodexItem


class CodexTurnCompleted(_Event):
    type: Literal["turn.completed"]
    usage: Optional[dict[str, Any]] = None


class CodexError(_Event):
    type: Literal["error"]
    message: Any = None
    error: Any = None


CodexEvent = Annotated[
    Union[CodexItemStarted, CodexItemCompleted, CodexTurnCompleted, CodexError],
    Field(discriminator="type"),
]

_codex_adapter: TypeAdapter[Any] = TypeAdapter(CodexEvent)


def parse_codex_event(raw: Any) -> Optional[CodexItemStarted | CodexItemCompleted | CodexTurnCompleted | CodexError]:
    if not isinstance(raw, dict):
        return None
    try:
        return _codex_adapter.validate_python(raw)
    except ValidationError:
        return None


# ── Claude (`claude -p --output-format stream-json`) ────────────────

class ClaudeContentBlock(_Event):
    type: str = ""
    text: Optional[str] = None
    thinking: Optional[str] = None
    name: Optional[str] = None
    input: Any = None

    @field_validator("text", "thinking", "name", mode="before")
    @classmethod
    def _text_fields(cls, value: Any) -> Any:
        return _coerce_optional_text(value)


def _object_blocks(value: Any) -> Any:
    if isinstance(value, list):
        return [block for block in value if isinstance(block, dict)]
    return value


ContentBlocks = Annotated[list[ClaudeContentBlock], BeforeValidator(_object_blocks)]


class ClaudeMessageBody(_Event):
    content: ContentBlocks


class ClaudeAssistantEvent(_Event):
    type: Literal["assistant"]
    message: ClaudeMessageBody

    @property
    def blocks(self) -> list[ClaudeContentBlock]:
        return self.message.content


class ClaudeMessageEvent(_Event):
    type: Literal["message"]
    content: ContentBlocks

    @property
    def blocks(self) -> list[ClaudeContentBlock]:
        return self.content


class ClaudeResultEvent(_Event):
    type: Literal["result"]
    summary: Optional[str] = None
    result: Optional[str] = None
    error: Any = None

    @field_validator("summary", "result", mode="before")
    @classmethod
    def _text_fields(cls, value: Any) -> Any:
        return _coerce_optional_text(value)


class ClaudeErrorEvent(_Event):
    type: Literal["error"]
    message: Any = None
    error: Any = None


class ClaudeUnknownEvent(BaseModel):
    """Well-formed JSON object that matches no known Claude event shape."""

    type: Optional[str] = None
    raw: dict[str, Any] = Field(default_factory=dict)


ClaudeEvent = Annotated[
    Union[ClaudeAssistantEvent, ClaudeMessageEvent, ClaudeResultEvent, ClaudeErrorEvent],
    Field(discriminator="type"),
]

_claude_adapter: TypeAdapter[Any] = TypeAdapter(ClaudeEvent)


def parse_claude_event(
    raw: Any,
) -> Optional[ClaudeAssistantEvent | ClaudeMessageEvent | ClaudeResultEvent | ClaudeErrorEvent | ClaudeUnknownEvent]:
    if not isinstance(raw, dict):
        return None
    try:
        return _claude_adapter.validate_python(raw)
    except ValidationError:
        event_type = raw.get("type")
        return ClaudeUnknownEvent(
            type=event_type if isinstance(event_type, str) and event_type else None,
            raw=raw,
        )

"""Translate `claude -p --output-format stream-json` events into chunks."""
from __future__ import annotations

import json
import re
from typing import Any

from lumi.models import Chunk, EventTranslation, TurnOutcome
from lumi.parsers.chunks import ChunkFactory, merge_translation
from lumi.parsers.events import (
    ClaudeContentBlock,
    ClaudeErrorEvent,
    ClaudeResultEvent,
    ClaudeUnknownEvent,
    parse_claude_event,
)
from lumi.parsers.lines import iter_json_lines

_EDIT_TOOL_RE = re.compile(r"edit|write|replace", re.IGNORECASE)
_PATH_INPUT_KEYS = ("path", "file_path", "target", "file")


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)


def edit_target(tool_input: Any) -> str:
    if isinstance(tool_input, dict):
        for key in _PATH_INPUT_KEYS:
            value = tool_input.get(key)
            if value:
                return str(value)
    return "unknown"


def _error_text(value: Any) -> str:
    if isinstance(value, dict):
        value = value.get("message") or ""
    return str(value) if value else ""


def _block_to_chunk(block: ClaudeContentBlock, stamp: ChunkFactory) -> Chunk | None:
    if block.type == "thinking":
        text = block.thinking or block.text
        return stamp(type="thinking", text=text) if text else None
    if block.type == "text":
        return stamp(type="log", text=block.text) if block.text else None
    if block.type == "tool_use":
        name = block.name or ""
        if _EDIT_TOOL_RE.search(name):
            return stamp(type="edit", file=edit_target(block.input))
        label = f"[{name}]" if name else "[TOOL]"
        return stamp(type="log", text=f"{label} {_dumps(block.input or {})}")
    return None


def claude_event_to_chunks(raw_event: Any, stamp: ChunkFactory) -> EventTranslation:
    """Map one decoded Claude event to zero or more chunks.

    Unrecognized event objects are kept visible as a fallback log chunk.
    """
    output = EventTranslation()
    event = parse_claude_event(raw_event)
    if event is None:
        return output

    if isinstance(event, ClaudeUnknownEvent):
        output.chunks.append(stamp(type="log", text=f"[{event.type or 'event'}] {_dumps(event.raw)}"))
        return output

    if isinstance(event, ClaudeResultEvent):
        summary_text = event.summary or event.result
        if summary_text:
            output.summary = summary_text
            output.chunks.append(stamp(type="result", resultSummary=summary_text, text=summary_text))
        if event.error:
            output.chunks.append(stamp(type="error", text=_error_text(event.error) or "Claude result error"))
        return output

    if isinstance(event, ClaudeErrorEvent):
        text = _error_text(event.error) or _error_text(event.message) or "Claude stream error"
        output.chunks.append(stamp(type="error", text=text))
        return output

    for block in event.blocks:
        chunk = _block_to_chunk(block, stamp)
        if chunk is not None:
            output.chunks.append(chunk)
    return output


def parse_claude_stream_json(stdout: str = "") -> TurnOutcome:
    """Parse a complete Claude stream-json transcript."""
    stamp = ChunkFactory()
    outcome = TurnOutcome()
    for raw_event in iter_json_lines(stdout):
        merge_translation(outcome, claude_event_to_chunks(raw_event, stamp))
    return outcome

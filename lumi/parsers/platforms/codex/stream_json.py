"""Translate `codex exec --json` events into chunks."""
from __future__ import annotations

import re
from typing import Any

from lumi.models import EventTranslation, TurnOutcome
from lumi.parsers.chunks import ChunkFactory, merge_translation
from lumi.parsers.events import (
    CodexError,
    CodexItem,
    CodexItemCompleted,
    CodexItemStarted,
    CodexTurnCompleted,
    parse_codex_event,
)
from lumi.parsers.lines import iter_json_lines
from lumi.parsers.noise import is_noisy_line

_OUTPUT_LINE_SPLIT_RE = re.compile(r"\r?\n")


def _error_message(event: CodexError) -> str:
    for candidate in (event.message, event.error):
        if isinstance(candidate, dict):
            candidate = candidate.get("message")
        if candidate:
            return str(candidate)
    return "Codex error"


def _command_output(item: CodexItem, stamp: ChunkFactory, output: EventTranslation) -> None:
    run_id = item.id or None
    for line in _OUTPUT_LINE_SPLIT_RE.split(item.aggregated_output or ""):
        trimmed = line.strip()
        if not trimmed or is_noisy_line(trimmed):
            continue
        output.chunks.append(stamp(type="log", text=trimmed, runId=run_id))
        output.aggregatedText.append(trimmed)
    if item.exit_code is not None and item.exit_code != 0:
        output.chunks.append(
            stamp(
                type="error",
                text=f"Command failed with exit code {item.exit_code}",
                runId=run_id,
            )
        )


def codex_event_to_chunks(raw_event: Any, stamp: ChunkFactory) -> EventTranslation:
    """Map one decoded Codex event to zero or more chunks.

    Event types outside the known vocabulary produce nothing.
    """
    output = EventTranslation()
    event = parse_codex_event(raw_event)
    if event is None:
        return output

    if isinstance(event, CodexTurnCompleted):
        output.usage = event.usage
        return output

    if isinstance(event, CodexError):
        output.chunks.append(stamp(type="error", text=_error_message(event)))
        return output

    item = event.item
    if isinstance(event, CodexItemStarted):
        if item.type == "command_execution":
            output.chunks.append(stamp(type="run", cmd=item.command or "", runId=item.id or None))
        return output

    if isinstance(event, CodexItemCompleted):
        if item.type == "reasoning":
            if item.text:
                output.chunks.append(stamp(type="thinking", text=item.text))
        elif item.type == "command_execution":
            _command_output(item, stamp, output)
        elif item.type == "agent_message" and item.text:
            output.summary = item.text
            output.chunks.append(stamp(type="result", resultSummary=item.text, text=item.text))
    return output


def parse_codex_json_output(stdout: str = "") -> TurnOutcome:
    """Parse a complete Codex JSON-Lines transcript."""
    stamp = ChunkFactory()
    outcome = TurnOutcome()
    for raw_event in iter_json_lines(stdout):
        merge_translation(outcome, codex_event_to_chunks(raw_event, stamp))
    return outcome

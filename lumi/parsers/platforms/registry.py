"""Engine registry: routes output to the matching platform parser."""
from __future__ import annotations

import logging
from typing import Any, Callable

from lumi.models import EventTranslation, ParsedResult, ResultSummary, TurnOutcome
from lumi.parsers.chunks import ChunkFactory
from lumi.parsers.platforms.claude import stream_json as claude_stream
from lumi.parsers.platforms.claude import tool_use as claude_tool_use
from lumi.parsers.platforms.codex import patch as codex_patch
from lumi.parsers.platforms.codex import stream_json as codex_stream
from lumi.parsers.text import stringify_if_needed

logger = logging.getLogger("lumi.parse")

EventTranslator = Callable[[Any, ChunkFactory], EventTranslation]

EVENT_TRANSLATORS: dict[str, EventTranslator] = {
    "codex": codex_stream.codex_event_to_chunks,
    "claude": claude_stream.claude_event_to_chunks,
}

STREAM_PARSERS: dict[str, Callable[[str], TurnOutcome]] = {
    "codex": codex_stream.parse_codex_json_output,
    "claude": claude_stream.parse_claude_stream_json,
}

ENGINES = tuple(EVENT_TRANSLATORS)


def get_event_translator(engine: str) -> EventTranslator | None:
    return EVENT_TRANSLATORS.get((engine or "").strip().lower())


def parse_stream_output(engine: str, stdout: str) -> TurnOutcome | None:
    """Parse a complete stream-json transcript for ``engine``."""
    parser = STREAM_PARSERS.get((engine or "").strip().lower())
    if parser is None:
        return None
    return parser(stdout)


def degraded_result(engine: str, output: Any) -> ParsedResult:
    return ParsedResult(
        engine=engine,
        model=None,
        summary=ResultSummary(title="Assistant response", description=""),
        changes=[],
        rawOutput=stringify_if_needed(output),
        outputType="text",
        parseErrors=["Failed to parse engine output"],
    )


def parse_to_lumi_result(engine: str, output: Any) -> ParsedResult:
    """Parse batch engine output into a ParsedResult. Never raises."""
    try:
        if engine == "codex":
            return codex_patch.parse_codex_output(output if isinstance(output, str) else str(output or ""))
        if engine == "claude":
            return claude_tool_use.parse_claude_output(output)
        logger.warning("No batch parser for engine %r", engine)
    except Exception:
        logger.warning("Failed to parse %s output", engine, exc_info=True)
    try:
        return degraded_result(engine, output)
    except Exception:
        return ParsedResult(
            engine=str(engine),
            summary=ResultSummary(title="Assistant response"),
            rawOutput="",
            parseErrors=["Failed to parse engine output"],
        )

"""Pick the right chunk source for one finished turn's output."""
from __future__ import annotations

from typing import Any

from lumi.models import TurnOutcome
from lumi.parsers.chunks import ChunkFactory, merge_translation
from lumi.parsers.platforms.registry import get_event_translator, parse_stream_output
from lumi.parsers.text import derive_chunks_from_text


def collect_turn(engine: str, output: Any, stderr: str = "", output_format: str = "auto") -> TurnOutcome:
    """Chunks, summary and usage for a finished turn.

    ``stream-json`` forces event parsing, ``text`` forces console-text
    derivation, and ``auto`` tries events first and falls back to text when
    the stream produced no chunks.
    """
    if not isinstance(output, str):
        translator = get_event_translator(engine)
        outcome = TurnOutcome()
        if translator is None:
            return outcome
        stamp = ChunkFactory()
        for raw_event in output if isinstance(output, list) else [output]:
            merge_translation(outcome, translator(raw_event, stamp))
        return outcome

    if output_format != "text":
        outcome = parse_stream_output(engine, output)
        if outcome is not None and (outcome.chunks or output_format == "stream-json"):
            return outcome

    chunks = derive_chunks_from_text(output, stderr)
    return TurnOutcome(chunks=chunks, stdout="\n".join(c.text or "" for c in chunks if c.type == "log"))

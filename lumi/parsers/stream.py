"""Incremental parsing of a live engine stdout stream."""
from __future__ import annotations

import logging
from typing import AsyncIterable, AsyncIterator

from lumi.models import Chunk, TurnOutcome
from lumi.parsers.chunks import ChunkFactory, merge_translation
from lumi.parsers.lines import LineReassembler
from lumi.parsers.platforms.registry import get_event_translator

logger = logging.getLogger("lumi.stream")


class TurnStream:
    """One streaming parse session: reassembler, chunk factory and translator.

    Feed raw stdout reads as they arrive; each call returns the chunks produced
    by the lines that became complete. Not shared between sessions.
    """

    def __init__(self, engine: str, max_line_chars: int | None = None) -> None:
        translator = get_event_translator(engine)
        if translator is None:
            raise ValueError(f"Unsupported engine: {engine!r}")
        self.engine = engine
        self._translate = translator
        self._lines = LineReassembler(max_line_chars=max_line_chars)
        self._stamp = ChunkFactory()
        self.outcome = TurnOutcome()
        self.closed = False

    @property
    def dropped_lines(self) -> int:
        return self._lines.dropped

    def feed(self, data: bytes | str) -> list[Chunk]:
        if self.closed:
            raise RuntimeError("TurnStream is closed")
        return self._consume(self._lines.feed(data))

    def finish(self) -> list[Chunk]:
        """Flush the trailing partial line and close; return its chunks."""
        if self.closed:
            return []
        tail = self._consume(self._lines.flush())
        self.closed = True
        if self._lines.dropped:
            logger.info("%s stream dropped %d malformed line(s)", self.engine, self._lines.dropped)
        return tail

    def close(self) -> TurnOutcome:
        self.finish()
        return self.outcome

    def _consume(self, events: list) -> list[Chunk]:
        produced: list[Chunk] = []
        for raw_event in events:
            produced.extend(merge_translation(self.outcome, self._translate(raw_event, self._stamp)))
        return produced


async def stream_chunks(engine: str, source: AsyncIterable[bytes | str]) -> AsyncIterator[Chunk]:
    """Yield chunks as soon as complete lines arrive from ``source``."""
    session = TurnStream(engine)
    async for data in source:
        for chunk in session.feed(data):
            yield chunk
    for chunk in session.finish():
        yield chunk

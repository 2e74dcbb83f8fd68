"""Chunk stamping for one parse session."""
from __future__ import annotations

import time
from typing import Any

from lumi.models import Chunk, EventTranslation, TurnOutcome


class ChunkFactory:
    """Assigns sequence numbers and timestamps to chunks of one session.

    Build one instance per parse session and hand it to every translator call
    of that session. Instances never share their counter.
    """

    def __init__(self) -> None:
        self._seq = 0

    @property
    def last_seq(self) -> int:
        return self._seq

    def next(self, **fields: Any) -> Chunk:
        self._seq += 1
        fields.setdefault("id", f"chunk_{self._seq}")
        fields.update(seq=self._seq, ts=int(time.time() * 1000))
        return Chunk(**fields)

    __call__ = next


def merge_translation(outcome: TurnOutcome, translation: EventTranslation) -> list[Chunk]:
    """Fold one event's translation into the session outcome; return its chunks."""
    outcome.chunks.extend(translation.chunks)
    if translation.aggregatedText:
        joined = "\n".join(translation.aggregatedText)
        outcome.stdout = f"{outcome.stdout}\n{joined}" if outcome.stdout else joined
    if translation.summary and not outcome.summary:
        outcome.summary = translation.summary
    if translation.usage is not None:
        outcome.usage = translation.usage
    return translation.chunks

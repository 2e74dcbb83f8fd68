"""Turn raw process output into decoded JSON-Lines values."""
from __future__ import annotations

import codecs
import json
import logging
import re
from typing import Any, Iterator

from lumi import config

logger = logging.getLogger("lumi.stream")

_LINE_SPLIT_RE = re.compile(r"\r?\n")


def decode_json_line(line: str) -> tuple[bool, Any]:
    """Return ``(ok, value)`` for one line; blank or malformed lines are not ok."""
    stripped = line.strip()
    if not stripped:
        return False, None
    try:
        return True, json.loads(stripped)
    except ValueError:
        logger.debug("Dropping malformed JSON line: %.120s", stripped)
        return False, None


def iter_json_lines(text: str) -> Iterator[Any]:
    """Yield every well-formed JSON value of a complete JSON-Lines document."""
    for line in _LINE_SPLIT_RE.split(str(text or "")):
        ok, value = decode_json_line(line)
        if ok:
            yield value


class LineReassembler:
    """Buffers partial lines across reads and yields one JSON value per line.

    ``feed`` accepts ``bytes`` (decoded as UTF-8, tolerating multi-byte
    sequences split between reads) or ``str``. Malformed lines are counted in
    ``dropped`` and otherwise ignored.
    """

    def __init__(self, max_line_chars: int | None = None) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._leftover = ""
        self._max_line_chars = max_line_chars or config.MAX_LINE_CHARS
        self.dropped = 0

    @property
    def leftover(self) -> str:
        return self._leftover

    def feed(self, data: bytes | str) -> list[Any]:
        text = self._decoder.decode(data) if isinstance(data, (bytes, bytearray)) else str(data)
        if not text:
            return []
        parts = _LINE_SPLIT_RE.split(self._leftover + text)
        self._leftover = parts.pop()
        if len(self._leftover) > self._max_line_chars:
            logger.warning(
                "Discarding partial line of %d chars (limit %d)",
                len(self._leftover),
                self._max_line_chars,
            )
            self._leftover = ""
            self.dropped += 1
        return self._decode_all(parts)

    def flush(self) -> list[Any]:
        """Decode whatever is still buffered; call once the stream has ended."""
        tail = self._leftover + self._decoder.decode(b"", final=True)
        self._leftover = ""
        return self._decode_all(_LINE_SPLIT_RE.split(tail))

    def _decode_all(self, lines: list[str]) -> list[Any]:
        values: list[Any] = []
        for line in lines:
            ok, value = decode_json_line(line)
            if ok:
                values.append(value)
            elif line.strip():
                self.dropped += 1
        return values

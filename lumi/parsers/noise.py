"""Heuristic filters for CLI banner and diagnostic lines.

These are plain data: extend the tuples (or set ``LUMI_EXTRA_NOISE_PATTERNS``)
when an upstream CLI changes its banner, without touching the translators.
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence

from lumi import config

logger = logging.getLogger("lumi.parse")

# Banner/diagnostic lines printed by the Codex CLI and the shell around it.
NOISE_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r'^nvm is not compatible with the "npm_config_prefix"',
        r"^Run `unset npm_config_prefix`",
        r"^OpenAI Codex v[0-9.]+",
        r"^-{4,}$",
        r"^workdir:",
        r"^model:",
        r"^provider:",
        r"^approval:",
        r"^sandbox:",
        r"^reasoning effort:",
        r"^reasoning summaries:",
        r"^session id:",
        r"^GET /health\b",
    )
)

# Plain console output also echoes the prompt we sent; hide its scaffolding.
_CONSOLE_ONLY_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, flags)
    for pattern, flags in (
        (r"^Reading prompt from stdin\.\.\.", re.IGNORECASE),
        (r"^tokens used$", re.IGNORECASE),
        (r"^Execute completed in \d+ms:", re.IGNORECASE),
        (r"^user$", re.IGNORECASE),
        (r"^\[@(element|screenshot)\d+\]", re.IGNORECASE),
        (r"^#\s+User Intent\b", 0),
        (r"^#\s+Context Reference Map\b", 0),
        (r"^#\s+Detailed Element Context\b", 0),
        (r"^#\s+Instructions\b", 0),
        (r"^#\s+Selection Area\b", 0),
        (r"^##\s+Selected Elements\b", 0),
        (r"^##\s+Screenshots\b", 0),
        (r"^- Page:\s+", re.IGNORECASE),
        (r"^- Title:\s+", re.IGNORECASE),
        (r"^- Selection Mode:\s+", re.IGNORECASE),
        (r"^- \*\*@element[0-9]+\*\*", re.IGNORECASE),
        (r"^<details>$", re.IGNORECASE),
        (r"^</details>$", re.IGNORECASE),
        (r"^</?summary>", 0),
        (r"^HTML$", 0),
        (r"^Styles$", 0),
        (r"^[{}]$", 0),
        (r'^"[^"]+":\s+', 0),
        (r"^[0-9,]+$", 0),
        (r"^```", 0),
    )
)

CONSOLE_NOISE_PATTERNS: tuple[re.Pattern[str], ...] = NOISE_PATTERNS + _CONSOLE_ONLY_PATTERNS


def compile_extra_patterns(raw_patterns: Iterable[str]) -> tuple[re.Pattern[str], ...]:
    compiled: list[re.Pattern[str]] = []
    for raw in raw_patterns:
        try:
            compiled.append(re.compile(raw, re.IGNORECASE))
        except re.error as exc:
            logger.warning("Ignoring invalid noise pattern %r: %s", raw, exc)
    return tuple(compiled)


EXTRA_NOISE_PATTERNS = compile_extra_patterns(config.EXTRA_NOISE_PATTERNS)


def is_noisy_line(line: str, patterns: Sequence[re.Pattern[str]] | None = None) -> bool:
    """Return True for blank lines and lines matching any noise pattern."""
    text = (line or "").strip()
    if not text:
        return True
    active = NOISE_PATTERNS if patterns is None else patterns
    if any(pattern.search(text) for pattern in active):
        return True
    return any(pattern.search(text) for pattern in EXTRA_NOISE_PATTERNS)

"""Lumi Server Configuration."""
import json
import logging
import os
from pathlib import Path

logger = logging.getLogger("lumi.config")


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_json_list(name: str) -> list[str]:
    value = os.getenv(name)
    if not value:
        return []
    try:
        parsed = json.loads(value)
    except ValueError:
        logger.warning("Ignoring %s: not a JSON list", name)
        return []
    if not isinstance(parsed, list):
        logger.warning("Ignoring %s: not a JSON list", name)
        return []
    return [str(item) for item in parsed if isinstance(item, str) and item]

# Project root (one level up from lumi/)
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Server settings
HOST = os.getenv("LUMI_HOST", "127.0.0.1")
PORT = _env_int("LUMI_PORT", 3456)
DEV_MODE = _env_bool("LUMI_DEV", False)
LOG_LEVEL = os.getenv("LUMI_LOG_LEVEL", "DEBUG" if DEV_MODE else "INFO").upper()

# CORS: the browser extension talks to us from a chrome-extension:// origin
CORS_ORIGIN_REGEX = os.getenv(
    "LUMI_CORS_ORIGIN_REGEX",
    r"^(chrome-extension://[a-z]+|https?://(localhost|127\.0\.0\.1)(:\d+)?)$",
)

# Parser tuning
MAX_LINE_CHARS = _env_int("LUMI_MAX_LINE_CHARS", 1024 * 1024)
BULLET_MAX_CHARS = _env_int("LUMI_BULLET_MAX_CHARS", 200)
TITLE_MAX_CHARS = _env_int("LUMI_TITLE_MAX_CHARS", 140)

# Regex strings appended to the built-in noisy-line filters
EXTRA_NOISE_PATTERNS = _env_json_list("LUMI_EXTRA_NOISE_PATTERNS")

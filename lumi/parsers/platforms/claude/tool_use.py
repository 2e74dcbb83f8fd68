"""Parse batch Claude output (JSON-Lines text or pre-parsed JSON)."""
from __future__ import annotations

import json
from typing import Any, Iterator

from lumi.models import FileChange, ParsedResult, ResultSummary
from lumi.parsers.lines import iter_json_lines
from lumi.parsers.text import classify_output_type, first_summary_line, stringify_if_needed

_EDIT_TOOL_NAMES = {"Write", "Replace", "Edit"}
_PATH_INPUT_KEYS = ("path", "file_path", "target")
_CONTENT_INPUT_KEYS = ("content", "text", "code", "new_string")


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    if value is None:
        return []
    return [value]


def iter_tool_uses(obj: Any) -> Iterator[dict[str, Any]]:
    """Yield `tool_use` objects at top level or inside message content blocks."""
    if not isinstance(obj, dict):
        return
    if obj.get("type") == "tool_use":
        yield obj
        return
    message = obj.get("message")
    blocks = message.get("content") if isinstance(message, dict) else obj.get("content")
    if isinstance(blocks, list):
        for block in blocks:
            if isinstance(block, dict) and block.get("type") == "tool_use":
                yield block


def change_from_tool_use(tool_use: dict[str, Any]) -> FileChange | None:
    if tool_use.get("name") not in _EDIT_TOOL_NAMES:
        return None
    tool_input = tool_use.get("input")
    if not isinstance(tool_input, dict):
        tool_input = {}
    path = next((tool_input[key] for key in _PATH_INPUT_KEYS if tool_input.get(key)), "unknown")
    content = next((tool_input[key] for key in _CONTENT_INPUT_KEYS if tool_input.get(key)), "")
    additions = len(content.split("\n")) if isinstance(content, str) else 0
    return FileChange(
        path=str(path),
        op="update",
        content=content if isinstance(content, str) else stringify_if_needed(content),
        additions=additions,
        deletions=0,
        hunks=1,
    )


def collect_changes(items: list[Any]) -> list[FileChange]:
    changes: list[FileChange] = []
    for item in items:
        for tool_use in iter_tool_uses(item):
            change = change_from_tool_use(tool_use)
            if change is not None:
                changes.append(change)
    return changes


def _result_text(items: list[Any]) -> str:
    for item in reversed(items):
        if isinstance(item, dict) and item.get("type") == "result":
            text = item.get("result") or item.get("summary")
            if isinstance(text, str) and text.strip():
                return text.strip()
    return ""


def parse_claude_output(output: Any) -> ParsedResult:
    result = ParsedResult(
        engine="claude",
        summary=ResultSummary(title="Proposed edits"),
        rawOutput=stringify_if_needed(output),
    )

    if isinstance(output, str):
        items = list(iter_json_lines(output))
        full_text = _result_text(items) or output.strip()
        if full_text:
            result.summary = ResultSummary(
                title=first_summary_line(full_text) or result.summary.title,
                description=full_text,
            )
        result.changes = collect_changes(items)
        if result.changes:
            result.outputType = "json"
        else:
            result.outputType = classify_output_type(output)
        return result

    items = _as_list(output)
    result.changes = collect_changes(items)
    result.outputType = "json" if result.changes else "text"
    full_text = _result_text(items) or json.dumps(output, indent=2, ensure_ascii=False, default=str).strip()
    if full_text:
        result.summary = ResultSummary(
            title=first_summary_line(full_text) or result.summary.title,
            description=full_text,
        )
    return result

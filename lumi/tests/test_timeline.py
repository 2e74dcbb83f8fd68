import json
import unittest
from unittest.mock import patch

from lumi import timeline
from lumi.models import Chunk
from lumi.parsers.platforms.codex.stream_json import parse_codex_json_output
from lumi.timeline import (
    build_timeline_from_chunks,
    edit_rule,
    run_rule,
    strip_file_count,
)

SAMPLE_CHUNKS = [
    {"id": "c1", "type": "thinking", "text": "Inspecting greet-button background color"},
    {"id": "c2", "type": "run", "cmd": "bash -lc ls"},
    {"id": "c3", "type": "run", "cmd": "bash -lc 'rg \"greet-button\" -n || true'"},
    {"id": "c4", "type": "run", "cmd": "bash -lc \"sed -n '150,260p' styles.css\""},
    {"id": "c5", "type": "edit", "file": "styles.css"},
    {
        "id": "c6",
        "type": "result",
        "text": "Updated the Sign Up CTA to the requested background color #3b54a5 (styles.css:187). "
        "Refresh the page to see the new styling applied.",
    },
]


def _chunks(*items: dict) -> list[Chunk]:
    return [Chunk(seq=n, **item) for n, item in enumerate(items, start=1)]


class TimelineSampleTests(unittest.TestCase):
    def test_single_css_edit_turn(self) -> None:
        built = build_timeline_from_chunks(SAMPLE_CHUNKS, {})
        kinds = [e.kind for e in built.timeline]

        self.assertIn("plan", kinds)
        self.assertIn("command", kinds)
        self.assertIn("final-message", kinds)
        edit = next(e for e in built.timeline if e.kind == "file-change")
        self.assertEqual(edit.files, ["styles.css"])
        self.assertEqual(edit.title, "Edited styles.css")
        self.assertEqual(built.summary.status, "success")
        self.assertIsNone(built.summary.title)
        self.assertEqual(built.summary.meta.fileCount, 1)
        self.assertEqual(built.summary.meta.commandCount, 3)
        self.assertIsNone(built.summary.meta.testsStatus)

    def test_entries_follow_chunk_order_with_kind_prefixed_ids(self) -> None:
        built = build_timeline_from_chunks(SAMPLE_CHUNKS)
        self.assertEqual(
            [e.id for e in built.timeline],
            ["plan_1", "command_2", "command_3", "command_4", "file-change_5", "final-message_6"],
        )
        self.assertEqual(built.timeline[0].sourceChunkIds, ["c1"])

    def test_building_twice_is_identical(self) -> None:
        first = build_timeline_from_chunks(SAMPLE_CHUNKS, {"durationMs": 1200})
        second = build_timeline_from_chunks(SAMPLE_CHUNKS, {"durationMs": 1200})
        self.assertEqual(first.model_dump(), second.model_dump())
        self.assertEqual(first.summary.meta.durationMs, 1200)


class RunGroupingTests(unittest.TestCase):
    def test_logs_and_matching_error_are_absorbed(self) -> None:
        chunks = _chunks(
            {"type": "run", "cmd": "npm run build", "runId": "r1", "id": "a"},
            {"type": "log", "text": "building", "runId": "r1", "id": "b"},
            {"type": "log", "text": "error TS2304", "runId": "r1", "id": "c"},
            {"type": "error", "text": "Command failed with exit code 2", "runId": "r1", "id": "d"},
            {"type": "result", "text": "Build is broken.", "id": "e"},
        )

        result = run_rule(chunks, 0)

        self.assertEqual(result.consumed, 4)
        self.assertEqual(result.draft.status, "failed")
        self.assertEqual(result.draft.body, "Command failed with exit code 2\nbuilding\nerror TS2304")
        self.assertEqual(result.draft.source_ids, ("a", "b", "c", "d"))

    def test_error_for_another_run_is_not_absorbed(self) -> None:
        chunks = _chunks(
            {"type": "run", "cmd": "ls", "runId": "r1"},
            {"type": "error", "text": "unrelated", "runId": "r2"},
        )
        built = build_timeline_from_chunks(chunks)

        self.assertEqual([(e.kind, e.status) for e in built.timeline], [("command", "done"), ("error", "failed")])
        self.assertEqual(built.summary.status, "failed")
        self.assertEqual(built.summary.title, "Execution failed")

    def test_run_without_id_never_absorbs_errors(self) -> None:
        chunks = _chunks({"type": "run", "cmd": "ls"}, {"type": "error", "text": "oops"})
        self.assertEqual(run_rule(chunks, 0).consumed, 1)

    def test_test_commands_are_classified(self) -> None:
        for cmd in ("npm test", "pnpm test -- --run", "yarn  test", "python -m pytest -q", "go test ./..."):
            built = build_timeline_from_chunks([{"type": "run", "cmd": cmd}])
            self.assertEqual(built.timeline[0].kind, "test", cmd)
        built = build_timeline_from_chunks([{"type": "run", "cmd": "npm run testing"}])
        self.assertEqual(built.timeline[0].kind, "command")

    def test_passing_tests_summary(self) -> None:
        built = build_timeline_from_chunks(
            _chunks(
                {"type": "run", "cmd": "npm test", "runId": "t"},
                {"type": "log", "text": "12 passing (3s)", "runId": "t"},
            )
        )
        entry = built.timeline[0]
        self.assertEqual((entry.kind, entry.status, entry.title), ("test", "done", "Tests passed"))
        self.assertEqual(built.summary.meta.testsStatus, "passed")
        self.assertEqual(built.summary.status, "success")

    def test_failed_tests_summary(self) -> None:
        built = build_timeline_from_chunks(
            _chunks(
                {"type": "run", "cmd": "pytest", "runId": "t"},
                {"type": "log", "text": "1 failed, 3 passed", "runId": "t"},
                {"type": "error", "text": "Command failed with exit code 1", "runId": "t"},
            )
        )
        self.assertEqual(len(built.timeline), 1)
        self.assertEqual(built.timeline[0].title, "Tests failed")
        self.assertEqual(built.summary.meta.testsStatus, "failed")
        self.assertEqual(built.summary.title, "Tests failed")
        self.assertEqual(built.summary.status, "failed")

    def test_codex_exit_code_failure_is_not_duplicated(self) -> None:
        stdout = "\n".join(
            json.dumps(e)
            for e in [
                {"type": "item.started", "item": {"id": "item_5", "type": "command_execution", "command": "npm test"}},
                {
                    "type": "item.completed",
                    "item": {"id": "item_5", "type": "command_execution", "aggregated_output": "1 failing", "exit_code": 1},
                },
            ]
        )
        built = build_timeline_from_chunks(parse_codex_json_output(stdout).chunks)

        self.assertEqual([(e.kind, e.status) for e in built.timeline], [("test", "failed")])
        self.assertFalse(any(e.kind == "error" for e in built.timeline))


class EditGroupingTests(unittest.TestCase):
    def test_consecutive_edits_are_deduplicated_in_order(self) -> None:
        chunks = _chunks(
            {"type": "edit", "file": "a.css"},
            {"type": "edit", "file": "a.css"},
            {"type": "edit", "file": "b.html"},
            {"type": "log", "text": "after"},
        )

        result = edit_rule(chunks, 0)

        self.assertEqual(result.consumed, 3)
        self.assertEqual(result.draft.files, ["a.css", "b.html"])
        self.assertEqual(result.draft.title, "Edited 2 files")

    def test_separated_edits_produce_separate_entries(self) -> None:
        built = build_timeline_from_chunks(
            [
                {"type": "edit", "file": "a.css"},
                {"type": "thinking", "text": "next"},
                {"type": "edit", "file": "a.css"},
            ]
        )
        self.assertEqual([e.kind for e in built.timeline], ["file-change", "plan", "file-change"])
        self.assertEqual(built.summary.meta.fileCount, 1)

    def test_unknown_paths_are_not_listed(self) -> None:
        built = build_timeline_from_chunks([{"type": "edit", "file": "unknown"}, {"type": "edit"}])
        self.assertEqual(built.timeline[0].files, [])
        self.assertEqual(built.timeline[0].title, "Modified code")


class FinalMessageTests(unittest.TestCase):
    def test_file_count_phrases_are_stripped(self) -> None:
        self.assertEqual(strip_file_count("Updated 2 files. Changed the header."), "Changed the header.")
        self.assertEqual(strip_file_count("Done. updated 1 file"), "Done.")

    def test_bullets_come_from_last_final_message(self) -> None:
        long_text = "Updated 3 files. " + "x" * 300
        built = build_timeline_from_chunks(
            [{"type": "result", "text": "first"}, {"type": "result", "resultSummary": long_text}]
        )
        self.assertEqual(len(built.summary.bullets), 1)
        self.assertEqual(built.summary.bullets[0], "x" * 200)
        self.assertEqual(built.timeline[-1].body, "x" * 300)

    def test_plan_body_drops_markdown_markers(self) -> None:
        built = build_timeline_from_chunks([{"type": "thinking", "text": "**Inspecting** the `btn` *color*"}])
        self.assertEqual(built.timeline[0].body, "Inspecting the btn color")


class SkippingAndSafetyTests(unittest.TestCase):
    def test_empty_payloads_and_stray_types_are_skipped(self) -> None:
        built = build_timeline_from_chunks(
            [
                {"type": "thinking", "text": ""},
                {"type": "log", "text": "orphan log"},
                {"type": "result"},
                {"type": "mystery"},
                {"no_type": True},
                "garbage",
                None,
            ]
        )
        self.assertEqual(built.timeline, [])
        self.assertEqual(built.summary.status, "success")
        self.assertEqual(built.summary.bullets, [])

    def test_status_failed_iff_failed_or_error_entry(self) -> None:
        ok = build_timeline_from_chunks([{"type": "run", "cmd": "ls"}, {"type": "result", "text": "fine"}])
        bad = build_timeline_from_chunks([{"type": "error", "text": "Codex error"}])

        self.assertEqual(ok.summary.status, "success")
        self.assertEqual(bad.summary.status, "failed")
        self.assertEqual(bad.timeline[0].body, "Codex error")

    def test_internal_failure_degrades(self) -> None:
        with patch.object(timeline, "build_entries", side_effect=RuntimeError("boom")):
            built = build_timeline_from_chunks(SAMPLE_CHUNKS, {"durationMs": 5})

        self.assertEqual(built.timeline, [])
        self.assertEqual(built.summary.status, "failed")
        self.assertEqual(built.summary.parseErrors, ["Failed to build timeline"])
        self.assertEqual(built.summary.meta.durationMs, 5)

    def test_unusable_timing_keeps_timeline(self) -> None:
        for timing in ({"durationMs": float("nan")}, {"durationMs": float("inf")}, ["durationMs", 5], "fast"):
            built = build_timeline_from_chunks([{"type": "result", "text": "ok"}], timing)

            self.assertEqual(built.summary.status, "success")
            self.assertIsNone(built.summary.parseErrors)
            self.assertEqual([e.kind for e in built.timeline], ["final-message"])
            self.assertIsNone(built.summary.meta.durationMs)


if __name__ == "__main__":
    unittest.main()

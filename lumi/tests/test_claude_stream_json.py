import json
import unittest

from lumi.parsers.chunks import ChunkFactory
from lumi.parsers.platforms.claude.stream_json import claude_event_to_chunks, parse_claude_stream_json


class ClaudeEventTranslationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.stamp = ChunkFactory()

    def test_assistant_blocks(self) -> None:
        out = claude_event_to_chunks(
            {
                "type": "assistant",
                "message": {
                    "role": "assistant",
                    "content": [
                        {"type": "thinking", "thinking": "Look for the button rule"},
                        {"type": "text", "text": "Updating the CTA color."},
                        {"type": "tool_use", "id": "toolu_1", "name": "Edit", "input": {"file_path": "src/app.css"}},
                        {"type": "tool_use", "id": "toolu_2", "name": "Bash", "input": {"command": "ls"}},
                        "not a block",
                        {"type": "image"},
                    ],
                },
            },
            self.stamp,
        )

        self.assertEqual([c.type for c in out.chunks], ["thinking", "log", "edit", "log"])
        self.assertEqual(out.chunks[0].text, "Look for the button rule")
        self.assertEqual(out.chunks[1].text, "Updating the CTA color.")
        self.assertEqual(out.chunks[2].file, "src/app.css")
        self.assertEqual(out.chunks[3].text, '[Bash] {"command":"ls"}')

    def test_message_event_tool_use_paths(self) -> None:
        out = claude_event_to_chunks(
            {
                "type": "message",
                "content": [
                    {"type": "tool_use", "name": "Write", "input": {"path": "a.js"}},
                    {"type": "tool_use", "name": "str_replace_editor", "input": {"target": "b.js"}},
                    {"type": "tool_use", "name": "MultiEdit", "input": {}},
                    {"type": "tool_use", "input": {"q": 1}},
                ],
            },
            self.stamp,
        )

        self.assertEqual([c.type for c in out.chunks], ["edit", "edit", "edit", "log"])
        self.assertEqual([c.file for c in out.chunks[:3]], ["a.js", "b.js", "unknown"])
        self.assertEqual(out.chunks[3].text, '[TOOL] {"q":1}')

    def test_result_with_error(self) -> None:
        out = claude_event_to_chunks(
            {"type": "result", "result": "Changed the button.", "error": {"message": "rate limited"}},
            self.stamp,
        )

        self.assertEqual(out.summary, "Changed the button.")
        self.assertEqual([(c.type, c.text) for c in out.chunks], [("result", "Changed the button."), ("error", "rate limited")])

    def test_result_prefers_summary_field(self) -> None:
        out = claude_event_to_chunks({"type": "result", "summary": "Short", "result": "Long"}, self.stamp)
        self.assertEqual(out.summary, "Short")

    def test_error_event(self) -> None:
        out = claude_event_to_chunks({"type": "error", "error": {"message": "overloaded"}}, self.stamp)
        self.assertEqual([(c.type, c.text) for c in out.chunks], [("error", "overloaded")])

        out = claude_event_to_chunks({"type": "error"}, self.stamp)
        self.assertEqual(out.chunks[0].text, "Claude stream error")

    def test_unknown_event_is_visible_as_log(self) -> None:
        event = {"type": "system", "subtype": "init", "model": "claude-sonnet"}
        out = claude_event_to_chunks(event, self.stamp)

        self.assertEqual(len(out.chunks), 1)
        self.assertEqual(out.chunks[0].type, "log")
        self.assertTrue(out.chunks[0].text.startswith("[system] "))
        self.assertEqual(json.loads(out.chunks[0].text[len("[system] "):]), event)

    def test_assistant_without_content_falls_back_to_log(self) -> None:
        out = claude_event_to_chunks({"type": "assistant", "message": {"role": "assistant"}}, self.stamp)
        self.assertEqual(out.chunks[0].type, "log")
        self.assertTrue(out.chunks[0].text.startswith("[assistant] "))

    def test_untyped_object_uses_event_label(self) -> None:
        out = claude_event_to_chunks({"foo": 1}, self.stamp)
        self.assertEqual(out.chunks[0].text, '[event] {"foo":1}')

    def test_non_object_values_are_dropped(self) -> None:
        for raw in ([1], "text", 3, None):
            self.assertEqual(claude_event_to_chunks(raw, self.stamp).chunks, [])


class ClaudeStreamJsonTests(unittest.TestCase):
    def test_malformed_lines_do_not_abort(self) -> None:
        stdout = "\n".join(
            [
                json.dumps({"type": "message", "content": [{"type": "text", "text": "one"}]}),
                "{not json",
                json.dumps({"type": "result", "result": "All done"}),
            ]
        )

        outcome = parse_claude_stream_json(stdout)

        self.assertEqual([c.type for c in outcome.chunks], ["log", "result"])
        self.assertEqual(outcome.summary, "All done")
        self.assertIsNone(outcome.usage)


if __name__ == "__main__":
    unittest.main()

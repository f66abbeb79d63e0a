"""
Tests: recovering JSON payloads from free-form model responses.

Run with:
    pytest prd_automation/tests/test_response_parser.py -v
"""

import logging

from prd_automation.services.response_parser import (
    find_balanced,
    parse_response,
    strip_promise,
)


class TestFindBalanced:
    def test_nested_brackets_do_not_end_the_scan(self):
        text = 'x [[1, 2], [3]] y'
        start, end = find_balanced(text, "[", "]")
        assert text[start:end] == "[[1, 2], [3]]"

    def test_brackets_inside_strings_are_ignored(self):
        text = '[{"description": "handles ] and [ in text"}]'
        assert find_balanced(text, "[", "]") == (0, len(text))

    def test_escaped_quote_inside_string(self):
        text = '{"a": "say \\"}\\" please"} tail'
        start, end = find_balanced(text, "{", "}")
        assert text[start:end] == '{"a": "say \\"}\\" please"}'

    def test_stray_closer_before_payload_is_ignored(self):
        text = "] oops [1]"
        start, end = find_balanced(text, "[", "]")
        assert text[start:end] == "[1]"

    def test_unbalanced_returns_none(self):
        assert find_balanced("[1, 2", "[", "]") is None


class TestStripPromise:
    def test_removes_every_tag(self):
        text = "[1] <promise>done [x]</promise> <promise>again</promise>"
        assert strip_promise(text) == "[1]"


class TestParseResponse:
    def test_array_wrapped_in_prose(self):
        text = 'Here you go:\n[{"id": "req-1"}]\n<promise>All done</promise>'
        assert parse_response(text) == [{"id": "req-1"}]

    def test_markdown_fence(self):
        text = '```json\n[{"id": "a"}, {"id": "b"}]\n```'
        assert parse_response(text) == [{"id": "a"}, {"id": "b"}]

    def test_object_inside_array_is_a_fragment(self):
        text = '[{"a":1},{"b":2}]  {"a":1}'
        assert parse_response(text) == [{"a": 1}, {"b": 2}]

    def test_final_review_object_returned_unwrapped(self):
        text = (
            'Review finished. {"requirements": [{"id": "req-1"}], '
            '"testCases": [{"id": "tc-1"}]} Thanks!'
        )
        result = parse_response(text)
        assert isinstance(result, dict)
        assert result["requirements"] == [{"id": "req-1"}]
        assert result["testCases"] == [{"id": "tc-1"}]

    def test_lone_object_wrapped_when_sequence_expected(self):
        assert parse_response('Result: {"id": "tc-1"}') == [{"id": "tc-1"}]

    def test_lone_object_kept_when_object_expected(self):
        assert parse_response('{"id": "tc-1"}', expect_sequence=False) == {"id": "tc-1"}

    def test_unparseable_object_falls_back_to_array(self):
        assert parse_response("note {not json} then [1, 2]") == [1, 2]

    def test_promise_punctuation_does_not_leak(self):
        text = '<promise>{"fake": [1]}</promise> [{"id": "x"}]'
        assert parse_response(text) == [{"id": "x"}]

    def test_garbage_returns_empty_list_and_logs(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert parse_response("I could not do it, sorry.") == []
        assert "No valid JSON found" in caplog.text

    def test_pathologically_deep_nesting_returns_empty_list(self, caplog):
        deep = "[" * 100_000 + "]" * 100_000
        with caplog.at_level(logging.WARNING):
            assert parse_response(deep) == []
        assert "Failed to parse JSON array" in caplog.text

    def test_empty_text(self):
        assert parse_response("") == []

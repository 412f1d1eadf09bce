"""Tests for request formatting and response parsing."""

import json

import pytest

from artifect.domain.models import ArtifactFormat
from artifect.llm.models import EmptyUpdateResponseError, ResponseOutcome
from artifect.llm.response_parser import (
    COMMENTARY_FUNCTION,
    CONTENT_FUNCTION,
    build_artifact_tools,
    build_tool_choice,
    extract_content_and_commentary,
    format_tagged_prompt,
    format_tagged_response,
    parse_tagged_text,
    parse_tool_calls,
)


FMT = ArtifactFormat(start_tag="[TEST]", end_tag="[/TEST]", syntax="md")


def _call(name, arguments):
    return {"id": f"call_{name}", "type": "function", "function": {"name": name, "arguments": arguments}}


class TestFormatTaggedPrompt:
    """Tests for the response-format instructions."""

    def test_update_prompt_names_both_tag_pairs(self):
        prompt = format_tagged_prompt("Please revise.", FMT, is_update=True)

        assert prompt.startswith("Please revise.\n")
        assert "# Response Format" in prompt
        assert "[TEST]\nYour updated md content here.\n[/TEST]" in prompt
        assert "[COMMENTARY]" in prompt and "[/COMMENTARY]" in prompt

    def test_generation_prompt_asks_for_commentary(self):
        """Opening turns ask only for questions and commentary."""
        prompt = format_tagged_prompt("Start.", FMT, is_update=False)

        assert "[TEST]" not in prompt
        assert "[Your initial questions and commentary to start the dialogue here]" in prompt


class TestExtractContentAndCommentary:
    """Tests for tagged-text extraction."""

    def test_both_fields(self):
        parsed = extract_content_and_commentary(
            "[COMMENTARY]Looks good[/COMMENTARY]\n[TEST]# Title[/TEST]", FMT
        )

        assert parsed.content == "# Title"
        assert parsed.commentary == "Looks good"
        assert parsed.outcome == ResponseOutcome.BOTH

    def test_text_outside_tags_is_commentary(self):
        """Without commentary tags the surrounding text is the commentary."""
        parsed = extract_content_and_commentary("Intro\n[TEST]body[/TEST]\nOutro", FMT)

        assert parsed.content == "body"
        assert parsed.commentary == "Intro\n\nOutro"

    def test_no_tags(self):
        """An untagged response is all commentary."""
        parsed = extract_content_and_commentary("  Just a question?  ", FMT)

        assert parsed.content == ""
        assert parsed.commentary == "Just a question?"
        assert parsed.outcome == ResponseOutcome.COMMENTARY

    def test_first_start_last_end(self):
        """Content runs from the first start tag to the last end tag."""
        parsed = extract_content_and_commentary("[TEST]a [/TEST] b [/TEST]", FMT)
        assert parsed.content == "a [/TEST] b"

    def test_unterminated_content(self):
        """A start tag without an end tag yields no content."""
        parsed = extract_content_and_commentary("[TEST]never closed", FMT)

        assert parsed.content == ""
        assert parsed.commentary == "[TEST]never closed"

    def test_round_trip_with_formatter(self):
        raw = format_tagged_response("# Title", "Notes", FMT)
        parsed = extract_content_and_commentary(raw, FMT)

        assert (parsed.content, parsed.commentary) == ("# Title", "Notes")

    def test_surrounding_whitespace_is_trimmed(self):
        """Whitespace around tagged values is not significant."""
        raw = format_tagged_response("  indented", "line\n", FMT)
        parsed = extract_content_and_commentary(raw, FMT)

        assert (parsed.content, parsed.commentary) == ("indented", "line")


class TestParseTaggedText:
    """Tests for parse_tagged_text."""

    def test_empty_first_turn_allowed(self):
        """An opening turn may return nothing."""
        parsed = parse_tagged_text("", FMT, is_update=False)

        assert (parsed.content, parsed.commentary) == ("", "")
        assert parsed.outcome == ResponseOutcome.NEITHER

    def test_empty_update_rejected(self):
        """An update turn must return content or commentary."""
        with pytest.raises(EmptyUpdateResponseError) as exc_info:
            parse_tagged_text("   ", FMT, is_update=True, provider="openai")
        assert exc_info.value.provider == "openai"

    def test_content_only_update(self):
        parsed = parse_tagged_text("[TEST]new[/TEST]", FMT, is_update=True)
        assert parsed.outcome == ResponseOutcome.CONTENT


class TestArtifactTools:
    """Tests for the tool definitions."""

    def test_two_functions(self):
        tools = build_artifact_tools(FMT, is_update=False)
        names = [t["function"]["name"] for t in tools]

        assert names == [CONTENT_FUNCTION, COMMENTARY_FUNCTION]
        assert tools[0]["function"]["parameters"]["required"] == ["content"]
        assert "md" in tools[0]["function"]["description"]

    def test_update_description(self):
        tools = build_artifact_tools(FMT, is_update=True)
        assert tools[0]["function"]["description"].startswith("Generate the updated artifact content")

    def test_tool_choice(self):
        """Updates force the content function; opening turns are free."""
        assert build_tool_choice(False) == "auto"
        assert build_tool_choice(True) == {"type": "function", "function": {"name": CONTENT_FUNCTION}}


class TestParseToolCalls:
    """Tests for parse_tool_calls."""

    def test_both_calls(self):
        message = {
            "role": "assistant",
            "content": None,
            "tool_calls": [
                _call(CONTENT_FUNCTION, json.dumps({"content": "# Plan"})),
                _call(COMMENTARY_FUNCTION, json.dumps({"commentary": "Done"})),
            ],
        }
        parsed = parse_tool_calls(message, is_update=True)

        assert parsed.content == "# Plan"
        assert parsed.commentary == "Done"

    def test_malformed_call_degrades_to_empty(self):
        """One bad payload does not lose the other call."""
        message = {
            "tool_calls": [
                _call(CONTENT_FUNCTION, '{"content": "unterminated'),
                _call(COMMENTARY_FUNCTION, json.dumps({"commentary": "Still here"})),
            ],
        }
        parsed = parse_tool_calls(message, is_update=True)

        assert parsed.content == ""
        assert parsed.commentary == "Still here"

    def test_non_object_arguments(self):
        message = {"tool_calls": [_call(CONTENT_FUNCTION, "[1, 2]")]}
        parsed = parse_tool_calls(message, is_update=False)
        assert parsed.content == ""

    def test_unknown_function_ignored(self):
        message = {
            "tool_calls": [
                _call("delete_everything", "{}"),
                _call(CONTENT_FUNCTION, json.dumps({"content": "ok"})),
            ],
        }
        assert parse_tool_calls(message, is_update=True).content == "ok"

    def test_legacy_function_call(self):
        """A single function_call is used when there are no tool calls."""
        message = {"function_call": {"name": CONTENT_FUNCTION, "arguments": '{"content": "legacy"}'}}
        assert parse_tool_calls(message, is_update=True).content == "legacy"

    def test_plain_content_is_commentary(self):
        """Without calls, message content is commentary."""
        parsed = parse_tool_calls({"role": "assistant", "content": "What scope?"}, is_update=True)

        assert parsed.content == ""
        assert parsed.commentary == "What scope?"

    def test_completion_body(self):
        """A full chat-completion body is unwrapped."""
        body = {"choices": [{"message": {"content": "Hello"}}]}
        assert parse_tool_calls(body, is_update=False).commentary == "Hello"

    def test_json_string(self):
        raw = json.dumps({"tool_calls": [_call(CONTENT_FUNCTION, '{"content": "x"}')]})
        parsed = parse_tool_calls(raw, is_update=True)

        assert parsed.content == "x"
        assert parsed.raw_response == raw

    def test_non_json_string_is_commentary(self):
        parsed = parse_tool_calls("Sorry, I cannot do that.", is_update=True)
        assert parsed.commentary == "Sorry, I cannot do that."

    def test_empty_update_rejected(self):
        with pytest.raises(EmptyUpdateResponseError):
            parse_tool_calls({"role": "assistant", "content": None}, is_update=True)

    def test_empty_first_turn_allowed(self):
        parsed = parse_tool_calls({"role": "assistant", "content": None}, is_update=False)
        assert parsed.outcome == ResponseOutcome.NEITHER

    @pytest.mark.parametrize("raw", [
        '{"choices": [null]}',
        {"choices": ["oops"]},
        {"choices": [{"message": "text"}]},
        {"tool_calls": [None]},
        {"tool_calls": [{"function": "generate_artifact_content"}]},
        {"tool_calls": "generate_artifact_content"},
        {"function_call": ["provide_commentary"]},
    ])
    def test_malformed_shapes_yield_empty_result(self, raw):
        """Unexpected wire shapes never raise from the parser."""
        parsed = parse_tool_calls(raw, is_update=False)
        assert parsed.outcome == ResponseOutcome.NEITHER

    def test_malformed_call_beside_valid_one(self):
        parsed = parse_tool_calls(
            {"tool_calls": [None, _call(COMMENTARY_FUNCTION, json.dumps({"commentary": "Kept"}))]},
            is_update=True,
        )
        assert parsed.commentary == "Kept"

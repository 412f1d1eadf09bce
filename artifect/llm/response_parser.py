"""
Request formatting and response parsing for both wire conventions.

Tagged text: the model wraps artifact content and commentary in the
delimiter pairs of the artifact's ArtifactFormat.

Tool call: the model calls ``generate_artifact_content`` and/or
``provide_commentary``; arguments are JSON strings decoded per call.
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from artifect.domain.models import ArtifactFormat
from artifect.llm.models import EmptyUpdateResponseError, ParsedResponse, ParseError, ResponseOutcome

logger = logging.getLogger(__name__)

CONTENT_FUNCTION = "generate_artifact_content"
COMMENTARY_FUNCTION = "provide_commentary"

_FUNCTION_FIELDS = {
    CONTENT_FUNCTION: "content",
    COMMENTARY_FUNCTION: "commentary",
}


# =============================================================================
# TAGGED TEXT
# =============================================================================

def format_tagged_prompt(user_prompt: str, artifact_format: ArtifactFormat, is_update: bool) -> str:
    """Append response-format instructions naming the delimiter pairs."""
    if is_update:
        return (
            f"{user_prompt}\n"
            f"\n"
            f"# Response Format\n"
            f"Provide your response using the following tags:\n"
            f"\n"
            f"{artifact_format.start_tag}\n"
            f"Your updated {artifact_format.syntax} content here.\n"
            f"{artifact_format.end_tag}\n"
            f"\n"
            f"{artifact_format.commentary_start_tag}\n"
            f"Provide any additional commentary or questions for the user here.\n"
            f"{artifact_format.commentary_end_tag}\n"
        )
    return (
        f"{user_prompt}\n"
        f"\n"
        f"# Response Format\n"
        f"\n"
        f"Please update the content within the tags as follows:\n"
        f"\n"
        f"{artifact_format.commentary_start_tag}\n"
        f"[Your initial questions and commentary to start the dialogue here]\n"
        f"{artifact_format.commentary_end_tag}"
    )


def format_tagged_response(content: str, commentary: str, artifact_format: ArtifactFormat) -> str:
    """Render content and commentary the way a well-behaved model would."""
    parts = []
    if commentary:
        parts.append(
            f"{artifact_format.commentary_start_tag}\n{commentary}\n{artifact_format.commentary_end_tag}"
        )
    if content:
        parts.append(f"{artifact_format.start_tag}\n{content}\n{artifact_format.end_tag}")
    return "\n\n".join(parts)


def _between(text: str, start_tag: str, end_tag: str) -> Optional[str]:
    """Text between the first ``start_tag`` and the last ``end_tag``, or None."""
    start = text.find(start_tag)
    end = text.rfind(end_tag)
    if start == -1 or end == -1 or end < start + len(start_tag):
        return None
    return text[start + len(start_tag):end].strip()


def extract_content_and_commentary(raw: str, artifact_format: ArtifactFormat) -> ParsedResponse:
    """
    Split a tagged-text response into content and commentary.

    Without commentary tags, text outside the content tags is the
    commentary; with no tags at all, the whole response is.
    """
    content = _between(raw, artifact_format.start_tag, artifact_format.end_tag)
    commentary = _between(raw, artifact_format.commentary_start_tag, artifact_format.commentary_end_tag)

    if commentary is None:
        if content is not None:
            start = raw.find(artifact_format.start_tag)
            end = raw.rfind(artifact_format.end_tag)
            before = raw[:start].strip()
            after = raw[end + len(artifact_format.end_tag):].strip()
            commentary = "\n\n".join(part for part in (before, after) if part)
        else:
            commentary = raw.strip()

    return ParsedResponse(content=content or "", commentary=commentary, raw_response=raw)


def parse_tagged_text(
    raw: str,
    artifact_format: ArtifactFormat,
    is_update: bool,
    provider: str = "unknown",
) -> ParsedResponse:
    """
    Parse a tagged-text response.

    Raises:
        EmptyUpdateResponseError: If an update turn yields neither field
    """
    parsed = extract_content_and_commentary(raw or "", artifact_format)
    return _require_output(parsed, is_update, provider)


# =============================================================================
# TOOL CALLS
# =============================================================================

def build_artifact_tools(artifact_format: ArtifactFormat, is_update: bool) -> List[Dict[str, Any]]:
    """The two function tools offered to the model."""
    syntax = artifact_format.syntax
    content_function = {
        "name": CONTENT_FUNCTION,
        "description": (
            f"Generate the updated artifact content in {syntax} format"
            if is_update
            else f"Generate the artifact content in {syntax} format"
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "content": {
                    "type": "string",
                    "description": f"The {syntax} content for the artifact",
                },
            },
            "required": ["content"],
        },
    }
    commentary_function = {
        "name": COMMENTARY_FUNCTION,
        "description": "Provide commentary, questions, or additional information about the artifact",
        "parameters": {
            "type": "object",
            "properties": {
                "commentary": {
                    "type": "string",
                    "description": "Commentary, questions, or additional information to share with the user",
                },
            },
            "required": ["commentary"],
        },
    }
    return [
        {"type": "function", "function": content_function},
        {"type": "function", "function": commentary_function},
    ]


def build_tool_choice(is_update: bool) -> Union[str, Dict[str, Any]]:
    """Force the content function on updates; let the model decide otherwise."""
    if is_update:
        return {"type": "function", "function": {"name": CONTENT_FUNCTION}}
    return "auto"


def _decode_arguments(function_name: str, arguments: Any) -> Dict[str, Any]:
    """
    Decode one call's arguments.

    Raises:
        ParseError: If the payload is not a JSON object
    """
    if isinstance(arguments, Mapping):
        return dict(arguments)
    try:
        decoded = json.loads(arguments or "")
    except (TypeError, ValueError) as e:
        raise ParseError(function_name, str(e)) from e
    if not isinstance(decoded, dict):
        raise ParseError(function_name, f"expected an object, got {type(decoded).__name__}")
    return decoded


def _apply_call(result: ParsedResponse, function_name: Optional[str], arguments: Any) -> None:
    field_name = _FUNCTION_FIELDS.get(function_name or "")
    if field_name is None:
        logger.warning(f"Ignoring call to unknown function '{function_name}'")
        return
    try:
        args = _decode_arguments(function_name, arguments)
    except ParseError as e:
        logger.warning(f"Degrading '{field_name}' to empty: {e.message}")
        return

    value = args.get(field_name)
    if isinstance(value, str) and value:
        setattr(result, field_name, value)


def _coerce_message(raw: Any) -> Optional[Dict[str, Any]]:
    """Resolve a message dict from a message, a completion body or a JSON string."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return None
    if not isinstance(raw, Mapping):
        return None
    choices = raw.get("choices")
    if isinstance(choices, list):
        if not choices:
            return {}
        first = choices[0]
        message = first.get("message") if isinstance(first, Mapping) else None
        return dict(message) if isinstance(message, Mapping) else {}
    return dict(raw)


def parse_tool_calls(raw: Any, is_update: bool, provider: str = "unknown") -> ParsedResponse:
    """
    Parse a tool-call response.

    Accepts a message dict, a full chat-completion body, or the JSON
    string of either. A string that is not JSON is taken as commentary.

    Raises:
        EmptyUpdateResponseError: If an update turn yields neither field
    """
    raw_text = raw if isinstance(raw, str) else json.dumps(raw, default=str)
    message = _coerce_message(raw)

    if message is None:
        text = raw.strip() if isinstance(raw, str) else ""
        return _require_output(ParsedResponse(commentary=text, raw_response=raw_text), is_update, provider)

    result = ParsedResponse(raw_response=raw_text)
    tool_calls = message.get("tool_calls") or []
    function_call = message.get("function_call")

    if isinstance(tool_calls, list) and tool_calls:
        for tool_call in tool_calls:
            function = tool_call.get("function") if isinstance(tool_call, Mapping) else None
            if not isinstance(function, Mapping):
                logger.warning(f"Ignoring malformed tool call from {provider}: {tool_call!r}")
                continue
            _apply_call(result, function.get("name"), function.get("arguments"))
    elif isinstance(function_call, Mapping):
        _apply_call(result, function_call.get("name"), function_call.get("arguments"))
    elif isinstance(message.get("content"), str) and message["content"]:
        result.commentary = message["content"]

    return _require_output(result, is_update, provider)


def _require_output(parsed: ParsedResponse, is_update: bool, provider: str) -> ParsedResponse:
    if is_update and parsed.outcome == ResponseOutcome.NEITHER:
        raise EmptyUpdateResponseError(provider)
    return parsed

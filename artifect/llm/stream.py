"""
Streaming response assembly.

Deltas arrive as normalized ``StreamDelta`` values from a transport. Text
is appended to a single buffer; tool-call argument fragments accumulate
per call index and are only joined (never decoded) when the stream ends.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[str], None]


@dataclass
class ToolCallDelta:
    """A fragment of one streamed tool call."""
    index: int
    id: Optional[str] = None
    name: Optional[str] = None
    arguments: str = ""


@dataclass
class StreamDelta:
    """One normalized streaming event."""
    text: str = ""
    tool_calls: List[ToolCallDelta] = field(default_factory=list)


async def iter_sse_data(lines: AsyncIterator[str]) -> AsyncIterator[Dict[str, Any]]:
    """
    Decode ``data: <json>`` lines from a server-sent event stream.

    ``data: [DONE]`` ends the stream. Malformed event payloads are logged
    and skipped.
    """
    async for line in lines:
        line = line.strip()
        if not line.startswith("data:"):
            continue
        data = line[len("data:"):].strip()
        if not data:
            continue
        if data == "[DONE]":
            return
        try:
            event = json.loads(data)
        except ValueError as e:
            logger.warning(f"Skipping malformed stream event: {e}")
            continue
        if isinstance(event, dict):
            yield event


class TextStreamAssembler:
    """Accumulates streamed text deltas."""

    def __init__(self, on_chunk: Optional[ChunkCallback] = None):
        self._parts: List[str] = []
        self._on_chunk = on_chunk

    def feed(self, delta: StreamDelta) -> None:
        if delta.text:
            self._parts.append(delta.text)
            if self._on_chunk:
                self._on_chunk(delta.text)

    @property
    def text(self) -> str:
        return "".join(self._parts)


@dataclass
class ToolCallBuffer:
    """Accumulated state of one streamed tool call."""
    index: int
    id: Optional[str] = None
    name: Optional[str] = None
    argument_fragments: List[str] = field(default_factory=list)

    @property
    def arguments(self) -> str:
        return "".join(self.argument_fragments)


class ToolCallStreamAssembler:
    """
    Accumulates streamed tool calls keyed by call index.

    Indices may interleave. A call's id and name are set by the first
    delta that carries them; arguments are append-only.
    """

    def __init__(self, on_chunk: Optional[ChunkCallback] = None):
        self._calls: Dict[int, ToolCallBuffer] = {}
        self._content: List[str] = []
        self._on_chunk = on_chunk

    def feed(self, delta: StreamDelta) -> None:
        if delta.text:
            self._content.append(delta.text)
            if self._on_chunk:
                self._on_chunk(delta.text)

        for call in delta.tool_calls:
            buffer = self._calls.get(call.index)
            if buffer is None:
                buffer = ToolCallBuffer(index=call.index)
                self._calls[call.index] = buffer
            if call.id and buffer.id is None:
                buffer.id = call.id
            if call.name and buffer.name is None:
                buffer.name = call.name
            if call.arguments:
                buffer.argument_fragments.append(call.arguments)
                if self._on_chunk:
                    self._on_chunk(call.arguments)

    @property
    def calls(self) -> List[ToolCallBuffer]:
        return [self._calls[index] for index in sorted(self._calls)]

    def to_message(self) -> Dict[str, Any]:
        """The assembled assistant message, in chat-completion shape."""
        message: Dict[str, Any] = {
            "role": "assistant",
            "content": "".join(self._content) or None,
        }
        if self._calls:
            message["tool_calls"] = [
                {
                    "id": buffer.id,
                    "type": "function",
                    "function": {"name": buffer.name, "arguments": buffer.arguments},
                }
                for buffer in self.calls
            ]
        return message

"""
LLM integration for Artifect.

- Provider adapters (tagged text, tool calls) over HTTP transports
- Streaming assembly and response parsing
- Provider registry and the artifact assistant
"""

from artifect.llm.adapters import ProviderAdapter, TaggedTextAdapter, ToolCallAdapter
from artifect.llm.models import (
    AdapterVariant,
    EmptyUpdateResponseError,
    LLMError,
    Message,
    MessageRole,
    ParsedResponse,
    ParseError,
    ProviderError,
    ResponseOutcome,
    StreamTransportError,
)
from artifect.llm.registry import ModelSelector, ProviderNotFoundError, ProviderRegistry
from artifect.llm.transport import AnthropicMessagesTransport, OpenAIChatTransport

__all__ = [
    "AdapterVariant",
    "AnthropicMessagesTransport",
    "EmptyUpdateResponseError",
    "LLMError",
    "Message",
    "MessageRole",
    "ModelSelector",
    "OpenAIChatTransport",
    "ParsedResponse",
    "ParseError",
    "ProviderAdapter",
    "ProviderError",
    "ProviderNotFoundError",
    "ProviderRegistry",
    "ResponseOutcome",
    "StreamTransportError",
    "TaggedTextAdapter",
    "ToolCallAdapter",
]

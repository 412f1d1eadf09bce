"""
Provider adapters.

One capability set (generate, generate_streaming, parse) with two
variants: tagged text and tool calls. Each adapter composes a transport.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from artifect.domain.models import ArtifactFormat
from artifect.llm.models import (
    AdapterVariant,
    GenerationRequest,
    GenerationResult,
    Message,
    ParsedResponse,
)
from artifect.llm.response_parser import (
    build_artifact_tools,
    build_tool_choice,
    format_tagged_prompt,
    parse_tagged_text,
    parse_tool_calls,
)
from artifect.llm.stream import ChunkCallback, TextStreamAssembler, ToolCallStreamAssembler
from artifect.llm.transport import ChatTransport

logger = logging.getLogger(__name__)


@runtime_checkable
class ProviderAdapter(Protocol):
    """Protocol for artifact-aware model providers."""

    @property
    def provider_name(self) -> str:
        """Registry name (e.g. 'anthropic', 'openai-function-calling')."""
        ...

    @property
    def variant(self) -> AdapterVariant:
        ...

    @property
    def default_model(self) -> str:
        ...

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Send one blocking turn.

        Raises:
            ProviderError: On transport failures
        """
        ...

    async def generate_streaming(
        self,
        request: GenerationRequest,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> GenerationResult:
        """
        Send one streaming turn, forwarding deltas to ``on_chunk``.

        Resolves once the stream has completed.
        """
        ...

    def parse(self, raw: Any, artifact_format: ArtifactFormat, is_update: bool) -> ParsedResponse:
        """
        Extract content and commentary.

        Raises:
            EmptyUpdateResponseError: If an update turn yields neither field
        """
        ...


class _TransportAdapter(ABC):
    """Shared plumbing for adapters built on a ChatTransport."""

    variant: AdapterVariant

    def __init__(self, transport: ChatTransport, name: Optional[str] = None):
        self._transport = transport
        self._name = name or transport.provider_name

    @property
    def provider_name(self) -> str:
        return self._name

    @property
    def default_model(self) -> str:
        return self._transport.default_model

    @property
    def transport(self) -> ChatTransport:
        return self._transport

    def _format_user_prompt(self, request: GenerationRequest) -> str:
        return request.user_prompt

    def _extra(self, request: GenerationRequest) -> Dict[str, Any]:
        return {}

    def _messages(self, request: GenerationRequest, user_prompt: str) -> List[Message]:
        return list(request.history) + [Message.user(user_prompt)]

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        user_prompt = self._format_user_prompt(request)
        response = await self._transport.complete(
            self._messages(request, user_prompt),
            model=request.model,
            system_prompt=request.system_prompt,
            extra=self._extra(request),
        )
        return GenerationResult(
            formatted_system_prompt=request.system_prompt,
            formatted_user_prompt=user_prompt,
            raw_response=self._raw_from_completion(response.message, response.text),
            model=response.model,
            usage=response.usage,
            latency_ms=response.latency_ms,
        )

    async def generate_streaming(
        self,
        request: GenerationRequest,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> GenerationResult:
        user_prompt = self._format_user_prompt(request)
        assembler = self._assembler(on_chunk)
        start_time = time.perf_counter()

        deltas = self._transport.stream(
            self._messages(request, user_prompt),
            model=request.model,
            system_prompt=request.system_prompt,
            extra=self._extra(request),
        )
        try:
            async for delta in deltas:
                assembler.feed(delta)
        finally:
            await deltas.aclose()

        return GenerationResult(
            formatted_system_prompt=request.system_prompt,
            formatted_user_prompt=user_prompt,
            raw_response=self._raw_from_assembler(assembler),
            model=request.model or self._transport.default_model,
            latency_ms=(time.perf_counter() - start_time) * 1000,
        )

    @abstractmethod
    def _raw_from_completion(self, message: Dict[str, Any], text: str) -> Any:
        """The raw response handed to ``parse`` for a blocking call."""
        ...

    @abstractmethod
    def _assembler(self, on_chunk: Optional[ChunkCallback]) -> Any:
        ...

    @abstractmethod
    def _raw_from_assembler(self, assembler: Any) -> Any:
        ...

    @abstractmethod
    def parse(self, raw: Any, artifact_format: ArtifactFormat, is_update: bool) -> ParsedResponse:
        ...


class TaggedTextAdapter(_TransportAdapter):
    """Content and commentary carried in delimiter-tagged free text."""

    variant = AdapterVariant.TAGGED_TEXT

    def _format_user_prompt(self, request: GenerationRequest) -> str:
        return format_tagged_prompt(request.user_prompt, request.artifact_format, request.is_update)

    def _raw_from_completion(self, message: Dict[str, Any], text: str) -> str:
        return text

    def _assembler(self, on_chunk: Optional[ChunkCallback]) -> TextStreamAssembler:
        return TextStreamAssembler(on_chunk)

    def _raw_from_assembler(self, assembler: TextStreamAssembler) -> str:
        return assembler.text

    def parse(self, raw: Any, artifact_format: ArtifactFormat, is_update: bool) -> ParsedResponse:
        return parse_tagged_text(raw or "", artifact_format, is_update, self.provider_name)


class ToolCallAdapter(_TransportAdapter):
    """Content and commentary carried in structured function calls."""

    variant = AdapterVariant.TOOL_CALL

    def __init__(self, transport: ChatTransport, name: Optional[str] = None):
        if not transport.supports_tools:
            raise ValueError(f"Transport '{transport.provider_name}' does not support tool calls")
        super().__init__(transport, name)

    def _extra(self, request: GenerationRequest) -> Dict[str, Any]:
        return {
            "tools": build_artifact_tools(request.artifact_format, request.is_update),
            "tool_choice": build_tool_choice(request.is_update),
        }

    def _raw_from_completion(self, message: Dict[str, Any], text: str) -> Dict[str, Any]:
        return message

    def _assembler(self, on_chunk: Optional[ChunkCallback]) -> ToolCallStreamAssembler:
        return ToolCallStreamAssembler(on_chunk)

    def _raw_from_assembler(self, assembler: ToolCallStreamAssembler) -> Dict[str, Any]:
        return assembler.to_message()

    def parse(self, raw: Any, artifact_format: ArtifactFormat, is_update: bool) -> ParsedResponse:
        return parse_tool_calls(raw, is_update, self.provider_name)

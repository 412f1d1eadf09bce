"""Mock provider adapter for testing."""

import time
from dataclasses import dataclass, field
from typing import Any, List, Optional

from artifect.domain.models import ArtifactFormat
from artifect.llm.models import (
    AdapterVariant,
    GenerationRequest,
    GenerationResult,
    LLMError,
    ParsedResponse,
    ProviderError,
)
from artifect.llm.response_parser import (
    format_tagged_prompt,
    parse_tagged_text,
    parse_tool_calls,
)
from artifect.llm.stream import ChunkCallback


@dataclass
class MockCall:
    """Record of a mock provider call."""
    request: GenerationRequest
    streaming: bool
    timestamp: float = field(default_factory=time.time)


class MockProviderAdapter:
    """
    Mock adapter for testing without API calls.

    Responses are raw provider outputs (tagged text, or message dicts for
    the tool-call variant) served from a queue, then ``default_response``.
    """

    def __init__(
        self,
        responses: Optional[List[Any]] = None,
        default_response: Any = "",
        variant: AdapterVariant = AdapterVariant.TAGGED_TEXT,
        name: str = "mock",
        default_model: str = "mock-model",
        chunk_size: int = 8,
    ):
        self._responses = list(responses or [])
        self._default_response = default_response
        self._variant = variant
        self._name = name
        self._default_model = default_model
        self._chunk_size = chunk_size
        self._calls: List[MockCall] = []
        self._error_on_next: Optional[LLMError] = None

    @property
    def provider_name(self) -> str:
        return self._name

    @property
    def variant(self) -> AdapterVariant:
        return self._variant

    @property
    def default_model(self) -> str:
        return self._default_model

    @property
    def calls(self) -> List[MockCall]:
        return self._calls

    @property
    def call_count(self) -> int:
        return len(self._calls)

    def last_call(self) -> Optional[MockCall]:
        return self._calls[-1] if self._calls else None

    def queue_response(self, response: Any) -> None:
        self._responses.append(response)

    def set_error_on_next(self, error: LLMError) -> None:
        """Configure an error to be raised on the next call."""
        self._error_on_next = error

    def _next(self, request: GenerationRequest, streaming: bool) -> GenerationResult:
        self._calls.append(MockCall(request=request, streaming=streaming))
        if self._error_on_next:
            error = self._error_on_next
            self._error_on_next = None
            raise ProviderError(error)

        raw = self._responses.pop(0) if self._responses else self._default_response
        user_prompt = request.user_prompt
        if self._variant == AdapterVariant.TAGGED_TEXT:
            user_prompt = format_tagged_prompt(user_prompt, request.artifact_format, request.is_update)
        return GenerationResult(
            formatted_system_prompt=request.system_prompt,
            formatted_user_prompt=user_prompt,
            raw_response=raw,
            model=request.model or self._default_model,
        )

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        return self._next(request, streaming=False)

    async def generate_streaming(
        self,
        request: GenerationRequest,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> GenerationResult:
        result = self._next(request, streaming=True)
        if on_chunk and isinstance(result.raw_response, str):
            text = result.raw_response
            for start in range(0, len(text), self._chunk_size):
                on_chunk(text[start:start + self._chunk_size])
        return result

    def parse(self, raw: Any, artifact_format: ArtifactFormat, is_update: bool) -> ParsedResponse:
        if self._variant == AdapterVariant.TOOL_CALL:
            return parse_tool_calls(raw, is_update, self._name)
        return parse_tagged_text(raw or "", artifact_format, is_update, self._name)

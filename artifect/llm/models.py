"""LLM domain models and provider errors."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from artifect.domain.models import ArtifactFormat, MessageRole
from artifect.errors import ArtifectError


@dataclass
class Message:
    """A message in an LLM conversation."""
    role: MessageRole
    content: str

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=MessageRole.ASSISTANT, content=content)

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary for API calls."""
        return {"role": self.role.value, "content": self.content}


class AdapterVariant(str, Enum):
    """Wire convention used to carry content and commentary."""
    TAGGED_TEXT = "tagged_text"
    TOOL_CALL = "tool_call"


class ResponseOutcome(str, Enum):
    """Which fields a parsed model response carried."""
    NEITHER = "neither"
    CONTENT = "content"
    COMMENTARY = "commentary"
    BOTH = "both"


@dataclass
class ParsedResponse:
    """Artifact content and commentary extracted from a model response."""
    content: str = ""
    commentary: str = ""
    raw_response: str = ""

    @property
    def outcome(self) -> ResponseOutcome:
        if self.content and self.commentary:
            return ResponseOutcome.BOTH
        if self.content:
            return ResponseOutcome.CONTENT
        if self.commentary:
            return ResponseOutcome.COMMENTARY
        return ResponseOutcome.NEITHER


@dataclass
class GenerationRequest:
    """Everything an adapter needs to ask a model for an artifact turn."""
    system_prompt: str
    user_prompt: str
    artifact_format: ArtifactFormat
    is_update: bool
    history: List[Message] = field(default_factory=list)
    model: Optional[str] = None


@dataclass
class GenerationResult:
    """Raw outcome of one provider call, before parsing."""
    formatted_system_prompt: str
    formatted_user_prompt: str
    raw_response: Any
    model: str
    usage: Dict[str, Any] = field(default_factory=dict)
    latency_ms: float = 0.0


@dataclass
class LLMError:
    """Error from an LLM provider."""
    error_type: str
    message: str
    retryable: bool = False
    status_code: Optional[int] = None
    request_id: Optional[str] = None
    retry_after_seconds: Optional[float] = None

    @classmethod
    def rate_limit(
        cls,
        message: str,
        request_id: Optional[str] = None,
        retry_after_seconds: Optional[float] = None,
    ) -> "LLMError":
        return cls(
            error_type="rate_limit",
            message=message,
            retryable=True,
            status_code=429,
            request_id=request_id,
            retry_after_seconds=retry_after_seconds,
        )

    @classmethod
    def timeout(cls, message: str) -> "LLMError":
        return cls(error_type="timeout", message=message, retryable=True)

    @classmethod
    def api_error(
        cls,
        message: str,
        status_code: int,
        request_id: Optional[str] = None,
        retry_after_seconds: Optional[float] = None,
    ) -> "LLMError":
        """API error; retryable for 5xx responses."""
        return cls(
            error_type="api_error",
            message=message,
            retryable=status_code >= 500,
            status_code=status_code,
            request_id=request_id,
            retry_after_seconds=retry_after_seconds,
        )

    @classmethod
    def stream_error(cls, message: str) -> "LLMError":
        return cls(error_type="stream_error", message=message, retryable=False)


class ProviderError(ArtifectError):
    """Exception wrapping LLM errors."""

    def __init__(self, error: LLMError, attempts: int = 1):
        self.error = error
        self.attempts = attempts
        super().__init__(error.message)


class StreamTransportError(ProviderError):
    """Network read failed after a stream had started."""

    def __init__(self, message: str):
        super().__init__(LLMError.stream_error(message))


class ParseError(ArtifectError):
    """A tool-call argument payload could not be decoded."""

    def __init__(self, field_name: str, detail: str):
        self.field_name = field_name
        super().__init__(f"Could not decode arguments for '{field_name}': {detail}")


class EmptyUpdateResponseError(ArtifectError):
    """An update turn produced neither content nor commentary."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(
            f"Provider '{provider}' returned neither artifact content nor commentary for an update"
        )

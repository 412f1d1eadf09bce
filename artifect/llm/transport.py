"""
HTTP transports for chat-completion style APIs.

A transport owns the wire details of one vendor API: endpoint, headers,
request body, blocking response extraction and streaming event decoding.
Adapters compose a transport and add the artifact conventions on top.
"""

import asyncio
import json
import logging
import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple

import httpx

from artifect.llm.inflight import InFlightRequests
from artifect.llm.models import LLMError, Message, MessageRole, ProviderError, StreamTransportError
from artifect.llm.stream import StreamDelta, ToolCallDelta, iter_sse_data

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], httpx.AsyncClient]


@dataclass
class CompletionResponse:
    """Blocking completion normalized to the chat-completion message shape."""
    message: Dict[str, Any]
    text: str
    model: str
    usage: Dict[str, Any] = field(default_factory=dict)
    latency_ms: float = 0.0
    request_id: Optional[str] = None


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None


class ChatTransport(ABC):
    """Base class for transports with shared HTTP, retry and de-dup handling."""

    REQUEST_ID_HEADER = "x-request-id"
    supports_tools = False

    def __init__(
        self,
        api_key: str,
        default_model: str,
        base_url: str,
        timeout: float = 300.0,
        max_tokens: int = 4000,
        temperature: float = 0.7,
        max_retries: int = 3,
        base_delay: float = 0.5,
        client_factory: Optional[ClientFactory] = None,
    ):
        """
        Initialize transport.

        Args:
            api_key: Vendor API key
            default_model: Model used when a request names none
            base_url: API base URL (no trailing slash)
            timeout: Request timeout in seconds
            max_tokens: Maximum tokens in a response
            temperature: Sampling temperature
            max_retries: Retries for retryable errors on blocking calls
            base_delay: First backoff delay in seconds
            client_factory: Builds the httpx client used for each request
        """
        self._api_key = api_key
        self._default_model = default_model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._max_retries = max_retries
        self._base_delay = base_delay
        self._client_factory = client_factory or (lambda: httpx.AsyncClient(timeout=self._timeout))
        self._inflight = InFlightRequests()

    @property
    @abstractmethod
    def provider_name(self) -> str:
        ...

    @property
    def default_model(self) -> str:
        return self._default_model

    @property
    def inflight(self) -> InFlightRequests:
        return self._inflight

    @abstractmethod
    def endpoint(self) -> str:
        ...

    @abstractmethod
    def headers(self) -> Dict[str, str]:
        ...

    @abstractmethod
    def build_body(
        self,
        messages: List[Message],
        model: str,
        system_prompt: Optional[str],
        extra: Dict[str, Any],
    ) -> Dict[str, Any]:
        ...

    @abstractmethod
    def parse_completion(self, data: Dict[str, Any]) -> Tuple[Dict[str, Any], str]:
        """Return (assistant message, text) from a blocking response body."""
        ...

    @abstractmethod
    def parse_event(self, event: Dict[str, Any]) -> Optional[StreamDelta]:
        """Normalize one decoded stream event, or None to skip it."""
        ...

    # ------------------------------------------------------------------
    # Blocking
    # ------------------------------------------------------------------

    async def complete(
        self,
        messages: List[Message],
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> CompletionResponse:
        """
        Send a blocking completion request.

        Identical concurrent requests share one upstream call. Retryable
        errors are retried with exponential backoff.

        Raises:
            ProviderError: On HTTP, timeout or connection failures
        """
        model = model or self._default_model
        body = self.build_body(messages, model, system_prompt, extra or {})
        url = self.endpoint()
        key = InFlightRequests.key("POST", url, body)
        return await self._inflight.run(key, lambda: self._with_retry(lambda: self._send(url, body)))

    async def _send(self, url: str, body: Dict[str, Any]) -> CompletionResponse:
        start_time = time.perf_counter()
        try:
            async with self._client_factory() as client:
                response = await client.post(url, json=body, headers=self.headers())
        except httpx.TimeoutException as e:
            raise ProviderError(LLMError.timeout(f"Request timed out: {e}")) from e
        except httpx.RequestError as e:
            raise ProviderError(LLMError.api_error(f"Request failed: {e}", 0)) from e

        latency_ms = (time.perf_counter() - start_time) * 1000

        if response.status_code >= 400:
            raise ProviderError(self._error_from_response(response))

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(
                LLMError.api_error(f"Invalid JSON in response: {e}", response.status_code)
            ) from e

        message, text = self.parse_completion(data)
        return CompletionResponse(
            message=message,
            text=text,
            model=data.get("model") or body.get("model", self._default_model),
            usage=data.get("usage") or {},
            latency_ms=latency_ms,
            request_id=response.headers.get(self.REQUEST_ID_HEADER),
        )

    async def _with_retry(self, call: Callable[[], Awaitable[CompletionResponse]]) -> CompletionResponse:
        """
        Run ``call`` with exponential backoff retry.

        Backoff schedule (default): 0.5s, 2s, 8s (base * 4^attempt).
        Respects retry_after_seconds from provider errors when present and
        adds jitter (up to 25% of sleep time).
        """
        delay = self._base_delay

        for attempt in range(self._max_retries + 1):
            try:
                return await call()
            except ProviderError as e:
                if not e.error.retryable or attempt == self._max_retries:
                    e.attempts = attempt + 1
                    logger.error(
                        f"{self.provider_name} request failed after {attempt + 1} attempt(s): "
                        f"{e.error.error_type}: {e.error.message}"
                    )
                    raise

                sleep_time = e.error.retry_after_seconds or delay
                sleep_time += random.uniform(0, 0.25 * sleep_time)
                logger.warning(
                    f"{self.provider_name} {e.error.error_type} "
                    f"(attempt {attempt + 1}), retrying in {sleep_time:.2f}s"
                )
                await asyncio.sleep(sleep_time)
                delay *= 4

        raise AssertionError("unreachable")

    def _error_from_response(self, response: httpx.Response) -> LLMError:
        request_id = response.headers.get(self.REQUEST_ID_HEADER)
        retry_after = _parse_retry_after(response.headers.get("retry-after"))
        message = response.reason_phrase or f"HTTP {response.status_code}"
        try:
            error = response.json().get("error")
            if isinstance(error, dict):
                message = error.get("message", message)
            elif error:
                message = str(error)
        except ValueError:
            if response.text:
                message = response.text

        if response.status_code == 429:
            return LLMError.rate_limit(message, request_id, retry_after)
        return LLMError.api_error(message, response.status_code, request_id, retry_after)

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    async def stream(
        self,
        messages: List[Message],
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> AsyncIterator[StreamDelta]:
        """
        Stream normalized deltas.

        The HTTP response and client are closed on every exit path,
        including when the consumer closes this generator early.

        Raises:
            ProviderError: If the request fails before the stream starts
            StreamTransportError: If reading fails mid-stream
        """
        model = model or self._default_model
        body = dict(self.build_body(messages, model, system_prompt, extra or {}))
        body["stream"] = True
        started = False

        client = self._client_factory()
        try:
            async with client.stream("POST", self.endpoint(), json=body, headers=self.headers()) as response:
                if response.status_code >= 400:
                    await response.aread()
                    raise ProviderError(self._error_from_response(response))
                started = True
                async for event in iter_sse_data(response.aiter_lines()):
                    delta = self.parse_event(event)
                    if delta is not None:
                        yield delta
        except httpx.TimeoutException as e:
            logger.error(f"{self.provider_name} stream timed out: {e}")
            if started:
                raise StreamTransportError(f"Stream timed out: {e}") from e
            raise ProviderError(LLMError.timeout(f"Request timed out: {e}")) from e
        except httpx.RequestError as e:
            logger.error(f"{self.provider_name} stream failed: {e}")
            if started:
                raise StreamTransportError(f"Stream read failed: {e}") from e
            raise ProviderError(LLMError.api_error(f"Request failed: {e}", 0)) from e
        finally:
            await client.aclose()


class OpenAIChatTransport(ChatTransport):
    """OpenAI chat completions API."""

    supports_tools = True

    def __init__(self, *args: Any, organization_id: Optional[str] = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._organization_id = organization_id

    @property
    def provider_name(self) -> str:
        return "openai"

    def endpoint(self) -> str:
        return f"{self._base_url}/chat/completions"

    def headers(self) -> Dict[str, str]:
        headers = {
            "authorization": f"Bearer {self._api_key}",
            "content-type": "application/json",
        }
        if self._organization_id:
            headers["openai-organization"] = self._organization_id
        return headers

    def build_body(
        self,
        messages: List[Message],
        model: str,
        system_prompt: Optional[str],
        extra: Dict[str, Any],
    ) -> Dict[str, Any]:
        formatted = []
        if system_prompt:
            formatted.append(Message.system(system_prompt).to_dict())
        formatted.extend(m.to_dict() for m in messages)
        body: Dict[str, Any] = {
            "model": model,
            "messages": formatted,
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
        }
        body.update(extra)
        return body

    def parse_completion(self, data: Dict[str, Any]) -> Tuple[Dict[str, Any], str]:
        choices = data.get("choices") or []
        if not choices or not choices[0].get("message"):
            raise ProviderError(LLMError.api_error("No message in response", 200))
        message = dict(choices[0]["message"])
        return message, message.get("content") or ""

    def parse_event(self, event: Dict[str, Any]) -> Optional[StreamDelta]:
        choices = event.get("choices") or []
        if not choices:
            return None
        delta = choices[0].get("delta") or {}

        tool_calls = [
            ToolCallDelta(
                index=call.get("index", 0),
                id=call.get("id"),
                name=(call.get("function") or {}).get("name"),
                arguments=(call.get("function") or {}).get("arguments") or "",
            )
            for call in delta.get("tool_calls") or []
        ]
        # Legacy single function_call deltas map onto index 0
        function_call = delta.get("function_call")
        if function_call:
            tool_calls.append(ToolCallDelta(
                index=0,
                name=function_call.get("name"),
                arguments=function_call.get("arguments") or "",
            ))

        text = delta.get("content") or ""
        if not text and not tool_calls:
            return None
        return StreamDelta(text=text, tool_calls=tool_calls)


class AnthropicMessagesTransport(ChatTransport):
    """
    Anthropic messages API.

    Tools and ``tool_choice`` arrive in the chat-completion shape and are
    translated on the way out; ``tool_use`` blocks come back as
    ``tool_calls`` so the tool-call parser handles both vendors alike.
    """

    REQUEST_ID_HEADER = "request-id"
    supports_tools = True

    def __init__(self, *args: Any, api_version: str = "2023-06-01", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._api_version = api_version

    @property
    def provider_name(self) -> str:
        return "anthropic"

    def endpoint(self) -> str:
        return f"{self._base_url}/v1/messages"

    def headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self._api_key,
            "anthropic-version": self._api_version,
            "content-type": "application/json",
        }

    def build_body(
        self,
        messages: List[Message],
        model: str,
        system_prompt: Optional[str],
        extra: Dict[str, Any],
    ) -> Dict[str, Any]:
        extra = dict(extra)
        tools = extra.pop("tools", None)
        tool_choice = extra.pop("tool_choice", None)

        body: Dict[str, Any] = {
            "model": model,
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
            # System is a top-level field, never a message
            "messages": [m.to_dict() for m in messages if m.role != MessageRole.SYSTEM],
        }
        if system_prompt:
            body["system"] = system_prompt
        if tools:
            body["tools"] = [_anthropic_tool(tool) for tool in tools]
        if tool_choice:
            body["tool_choice"] = _anthropic_tool_choice(tool_choice)
        body.update(extra)
        return body

    def parse_completion(self, data: Dict[str, Any]) -> Tuple[Dict[str, Any], str]:
        blocks = [b for b in data.get("content") or [] if isinstance(b, dict)]
        text = "".join(b.get("text", "") for b in blocks if b.get("type") == "text")
        message: Dict[str, Any] = {"role": "assistant", "content": text}

        tool_calls = [
            {
                "id": block.get("id"),
                "type": "function",
                "function": {
                    "name": block.get("name"),
                    "arguments": json.dumps(block.get("input") or {}),
                },
            }
            for block in blocks
            if block.get("type") == "tool_use"
        ]
        if tool_calls:
            message["tool_calls"] = tool_calls
        return message, text

    def parse_event(self, event: Dict[str, Any]) -> Optional[StreamDelta]:
        event_type = event.get("type")
        if event_type == "error":
            error = event.get("error") or {}
            raise StreamTransportError(error.get("message", "Stream error event"))

        index = event.get("index", 0)
        if event_type == "content_block_start":
            block = event.get("content_block") or {}
            if block.get("type") != "tool_use":
                return None
            return StreamDelta(tool_calls=[
                ToolCallDelta(index=index, id=block.get("id"), name=block.get("name")),
            ])

        if event_type != "content_block_delta":
            return None
        delta = event.get("delta") or {}
        if delta.get("type") == "text_delta" and delta.get("text"):
            return StreamDelta(text=delta["text"])
        if delta.get("type") == "input_json_delta" and delta.get("partial_json"):
            return StreamDelta(tool_calls=[
                ToolCallDelta(index=index, arguments=delta["partial_json"]),
            ])
        return None


def _anthropic_tool(tool: Dict[str, Any]) -> Dict[str, Any]:
    """``{"type": "function", "function": {...}}`` -> Anthropic tool definition."""
    function = tool.get("function") or tool
    return {
        "name": function["name"],
        "description": function.get("description", ""),
        "input_schema": function.get("parameters") or {"type": "object", "properties": {}},
    }


def _anthropic_tool_choice(tool_choice: Any) -> Dict[str, Any]:
    if isinstance(tool_choice, dict):
        name = (tool_choice.get("function") or {}).get("name")
        if name:
            return {"type": "tool", "name": name}
    return {"type": "auto"}

"""
Artifact assistant.

One turn of the model conversation: render prompts from the context
bundle, call the selected provider adapter (blocking or streaming), and
parse the result into content and commentary.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, List, Optional

from artifect.domain.context import ContextBundle
from artifect.domain.models import ArtifactType, ProjectType
from artifect.llm.models import GenerationRequest, Message, ResponseOutcome
from artifect.llm.registry import ModelSelector, ProviderRegistry
from artifect.llm.stream import ChunkCallback
from artifect.templates.renderer import PromptInput, PromptRenderer

logger = logging.getLogger(__name__)


@dataclass
class AssistantReply:
    """Parsed outcome of one assistant turn."""
    content: str
    commentary: str
    outcome: ResponseOutcome
    provider: str
    model: str
    prompt: PromptInput
    raw_response: Any
    latency_ms: float


class ArtifactAssistant:
    """Renders prompts, calls a provider and parses its answer."""

    def __init__(self, registry: ProviderRegistry, renderer: PromptRenderer):
        self._registry = registry
        self._renderer = renderer

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    async def respond(
        self,
        bundle: ContextBundle,
        project_type: ProjectType,
        artifact_type: ArtifactType,
        phase_name: str,
        history: Optional[List[Message]] = None,
        selector: Optional[ModelSelector] = None,
        stream: bool = False,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> AssistantReply:
        """
        Run one turn.

        Raises:
            ProviderNotFoundError: If the selected provider is not registered
            TemplateRenderError: If prompts cannot be rendered
            ProviderError: On transport failures
            EmptyUpdateResponseError: If an update turn yields nothing
        """
        selector = selector or ModelSelector()
        adapter = self._registry.get(selector.provider)
        prompt = self._renderer.render(bundle, project_type, artifact_type, phase_name)

        request = GenerationRequest(
            system_prompt=prompt.system_prompt,
            user_prompt=prompt.user_prompt,
            artifact_format=prompt.artifact_format,
            is_update=bundle.is_update,
            history=list(history or []),
            model=selector.model,
        )
        log_extra = {
            "provider": adapter.provider_name,
            "model": selector.model or adapter.default_model,
            "artifact_type": artifact_type.name,
            "is_update": bundle.is_update,
            "streaming": stream,
        }

        start_time = time.perf_counter()
        try:
            if stream:
                result = await adapter.generate_streaming(request, on_chunk)
            else:
                result = await adapter.generate(request)
            parsed = adapter.parse(result.raw_response, prompt.artifact_format, bundle.is_update)
        except Exception as e:
            log_extra["latency_ms"] = round((time.perf_counter() - start_time) * 1000, 1)
            logger.error(f"Assistant call failed: {type(e).__name__}: {e}", extra=log_extra)
            raise

        latency_ms = (time.perf_counter() - start_time) * 1000
        log_extra.update({
            "model": result.model,
            "outcome": parsed.outcome.value,
            "latency_ms": round(latency_ms, 1),
        })
        logger.info(
            f"Assistant {parsed.outcome.value} response for '{artifact_type.name}' "
            f"via {adapter.provider_name}",
            extra=log_extra,
        )

        return AssistantReply(
            content=parsed.content,
            commentary=parsed.commentary,
            outcome=parsed.outcome,
            provider=adapter.provider_name,
            model=result.model,
            prompt=prompt,
            raw_response=result.raw_response,
            latency_ms=latency_ms,
        )

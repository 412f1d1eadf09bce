"""Provider registry and model selection."""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from artifect.core.config import Settings
from artifect.domain.errors import ValidationError
from artifect.llm.adapters import ProviderAdapter, TaggedTextAdapter, ToolCallAdapter
from artifect.llm.transport import AnthropicMessagesTransport, ClientFactory, OpenAIChatTransport

logger = logging.getLogger(__name__)

OPENAI = "openai"
OPENAI_FUNCTION_CALLING = "openai-function-calling"
ANTHROPIC = "anthropic"
ANTHROPIC_FUNCTION_CALLING = "anthropic-function-calling"


class ProviderNotFoundError(ValidationError):
    """Requested provider is not registered."""

    def __init__(self, name: str, available: List[str]):
        self.name = name
        self.available = available
        super().__init__(
            f"Unknown AI provider: '{name}'. Available providers: {', '.join(available) or 'none'}"
        )


@dataclass(frozen=True)
class ModelSelector:
    """Caller's choice of provider and model; None means the default."""
    provider: Optional[str] = None
    model: Optional[str] = None


class ProviderRegistry:
    """Named provider adapters with a configured default."""

    def __init__(self, default_provider: str):
        self._default_provider = default_provider
        self._adapters: Dict[str, ProviderAdapter] = {}

    @property
    def default_provider(self) -> str:
        return self._default_provider

    def register(self, adapter: ProviderAdapter) -> None:
        self._adapters[adapter.provider_name] = adapter
        logger.debug(f"Registered AI provider '{adapter.provider_name}' ({adapter.variant.value})")

    def names(self) -> List[str]:
        return sorted(self._adapters)

    def get(self, name: Optional[str] = None) -> ProviderAdapter:
        """
        Resolve an adapter by name, or the default when ``name`` is None.

        Raises:
            ProviderNotFoundError: If the provider is not registered
        """
        key = (name or self._default_provider).strip().lower()
        try:
            return self._adapters[key]
        except KeyError:
            raise ProviderNotFoundError(key, self.names()) from None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        client_factory: Optional[ClientFactory] = None,
    ) -> "ProviderRegistry":
        """Register every provider whose API key is configured."""
        registry = cls(settings.default_ai_provider)
        common = dict(
            timeout=settings.ai_timeout_seconds,
            max_tokens=settings.ai_max_tokens,
            temperature=settings.ai_temperature,
            max_retries=settings.ai_max_retries,
            client_factory=client_factory,
        )

        if settings.openai_api_key:
            # Separate transports so each provider owns its in-flight table
            registry.register(TaggedTextAdapter(
                OpenAIChatTransport(
                    settings.openai_api_key,
                    settings.openai_default_model,
                    settings.openai_base_url,
                    organization_id=settings.openai_organization_id,
                    **common,
                ),
                name=OPENAI,
            ))
            registry.register(ToolCallAdapter(
                OpenAIChatTransport(
                    settings.openai_api_key,
                    settings.openai_default_model,
                    settings.openai_base_url,
                    organization_id=settings.openai_organization_id,
                    **common,
                ),
                name=OPENAI_FUNCTION_CALLING,
            ))
        else:
            logger.info("OPENAI_API_KEY not set; OpenAI providers not registered")

        if settings.anthropic_api_key:
            for adapter_cls, name in (
                (TaggedTextAdapter, ANTHROPIC),
                (ToolCallAdapter, ANTHROPIC_FUNCTION_CALLING),
            ):
                registry.register(adapter_cls(
                    AnthropicMessagesTransport(
                        settings.anthropic_api_key,
                        settings.anthropic_default_model,
                        settings.anthropic_base_url,
                        api_version=settings.anthropic_api_version,
                        **common,
                    ),
                    name=name,
                ))
        else:
            logger.info("ANTHROPIC_API_KEY not set; Anthropic providers not registered")

        if registry.default_provider not in registry.names():
            logger.warning(
                f"Default AI provider '{registry.default_provider}' is not registered "
                f"(available: {', '.join(registry.names()) or 'none'})"
            )
        return registry

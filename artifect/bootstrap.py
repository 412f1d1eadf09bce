"""
Application wiring.

Builds the catalog, store, provider registry and prompt renderer from
Settings and assembles them into a WorkflowOrchestrator.
"""

import logging
from pathlib import Path
from typing import Optional

from artifect.core.config import Settings
from artifect.core.logging import configure_logging
from artifect.domain.catalog import Catalog, load_definitions
from artifect.domain.orchestrator import WorkflowOrchestrator
from artifect.llm.assistant import ArtifactAssistant
from artifect.llm.registry import ProviderRegistry
from artifect.llm.transport import ClientFactory
from artifect.persistence.sql import SqlArtifactStore, create_schema, create_session_factory
from artifect.persistence.store import ArtifactStore, InMemoryArtifactStore
from artifect.seed.project_types import default_definitions
from artifect.templates.renderer import PromptRenderer

logger = logging.getLogger(__name__)


def load_catalog(settings: Settings) -> Catalog:
    """Catalog from PROJECT_TYPES_FILE, or the built-in project types."""
    if settings.project_types_file:
        logger.info(f"Loading project types from {settings.project_types_file}")
        return Catalog.build(load_definitions(Path(settings.project_types_file)))
    return Catalog.build(default_definitions())


async def build_store(settings: Settings) -> ArtifactStore:
    """SQL store when DATABASE_URL is set (schema created if missing), else in-memory."""
    if not settings.database_url:
        logger.info("DATABASE_URL not set; using in-memory artifact store")
        return InMemoryArtifactStore()
    engine, session_factory = create_session_factory(settings.database_url)
    await create_schema(engine)
    return SqlArtifactStore(session_factory)


async def build_orchestrator(
    settings: Optional[Settings] = None,
    store: Optional[ArtifactStore] = None,
    registry: Optional[ProviderRegistry] = None,
    client_factory: Optional[ClientFactory] = None,
) -> WorkflowOrchestrator:
    """Assemble a ready-to-use orchestrator; explicit collaborators win over settings."""
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level, settings.log_format)

    catalog = load_catalog(settings)
    if store is None:
        store = await build_store(settings)
    if registry is None:
        registry = ProviderRegistry.from_settings(settings, client_factory=client_factory)

    assistant = ArtifactAssistant(registry, PromptRenderer(settings.prompt_template_dir))
    logger.info(
        f"Artifect ready: {len(catalog.project_types())} project types, "
        f"providers: {', '.join(registry.names()) or 'none'}"
    )
    return WorkflowOrchestrator(catalog, store, assistant, settings)

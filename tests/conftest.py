"""
Shared pytest fixtures for all tests.

Provides a compiled catalog, in-memory and SQLite-backed stores, and an
orchestrator wired to a mock provider.
"""

import pytest
import pytest_asyncio

from artifect.core.config import Settings
from artifect.domain.catalog import Catalog
from artifect.domain.models import ArtifactState
from artifect.domain.orchestrator import WorkflowOrchestrator
from artifect.llm.assistant import ArtifactAssistant
from artifect.llm.mock import MockProviderAdapter
from artifect.llm.registry import ProviderRegistry
from artifect.persistence.sql import SqlArtifactStore, create_schema, create_session_factory
from artifect.persistence.store import InMemoryArtifactStore
from artifect.seed.project_types import default_definitions
from artifect.templates.renderer import PromptRenderer


# =============================================================================
# CATALOG AND STORES
# =============================================================================

@pytest.fixture
def catalog() -> Catalog:
    """Catalog of the built-in project types."""
    return Catalog.build(default_definitions())


@pytest.fixture
def store() -> InMemoryArtifactStore:
    return InMemoryArtifactStore()


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    """
    SqlArtifactStore backed by a SQLite file in a temp directory.

    A file (not :memory:) so every session sees the same database.
    """
    engine, session_factory = create_session_factory(
        f"sqlite+aiosqlite:///{tmp_path / 'artifect.db'}"
    )
    await create_schema(engine)
    yield SqlArtifactStore(session_factory)
    await engine.dispose()


# =============================================================================
# PROVIDERS AND ORCHESTRATOR
# =============================================================================

@pytest.fixture
def mock_provider() -> MockProviderAdapter:
    return MockProviderAdapter()


@pytest.fixture
def registry(mock_provider) -> ProviderRegistry:
    registry = ProviderRegistry(default_provider="mock")
    registry.register(mock_provider)
    return registry


@pytest.fixture
def renderer() -> PromptRenderer:
    return PromptRenderer()


@pytest.fixture
def assistant(registry, renderer) -> ArtifactAssistant:
    return ArtifactAssistant(registry, renderer)


@pytest.fixture
def settings() -> Settings:
    return Settings(default_ai_provider="mock")


@pytest.fixture
def orchestrator(catalog, store, assistant, settings) -> WorkflowOrchestrator:
    return WorkflowOrchestrator(catalog, store, assistant, settings)


@pytest.fixture
def approve(orchestrator):
    """Create an artifact, set its content by hand and approve it. Returns its id."""

    async def approve_artifact(project_id: int, artifact_type_name: str, content: str) -> int:
        details = await orchestrator.create_artifact(project_id, artifact_type_name)
        artifact_id = details.artifact.artifact_id
        await orchestrator.update_artifact(artifact_id, content=content)
        await orchestrator.transition_artifact(artifact_id, ArtifactState.IN_PROGRESS.state_id)
        await orchestrator.transition_artifact(artifact_id, ArtifactState.APPROVED.state_id)
        return artifact_id

    return approve_artifact

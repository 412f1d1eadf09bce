"""Tests for the artifact assistant."""

import logging

import pytest

from artifect.domain.context import ContextBundle
from artifect.llm.models import EmptyUpdateResponseError, LLMError, Message, ProviderError, ResponseOutcome
from artifect.llm.registry import ModelSelector


@pytest.fixture
def vision(catalog):
    software = catalog.get_project_type_by_name("Software Engineering")
    return software, catalog.resolve_artifact_type("Vision Document", software.id)


def _bundle(is_update=False, user_message=None):
    artifact = {
        "artifact_type_id": 1,
        "artifact_type_name": "Vision Document",
        "artifact_type_slug": "vision",
        "artifact_phase": "Requirements",
        "syntax": "md",
    }
    if is_update:
        artifact.update({"id": 1, "name": "Acme Vision", "content": "# Old"})
    return ContextBundle(
        project={"name": "Acme", "project_type_id": 1, "project_type_name": "Software Engineering"},
        artifact=artifact,
        is_update=is_update,
        user_message=user_message,
    )


class TestArtifactAssistant:
    """Tests for ArtifactAssistant.respond."""

    @pytest.mark.asyncio
    async def test_respond(self, assistant, mock_provider, vision):
        """Prompts are rendered, sent and the reply parsed."""
        software, vision_type = vision
        mock_provider.queue_response("[VISION]# New[/VISION][COMMENTARY]Updated[/COMMENTARY]")

        reply = await assistant.respond(
            _bundle(is_update=True, user_message="Tighten it"),
            software,
            vision_type,
            "Requirements",
            history=[Message.user("Earlier")],
        )

        assert reply.content == "# New"
        assert reply.commentary == "Updated"
        assert reply.outcome == ResponseOutcome.BOTH
        assert reply.provider == "mock"
        assert reply.model == "mock-model"

        request = mock_provider.last_call().request
        assert "Tighten it" in request.user_prompt
        assert "# Old" in request.user_prompt
        assert "Acme" in request.system_prompt
        assert request.history == [Message.user("Earlier")]

    @pytest.mark.asyncio
    async def test_selector(self, assistant, mock_provider, vision):
        software, vision_type = vision
        reply = await assistant.respond(
            _bundle(), software, vision_type, "Requirements",
            selector=ModelSelector(provider="mock", model="other"),
        )
        assert reply.model == "other"

    @pytest.mark.asyncio
    async def test_streaming(self, assistant, mock_provider, vision):
        software, vision_type = vision
        mock_provider.queue_response("[COMMENTARY]Streaming questions[/COMMENTARY]")
        chunks = []

        reply = await assistant.respond(
            _bundle(), software, vision_type, "Requirements", stream=True, on_chunk=chunks.append
        )

        assert reply.commentary == "Streaming questions"
        assert "".join(chunks) == "[COMMENTARY]Streaming questions[/COMMENTARY]"

    @pytest.mark.asyncio
    async def test_provider_error_logged_and_raised(self, assistant, mock_provider, vision, caplog):
        software, vision_type = vision
        mock_provider.set_error_on_next(LLMError.api_error("boom", 500))

        with caplog.at_level(logging.ERROR, logger="artifect.llm.assistant"):
            with pytest.raises(ProviderError):
                await assistant.respond(_bundle(), software, vision_type, "Requirements")

        assert "Assistant call failed" in caplog.text

    @pytest.mark.asyncio
    async def test_empty_update(self, assistant, mock_provider, vision):
        software, vision_type = vision
        with pytest.raises(EmptyUpdateResponseError):
            await assistant.respond(
                _bundle(is_update=True, user_message="Go"), software, vision_type, "Requirements"
            )

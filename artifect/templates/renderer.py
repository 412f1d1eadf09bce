"""
Prompt rendering.

Templates are looked up most-specific first, in an optional directory and
then among the built-ins:

    user prompt:   <project_type>/<artifact_slug>.j2, <artifact_slug>.j2, artifact.j2
    system prompt: <project_type>/<phase>_agent.j2, <project_type>/system.j2, system.j2
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from jinja2 import (
    ChoiceLoader,
    DictLoader,
    Environment,
    FileSystemLoader,
    TemplateError,
    TemplateNotFound,
)

from artifect.domain.catalog import slugify
from artifect.domain.context import ContextBundle
from artifect.domain.models import ArtifactFormat, ArtifactType, ProjectType
from artifect.errors import ArtifectError
from artifect.templates.builtin import BUILTIN_TEMPLATES

logger = logging.getLogger(__name__)


class TemplateRenderError(ArtifectError):
    """Raised when a prompt template is missing or fails to render."""
    pass


@dataclass
class PromptInput:
    """Rendered prompts plus the delimiters the model must use."""
    system_prompt: str
    user_prompt: str
    artifact_format: ArtifactFormat


class PromptRenderer:
    """Renders system and user prompts from a ContextBundle."""

    def __init__(
        self,
        template_dir: Optional[str] = None,
        jinja_env: Optional[Environment] = None,
    ):
        """
        Initialize the renderer.

        Args:
            template_dir: Optional directory whose templates override the built-ins
            jinja_env: Optional Jinja2 environment (creates default if not provided)
        """
        loaders: List[Any] = []
        if template_dir:
            loaders.append(FileSystemLoader(template_dir))
        loaders.append(DictLoader(BUILTIN_TEMPLATES))
        self.jinja_env = jinja_env or Environment(
            loader=ChoiceLoader(loaders),
            autoescape=False,
            keep_trailing_newline=False,
        )

    def render(
        self,
        bundle: ContextBundle,
        project_type: ProjectType,
        artifact_type: ArtifactType,
        phase_name: str,
    ) -> PromptInput:
        """
        Render both prompts for one turn.

        Raises:
            TemplateRenderError: If no template matches or rendering fails
        """
        variables: Dict[str, Any] = bundle.to_dict()
        variables["dependencies"] = dict(bundle.dependencies)

        user_candidates = [
            f"{project_type.slug}/{artifact_type.slug}.j2",
            f"{artifact_type.slug}.j2",
            "artifact.j2",
        ]
        system_candidates = [
            f"{project_type.slug}/{slugify(phase_name)}_agent.j2",
            f"{project_type.slug}/system.j2",
            "system.j2",
        ]

        return PromptInput(
            system_prompt=self._render(system_candidates, variables),
            user_prompt=self._render(user_candidates, variables),
            artifact_format=ArtifactFormat.for_type(artifact_type),
        )

    def _render(self, candidates: List[str], variables: Dict[str, Any]) -> str:
        try:
            template = self.jinja_env.select_template(candidates)
        except TemplateNotFound as e:
            raise TemplateRenderError(f"No template found among: {', '.join(candidates)}") from e
        except TemplateError as e:
            logger.error(f"Template compile failed among {candidates}: {e}")
            raise TemplateRenderError(f"Failed to compile template: {e}") from e

        try:
            return template.render(**variables).strip()
        except TemplateError as e:
            logger.error(f"Template render failed for {template.name}: {e}")
            raise TemplateRenderError(f"Failed to render template '{template.name}': {e}") from e

"""Prompt templates for Artifect."""

from artifect.templates.renderer import PromptInput, PromptRenderer, TemplateRenderError

__all__ = [
    "PromptInput",
    "PromptRenderer",
    "TemplateRenderError",
]

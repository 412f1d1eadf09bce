"""Configuration for Artifect.

Settings are read from the environment (and a local ``.env`` file when
present) and validated fail-fast: a bad value raises ``ValueError`` naming
the offending variable.
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


REOPEN_HISTORY_POLICIES = ("keep", "reset")
REPEATABLE_DEPENDENCY_POLICIES = ("all", "latest")
LOG_FORMATS = ("text", "json")


@dataclass(frozen=True)
class Settings:
    """Runtime settings for providers, workflow policies and logging."""

    default_ai_provider: str = "anthropic"

    # OpenAI
    openai_api_key: Optional[str] = None
    openai_default_model: str = "gpt-4"
    openai_base_url: str = "https://api.openai.com/v1"
    openai_organization_id: Optional[str] = None

    # Anthropic
    anthropic_api_key: Optional[str] = None
    anthropic_default_model: str = "claude-3-opus-20240229"
    anthropic_base_url: str = "https://api.anthropic.com"
    anthropic_api_version: str = "2023-06-01"

    # Request tuning
    ai_temperature: float = 0.7
    ai_max_tokens: int = 4000
    ai_timeout_seconds: float = 300.0
    ai_max_retries: int = 3

    # Workflow policies
    history_window: int = 3
    details_history_window: int = 10
    reopen_history_policy: str = "keep"
    repeatable_dependency_policy: str = "all"

    # External resources
    prompt_template_dir: Optional[str] = None
    project_types_file: Optional[str] = None
    database_url: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "Settings":
        """Load settings from the environment, reading ``.env`` first."""
        load_dotenv(dotenv_path=env_file)
        return cls(
            default_ai_provider=os.getenv("DEFAULT_AI_PROVIDER", "anthropic"),
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_default_model=os.getenv("OPENAI_DEFAULT_MODEL", "gpt-4"),
            openai_base_url=os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1"),
            openai_organization_id=os.getenv("OPENAI_ORGANIZATION_ID") or None,
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            anthropic_default_model=os.getenv("ANTHROPIC_DEFAULT_MODEL", "claude-3-opus-20240229"),
            anthropic_base_url=os.getenv("ANTHROPIC_BASE_URL", "https://api.anthropic.com"),
            anthropic_api_version=os.getenv("ANTHROPIC_API_VERSION", "2023-06-01"),
            ai_temperature=_get_env_float("AI_TEMPERATURE", default=0.7, minimum=0.0, maximum=2.0),
            ai_max_tokens=_get_env_int("AI_MAX_TOKENS", default=4000, minimum=1),
            ai_timeout_seconds=_get_env_float("AI_TIMEOUT_SECONDS", default=300.0, minimum=1.0),
            ai_max_retries=_get_env_int("AI_MAX_RETRIES", default=3, minimum=0, maximum=10),
            history_window=_get_env_int("HISTORY_WINDOW", default=3, minimum=0),
            details_history_window=_get_env_int("DETAILS_HISTORY_WINDOW", default=10, minimum=0),
            reopen_history_policy=os.getenv("REOPEN_HISTORY_POLICY", "keep"),
            repeatable_dependency_policy=os.getenv("REPEATABLE_DEPENDENCY_POLICY", "all"),
            prompt_template_dir=os.getenv("PROMPT_TEMPLATE_DIR") or None,
            project_types_file=os.getenv("PROJECT_TYPES_FILE") or None,
            database_url=os.getenv("DATABASE_URL") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
        ).normalized()

    def normalized(self) -> "Settings":
        """Validate and normalize policy fields. Raises ValueError on bad input."""
        provider = self.default_ai_provider.strip().lower()
        if not provider:
            raise ValueError("DEFAULT_AI_PROVIDER must be non-empty")

        reopen = self.reopen_history_policy.strip().lower()
        if reopen not in REOPEN_HISTORY_POLICIES:
            raise ValueError(
                f"REOPEN_HISTORY_POLICY must be one of: {', '.join(REOPEN_HISTORY_POLICIES)}"
            )

        repeatable = self.repeatable_dependency_policy.strip().lower()
        if repeatable not in REPEATABLE_DEPENDENCY_POLICIES:
            raise ValueError(
                "REPEATABLE_DEPENDENCY_POLICY must be one of: "
                f"{', '.join(REPEATABLE_DEPENDENCY_POLICIES)}"
            )

        log_format = self.log_format.strip().lower()
        if log_format not in LOG_FORMATS:
            raise ValueError(f"LOG_FORMAT must be one of: {', '.join(LOG_FORMATS)}")

        return replace(
            self,
            default_ai_provider=provider,
            openai_base_url=self.openai_base_url.rstrip("/"),
            anthropic_base_url=self.anthropic_base_url.rstrip("/"),
            reopen_history_policy=reopen,
            repeatable_dependency_policy=repeatable,
            log_level=self.log_level.strip().upper(),
            log_format=log_format,
        )


def _get_env_int(name: str, default: int, minimum: int, maximum: int = 10_000_000) -> int:
    """Parse an integer environment variable with bounds checking."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        parsed = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got: {raw!r}") from exc
    if parsed < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got: {parsed}")
    if parsed > maximum:
        raise ValueError(f"{name} must be <= {maximum}, got: {parsed}")
    return parsed


def _get_env_float(
    name: str,
    default: float,
    minimum: float,
    maximum: float = float("inf"),
) -> float:
    """Parse a float environment variable with bounds checking."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        parsed = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got: {raw!r}") from exc
    if parsed < minimum or parsed > maximum:
        raise ValueError(f"{name} must be between {minimum} and {maximum}, got: {parsed}")
    return parsed

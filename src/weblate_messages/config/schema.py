"""
Pydantic models for weblate-messages configuration.

Defines all configuration schemas using Pydantic v2 for validation,
defaults, and serialization.
"""

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from ..locale.model import Locale


class ConfigurationError(Exception):
    """Required configuration is missing or unusable."""

    pass


class WeblateConfig(BaseModel):
    """Connection and caching settings for one Weblate component."""

    base_url: str | None = Field(
        default=None,
        description="URL of the Weblate instance, without trailing /",
    )
    project: str | None = Field(default=None, description="Project slug in Weblate")
    component: str | None = Field(default=None, description="Component slug in Weblate")
    query: str = Field(
        default="state:>=translated",
        description="Weblate search query selecting the units to load",
    )
    token: str | None = None
    token_env: str | None = "WEBLATE_TOKEN"
    max_age_seconds: float | None = Field(
        default=1800,
        description="Cache time to live. None keeps entries until reload/clear.",
    )
    retry_interval_seconds: float = Field(
        default=60,
        ge=0,
        description="Wait after a failed fetch before a locale is requested again",
    )
    initial_timestamp_ms: int = Field(
        default=0,
        ge=0,
        description="'Changed since' timestamp (epoch ms) used for the first load",
    )
    async_loading: bool = Field(
        default=False,
        description="If True, remote calls run on a single background worker",
    )
    timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")
    code_to_locale: dict[str, str] = Field(
        default_factory=dict,
        description="Manual Weblate code -> locale tag mappings (e.g. myalias: de-DE-x-lvariant-alias)",
    )

    model_config = {"extra": "forbid"}

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return v.rstrip("/")

    @field_validator("code_to_locale")
    @classmethod
    def _validate_locale_tags(cls, v: dict[str, str]) -> dict[str, str]:
        for code, tag in v.items():
            try:
                Locale.from_tag(tag)
            except ValueError as e:
                raise ValueError(f"Invalid locale for code '{code}': {e}") from e
        return v

    def resolve_token(self) -> str | None:
        """Resolve the API token.

        Order of precedence:
        1. token directly in config
        2. token from environment variable (token_env)
        """
        if self.token:
            return self.token
        if self.token_env:
            return os.environ.get(self.token_env) or None
        return None

    def locale_mappings(self) -> dict[str, Locale]:
        return {code: Locale.from_tag(tag) for code, tag in self.code_to_locale.items()}

    def require_remote(self) -> None:
        """Check the settings needed to talk to Weblate.

        Raises:
            ConfigurationError: If base_url, project or component is missing.
        """
        missing = [
            name
            for name in ("base_url", "project", "component")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(
                f"Missing Weblate configuration: {', '.join(missing)}"
            )


class BundleConfig(BaseModel):
    """Local YAML message bundles used as fallback source."""

    directory: Path | None = None
    basename: str = "messages"

    model_config = {"extra": "forbid"}


class LoggingConfig(BaseModel):
    """Logging system configuration."""

    level: Literal["debug", "info", "warn", "error"] = "info"
    file: Path | None = None
    json_output: bool = False

    model_config = {"extra": "forbid"}


class AppConfig(BaseModel):
    """Root configuration."""

    weblate: WeblateConfig = Field(default_factory=WeblateConfig)
    bundle: BundleConfig = Field(default_factory=BundleConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"extra": "forbid"}

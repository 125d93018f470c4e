"""Settings and logging setup.

Settings come from environment variables and can be overridden by CLI
options. ``build_engine`` and ``build_renderer`` turn them into the
collaborators used by the pipeline.
"""

import logging
import os
from collections.abc import Mapping

from pydantic import BaseModel, Field, ValidationError, field_validator

from swagger_changelog.engine.base import DiffEngine
from swagger_changelog.engine.oasdiff_api import DEFAULT_BASE_URL, OasdiffApiEngine
from swagger_changelog.engine.oasdiff_cli import DEFAULT_COMMAND, DEFAULT_DOCKER_IMAGE, OasdiffCliEngine
from swagger_changelog.errors import ConfigurationError
from swagger_changelog.generator.changelog import GROUP_BY_CHOICES, MarkdownRenderer, RemoteRenderer
from swagger_changelog.parser.archive import DEFAULT_SPEC_DIR

ENGINE_CHOICES = ("api", "cli", "docker")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

ENV_VARS = {
    "engine": "CHANGELOG_ENGINE",
    "oasdiff_tenant": "OASDIFF_ID",
    "oasdiff_url": "OASDIFF_URL",
    "oasdiff_command": "OASDIFF_COMMAND",
    "docker_image": "OASDIFF_DOCKER_IMAGE",
    "renderer_url": "CHANGELOG_RENDERER_URL",
    "spec_dir": "CHANGELOG_SPEC_DIR",
    "timeout": "CHANGELOG_TIMEOUT",
    "max_workers": "CHANGELOG_MAX_WORKERS",
    "group_by": "CHANGELOG_GROUP_BY",
    "log_level": "CHANGELOG_LOG_LEVEL",
}


class Settings(BaseModel):
    """Runtime configuration for changelog generation."""

    engine: str = "api"
    oasdiff_tenant: str | None = None
    oasdiff_url: str = DEFAULT_BASE_URL
    oasdiff_command: str = DEFAULT_COMMAND
    docker_image: str = DEFAULT_DOCKER_IMAGE
    renderer_url: str | None = None
    spec_dir: str = DEFAULT_SPEC_DIR  # "" disables the spec directory filter
    group_by: str = "work-package"
    timeout: float = Field(60.0, gt=0)
    max_workers: int = Field(4, ge=1)
    log_level: str = "WARNING"

    @field_validator("engine")
    @classmethod
    def _check_engine(cls, value: str) -> str:
        value = value.lower()
        if value not in ENGINE_CHOICES:
            raise ValueError(f"engine must be one of {ENGINE_CHOICES}")
        return value

    @field_validator("group_by")
    @classmethod
    def _check_group_by(cls, value: str) -> str:
        if value not in GROUP_BY_CHOICES:
            raise ValueError(f"group_by must be one of {GROUP_BY_CHOICES}")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if not isinstance(logging.getLevelName(value), int):
            raise ValueError(f"unknown log level {value!r}")
        return value

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides) -> "Settings":
        """Build settings from environment variables, then apply non-None overrides."""
        environ = os.environ if environ is None else environ
        values = {field: environ[var] for field, var in ENV_VARS.items() if var in environ}
        values.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid settings: {e}") from e


def configure_logging(level: str = "WARNING") -> None:
    """Send swagger_changelog log records to stderr at the given level.

    Calling it again replaces the handler, so it always writes to the
    current ``sys.stderr``.
    """
    logger = logging.getLogger("swagger_changelog")
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
    for old in list(logger.handlers):
        logger.removeHandler(old)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)


def build_engine(settings: Settings) -> DiffEngine:
    if settings.engine == "api":
        return OasdiffApiEngine(
            settings.oasdiff_tenant,
            base_url=settings.oasdiff_url,
            timeout=settings.timeout,
        )
    return OasdiffCliEngine(
        command=settings.oasdiff_command,
        docker_image=settings.docker_image if settings.engine == "docker" else None,
        timeout=settings.timeout,
    )


def build_renderer(settings: Settings) -> MarkdownRenderer | RemoteRenderer:
    if settings.renderer_url:
        return RemoteRenderer(settings.renderer_url, timeout=settings.timeout)
    return MarkdownRenderer(group_by=settings.group_by)

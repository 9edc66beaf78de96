"""Configuration settings for flatpak_ci.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Remote used when the caller does not configure another one
FLATHUB_REPOSITORY_NAME = "flathub"
FLATHUB_REPOSITORY_URL = "https://flathub.org/repo/flathub.flatpakrepo"

DEFAULT_BUNDLE = "app.flatpak"

# Fixed locations used by every build
BUILD_DIR = "flatpak_app"
LOCAL_REPO_NAME = "repo"

# Literal values accepted as "true" for boolean-like inputs
TRUTHY_INPUTS = frozenset({"y", "yes", "true", "enabled"})


def parse_bool_input(value: Any, default: bool = False) -> bool:
    """Parse a boolean-like CI input.

    ``True`` and the strings y/yes/true/enabled are true. Matching is
    deliberately wider than an exact lookup: case is ignored and
    surrounding whitespace is stripped, so ``"TRUE"`` and ``" yes "``
    from env vars or workflow inputs count as true. Missing or empty
    values fall back to ``default``; any other value is false.

    Args:
        value: Raw input value.
        default: Value used when the input is missing or empty.

    Returns:
        Parsed boolean.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if not text:
        return default
    return text in TRUTHY_INPUTS


def _default_cache_dir() -> Path:
    """Return the default cache directory."""
    return Path.home() / ".cache" / "flatpak-ci" / "cache"


def _default_artifacts_dir() -> Path:
    """Return the default artifacts directory."""
    return Path.home() / ".local" / "share" / "flatpak-ci" / "artifacts"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the FLATPAK_CI_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="FLATPAK_CI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Build inputs
    manifest_path: Path | None = Field(
        default=None,
        description="Path to the Flatpak manifest (JSON or YAML)",
    )
    run_tests: bool = Field(
        default=False,
        description="Enable the module tests inside the sandbox",
    )
    bundle: str = Field(
        default=DEFAULT_BUNDLE,
        description="Output bundle filename",
    )
    repository_name: str = Field(
        default=FLATHUB_REPOSITORY_NAME,
        description="Remote to install runtimes and dependencies from",
    )
    repository_url: str = Field(
        default=FLATHUB_REPOSITORY_URL,
        description="URL of the remote repository",
    )
    branch: str | None = Field(
        default=None,
        description="Branch used when the manifest does not set one",
    )

    # Cache
    cache: bool = Field(
        default=True,
        description="Cache the flatpak-builder state directory between runs",
    )
    cache_key: str | None = Field(
        default=None,
        description="Explicit cache key (derived from the manifest if unset)",
    )
    cache_dir: Path = Field(
        default_factory=_default_cache_dir,
        description="Root directory of the local cache backend",
    )

    # Artifacts
    artifacts_dir: Path = Field(
        default_factory=_default_artifacts_dir,
        description="Root directory of the local artifact store",
    )
    artifact_upload_url: str | None = Field(
        default=None,
        description="Upload bundles to this HTTP endpoint instead of artifacts_dir",
    )
    artifact_token: str | None = Field(
        default=None,
        description="Bearer token for the HTTP artifact endpoint",
    )

    # Operational
    log_dir: Path | None = Field(
        default=None,
        description="Write external command output here (streams to console if unset)",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    build_timeout: int | None = Field(
        default=None,
        ge=60,
        description="Timeout for each external command in seconds (none if unset)",
    )

    @field_validator("run_tests", "cache", mode="before")
    @classmethod
    def _parse_bool_like(cls, value: Any, info: ValidationInfo) -> bool:
        field_info = cls.model_fields[info.field_name]
        return parse_bool_input(value, default=bool(field_info.default))


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    The artifact token is never included.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2, exclude={"artifact_token"})


__all__ = [
    "BUILD_DIR",
    "DEFAULT_BUNDLE",
    "FLATHUB_REPOSITORY_NAME",
    "FLATHUB_REPOSITORY_URL",
    "LOCAL_REPO_NAME",
    "TRUTHY_INPUTS",
    "Settings",
    "get_settings",
    "parse_bool_input",
    "print_settings_json",
]

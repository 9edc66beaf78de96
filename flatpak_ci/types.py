"""Shared type definitions for flatpak_ci.

This module contains dataclasses and enums shared across subpackages to
avoid circular imports.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path


class PipelineStep(str, Enum):
    """Steps of the build pipeline, in execution order."""

    LOAD_MANIFEST = "load-manifest"
    RESOLVE_CACHE_KEY = "resolve-cache-key"
    PREPARE_REMOTE = "prepare-remote"
    RESTORE_CACHE = "restore-cache"
    PATCH_MANIFEST = "patch-manifest"
    WRITE_MANIFEST = "write-manifest"
    BUILD = "build"
    SAVE_CACHE = "save-cache"
    BUNDLE = "bundle"
    PUBLISH = "publish"


@dataclass
class CommandResult:
    """Result of an external command execution.

    Attributes:
        command: Shell-joined command line.
        exit_code: Process exit code.
        started_at: Start time.
        finished_at: Finish time.
        log_path: Log file the output went to, if any.
    """

    command: str
    exit_code: int
    started_at: datetime
    finished_at: datetime
    log_path: Path | None = None

    @property
    def success(self) -> bool:
        return self.exit_code == 0


@dataclass
class CacheRestoreResult:
    """Outcome of a best-effort cache restore."""

    key: str
    hit_key: str | None = None
    error: str | None = None

    @property
    def hit(self) -> bool:
        return self.hit_key is not None

    @property
    def exact_match(self) -> bool:
        return self.hit_key == self.key


@dataclass
class UploadResult:
    """Result of an artifact upload."""

    artifact_name: str
    files: list[str]
    size_bytes: int
    location: str | None = None


@dataclass
class PipelineResult:
    """Result of a full pipeline run.

    Callers inspect ``success`` and ``code`` and report them to their CI
    platform (the CLI emits GitHub Actions annotations).
    """

    success: bool
    message: str
    code: str | None = None
    failed_step: PipelineStep | None = None
    cache_key: str | None = None
    cache_hit_key: str | None = None
    bundle_path: str | None = None
    artifact_name: str | None = None
    completed_steps: list[PipelineStep] = field(default_factory=list)
    details: dict[str, object] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "success": self.success,
            "message": self.message,
            "code": self.code,
            "failed_step": self.failed_step.value if self.failed_step else None,
            "cache_key": self.cache_key,
            "cache_hit_key": self.cache_hit_key,
            "bundle_path": self.bundle_path,
            "artifact_name": self.artifact_name,
            "completed_steps": [s.value for s in self.completed_steps],
            "details": self.details,
        }


__all__ = [
    "CacheRestoreResult",
    "CommandResult",
    "PipelineResult",
    "PipelineStep",
    "UploadResult",
]

"""Build service module.

This module provides the high-level build API:
- run_pipeline(): main entry point, from manifest to published bundle
- Default cache backend and artifact store selection from settings

Steps run strictly in order. Cache restore/save are best-effort; every
other failure stops the run and is reported in the returned
PipelineResult.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from flatpak_ci.artifacts.publisher import publish_bundle
from flatpak_ci.artifacts.store import (
    ArtifactStore,
    HttpArtifactStore,
    LocalArtifactStore,
)
from flatpak_ci.builds.cache_key import resolve_cache_key
from flatpak_ci.builds.runner import add_remote, build_bundle, run_builder
from flatpak_ci.cache.service import restore_build_cache, save_build_cache
from flatpak_ci.cache.store import CacheBackend, LocalCacheBackend
from flatpak_ci.config import BUILD_DIR, LOCAL_REPO_NAME, Settings, get_settings
from flatpak_ci.errors import (
    INTERNAL_ERROR,
    INVALID_MANIFEST,
    FlatpakCIError,
    ManifestError,
)
from flatpak_ci.manifest.io import load_manifest, save_manifest
from flatpak_ci.manifest.patch import patch_manifest
from flatpak_ci.manifest.schema import read_manifest_info
from flatpak_ci.types import PipelineResult, PipelineStep

logger = logging.getLogger(__name__)

# Steps whose plain OS/parse errors mean the manifest itself is at fault
_MANIFEST_STEPS = (
    PipelineStep.LOAD_MANIFEST,
    PipelineStep.RESOLVE_CACHE_KEY,
    PipelineStep.WRITE_MANIFEST,
)


def default_cache_backend(settings: Settings) -> CacheBackend:
    """Return the cache backend configured by settings."""
    return LocalCacheBackend(settings.cache_dir)


def default_artifact_store(settings: Settings) -> ArtifactStore:
    """Return the artifact store configured by settings."""
    if settings.artifact_upload_url:
        return HttpArtifactStore(
            settings.artifact_upload_url,
            token=settings.artifact_token,
        )
    return LocalArtifactStore(settings.artifacts_dir)


def _manifest_path(settings: Settings) -> Path:
    if settings.manifest_path is None:
        raise ManifestError("No manifest path was given")
    return settings.manifest_path


def run_pipeline(
    settings: Settings | None = None,
    cache_backend: CacheBackend | None = None,
    artifact_store: ArtifactStore | None = None,
) -> PipelineResult:
    """Build, bundle and publish a Flatpak application.

    This is the main entry point for the build pipeline. It:
    1. Loads the manifest
    2. Resolves the cache key from the unpatched manifest (if caching)
    3. Registers the remote when it is not Flathub
    4. Restores the build cache (if caching, best-effort)
    5. Patches the manifest when tests are enabled
    6. Writes the patched manifest back in place
    7. Runs flatpak-builder, saves the cache (best-effort), builds the bundle
    8. Publishes the bundle

    Paths are relative to the current working directory.

    Args:
        settings: Application settings.
        cache_backend: Cache backend (from settings if None).
        artifact_store: Artifact store (from settings if None).

    Returns:
        PipelineResult describing the outcome. Never raises for pipeline
        failures; check ``success``.
    """
    if settings is None:
        settings = get_settings()

    result = PipelineResult(success=False, message="")
    step = PipelineStep.LOAD_MANIFEST

    def done(finished: PipelineStep) -> None:
        result.completed_steps.append(finished)

    try:
        manifest_path = _manifest_path(settings)
        manifest = load_manifest(manifest_path)
        info = read_manifest_info(manifest, default_branch=settings.branch)
        result.details["app_id"] = info.app_id
        result.details["branch"] = info.branch
        done(step)

        if settings.cache:
            step = PipelineStep.RESOLVE_CACHE_KEY
            result.cache_key = resolve_cache_key(manifest_path, settings.cache_key)
            logger.info("Using cache key: %s", result.cache_key)
            done(step)

        step = PipelineStep.PREPARE_REMOTE
        add_remote(
            settings.repository_name,
            settings.repository_url,
            log_dir=settings.log_dir,
            timeout=settings.build_timeout,
        )
        done(step)

        if settings.cache and result.cache_key is not None:
            step = PipelineStep.RESTORE_CACHE
            if cache_backend is None:
                cache_backend = default_cache_backend(settings)
            restored = restore_build_cache(cache_backend, result.cache_key)
            result.cache_hit_key = restored.hit_key
            done(step)

        step = PipelineStep.PATCH_MANIFEST
        patched = patch_manifest(manifest, settings.run_tests)
        result.details["tests_enabled"] = settings.run_tests
        done(step)

        if patched is not manifest:
            step = PipelineStep.WRITE_MANIFEST
            save_manifest(patched, manifest_path)
            done(step)

        step = PipelineStep.BUILD
        run_builder(
            manifest_path=manifest_path,
            build_dir=BUILD_DIR,
            local_repo=LOCAL_REPO_NAME,
            remote_name=settings.repository_name,
            ccache=settings.cache,
            log_dir=settings.log_dir,
            timeout=settings.build_timeout,
        )
        done(step)

        if settings.cache and cache_backend is not None and result.cache_key:
            step = PipelineStep.SAVE_CACHE
            result.details["cache_saved"] = save_build_cache(
                cache_backend, result.cache_key
            )
            done(step)

        step = PipelineStep.BUNDLE
        build_bundle(
            local_repo=LOCAL_REPO_NAME,
            bundle=settings.bundle,
            runtime_repo_url=settings.repository_url,
            app_id=info.app_id,
            branch=info.branch,
            log_dir=settings.log_dir,
            timeout=settings.build_timeout,
        )
        result.bundle_path = settings.bundle
        done(step)

        step = PipelineStep.PUBLISH
        if artifact_store is None:
            artifact_store = default_artifact_store(settings)
        upload = publish_bundle(artifact_store, settings.bundle)
        result.artifact_name = upload.artifact_name
        if upload.location:
            result.details["artifact_location"] = upload.location
        done(step)

    except FlatpakCIError as e:
        return _fail(result, step, e.code, e)
    except (OSError, ValueError, yaml.YAMLError) as e:
        code = INVALID_MANIFEST if step in _MANIFEST_STEPS else INTERNAL_ERROR
        return _fail(result, step, code, e)

    result.success = True
    result.message = (
        f"Published {settings.bundle} as artifact '{result.artifact_name}'"
    )
    logger.info(result.message)
    return result


def _fail(
    result: PipelineResult,
    step: PipelineStep,
    code: str,
    error: Exception,
) -> PipelineResult:
    result.success = False
    result.code = code
    result.failed_step = step
    if step in (PipelineStep.LOAD_MANIFEST, PipelineStep.PREPARE_REMOTE):
        result.message = f"Failed to prepare the build: {error}"
    else:
        result.message = f"Build failed: {error}"
    logger.error(result.message)
    return result


__all__ = [
    "default_artifact_store",
    "default_cache_backend",
    "run_pipeline",
]

"""Publishing the built bundle as a CI artifact."""

from __future__ import annotations

import logging
from pathlib import Path

from flatpak_ci.artifacts.store import ArtifactStore
from flatpak_ci.errors import ArtifactUploadError
from flatpak_ci.types import UploadResult

logger = logging.getLogger(__name__)

BUNDLE_SUFFIX = ".flatpak"


def artifact_name_for(bundle: str | Path) -> str:
    """Derive the artifact name from a bundle path.

    The name is the bundle filename without a trailing ``.flatpak``.
    """
    return Path(bundle).name.removesuffix(BUNDLE_SUFFIX)


def publish_bundle(
    store: ArtifactStore,
    bundle: str | Path,
    root: Path | None = None,
) -> UploadResult:
    """Upload a bundle file to an artifact store.

    Upload errors are never ignored: a run only succeeds once the bundle
    has been published.

    Args:
        store: Artifact store.
        bundle: Bundle path, relative to ``root``.
        root: Directory uploads are relative to (cwd if None).

    Returns:
        UploadResult from the store.

    Raises:
        ArtifactUploadError: If the bundle is missing or the upload fails.
    """
    root = root if root is not None else Path.cwd()
    bundle_path = Path(bundle)
    if not bundle_path.is_absolute():
        bundle_path = root / bundle_path

    if not bundle_path.is_file():
        raise ArtifactUploadError(f"Bundle not found: {bundle_path}")

    name = artifact_name_for(bundle_path)
    logger.info("Uploading artifact...")
    result = store.upload(name, [bundle_path], root)
    logger.info("Uploaded artifact %s (%d bytes)", name, result.size_bytes)
    return result


__all__ = ["BUNDLE_SUFFIX", "artifact_name_for", "publish_bundle"]

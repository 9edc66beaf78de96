"""Pydantic view of the manifest fields the pipeline relies on.

The manifest itself stays a plain mapping so it can be written back
without losing keys; this model only extracts what bundling needs.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from flatpak_ci.errors import ManifestError
from flatpak_ci.manifest.io import Manifest

DEFAULT_BRANCH = "master"


class ManifestInfo(BaseModel):
    """Identity of the application described by a manifest."""

    model_config = ConfigDict(frozen=True)

    app_id: str = Field(..., min_length=1, description="Application ID")
    branch: str = Field(default=DEFAULT_BRANCH, description="Application branch")
    module_count: int = Field(default=0, ge=0)


def _first_str(manifest: Manifest, *keys: str) -> str | None:
    for key in keys:
        value: Any = manifest.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def read_manifest_info(
    manifest: Manifest,
    default_branch: str | None = None,
) -> ManifestInfo:
    """Extract the application identity from a manifest.

    ``app-id`` takes precedence over ``id``. The branch comes from the
    manifest, then ``default_branch``, then "master".

    Args:
        manifest: Parsed manifest.
        default_branch: Branch used when the manifest has none.

    Returns:
        ManifestInfo instance.

    Raises:
        ManifestError: If neither ``app-id`` nor ``id`` is set.
    """
    app_id = _first_str(manifest, "app-id", "id")
    if app_id is None:
        raise ManifestError("Manifest does not define an 'app-id' or 'id'")

    branch = _first_str(manifest, "branch") or default_branch or DEFAULT_BRANCH
    modules = manifest.get("modules") or []

    return ManifestInfo(app_id=app_id, branch=branch, module_count=len(modules))


__all__ = ["DEFAULT_BRANCH", "ManifestInfo", "read_manifest_info"]

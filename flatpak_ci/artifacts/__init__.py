"""Artifact publishing module.

This module handles:
- Deriving artifact names from bundle filenames
- Local and HTTP artifact stores
- Publishing the built bundle
"""

from flatpak_ci.artifacts.publisher import artifact_name_for, publish_bundle
from flatpak_ci.artifacts.store import (
    ArtifactStore,
    HttpArtifactStore,
    LocalArtifactStore,
)

__all__ = [
    "ArtifactStore",
    "HttpArtifactStore",
    "LocalArtifactStore",
    "artifact_name_for",
    "publish_bundle",
]

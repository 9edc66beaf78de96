"""Flatpak manifest handling.

This module handles:
- Loading and saving JSON/YAML manifests
- Patching manifests to run tests in the sandbox
- Extracting the application identity used for bundling
"""

from flatpak_ci.manifest.io import load_manifest, save_manifest
from flatpak_ci.manifest.patch import patch_manifest
from flatpak_ci.manifest.schema import ManifestInfo, read_manifest_info

__all__ = [
    "ManifestInfo",
    "load_manifest",
    "patch_manifest",
    "read_manifest_info",
    "save_manifest",
]

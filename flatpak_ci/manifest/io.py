"""Manifest load/save functionality.

flatpak-builder accepts manifests in JSON and YAML. The format is chosen
by file extension for both reading and writing, so a manifest patched in
place keeps the format it was authored in.
"""

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from flatpak_ci.errors import UnsupportedManifestFormatError

logger = logging.getLogger(__name__)

JSON_SUFFIXES = (".json",)
YAML_SUFFIXES = (".yaml", ".yml")

Manifest = dict[str, Any]


def manifest_format(path: Path) -> str:
    """Return the manifest format ("json" or "yaml") for a path.

    Args:
        path: Manifest path.

    Returns:
        Format name.

    Raises:
        UnsupportedManifestFormatError: If the extension is not recognised.
    """
    suffix = path.suffix.lower()
    if suffix in JSON_SUFFIXES:
        return "json"
    if suffix in YAML_SUFFIXES:
        return "yaml"
    raise UnsupportedManifestFormatError(path)


def read_manifest_bytes(path: Path) -> bytes:
    """Read the raw bytes of a manifest file."""
    return path.read_bytes()


def load_yaml(path: Path) -> Manifest:
    """Load a YAML manifest and return its contents as a dict.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML content as a dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        ValueError: If the document is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a YAML mapping, got {type(data).__name__}")
    return data


def load_json(path: Path) -> Manifest:
    """Load a JSON manifest and return its contents as a dict.

    Args:
        path: Path to the JSON file.

    Returns:
        Parsed JSON content as a dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        ValueError: If the document is not an object.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def load_manifest(path: Path) -> Manifest:
    """Load a manifest from a file (YAML or JSON).

    File format is determined by extension (.yaml, .yml for YAML,
    .json for JSON).

    Args:
        path: Path to the manifest file.

    Returns:
        Parsed manifest.

    Raises:
        UnsupportedManifestFormatError: If file extension is not supported.
        FileNotFoundError: If the file does not exist.
    """
    fmt = manifest_format(path)
    logger.debug("Loading %s manifest from %s", fmt, path)
    if fmt == "yaml":
        return load_yaml(path)
    return load_json(path)


def save_yaml(manifest: Manifest, path: Path) -> None:
    """Write a manifest to a YAML file."""
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(
            manifest,
            f,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
        )


def save_json(manifest: Manifest, path: Path) -> None:
    """Write a manifest to a JSON file."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2, ensure_ascii=False)
        f.write("\n")


def save_manifest(manifest: Manifest, path: Path) -> Manifest:
    """Save a manifest to a file (YAML or JSON), overwriting it.

    Args:
        manifest: Manifest to write.
        path: Destination; its extension selects the format.

    Returns:
        The manifest that was written.

    Raises:
        UnsupportedManifestFormatError: If file extension is not supported.
    """
    fmt = manifest_format(path)
    if fmt == "yaml":
        save_yaml(manifest, path)
    else:
        save_json(manifest, path)
    logger.debug("Wrote %s manifest to %s", fmt, path)
    return manifest


__all__ = [
    "JSON_SUFFIXES",
    "YAML_SUFFIXES",
    "Manifest",
    "load_json",
    "load_manifest",
    "load_yaml",
    "manifest_format",
    "read_manifest_bytes",
    "save_json",
    "save_manifest",
    "save_yaml",
]

"""Cache key computation for builds.

This module handles:
- Hashing the raw manifest bytes
- Deriving the flatpak-builder cache key
- The fallback prefixes used when no exact cache entry exists

The key is taken from the manifest file as it sits on disk, before any
patching, so identical manifests always map to the same cache entry.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

# Prefix of derived cache keys
CACHE_KEY_PREFIX = "flatpak-builder-"

# Number of hex digest characters kept in derived keys
CACHE_KEY_HASH_LENGTH = 20

# Prefixes tried in order when the exact key misses (most specific first)
RESTORE_KEY_PREFIXES = ("flatpak-builder-", "flatpak-")

# Directories persisted between runs, relative to the working directory
CACHE_PATHS = (".flatpak-builder",)


def compute_bytes_hash(data: bytes) -> str:
    """Compute the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def compute_manifest_hash(manifest_path: Path) -> str:
    """Compute the SHA-256 hash of a manifest file.

    Args:
        manifest_path: Path to the manifest.

    Returns:
        Lowercase hex digest of the exact file bytes.
    """
    return compute_bytes_hash(manifest_path.read_bytes())


def cache_key_from_bytes(data: bytes) -> str:
    """Derive a cache key from manifest bytes.

    Args:
        data: Raw manifest content.

    Returns:
        Cache key of the form ``flatpak-builder-<20 hex chars>``.
    """
    return f"{CACHE_KEY_PREFIX}{compute_bytes_hash(data)[:CACHE_KEY_HASH_LENGTH]}"


def derive_cache_key(manifest_path: Path) -> str:
    """Derive the cache key for a manifest file."""
    return cache_key_from_bytes(manifest_path.read_bytes())


def resolve_cache_key(manifest_path: Path, cache_key: str | None = None) -> str:
    """Resolve the cache key for a build.

    An explicit, non-empty key wins; otherwise the key is derived from the
    manifest content.

    Args:
        manifest_path: Path to the (unpatched) manifest.
        cache_key: Explicit key supplied by the caller.

    Returns:
        The cache key to restore and save under.
    """
    if cache_key:
        return cache_key
    return derive_cache_key(manifest_path)


__all__ = [
    "CACHE_KEY_HASH_LENGTH",
    "CACHE_KEY_PREFIX",
    "CACHE_PATHS",
    "RESTORE_KEY_PREFIXES",
    "cache_key_from_bytes",
    "compute_bytes_hash",
    "compute_manifest_hash",
    "derive_cache_key",
    "resolve_cache_key",
]

"""Tests for builds/cache_key.py module.

Tests cache key derivation and deterministic hashing of manifest bytes.
"""

import hashlib
import re

import pytest

from flatpak_ci.builds.cache_key import (
    CACHE_KEY_PREFIX,
    CACHE_PATHS,
    RESTORE_KEY_PREFIXES,
    cache_key_from_bytes,
    compute_manifest_hash,
    derive_cache_key,
    resolve_cache_key,
)

MANIFEST_BYTES = b"app-id: org.example.App\nmodules:\n  - name: example\n"


@pytest.fixture
def manifest_path(tmp_path):
    """Write a small YAML manifest."""
    path = tmp_path / "org.example.App.yml"
    path.write_bytes(MANIFEST_BYTES)
    return path


class TestComputeManifestHash:
    """Tests for compute_manifest_hash function."""

    def test_matches_sha256(self, manifest_path):
        """Should be the SHA-256 of the raw bytes."""
        expected = hashlib.sha256(MANIFEST_BYTES).hexdigest()
        assert compute_manifest_hash(manifest_path) == expected


class TestCacheKeyFromBytes:
    """Tests for cache_key_from_bytes function."""

    def test_format(self):
        """Should be the prefix followed by 20 lowercase hex chars."""
        key = cache_key_from_bytes(MANIFEST_BYTES)

        assert re.fullmatch(r"flatpak-builder-[0-9a-f]{20}", key)
        assert key == CACHE_KEY_PREFIX + hashlib.sha256(MANIFEST_BYTES).hexdigest()[:20]

    def test_deterministic(self):
        """Same bytes should always give the same key."""
        assert cache_key_from_bytes(MANIFEST_BYTES) == cache_key_from_bytes(
            bytes(MANIFEST_BYTES)
        )

    def test_whitespace_changes_key(self):
        """Any byte change, even whitespace, should change the key."""
        assert cache_key_from_bytes(MANIFEST_BYTES) != cache_key_from_bytes(
            MANIFEST_BYTES + b"\n"
        )

    def test_empty_content(self):
        """Empty manifests still get a key."""
        key = cache_key_from_bytes(b"")
        assert key == CACHE_KEY_PREFIX + hashlib.sha256(b"").hexdigest()[:20]


class TestResolveCacheKey:
    """Tests for resolve_cache_key function."""

    def test_explicit_key_wins(self, manifest_path):
        """A non-empty explicit key should be returned unchanged."""
        assert resolve_cache_key(manifest_path, "my-key") == "my-key"

    def test_explicit_key_skips_hashing(self, tmp_path):
        """An explicit key should not require the manifest to exist."""
        assert resolve_cache_key(tmp_path / "missing.yml", "my-key") == "my-key"

    @pytest.mark.parametrize("explicit", [None, ""])
    def test_derived_when_missing(self, manifest_path, explicit):
        """None or empty keys should fall back to the derived key."""
        assert resolve_cache_key(manifest_path, explicit) == derive_cache_key(
            manifest_path
        )

    def test_derived_from_file_bytes(self, manifest_path):
        """The derived key should follow the file content."""
        before = resolve_cache_key(manifest_path)
        manifest_path.write_bytes(MANIFEST_BYTES.replace(b"example", b"exampl3"))
        after = resolve_cache_key(manifest_path)

        assert before != after
        assert after == cache_key_from_bytes(manifest_path.read_bytes())


class TestConstants:
    """Tests for cache constants."""

    def test_restore_prefixes_order(self):
        """Most specific prefix should be tried first."""
        assert RESTORE_KEY_PREFIXES == ("flatpak-builder-", "flatpak-")

    def test_cache_paths(self):
        """The builder state directory is cached."""
        assert CACHE_PATHS == (".flatpak-builder",)

"""Tests for the artifacts package.

Tests artifact naming, the local store, and HTTP uploads using mocked
responses.
"""

import json
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest
import respx

from flatpak_ci.artifacts.publisher import artifact_name_for, publish_bundle
from flatpak_ci.artifacts.store import (
    HttpArtifactStore,
    LocalArtifactStore,
    compute_file_hash,
)
from flatpak_ci.errors import ArtifactUploadError
from flatpak_ci.types import UploadResult

UPLOAD_BASE = "https://artifacts.example.com/runs/42"


@pytest.fixture
def bundle_file(tmp_path) -> Path:
    """A fake bundle in a work directory."""
    path = tmp_path / "work" / "app.flatpak"
    path.parent.mkdir()
    path.write_bytes(b"flatpak bundle bytes")
    return path


class TestArtifactNameFor:
    """Tests for artifact_name_for function."""

    @pytest.mark.parametrize(
        ("bundle", "expected"),
        [
            ("app.flatpak", "app"),
            ("org.example.App.flatpak", "org.example.App"),
            ("dist/example.flatpak", "example"),
            ("example", "example"),
            ("example.bundle", "example.bundle"),
            ("my.flatpak.app.flatpak", "my.flatpak.app"),
        ],
    )
    def test_names(self, bundle, expected):
        """Should strip a trailing .flatpak from the filename only."""
        assert artifact_name_for(bundle) == expected


class TestLocalArtifactStore:
    """Tests for LocalArtifactStore."""

    def test_upload_copies_file(self, tmp_path, bundle_file):
        """Should copy the file and write a manifest."""
        store = LocalArtifactStore(tmp_path / "artifacts")

        result = store.upload("app", [bundle_file], bundle_file.parent)

        dest = tmp_path / "artifacts" / "app"
        assert (dest / "app.flatpak").read_bytes() == b"flatpak bundle bytes"
        assert result.files == ["app.flatpak"]
        assert result.size_bytes == len(b"flatpak bundle bytes")
        assert result.location == str(dest)

        manifest = json.loads((dest / "manifest.json").read_text())
        assert manifest["name"] == "app"
        assert manifest["files"][0]["sha256"] == compute_file_hash(bundle_file)

    def test_missing_file(self, tmp_path):
        """Copy failures should raise ArtifactUploadError."""
        store = LocalArtifactStore(tmp_path / "artifacts")

        with pytest.raises(ArtifactUploadError):
            store.upload("app", [tmp_path / "missing.flatpak"], tmp_path)


class TestHttpArtifactStore:
    """Tests for HttpArtifactStore."""

    @respx.mock
    def test_upload(self, bundle_file):
        """Should stream the file with PUT under the artifact name."""
        bodies = []

        def receive(request):
            bodies.append(request.read())
            return httpx.Response(201)

        route = respx.put(f"{UPLOAD_BASE}/app/app.flatpak").mock(side_effect=receive)
        store = HttpArtifactStore(UPLOAD_BASE + "/", token="t0ken")

        result = store.upload("app", [bundle_file], bundle_file.parent)

        assert route.called
        assert bodies == [b"flatpak bundle bytes"]
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer t0ken"
        assert request.headers["X-Checksum-Sha256"] == compute_file_hash(bundle_file)
        assert result.location == f"{UPLOAD_BASE}/app"

    @respx.mock
    def test_no_token(self, bundle_file):
        """No Authorization header without a token."""
        route = respx.put(f"{UPLOAD_BASE}/app/app.flatpak").mock(
            return_value=httpx.Response(200)
        )

        HttpArtifactStore(UPLOAD_BASE).upload("app", [bundle_file], bundle_file.parent)

        assert "Authorization" not in route.calls.last.request.headers

    @respx.mock
    def test_http_error(self, bundle_file):
        """HTTP errors should raise ArtifactUploadError."""
        respx.put(f"{UPLOAD_BASE}/app/app.flatpak").mock(
            return_value=httpx.Response(500)
        )

        with pytest.raises(ArtifactUploadError, match="500"):
            HttpArtifactStore(UPLOAD_BASE).upload(
                "app", [bundle_file], bundle_file.parent
            )

    @respx.mock
    def test_network_error(self, bundle_file):
        """Connection failures should raise ArtifactUploadError."""
        respx.put(f"{UPLOAD_BASE}/app/app.flatpak").mock(
            side_effect=httpx.ConnectError
        )

        with pytest.raises(ArtifactUploadError, match="Network error"):
            HttpArtifactStore(UPLOAD_BASE).upload(
                "app", [bundle_file], bundle_file.parent
            )


class TestPublishBundle:
    """Tests for publish_bundle function."""

    def test_publishes_under_derived_name(self, bundle_file):
        """Should upload the bundle as the derived artifact name."""
        store = MagicMock()
        store.upload.return_value = UploadResult(
            artifact_name="app", files=["app.flatpak"], size_bytes=20
        )

        result = publish_bundle(store, "app.flatpak", root=bundle_file.parent)

        assert result.artifact_name == "app"
        store.upload.assert_called_once_with(
            "app", [bundle_file.parent / "app.flatpak"], bundle_file.parent
        )

    def test_missing_bundle(self, tmp_path):
        """A missing bundle should fail the upload."""
        store = MagicMock()

        with pytest.raises(ArtifactUploadError, match="Bundle not found"):
            publish_bundle(store, "app.flatpak", root=tmp_path)
        store.upload.assert_not_called()

    def test_store_errors_propagate(self, bundle_file):
        """Upload failures are never swallowed."""
        store = MagicMock()
        store.upload.side_effect = ArtifactUploadError("quota exceeded")

        with pytest.raises(ArtifactUploadError, match="quota exceeded"):
            publish_bundle(store, bundle_file)

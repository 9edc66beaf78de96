"""Artifact stores for published bundles.

This module handles:
- Copying artifacts into a local artifacts directory with a manifest
- Uploading artifacts to an HTTP endpoint
- Computing checksums
"""

from __future__ import annotations

import hashlib
import json
import logging
import shutil
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

import httpx

from flatpak_ci.errors import ArtifactUploadError
from flatpak_ci.types import UploadResult

logger = logging.getLogger(__name__)

# Default chunk size for hashing and uploads
CHUNK_SIZE = 64 * 1024  # 64KB

# Timeout for uploads (seconds)
UPLOAD_TIMEOUT = 3600


class ArtifactStore(Protocol):
    """Destination for CI artifacts."""

    def upload(
        self,
        name: str,
        files: Sequence[Path],
        root: Path,
    ) -> UploadResult:
        """Upload ``files`` (relative to ``root``) as artifact ``name``."""
        ...


def compute_file_hash(file_path: Path, chunk_size: int = CHUNK_SIZE) -> str:
    """Compute SHA-256 hash of a file.

    Args:
        file_path: Path to the file.
        chunk_size: Size of chunks for streaming hash.

    Returns:
        SHA-256 hex digest.
    """
    sha256 = hashlib.sha256()
    with file_path.open("rb") as f:
        while chunk := f.read(chunk_size):
            sha256.update(chunk)
    return sha256.hexdigest()


def _relative_name(file_path: Path, root: Path) -> str:
    try:
        return file_path.resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        return file_path.name


class LocalArtifactStore:
    """Store artifacts under ``<artifacts_dir>/<name>/``.

    Each upload also writes a ``manifest.json`` listing the files with
    their size and checksum.
    """

    def __init__(self, artifacts_dir: Path) -> None:
        self.artifacts_dir = artifacts_dir

    def upload(
        self,
        name: str,
        files: Sequence[Path],
        root: Path,
    ) -> UploadResult:
        dest_dir = self.artifacts_dir / name
        entries: list[dict[str, Any]] = []
        total = 0

        try:
            dest_dir.mkdir(parents=True, exist_ok=True)
            for file_path in files:
                rel = _relative_name(file_path, root)
                dest = dest_dir / rel
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(file_path, dest)

                size = dest.stat().st_size
                total += size
                entries.append(
                    {
                        "filename": rel,
                        "size_bytes": size,
                        "sha256": compute_file_hash(dest),
                    }
                )

            manifest = {
                "version": "1.0",
                "name": name,
                "generated_at": datetime.now(timezone.utc).isoformat(),
                "files": entries,
            }
            with (dest_dir / "manifest.json").open("w", encoding="utf-8") as f:
                json.dump(manifest, f, indent=2, sort_keys=True)
        except OSError as e:
            raise ArtifactUploadError(
                f"Failed to store artifact {name} in {dest_dir}: {e}"
            ) from e

        logger.info("Stored artifact %s (%d bytes) in %s", name, total, dest_dir)
        return UploadResult(
            artifact_name=name,
            files=[e["filename"] for e in entries],
            size_bytes=total,
            location=str(dest_dir),
        )


class HttpArtifactStore:
    """Upload artifacts with ``PUT <base_url>/<name>/<filename>``."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        client: httpx.Client | None = None,
        timeout: float = UPLOAD_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.client = client
        self.timeout = timeout

    def _headers(self, file_path: Path) -> dict[str, str]:
        headers = {
            "Content-Type": "application/octet-stream",
            "X-Checksum-Sha256": compute_file_hash(file_path),
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _put(self, client: httpx.Client, url: str, file_path: Path) -> None:
        with file_path.open("rb") as f:
            response = client.put(
                url,
                content=f,
                headers=self._headers(file_path),
                timeout=self.timeout,
            )
        response.raise_for_status()

    def upload(
        self,
        name: str,
        files: Sequence[Path],
        root: Path,
    ) -> UploadResult:
        uploaded: list[str] = []
        total = 0
        client = self.client or httpx.Client(follow_redirects=True)

        try:
            for file_path in files:
                rel = _relative_name(file_path, root)
                url = f"{self.base_url}/{name}/{rel}"
                logger.info("Uploading %s to %s", file_path, url)
                self._put(client, url, file_path)
                uploaded.append(rel)
                total += file_path.stat().st_size
        except httpx.HTTPStatusError as e:
            raise ArtifactUploadError(
                f"HTTP error uploading {name}: "
                f"{e.response.status_code} {e.response.reason_phrase}"
            ) from e
        except httpx.TimeoutException as e:
            raise ArtifactUploadError(f"Timeout uploading {name}") from e
        except httpx.RequestError as e:
            raise ArtifactUploadError(f"Network error uploading {name}: {e}") from e
        except OSError as e:
            raise ArtifactUploadError(f"Failed to read artifact file: {e}") from e
        finally:
            if self.client is None:
                client.close()

        return UploadResult(
            artifact_name=name,
            files=uploaded,
            size_bytes=total,
            location=f"{self.base_url}/{name}",
        )


__all__ = [
    "CHUNK_SIZE",
    "UPLOAD_TIMEOUT",
    "ArtifactStore",
    "HttpArtifactStore",
    "LocalArtifactStore",
    "compute_file_hash",
]

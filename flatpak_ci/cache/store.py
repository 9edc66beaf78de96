"""Cache backends for the flatpak-builder state directory.

A backend stores a set of directories under a key and restores them
later, either by exact key or by the most recent entry matching one of
a list of key prefixes. Entries are immutable once written.
"""

from __future__ import annotations

import logging
import os
import re
import tarfile
import tempfile
import zlib
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from flatpak_ci.errors import CacheRestoreError, CacheSaveError

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIX = ".tar.gz"

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class CacheBackend(Protocol):
    """Storage for cached directories."""

    def restore(
        self,
        paths: Sequence[str],
        key: str,
        restore_keys: Sequence[str] = (),
    ) -> str | None:
        """Restore ``paths`` and return the key that matched, or None."""
        ...

    def save(self, paths: Sequence[str], key: str) -> None:
        """Save ``paths`` under ``key``."""
        ...


def safe_key(key: str) -> str:
    """Map a cache key to a safe filename stem."""
    return _UNSAFE_KEY_CHARS.sub("_", key)


class LocalCacheBackend:
    """Cache backend storing gzip tarballs in a local directory.

    Attributes:
        cache_dir: Directory holding ``<key>.tar.gz`` entries.
        workdir: Directory the cached paths are relative to (cwd if None).
    """

    def __init__(self, cache_dir: Path, workdir: Path | None = None) -> None:
        self.cache_dir = cache_dir
        self.workdir = workdir

    def _root(self) -> Path:
        return self.workdir if self.workdir is not None else Path.cwd()

    def entry_path(self, key: str) -> Path:
        """Return the archive path for a key."""
        return self.cache_dir / f"{safe_key(key)}{ARCHIVE_SUFFIX}"

    def keys(self) -> list[str]:
        """List stored keys, most recently written first."""
        if not self.cache_dir.is_dir():
            return []
        entries = [
            p
            for p in self.cache_dir.iterdir()
            if p.is_file() and p.name.endswith(ARCHIVE_SUFFIX)
        ]
        entries.sort(key=lambda p: p.stat().st_mtime_ns, reverse=True)
        return [p.name[: -len(ARCHIVE_SUFFIX)] for p in entries]

    def find(self, key: str, restore_keys: Sequence[str] = ()) -> str | None:
        """Find the stored key matching ``key`` or one of the prefixes.

        Args:
            key: Exact key to look for first.
            restore_keys: Prefixes tried in order on an exact miss.

        Returns:
            Matching stored key, or None.
        """
        if self.entry_path(key).is_file():
            return safe_key(key)

        stored = self.keys()
        for prefix in restore_keys:
            wanted = safe_key(prefix)
            for candidate in stored:
                if candidate.startswith(wanted):
                    return candidate
        return None

    def restore(
        self,
        paths: Sequence[str],
        key: str,
        restore_keys: Sequence[str] = (),
    ) -> str | None:
        """Restore cached paths into the working directory.

        Raises:
            CacheRestoreError: If a matching archive cannot be extracted.
        """
        hit = self.find(key, restore_keys)
        if hit is None:
            return None

        archive_path = self.cache_dir / f"{hit}{ARCHIVE_SUFFIX}"
        root = self._root()
        logger.debug("Extracting %s into %s (paths: %s)", archive_path, root, paths)

        try:
            with tarfile.open(archive_path, "r:gz") as tar:
                for member in tar.getmembers():
                    # Security: prevent path traversal
                    member_path = Path(member.name)
                    if member_path.is_absolute() or ".." in member_path.parts:
                        raise CacheRestoreError(
                            f"Refusing to extract {member.name}: "
                            "path traversal detected"
                        )
                tar.extractall(root, filter="data")
        except (tarfile.TarError, EOFError, zlib.error) as e:
            # Truncated or corrupt archives surface as EOFError/zlib.error
            raise CacheRestoreError(f"Failed to extract {archive_path}: {e}") from e
        except OSError as e:
            raise CacheRestoreError(
                f"OS error extracting {archive_path}: {e}"
            ) from e

        return hit

    def save(self, paths: Sequence[str], key: str) -> None:
        """Archive existing paths under ``key``.

        Raises:
            CacheSaveError: If the key already exists, nothing exists to
                save, or writing the archive fails.
        """
        entry = self.entry_path(key)
        if entry.exists():
            raise CacheSaveError(f"Cache entry already exists for key: {key}")

        root = self._root()
        existing = [p for p in paths if (root / p).exists()]
        if not existing:
            raise CacheSaveError(
                f"None of the cache paths exist: {', '.join(paths)}"
            )

        self.cache_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=".partial-", suffix=ARCHIVE_SUFFIX, dir=self.cache_dir
        )
        os.close(fd)
        tmp_path = Path(tmp_name)

        try:
            with tarfile.open(tmp_path, "w:gz") as tar:
                for rel in existing:
                    tar.add(root / rel, arcname=rel)
            os.replace(tmp_path, entry)
        except (tarfile.TarError, OSError) as e:
            tmp_path.unlink(missing_ok=True)
            raise CacheSaveError(f"Failed to write cache entry {entry}: {e}") from e

        logger.debug("Saved %s to %s", existing, entry)


__all__ = [
    "ARCHIVE_SUFFIX",
    "CacheBackend",
    "LocalCacheBackend",
    "safe_key",
]

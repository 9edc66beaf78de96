"""Best-effort restore and save of the build cache.

Caching only speeds builds up. Neither function here ever raises: a
failed restore is a miss, a failed save is logged and the build goes on.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from flatpak_ci.builds.cache_key import CACHE_PATHS, RESTORE_KEY_PREFIXES
from flatpak_ci.cache.store import CacheBackend
from flatpak_ci.types import CacheRestoreResult

logger = logging.getLogger(__name__)


def restore_build_cache(
    backend: CacheBackend,
    key: str,
    paths: Sequence[str] = CACHE_PATHS,
    restore_keys: Sequence[str] = RESTORE_KEY_PREFIXES,
) -> CacheRestoreResult:
    """Restore the build state directory.

    Args:
        backend: Cache backend.
        key: Resolved cache key.
        paths: Paths to restore.
        restore_keys: Fallback prefixes, most specific first.

    Returns:
        CacheRestoreResult recording which key hit, if any.
    """
    try:
        hit_key = backend.restore(paths, key, restore_keys)
    except Exception as e:  # any backend failure counts as a miss
        logger.warning("Failed to restore cache: %s", e)
        return CacheRestoreResult(key=key, error=str(e))

    if hit_key is not None:
        logger.info("Restored cache with key: %s", hit_key)
    else:
        logger.info("No cache was found")
    return CacheRestoreResult(key=key, hit_key=hit_key)


def save_build_cache(
    backend: CacheBackend,
    key: str,
    paths: Sequence[str] = CACHE_PATHS,
) -> bool:
    """Save the build state directory.

    Returns:
        True if the cache was saved.
    """
    try:
        backend.save(paths, key)
    except Exception as e:  # any backend failure only loses the cache
        logger.error("Failed to save cache: %s", e)
        return False

    logger.info("Saved cache with key: %s", key)
    return True


__all__ = ["restore_build_cache", "save_build_cache"]

"""Build cache module.

This module handles:
- Cache backends storing the flatpak-builder state directory
- Best-effort restore and save around a build
"""

from flatpak_ci.cache.service import restore_build_cache, save_build_cache
from flatpak_ci.cache.store import CacheBackend, LocalCacheBackend

__all__ = [
    "CacheBackend",
    "LocalCacheBackend",
    "restore_build_cache",
    "save_build_cache",
]

"""Build orchestration module.

This module handles:
- Cache key computation
- Running flatpak-builder and flatpak build-bundle
- The end-to-end build pipeline
"""

__all__: list[str] = []

# Lazy imports for submodules to avoid circular imports
# Access via flatpak_ci.builds.cache_key, flatpak_ci.builds.service, etc.

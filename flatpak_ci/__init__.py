"""Flatpak CI - build, cache and publish Flatpak bundles from CI.

This package drives flatpak-builder from a JSON/YAML manifest, optionally
enabling sandboxed test runs, caching the builder state directory, and
publishing the resulting bundle as a CI artifact.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]

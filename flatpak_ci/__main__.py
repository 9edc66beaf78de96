"""Allow running as ``python -m flatpak_ci``."""

from flatpak_ci.cli import app

app(prog_name="flatpak-ci")

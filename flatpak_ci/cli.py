"""Thin CLI wrapper for flatpak_ci.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
import logging
import os
from pathlib import Path
from typing import Annotated, Any

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from flatpak_ci import __version__
from flatpak_ci.config import Settings, get_settings, print_settings_json

app = typer.Typer(
    name="flatpak-ci",
    help="Flatpak CI - build, cache and publish Flatpak bundles",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


def configure_logging(level: str) -> None:
    """Send log records to stderr through Rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def in_github_actions() -> bool:
    """Return True when running inside a GitHub Actions job."""
    return os.environ.get("GITHUB_ACTIONS") == "true"


def escape_workflow_data(message: str) -> str:
    """Encode a message for a GitHub workflow command such as ``::error::``."""
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def write_github_outputs(outputs: dict[str, Any]) -> None:
    """Append step outputs to the file named by $GITHUB_OUTPUT."""
    output_file = os.environ.get("GITHUB_OUTPUT")
    if not output_file:
        return
    with open(output_file, "a", encoding="utf-8") as f:
        for name, value in outputs.items():
            if value is None:
                value = ""
            elif isinstance(value, bool):
                value = str(value).lower()
            f.write(f"{name}={value}\n")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"flatpak-ci version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Flatpak CI - build, cache and publish Flatpak bundles."""
    configure_logging(get_settings().log_level)


def _apply_overrides(settings: Settings, **overrides: Any) -> Settings:
    update = {k: v for k, v in overrides.items() if v is not None}
    if not update:
        return settings
    return settings.model_copy(update=update)


@app.command()
def build(
    manifest: Annotated[
        Path | None,
        typer.Argument(help="Manifest path (JSON or YAML)"),
    ] = None,
    run_tests: Annotated[
        bool | None,
        typer.Option("--run-tests/--no-run-tests", help="Run the module tests"),
    ] = None,
    bundle: Annotated[
        str | None,
        typer.Option("--bundle", "-b", help="Bundle filename"),
    ] = None,
    repository_name: Annotated[
        str | None,
        typer.Option("--repository-name", help="Remote to install runtimes from"),
    ] = None,
    repository_url: Annotated[
        str | None,
        typer.Option("--repository-url", help="URL of the remote"),
    ] = None,
    cache: Annotated[
        bool | None,
        typer.Option("--cache/--no-cache", help="Cache the build state directory"),
    ] = None,
    cache_key: Annotated[
        str | None,
        typer.Option("--cache-key", help="Explicit cache key"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Build the manifest, create a bundle and publish it.

    Options override the FLATPAK_CI_* environment variables.
    """
    from flatpak_ci.builds.service import run_pipeline

    settings = _apply_overrides(
        get_settings(),
        manifest_path=manifest,
        run_tests=run_tests,
        bundle=bundle,
        repository_name=repository_name,
        repository_url=repository_url,
        cache=cache,
        cache_key=cache_key,
    )

    result = run_pipeline(settings)

    if in_github_actions():
        write_github_outputs(
            {
                "bundle": result.bundle_path,
                "artifact-name": result.artifact_name,
                "cache-key": result.cache_key,
                "cache-hit": result.cache_hit_key is not None,
            }
        )
        if not result.success:
            typer.echo(f"::error::{escape_workflow_data(result.message)}")

    if json_output:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    elif result.success:
        console.print(f"[green]{result.message}[/green]")
        if result.cache_key:
            hit = result.cache_hit_key or "none"
            console.print(f"  Cache key: {result.cache_key} (restored: {hit})")
    else:
        console.print(f"[red]{escape(result.message)}[/red]")
        if result.code:
            console.print(f"  Error code: {result.code}")

    if not result.success:
        raise typer.Exit(code=1)


@app.command("cache-key")
def cache_key_cmd(
    manifest: Annotated[Path, typer.Argument(help="Manifest path")],
    cache_key: Annotated[
        str | None,
        typer.Option("--cache-key", help="Explicit cache key"),
    ] = None,
) -> None:
    """Print the cache key used for a manifest."""
    from flatpak_ci.builds.cache_key import resolve_cache_key

    try:
        key = resolve_cache_key(manifest, cache_key)
    except OSError as e:
        console.print(f"[red]Cannot read manifest: {e}[/red]")
        raise typer.Exit(code=1) from None
    typer.echo(key)


@app.command()
def patch(
    manifest: Annotated[Path, typer.Argument(help="Manifest path")],
    run_tests: Annotated[
        bool,
        typer.Option("--run-tests/--no-run-tests", help="Enable the module tests"),
    ] = True,
) -> None:
    """Patch a manifest in place without building it."""
    from flatpak_ci.errors import FlatpakCIError
    from flatpak_ci.manifest.io import load_manifest, save_manifest
    from flatpak_ci.manifest.patch import patch_manifest

    try:
        data = load_manifest(manifest)
        patched = patch_manifest(data, run_tests)
        if patched is not data:
            save_manifest(patched, manifest)
    except FlatpakCIError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Invalid manifest: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    if patched is data:
        console.print("[yellow]Tests disabled, manifest left untouched[/yellow]")
    else:
        console.print(f"[green]Enabled tests in {manifest}[/green]")


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        typer.echo(print_settings_json(settings))
        return

    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Build:[/bold]")
    console.print(f"  Manifest:            {settings.manifest_path or '(not set)'}")
    console.print(f"  Run tests:           {settings.run_tests}")
    console.print(f"  Bundle:              {settings.bundle}")
    console.print(f"  Repository name:     {settings.repository_name}")
    console.print(f"  Repository URL:      {settings.repository_url}")
    console.print(f"  Branch:              {settings.branch or '(from manifest)'}")
    console.print()
    console.print("[bold]Cache:[/bold]")
    console.print(f"  Enabled:             {settings.cache}")
    console.print(f"  Cache key:           {settings.cache_key or '(derived)'}")
    console.print(f"  Cache directory:     {settings.cache_dir}")
    console.print()
    console.print("[bold]Artifacts:[/bold]")
    console.print(f"  Artifacts directory: {settings.artifacts_dir}")
    console.print(f"  Upload URL:          {settings.artifact_upload_url or '(local)'}")
    console.print()
    console.print("[bold]Operational:[/bold]")
    console.print(f"  Log directory:       {settings.log_dir or '(console)'}")
    console.print(f"  Log level:           {settings.log_level}")
    console.print(f"  Build timeout:       {settings.build_timeout or '(none)'}")


if __name__ == "__main__":
    app()

"""Build runner for executing flatpak and flatpak-builder commands.

This module handles:
- Composing the flatpak-builder, remote-add and build-bundle commands
- Executing them with subprocess
- Optionally capturing stdout/stderr to log files
- Turning non-zero exits into fatal errors
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import IO

from flatpak_ci.config import FLATHUB_REPOSITORY_URL
from flatpak_ci.errors import (
    BUNDLE_FAILED,
    BuilderProcessError,
    RemoteRegistrationError,
)
from flatpak_ci.types import CommandResult

logger = logging.getLogger(__name__)

# Wrapper providing an X display for tests launched by the builder
XVFB_RUN = ["xvfb-run", "--auto-servernum"]


class CommandExecutionError(Exception):
    """Raised when an external command cannot be run to completion."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        code: str = "execution_error",
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.code = code


def compose_builder_command(
    manifest_path: Path,
    build_dir: str,
    local_repo: str,
    remote_name: str,
    ccache: bool = False,
) -> list[str]:
    """Compose the flatpak-builder command.

    Args:
        manifest_path: Manifest to build.
        build_dir: Build directory (positional).
        local_repo: Local repository to export to.
        remote_name: Remote to install dependencies from.
        ccache: Add --ccache (used when the build state is cached).

    Returns:
        Command as list of strings suitable for subprocess.
    """
    cmd = [
        *XVFB_RUN,
        "flatpak-builder",
        f"--repo={local_repo}",
        "--disable-rofiles-fuse",
        f"--install-deps-from={remote_name}",
        "--force-clean",
    ]
    if ccache:
        cmd.append("--ccache")
    cmd.extend([build_dir, str(manifest_path)])
    return cmd


def compose_bundle_command(
    local_repo: str,
    bundle: str,
    runtime_repo_url: str,
    app_id: str,
    branch: str,
) -> list[str]:
    """Compose the flatpak build-bundle command."""
    return [
        "flatpak",
        "build-bundle",
        local_repo,
        bundle,
        f"--runtime-repo={runtime_repo_url}",
        app_id,
        branch,
    ]


def compose_remote_add_command(remote_name: str, remote_url: str) -> list[str]:
    """Compose the flatpak remote-add command."""
    return ["flatpak", "remote-add", "--if-not-exists", remote_name, remote_url]


def _write_header(log_file: IO[str], cmd_str: str, started_at: datetime) -> None:
    log_file.write(f"# Command: {cmd_str}\n")
    log_file.write(f"# Started: {started_at.isoformat()}\n")
    log_file.write("# " + "=" * 70 + "\n\n")
    log_file.flush()


def run_command(
    cmd: list[str],
    log_path: Path | None = None,
    cwd: Path | None = None,
    timeout: int | None = None,
) -> CommandResult:
    """Execute an external command.

    Output goes to the parent's stdout/stderr (so it shows up in the CI
    log) unless ``log_path`` is given, in which case it is appended there.

    Args:
        cmd: Command to run.
        log_path: Optional log file for stdout/stderr.
        cwd: Working directory.
        timeout: Timeout in seconds (None = no timeout).

    Returns:
        CommandResult with the exit code.

    Raises:
        CommandExecutionError: If the command cannot start or times out.
    """
    cmd_str = shlex.join(cmd)
    logger.info("Executing: %s", cmd_str)

    started_at = datetime.now(timezone.utc)
    try:
        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            with log_path.open("a") as log_file:
                _write_header(log_file, cmd_str, started_at)
                result = subprocess.run(
                    cmd,
                    cwd=cwd,
                    stdout=log_file,
                    stderr=subprocess.STDOUT,
                    timeout=timeout,
                    check=False,
                )
        else:
            result = subprocess.run(cmd, cwd=cwd, timeout=timeout, check=False)

    except subprocess.TimeoutExpired as e:
        message = f"Command timed out after {timeout} seconds: {cmd_str}"
        logger.error(message)
        raise CommandExecutionError(message, exit_code=-1, code="timeout") from e

    except OSError as e:
        message = f"Failed to execute {cmd[0]}: {e}"
        logger.error(message)
        raise CommandExecutionError(message) from e

    finished_at = datetime.now(timezone.utc)

    if log_path is not None:
        with log_path.open("a") as log_file:
            log_file.write(f"\n# Finished: {finished_at.isoformat()}\n")
            log_file.write(f"# Exit code: {result.returncode}\n")
            duration = (finished_at - started_at).total_seconds()
            log_file.write(f"# Duration: {duration:.1f}s\n\n")

    return CommandResult(
        command=cmd_str,
        exit_code=result.returncode,
        started_at=started_at,
        finished_at=finished_at,
        log_path=log_path,
    )


def _log_file(log_dir: Path | None, name: str) -> Path | None:
    if log_dir is None:
        return None
    return log_dir / f"{name}.log"


def add_remote(
    remote_name: str,
    remote_url: str,
    log_dir: Path | None = None,
    timeout: int | None = None,
) -> CommandResult | None:
    """Register a Flatpak remote unless it is the default Flathub one.

    The comparison against the Flathub URL is a literal string match.

    Args:
        remote_name: Name of the remote.
        remote_url: URL of the .flatpakrepo file.
        log_dir: Optional directory for command logs.
        timeout: Timeout in seconds.

    Returns:
        CommandResult, or None when nothing had to be done.

    Raises:
        RemoteRegistrationError: If the remote cannot be added.
    """
    if remote_url == FLATHUB_REPOSITORY_URL:
        logger.debug("Using default remote, nothing to register")
        return None

    logger.info("Adding remote %s (%s)", remote_name, remote_url)
    cmd = compose_remote_add_command(remote_name, remote_url)
    try:
        result = run_command(
            cmd, log_path=_log_file(log_dir, "remote-add"), timeout=timeout
        )
    except CommandExecutionError as e:
        raise RemoteRegistrationError(str(e), exit_code=e.exit_code) from e

    if not result.success:
        raise RemoteRegistrationError(
            f"flatpak remote-add failed with exit code {result.exit_code}",
            exit_code=result.exit_code,
        )
    return result


def run_builder(
    manifest_path: Path,
    build_dir: str,
    local_repo: str,
    remote_name: str,
    ccache: bool = False,
    log_dir: Path | None = None,
    timeout: int | None = None,
) -> CommandResult:
    """Run flatpak-builder under xvfb-run.

    Raises:
        BuilderProcessError: If the build fails.
    """
    logger.info("Building the flatpak...")
    cmd = compose_builder_command(
        manifest_path=manifest_path,
        build_dir=build_dir,
        local_repo=local_repo,
        remote_name=remote_name,
        ccache=ccache,
    )
    log_path = _log_file(log_dir, "flatpak-builder")
    try:
        result = run_command(cmd, log_path=log_path, timeout=timeout)
    except CommandExecutionError as e:
        raise BuilderProcessError(
            str(e),
            exit_code=e.exit_code,
            log_path=str(log_path) if log_path else None,
        ) from e

    if not result.success:
        raise BuilderProcessError(
            f"flatpak-builder failed with exit code {result.exit_code}",
            exit_code=result.exit_code,
            log_path=str(log_path) if log_path else None,
        )
    return result


def build_bundle(
    local_repo: str,
    bundle: str,
    runtime_repo_url: str,
    app_id: str,
    branch: str,
    log_dir: Path | None = None,
    timeout: int | None = None,
) -> CommandResult:
    """Create a single-file bundle from the local repository.

    Raises:
        BuilderProcessError: If flatpak build-bundle fails.
    """
    logger.info("Creating a bundle...")
    cmd = compose_bundle_command(
        local_repo=local_repo,
        bundle=bundle,
        runtime_repo_url=runtime_repo_url,
        app_id=app_id,
        branch=branch,
    )
    log_path = _log_file(log_dir, "build-bundle")
    try:
        result = run_command(cmd, log_path=log_path, timeout=timeout)
    except CommandExecutionError as e:
        raise BuilderProcessError(
            str(e),
            exit_code=e.exit_code,
            code=BUNDLE_FAILED,
            log_path=str(log_path) if log_path else None,
        ) from e

    if not result.success:
        raise BuilderProcessError(
            f"flatpak build-bundle failed with exit code {result.exit_code}",
            exit_code=result.exit_code,
            code=BUNDLE_FAILED,
            log_path=str(log_path) if log_path else None,
        )
    return result


__all__ = [
    "XVFB_RUN",
    "CommandExecutionError",
    "add_remote",
    "build_bundle",
    "compose_builder_command",
    "compose_bundle_command",
    "compose_remote_add_command",
    "run_builder",
    "run_command",
]

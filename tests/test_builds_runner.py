"""Tests for builds/runner.py module.

Tests command composition and execution.
Uses mocked subprocess for execution tests.
"""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from flatpak_ci.builds.runner import (
    CommandExecutionError,
    add_remote,
    build_bundle,
    compose_builder_command,
    compose_bundle_command,
    compose_remote_add_command,
    run_builder,
    run_command,
)
from flatpak_ci.config import FLATHUB_REPOSITORY_URL
from flatpak_ci.errors import BuilderProcessError, RemoteRegistrationError

CUSTOM_REPO_URL = "https://dl.flathub.org/beta-repo/flathub-beta.flatpakrepo"


def completed(returncode: int = 0) -> MagicMock:
    """Create a mock CompletedProcess."""
    result = MagicMock()
    result.returncode = returncode
    return result


class TestComposeBuilderCommand:
    """Tests for compose_builder_command function."""

    def test_without_ccache(self):
        """Should compose the exact flatpak-builder invocation."""
        cmd = compose_builder_command(
            Path("org.example.App.yml"), "flatpak_app", "repo", "flathub"
        )

        assert cmd == [
            "xvfb-run",
            "--auto-servernum",
            "flatpak-builder",
            "--repo=repo",
            "--disable-rofiles-fuse",
            "--install-deps-from=flathub",
            "--force-clean",
            "flatpak_app",
            "org.example.App.yml",
        ]

    def test_with_ccache(self):
        """--ccache should come right before the positional arguments."""
        cmd = compose_builder_command(
            Path("app.json"), "flatpak_app", "repo", "flathub", ccache=True
        )

        assert cmd[-3:] == ["--ccache", "flatpak_app", "app.json"]
        assert cmd.count("--ccache") == 1


class TestComposeBundleCommand:
    """Tests for compose_bundle_command function."""

    def test_command(self):
        """Should compose the exact build-bundle invocation."""
        cmd = compose_bundle_command(
            "repo", "app.flatpak", FLATHUB_REPOSITORY_URL, "org.example.App", "master"
        )

        assert cmd == [
            "flatpak",
            "build-bundle",
            "repo",
            "app.flatpak",
            f"--runtime-repo={FLATHUB_REPOSITORY_URL}",
            "org.example.App",
            "master",
        ]


class TestComposeRemoteAddCommand:
    """Tests for compose_remote_add_command function."""

    def test_command(self):
        """Should add the remote idempotently."""
        assert compose_remote_add_command("beta", CUSTOM_REPO_URL) == [
            "flatpak",
            "remote-add",
            "--if-not-exists",
            "beta",
            CUSTOM_REPO_URL,
        ]


class TestRunCommand:
    """Tests for run_command function."""

    def test_streams_without_log(self):
        """Without a log path, output is not redirected."""
        with patch("flatpak_ci.builds.runner.subprocess.run") as mock_run:
            mock_run.return_value = completed(0)
            result = run_command(["flatpak", "--version"])

        assert result.success
        assert result.command == "flatpak --version"
        assert result.log_path is None
        kwargs = mock_run.call_args.kwargs
        assert "stdout" not in kwargs
        assert kwargs["check"] is False

    def test_writes_log_file(self, tmp_path):
        """With a log path, header and footer are written."""
        log_path = tmp_path / "logs" / "cmd.log"
        with patch("flatpak_ci.builds.runner.subprocess.run") as mock_run:
            mock_run.return_value = completed(3)
            result = run_command(["false"], log_path=log_path)

        assert not result.success
        assert result.exit_code == 3
        content = log_path.read_text()
        assert "# Command: false" in content
        assert "# Exit code: 3" in content
        assert mock_run.call_args.kwargs["stderr"] == subprocess.STDOUT

    def test_timeout(self):
        """Timeouts should raise CommandExecutionError."""
        with patch("flatpak_ci.builds.runner.subprocess.run") as mock_run:
            mock_run.side_effect = subprocess.TimeoutExpired("sleep", 60)
            with pytest.raises(CommandExecutionError) as exc_info:
                run_command(["sleep", "999"], timeout=60)

        assert exc_info.value.code == "timeout"
        assert exc_info.value.exit_code == -1

    def test_missing_executable(self):
        """Spawn failures should raise CommandExecutionError."""
        with patch("flatpak_ci.builds.runner.subprocess.run") as mock_run:
            mock_run.side_effect = FileNotFoundError("xvfb-run")
            with pytest.raises(CommandExecutionError) as exc_info:
                run_command(["xvfb-run"])

        assert exc_info.value.code == "execution_error"


class TestAddRemote:
    """Tests for add_remote function."""

    def test_default_remote_is_noop(self):
        """The Flathub URL should not trigger remote-add."""
        with patch("flatpak_ci.builds.runner.subprocess.run") as mock_run:
            assert add_remote("flathub", FLATHUB_REPOSITORY_URL) is None

        mock_run.assert_not_called()

    def test_literal_comparison(self):
        """Equivalent but different URLs are treated as custom."""
        with patch("flatpak_ci.builds.runner.subprocess.run") as mock_run:
            mock_run.return_value = completed(0)
            add_remote("flathub", FLATHUB_REPOSITORY_URL + "/")

        mock_run.assert_called_once()

    def test_custom_remote_added(self):
        """A custom URL should be registered."""
        with patch("flatpak_ci.builds.runner.subprocess.run") as mock_run:
            mock_run.return_value = completed(0)
            result = add_remote("beta", CUSTOM_REPO_URL)

        assert result is not None and result.success
        assert mock_run.call_args.args[0] == [
            "flatpak",
            "remote-add",
            "--if-not-exists",
            "beta",
            CUSTOM_REPO_URL,
        ]

    def test_failure_is_fatal(self):
        """A non-zero exit should raise RemoteRegistrationError."""
        with patch("flatpak_ci.builds.runner.subprocess.run") as mock_run:
            mock_run.return_value = completed(1)
            with pytest.raises(RemoteRegistrationError) as exc_info:
                add_remote("beta", CUSTOM_REPO_URL)

        assert exc_info.value.exit_code == 1
        assert exc_info.value.code == "remote_registration_failed"

    def test_missing_flatpak_is_fatal(self):
        """Not being able to run flatpak is fatal too."""
        with patch("flatpak_ci.builds.runner.subprocess.run") as mock_run:
            mock_run.side_effect = FileNotFoundError("flatpak")
            with pytest.raises(RemoteRegistrationError):
                add_remote("beta", CUSTOM_REPO_URL)


class TestRunBuilder:
    """Tests for run_builder function."""

    def test_success(self, tmp_path):
        """Should run flatpak-builder and log to the log dir."""
        with patch("flatpak_ci.builds.runner.subprocess.run") as mock_run:
            mock_run.return_value = completed(0)
            result = run_builder(
                Path("app.yml"),
                "flatpak_app",
                "repo",
                "flathub",
                ccache=True,
                log_dir=tmp_path,
            )

        assert result.success
        assert result.log_path == tmp_path / "flatpak-builder.log"
        assert "--ccache" in mock_run.call_args.args[0]

    def test_failure(self):
        """A non-zero exit should raise BuilderProcessError."""
        with patch("flatpak_ci.builds.runner.subprocess.run") as mock_run:
            mock_run.return_value = completed(2)
            with pytest.raises(BuilderProcessError) as exc_info:
                run_builder(Path("app.yml"), "flatpak_app", "repo", "flathub")

        assert exc_info.value.exit_code == 2
        assert exc_info.value.code == "builder_failed"


class TestBuildBundle:
    """Tests for build_bundle function."""

    def test_success(self):
        """Should run flatpak build-bundle."""
        with patch("flatpak_ci.builds.runner.subprocess.run") as mock_run:
            mock_run.return_value = completed(0)
            build_bundle(
                "repo", "app.flatpak", FLATHUB_REPOSITORY_URL, "org.example.App", "master"
            )

        assert mock_run.call_args.args[0][:2] == ["flatpak", "build-bundle"]

    def test_failure(self):
        """A non-zero exit should raise with the bundle error code."""
        with patch("flatpak_ci.builds.runner.subprocess.run") as mock_run:
            mock_run.return_value = completed(1)
            with pytest.raises(BuilderProcessError) as exc_info:
                build_bundle(
                    "repo", "app.flatpak", FLATHUB_REPOSITORY_URL, "org.example.App", "master"
                )

        assert exc_info.value.code == "bundle_failed"

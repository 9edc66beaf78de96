"""Manifest patching for sandboxed test runs.

When tests are enabled, flatpak-builder runs the last module's test suite
inside the build sandbox. The tests usually need a display (provided by
xvfb-run) and network access, which the sandbox denies by default.
"""

from __future__ import annotations

import copy
import logging

from flatpak_ci.errors import EmptyModuleListError, ManifestError
from flatpak_ci.manifest.io import Manifest

logger = logging.getLogger(__name__)

# Sandbox permissions granted to test processes
TEST_SANDBOX_ARGS = ["--socket=x11", "--share=network"]

# Display exported by xvfb-run --auto-servernum
TEST_DISPLAY = "0:0"


def patch_manifest(manifest: Manifest, run_tests: bool = False) -> Manifest:
    """Enable test execution in a manifest.

    With ``run_tests`` false the manifest is returned as is. Otherwise a
    patched copy is returned:

    - ``build-options.test-args`` gets the sandbox args prepended,
      keeping any existing args after them;
    - ``build-options.env.DISPLAY`` is set, other variables are kept;
    - the last module gets ``run-tests: true``.

    Args:
        manifest: Parsed manifest. Never mutated.
        run_tests: Whether tests should run.

    Returns:
        The original manifest, or a patched copy.

    Raises:
        EmptyModuleListError: If tests are enabled and there are no modules.
        ManifestError: If the last module is not an inline mapping.
    """
    if not run_tests:
        return manifest

    modules = manifest.get("modules") or []
    if not modules:
        raise EmptyModuleListError()

    patched = copy.deepcopy(manifest)

    build_options = dict(patched.get("build-options") or {})
    env = dict(build_options.get("env") or {})
    env["DISPLAY"] = TEST_DISPLAY
    test_args = [*TEST_SANDBOX_ARGS, *(build_options.get("test-args") or [])]

    build_options["test-args"] = test_args
    build_options["env"] = env
    patched["build-options"] = build_options

    last_module = patched["modules"][-1]
    if not isinstance(last_module, dict):
        # Modules may also be paths to external module files
        raise ManifestError(
            f"Cannot enable tests on module {last_module!r}: "
            "the last module must be declared inline"
        )
    last_module["run-tests"] = True

    logger.info("Enabled tests for module %s", last_module.get("name", "<unnamed>"))
    return patched


__all__ = ["TEST_DISPLAY", "TEST_SANDBOX_ARGS", "patch_manifest"]

"""Error definitions for flatpak_ci.

Every error carries a stable ``code`` so failures can be surfaced to CI
logs and JSON output without parsing messages. The taxonomy is flat:
the pipeline only distinguishes fatal from non-fatal errors.
"""

# Error code constants
UNSUPPORTED_MANIFEST_FORMAT = "unsupported_manifest_format"
INVALID_MANIFEST = "invalid_manifest"
EMPTY_MODULE_LIST = "empty_module_list"
REMOTE_REGISTRATION_FAILED = "remote_registration_failed"
CACHE_RESTORE_FAILED = "cache_restore_failed"
CACHE_SAVE_FAILED = "cache_save_failed"
BUILDER_FAILED = "builder_failed"
BUNDLE_FAILED = "bundle_failed"
ARTIFACT_UPLOAD_FAILED = "artifact_upload_failed"
INTERNAL_ERROR = "internal_error"


class FlatpakCIError(Exception):
    """Base error for flatpak_ci operations."""

    def __init__(self, message: str, code: str = INTERNAL_ERROR) -> None:
        super().__init__(message)
        self.code = code


class UnsupportedManifestFormatError(FlatpakCIError):
    """Raised when a manifest path has neither a JSON nor a YAML extension."""

    def __init__(self, path: object, code: str = UNSUPPORTED_MANIFEST_FORMAT) -> None:
        super().__init__(
            f"Unsupported manifest format for '{path}', "
            "please use a YAML or a JSON file",
            code=code,
        )
        self.path = path


class ManifestError(FlatpakCIError):
    """Raised when a manifest lacks data the pipeline needs."""

    def __init__(self, message: str, code: str = INVALID_MANIFEST) -> None:
        super().__init__(message, code=code)


class EmptyModuleListError(ManifestError):
    """Raised when tests are requested but the manifest has no modules."""

    def __init__(self, code: str = EMPTY_MODULE_LIST) -> None:
        super().__init__(
            "Cannot enable tests: the manifest does not declare any modules",
            code=code,
        )


class RemoteRegistrationError(FlatpakCIError):
    """Raised when the custom Flatpak remote cannot be added."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        code: str = REMOTE_REGISTRATION_FAILED,
    ) -> None:
        super().__init__(message, code=code)
        self.exit_code = exit_code


class CacheRestoreError(FlatpakCIError):
    """Raised by cache backends when a restore fails. Never fatal."""

    def __init__(self, message: str, code: str = CACHE_RESTORE_FAILED) -> None:
        super().__init__(message, code=code)


class CacheSaveError(FlatpakCIError):
    """Raised by cache backends when a save fails. Never fatal."""

    def __init__(self, message: str, code: str = CACHE_SAVE_FAILED) -> None:
        super().__init__(message, code=code)


class BuilderProcessError(FlatpakCIError):
    """Raised when flatpak-builder or flatpak build-bundle fails."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        code: str = BUILDER_FAILED,
        log_path: str | None = None,
    ) -> None:
        super().__init__(message, code=code)
        self.exit_code = exit_code
        self.log_path = log_path


class ArtifactUploadError(FlatpakCIError):
    """Raised when the bundle cannot be published."""

    def __init__(self, message: str, code: str = ARTIFACT_UPLOAD_FAILED) -> None:
        super().__init__(message, code=code)


__all__ = [
    "ARTIFACT_UPLOAD_FAILED",
    "BUILDER_FAILED",
    "BUNDLE_FAILED",
    "CACHE_RESTORE_FAILED",
    "CACHE_SAVE_FAILED",
    "EMPTY_MODULE_LIST",
    "INTERNAL_ERROR",
    "INVALID_MANIFEST",
    "REMOTE_REGISTRATION_FAILED",
    "UNSUPPORTED_MANIFEST_FORMAT",
    "ArtifactUploadError",
    "BuilderProcessError",
    "CacheRestoreError",
    "CacheSaveError",
    "EmptyModuleListError",
    "FlatpakCIError",
    "ManifestError",
    "RemoteRegistrationError",
    "UnsupportedManifestFormatError",
]

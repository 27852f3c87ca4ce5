"""Errors raised by the reconciliation pipeline."""


class SyncError(Exception):
    """Base class for pipeline errors."""


class ConfigurationError(SyncError):
    """Missing or invalid credentials/settings. Fatal before any work starts."""


class ProviderError(SyncError):
    """The external provider returned an error or a malformed payload."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MergeError(SyncError):
    """A team merge was refused or could not complete."""

"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class TidalCliError(Exception):
    """Base exception for all application-specific errors."""


class AuthError(TidalCliError):
    """
    Raised when no usable credential exists or a refresh was rejected.

    Fatal until the operator runs the device login again.
    """


class UnauthorizedError(AuthError):
    """Raised when the API rejects the bearer credential (HTTP 401)."""


class DeviceAuthorizationTimeout(AuthError):
    """Raised when the device login was not approved before it expired."""


class TransientNetworkError(TidalCliError):
    """Raised when a transport failure survives the single retry."""


class UpstreamRejected(TidalCliError):
    """Raised for a non-2xx response that is not an authorization failure."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class NotAvailable(TidalCliError):
    """Raised when a track cannot be streamed in the account's region."""


class StorageIOError(TidalCliError):
    """Raised when the content cache cannot write to its directory."""


class CapacityExceededError(StorageIOError):
    """Raised when a single object is larger than the whole cache capacity."""


class TranscodeError(TidalCliError):
    """Raised when ffmpeg is missing or fails to produce audio."""


class ConfigurationError(TidalCliError):
    """Raised for issues related to configuration loading or validation."""

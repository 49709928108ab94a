"""Errors raised while talking to Clover.

None of these are retried. The sync orchestrator turns them into
``SyncFailure`` results; the route layer maps them onto HTTP status codes.
"""

from typing import Any, Optional


class CloverSyncError(Exception):
    """Base class for all Clover sync errors."""


class ConfigurationError(CloverSyncError):
    """Raised when required Clover credentials are missing."""
    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(
            f"Clover API not properly configured. Missing: {', '.join(self.missing)}"
        )


class TransportError(CloverSyncError):
    """Raised on network failures and non-2xx responses."""
    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        self.status_code = status_code
        self.body = body
        detail = message
        if status_code is not None:
            detail = f"{message} (HTTP {status_code})"
        super().__init__(detail)


class SchemaError(CloverSyncError):
    """Raised when a 2xx response is missing a field we depend on."""
    def __init__(self, message: str, field: str, body: Any = None):
        self.field = field
        self.body = body
        super().__init__(message)

"""
Error types raised by the discovery, profile and messaging services.

Routers never catch these; the handlers registered in ``app.main`` render
them as ``{"success": false, "error": ...}`` with ``status_code``.
"""
from typing import Sequence


class DiscoveryError(Exception):
    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidOperation(DiscoveryError):
    """Rejected before any write (e.g. liking yourself)."""

    status_code = 400


class NotFound(DiscoveryError):
    status_code = 404


class Conflict(DiscoveryError):
    """A uniqueness violation that is not one of the absorbed duplicate-key cases."""

    status_code = 409


class StorageUnavailable(DiscoveryError):
    """The external object store could not be reached."""

    status_code = 502


class PartialCompletion(DiscoveryError):
    """A best-effort multi-step operation failed after earlier steps committed."""

    status_code = 500

    def __init__(self, message: str, completed_steps: Sequence[str] = ()):
        super().__init__(message)
        self.completed_steps = list(completed_steps)

"""Application-level exception types.

Convention:
- ``InternalServerError``: for errors whose details must never reach clients
  (illegal sync state transitions, config validation, etc.). The global
  handler logs the full message at ERROR and returns a generic
  "Internal server error" (500) to the client.
- ``IdeError`` subclasses: for domain failures that are safe to forward to
  clients. Each carries the HTTP status the global handler responds with.
- ``ValueError``: for input validation errors (bad names, missing content).
  The global ``ValueError`` handler returns ``str(exc)`` as a 422 message.
"""

from __future__ import annotations


class InternalServerError(Exception):
    """Raised for internal errors whose details must not be exposed to clients.

    The global exception handler in ``backend/main.py`` catches this, logs
    the full message server-side, and returns HTTP 500 with a generic
    ``"Internal server error"`` message.
    """


class IdeError(Exception):
    """Base class for domain errors surfaced to API clients."""

    status_code = 500
    code: str | None = None

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(IdeError):
    """Project or file is absent, or not owned by the caller."""

    status_code = 404


class InvalidOperationError(IdeError):
    """Operation does not apply to the target (e.g. reading a folder's content)."""

    status_code = 400


class PermissionDeniedError(IdeError):
    """Write attempted on a read-only file."""

    status_code = 403


class ConflictError(IdeError):
    """Duplicate path or project name."""

    status_code = 409


class AuthRequiredError(IdeError):
    """No remote-store credential is stored for the user."""

    status_code = 401
    code = "DRIVE_AUTH_REQUIRED"


class AuthExpiredError(IdeError):
    """Remote-store credential expired and could not be refreshed."""

    status_code = 401
    code = "DRIVE_AUTH_EXPIRED"


class RemoteUnavailableError(IdeError):
    """Transient failure talking to the remote store."""

    status_code = 502

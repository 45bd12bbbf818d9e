"""Service-level exceptions.

Services raise these; the handlers registered in ``cloudops.main`` turn them
into the ``{"success": false, "message", "error"}`` response envelope.
"""

from fastapi import status


class CloudOpsError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Request failed"

    def __init__(self, error: str, message: str | None = None) -> None:
        super().__init__(error)
        self.error = error
        if message is not None:
            self.message = message


class UpstreamUnavailableError(CloudOpsError):
    """Raised when the inventory provider or actuator cannot be reached."""

    message = "Upstream service unavailable"


class ActuationFailedError(UpstreamUnavailableError):
    """Raised when the actuator answered but did not perform the operation."""

    message = "Cloud operation failed"


class NotFoundError(CloudOpsError):
    """Raised when a referenced record does not exist for the user."""

    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class InvalidRequestError(CloudOpsError):
    """Raised when required input is missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid request"


class PersistenceError(CloudOpsError):
    """Raised when a database read or write fails."""

    message = "Database operation failed"

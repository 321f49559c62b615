"""Error taxonomy for the session and transfer lifecycle."""


class SendEasyError(Exception):
    """Base class for all lifecycle errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SendEasyError):
    """Missing or malformed required input. Never retried."""

    status_code = 400


class SessionInvalid(SendEasyError):
    """Password not found, session inactive or expired."""

    status_code = 401


class NotFound(SendEasyError):
    """Operation targets a block or item that does not exist."""

    status_code = 404


class StorageFailure(SendEasyError):
    """Underlying store or file adapter failed. The caller may retry."""

    status_code = 503


class PasswordCollision(StorageFailure):
    """An active session already holds the generated password."""


class PayloadTooLarge(SendEasyError):
    """An uploaded file is over the per-file size limit."""

    status_code = 413

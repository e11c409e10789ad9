"""Service errors shared by the API, the CLI and the referral service.

Each error carries a machine-readable ``status`` (the discriminator clients
key their messages off) and the HTTP status code the API answers with.
"""


class DaroodError(Exception):
    """Base class for errors surfaced to callers."""

    status = "internal"
    http_status = 500

    def __init__(self, message: str | None = None):
        self.message = message or self.status
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"status": self.status, "message": self.message}


class UnauthenticatedError(DaroodError):
    """Raised when the caller has no authenticated identity."""

    status = "unauthenticated"
    http_status = 401


class InvalidArgumentError(DaroodError):
    """Raised for malformed or missing request arguments."""

    status = "invalid-argument"
    http_status = 400


class NotFoundError(DaroodError):
    """Raised when a referenced record does not exist."""

    status = "not-found"
    http_status = 404


class FailedPreconditionError(DaroodError):
    """Raised when the system is not in the state the operation requires."""

    status = "failed-precondition"
    http_status = 412


class InternalError(DaroodError):
    """Raised for unexpected failures. The message never carries internals."""

    status = "internal"
    http_status = 500

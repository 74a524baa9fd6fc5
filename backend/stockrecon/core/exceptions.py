"""Domain exceptions raised by services and translated to HTTP responses in main."""

from typing import Optional


class OperationError(Exception):
    """Base class for business-rule violations surfaced as 4xx responses."""

    status_code = 400
    default_code: Optional[str] = None

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)

    def to_dict(self) -> dict:
        body = {"detail": self.message}
        if self.code:
            body["code"] = self.code
        return body


class ValidationFailed(OperationError):
    """A required field is missing or malformed."""

    default_code = "VALIDATION_FAILED"


class ControlGateError(OperationError):
    """A configurable operational control blocks the action until a step is done.

    The code tells the caller which step to prompt for (``COUNT_REQUIRED``,
    ``DECLARATION_REQUIRED``).
    """


class ConflictError(OperationError):
    """The action conflicts with existing state (open shift, reviewed reconciliation)."""

    status_code = 409
    default_code = "CONFLICT"


class NotFoundError(OperationError):
    status_code = 404
    default_code = "NOT_FOUND"


class PosterAPIError(Exception):
    """Raised when the PosterPOS API responds with an error or is unreachable."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)

"""Domain error hierarchy shared by every feature package.

Each error carries a human-readable ``message`` and a stable ``code``.
The base category decides the HTTP status in ``handle_domain_error``:

- NotFoundError -> 404
- ForbiddenError -> 403
- InvalidStateError -> 409
- PayloadValidationError -> 422
- ConcurrencyConflictError -> 409
"""

from fastapi import HTTPException, status


class DomainError(Exception):
    """Base domain error."""

    def __init__(self, message: str, code: str = "domain_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(DomainError):
    """Referenced entity does not exist."""

    def __init__(self, message: str = "Resource not found", code: str = "not_found"):
        super().__init__(message, code)


class ForbiddenError(DomainError):
    """Caller may not perform the operation."""

    def __init__(self, message: str = "Forbidden", code: str = "forbidden"):
        super().__init__(message, code)


class InvalidStateError(DomainError):
    """Operation is not valid for the entity's current state."""

    def __init__(self, message: str, code: str = "invalid_state"):
        super().__init__(message, code)


class PayloadValidationError(DomainError):
    """Request payload is malformed for the target entity."""

    def __init__(self, message: str, code: str = "invalid_payload"):
        super().__init__(message, code)


class ConcurrencyConflictError(DomainError):
    """Optimistic write kept losing to concurrent writers."""

    def __init__(
        self,
        message: str = "The resource was modified concurrently, please retry",
        code: str = "write_conflict",
    ):
        super().__init__(message, code)


def handle_domain_error(error: DomainError) -> HTTPException:
    """Convert domain errors to HTTP exceptions.

    Args:
        error: Domain error

    Returns:
        HTTPException with appropriate status code
    """
    if isinstance(error, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, ForbiddenError):
        status_code = status.HTTP_403_FORBIDDEN
    elif isinstance(error, InvalidStateError | ConcurrencyConflictError):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(error, PayloadValidationError):
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    return HTTPException(status_code=status_code, detail=error.message)

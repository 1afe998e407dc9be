# Core infrastructure
from src.core.context import (
    RequestContext,
    clear_context,
    get_context,
    get_request_id,
    get_user_id,
    set_request_id,
    set_user_id,
)
from src.core.errors import (
    ConcurrencyConflictError,
    DomainError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    PayloadValidationError,
    handle_domain_error,
)
from src.core.logging import configure_structlog, get_logger


__all__ = [
    "ConcurrencyConflictError",
    "DomainError",
    "ForbiddenError",
    "InvalidStateError",
    "NotFoundError",
    "PayloadValidationError",
    "RequestContext",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_user_id",
    "handle_domain_error",
    "set_request_id",
    "set_user_id",
]

"""Request and job context using contextvars.

Each HTTP request gets a request ID (and, once authenticated, a user ID)
that every log line emitted during the request picks up. Side-effect jobs
run later on the dispatcher's worker task; they re-enter the context of
the request that queued them plus their own job name, so a failed email
can be traced back to the submission that caused it.
"""

from contextvars import ContextVar, Token
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
job_var: ContextVar[str | None] = ContextVar("job", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context, generating one if missing."""
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_user_id() -> str | None:
    """Get the current user ID."""
    return user_id_var.get()


def set_user_id(user_id: str | UUID | None) -> None:
    """Set the authenticated user's ID for the current context."""
    user_id_var.set(str(user_id) if user_id is not None else None)


def get_context() -> dict[str, Any]:
    """Get the non-empty context values as a dictionary."""
    context: dict[str, Any] = {}

    request_id = request_id_var.get()
    if request_id:
        context["request_id"] = request_id

    user_id = user_id_var.get()
    if user_id:
        context["user_id"] = user_id

    job = job_var.get()
    if job:
        context["job"] = job

    return context


def clear_context() -> None:
    """Reset all context variables at the end of a request."""
    request_id_var.set("")
    user_id_var.set(None)
    job_var.set(None)


class RequestContext:
    """Context manager that sets context values and restores them on exit.

    Usage:
        with RequestContext(request_id=captured["request_id"], job="certificate_email"):
            await job.run()  # logs carry request_id and job
    """

    def __init__(
        self,
        request_id: str | None = None,
        user_id: str | UUID | None = None,
        job: str | None = None,
    ) -> None:
        self.request_id = request_id
        self.user_id = user_id
        self.job = job
        self._tokens: list[tuple[ContextVar, Token]] = []

    def __enter__(self) -> "RequestContext":
        self._tokens.append(
            (request_id_var, request_id_var.set(self.request_id or generate_request_id()))
        )
        if self.user_id is not None:
            self._tokens.append((user_id_var, user_id_var.set(str(self.user_id))))
        if self.job is not None:
            self._tokens.append((job_var, job_var.set(self.job)))
        return self

    def __exit__(self, *_: object) -> None:
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()

"""Per-request context utilities."""
from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_ctx_var: ContextVar[int | None] = ContextVar("user_id", default=None)


def get_request_id() -> str | None:
    """Return the current request id if available."""
    return request_id_ctx_var.get()


def get_user_id() -> int | None:
    """Return the user the current unit of work acts for, if known."""
    return user_id_ctx_var.get()


@contextmanager
def bind_user(user_id: int) -> Iterator[None]:
    """Tag log records emitted inside the block with ``user_id``."""
    token = user_id_ctx_var.set(user_id)
    try:
        yield
    finally:
        user_id_ctx_var.reset(token)

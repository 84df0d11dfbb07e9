"""Ambient request context: correlation ID plus the actor and client metadata.

The audit log reads actor/ip/user-agent from here rather than from the
entity being written. Values are set once per request by the HTTP
middleware and are visible to every call made while serving it.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass

CORRELATION_ID_HEADER = "X-Correlation-ID"
ACTOR_ID_HEADER = "X-Actor-Id"

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


@dataclass(frozen=True)
class RequestContext:
    """Who is acting, and from where."""

    actor_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None


_EMPTY = RequestContext()
request_context_var: ContextVar[RequestContext] = ContextVar(
    "request_context", default=_EMPTY
)


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def get_correlation_id() -> str:
    """Get current correlation ID from context."""
    return correlation_id_var.get()


def set_correlation_id(cid: str) -> Token[str]:
    """Set correlation ID in context."""
    return correlation_id_var.set(cid)


def reset_correlation_id(token: Token[str]) -> None:
    """Reset correlation ID to previous value."""
    correlation_id_var.reset(token)


def get_request_context() -> RequestContext:
    """Current actor/client metadata (empty outside a request)."""
    return request_context_var.get()


def set_request_context(ctx: RequestContext) -> Token[RequestContext]:
    return request_context_var.set(ctx)


def reset_request_context(token: Token[RequestContext]) -> None:
    request_context_var.reset(token)

"""FastAPI application factory with role-based route mounting."""

import os
from typing import Literal

from fastapi import FastAPI, Request, Response

from hotelcore.observability.context import (
    ACTOR_ID_HEADER,
    CORRELATION_ID_HEADER,
    RequestContext,
    generate_correlation_id,
    reset_correlation_id,
    reset_request_context,
    set_correlation_id,
    set_request_context,
)

from .routers import public, worker

AppRole = Literal["public", "worker"]


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


def create_app(role: AppRole | None = None) -> FastAPI:
    """Create FastAPI app with routes based on APP_ROLE.

    Args:
        role: Explicit role override. If None, reads from APP_ROLE env var.
              Defaults to "public" if env var is not set.

    Returns:
        Configured FastAPI application.
    """
    if role is None:
        role = os.environ.get("APP_ROLE", "public")  # type: ignore[assignment]

    app = FastAPI(
        title="hotelcore",
        docs_url=None,
        redoc_url=None,
    )

    # Correlation ID + actor/client context for logs and the audit log
    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next) -> Response:
        cid = request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        cid_token = set_correlation_id(cid)
        ctx_token = set_request_context(
            RequestContext(
                actor_id=request.headers.get(ACTOR_ID_HEADER) or None,
                ip_address=_client_ip(request),
                user_agent=request.headers.get("User-Agent") or None,
            )
        )
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            reset_request_context(ctx_token)
            reset_correlation_id(cid_token)

    # Mount public routes (always)
    app.include_router(public.router)

    # Mount worker routes only for worker role
    if role == "worker":
        app.include_router(worker.router)

    return app

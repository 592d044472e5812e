"""Custom FastAPI middleware."""
from __future__ import annotations

import logging
from time import perf_counter
from typing import Callable
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings
from app.core.context import planner_user_ctx_var, request_id_ctx_var

logger = logging.getLogger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind request id + planner user to the request and echo the id back."""

    async def dispatch(self, request: Request, call_next: Callable[[Request], Response]) -> Response:  # type: ignore[override]
        request_id = request.headers.get("X-Request-Id") or str(uuid4())
        planner_user = request.headers.get("X-Planner-User") or settings.planner_user_id
        request.state.request_id = request_id
        request.state.planner_user = planner_user
        request_token = request_id_ctx_var.set(request_id)
        user_token = planner_user_ctx_var.set(planner_user)
        start = perf_counter()

        try:
            response = await call_next(request)
        finally:
            planner_user_ctx_var.reset(user_token)
            request_id_ctx_var.reset(request_token)

        elapsed_ms = (perf_counter() - start) * 1000
        logger.debug("%s %s -> %s in %.1fms", request.method, request.url.path, response.status_code, elapsed_ms)
        response.headers["X-Request-Id"] = request_id
        return response

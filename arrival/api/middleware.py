"""
Middleware for the health proxy.
"""

from __future__ import annotations

import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from arrival.config import settings
from arrival.logging_config import LogContextManager, get_logger

logger = get_logger(__name__)


def setup_cors(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_credentials=False,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
        max_age=600,
    )


def setup_request_context(app: FastAPI) -> None:
    """Tag every log line with a request id and echo it back in ``X-Request-ID``."""

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        with LogContextManager(request_id=request_id, endpoint=request.url.path):
            response = await call_next(request)
            logger.info(
                "request_completed",
                extra={"method": request.method, "path": request.url.path, "status_code": response.status_code},
            )
        response.headers["X-Request-ID"] = request_id
        return response

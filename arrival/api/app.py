"""
FastAPI application factory for the backend health proxy.

``GET /api/backend-health`` forwards to the backend's ``/api/health`` so a
browser can check the backend without talking to it cross-origin.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from arrival import __version__
from arrival.api.middleware import setup_cors, setup_request_context
from arrival.api.models import HealthResponse, UpstreamErrorResponse
from arrival.client import BackendClient
from arrival.config import settings
from arrival.exceptions import ArrivalError, BackendHTTPError, exception_to_http_status
from arrival.logging_config import get_logger

logger = get_logger(__name__)

NO_STORE = {"Cache-Control": "no-store"}


def _upstream_error(status_code: int, message: str) -> JSONResponse:
    body = UpstreamErrorResponse(message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=NO_STORE)


def create_app(
    *,
    client_factory: Callable[[], BackendClient] | None = None,
    health_url: str | None = None,
) -> FastAPI:
    """
    Build the proxy app.

    ``health_url`` overrides the upstream target; it defaults to
    ``settings.backend_health_url`` and then to the client's own
    ``<base_url>/api/health``.
    """
    app = FastAPI(
        title="Arrival Console Health Proxy",
        version=__version__,
        docs_url="/docs",
        redoc_url=None,
    )

    setup_cors(app)
    setup_request_context(app)

    app.state.client_factory = client_factory or BackendClient
    app.state.health_url = settings.backend_health_url if health_url is None else health_url

    @app.get("/health", response_model=HealthResponse)
    def health(response: Response) -> HealthResponse:
        response.headers["Cache-Control"] = "no-store"
        return HealthResponse(ok=True)

    @app.get(
        "/api/backend-health",
        responses={502: {"model": UpstreamErrorResponse}, 500: {"model": UpstreamErrorResponse}},
    )
    def backend_health(request: Request) -> JSONResponse:
        try:
            client = request.app.state.client_factory()
            data = client.check_health(request.app.state.health_url or None)
        except BackendHTTPError as exc:
            logger.warning("Upstream health check returned %s", exc.status_code)
            return _upstream_error(502, f"Upstream error: {exc.status_code}")
        except ArrivalError as exc:
            logger.error("Health proxy failed: %s", exc)
            return _upstream_error(500, str(exc))
        return JSONResponse(content=data, headers=NO_STORE)

    @app.exception_handler(ArrivalError)
    def _arrival_error(request: Request, exc: ArrivalError) -> JSONResponse:
        return JSONResponse(status_code=exception_to_http_status(exc), content=exc.to_dict(), headers=NO_STORE)

    return app


app = create_app()

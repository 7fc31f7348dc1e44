"""Starlette ASGI application for the FlightSurety HTTP query surface.

Serves the flight list and status-request trigger used by the dapp, plus
operational status and health checks. The oracle responder runs inside the
same process and is started and stopped by the application lifespan.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.types import ASGIApp, Receive, Scope, Send

from ..core.exceptions import FlightSuretyException
from ..core.logging import correlation_context
from ..ledger.machine import LedgerStateMachine
from ..oracle.responder import OracleResponder
from .bootstrap import bootstrap_ledger, create_ledger, create_responder
from .config import ServerSettings, get_settings
from .errors import exception_response, internal_error, missing_field_error

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = b"x-request-id"


class CorrelationIdMiddleware:
    """Runs each HTTP request inside a correlation context.

    Uses the caller's X-Request-ID header when present.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        incoming = dict(scope.get("headers") or []).get(REQUEST_ID_HEADER)
        with correlation_context(incoming.decode("latin-1") if incoming else None):
            await self.app(scope, receive, send)


def _ledger(request: Request) -> LedgerStateMachine:
    return request.app.state.ledger


# =============================================================================
# ENDPOINTS
# =============================================================================


async def registered_flights_endpoint(request: Request) -> JSONResponse:
    """Flight codes in registration order."""
    return JSONResponse(_ledger(request).registered_flights())


async def fetch_flight_endpoint(request: Request) -> JSONResponse:
    """Open a status request for ``?flight=<code>`` and return its key."""
    flight = request.query_params.get("flight", "").strip()
    if not flight:
        return missing_field_error("flight")

    try:
        key = await run_in_threadpool(_ledger(request).request_flight_status, flight)
    except FlightSuretyException as e:
        logger.info(f"Status request for {flight} rejected: {e.message}")
        return exception_response(e)
    except Exception:  # Intentionally broad: report with a request id instead of a bare 500
        return internal_error("Failed to request flight status")

    return JSONResponse(key.to_dict())


async def is_operational_endpoint(request: Request) -> JSONResponse:
    """Whether the ledger accepts mutating operations."""
    return JSONResponse({"operational": _ledger(request).is_operational()})


async def health_endpoint(request: Request) -> JSONResponse:
    """Health check endpoint."""
    settings: ServerSettings = request.app.state.settings
    ledger = _ledger(request)
    responder: OracleResponder | None = request.app.state.responder

    health_data: dict[str, Any] = {
        "status": "healthy",
        "server": settings.server_name,
        "version": settings.server_version,
        "operational": ledger.is_operational(),
        "flights": ledger.get_number_of_flights(),
        "oracles": len(responder.identities) if responder else 0,
    }

    if responder is not None:
        health_data["responder"] = responder.get_stats()
        if settings.responder_enabled and not responder.running:
            health_data["status"] = "degraded"
    if not health_data["operational"]:
        health_data["status"] = "degraded"

    status_code = 200 if health_data["status"] == "healthy" else 503
    return JSONResponse(health_data, status_code=status_code)


# =============================================================================
# APPLICATION
# =============================================================================


@asynccontextmanager
async def lifespan(app: Starlette):
    """Application lifespan handler."""
    settings: ServerSettings = app.state.settings
    ledger: LedgerStateMachine = app.state.ledger
    logger.info(f"Starting FlightSurety server on {settings.host}:{settings.port}")

    bootstrap_ledger(ledger, settings)

    responder: OracleResponder | None = None
    if settings.responder_enabled:
        responder = app.state.responder or create_responder(ledger, settings)
        app.state.responder = responder
        await responder.start()
        responder.start_background()
        logger.info(f"Oracle responder running with {len(responder.identities)} identities")

    try:
        yield
    finally:
        if responder is not None:
            await responder.stop()
        logger.info("FlightSurety server shutting down")


def create_app(
    ledger: LedgerStateMachine | None = None,
    responder: OracleResponder | None = None,
    settings: ServerSettings | None = None,
) -> Starlette:
    """Create the Starlette ASGI application."""
    settings = settings or get_settings()

    routes = [
        # Dapp endpoints
        Route("/api/getRegisteredFlights", registered_flights_endpoint, methods=["GET"]),
        Route("/api/fetchFlight", fetch_flight_endpoint, methods=["GET"]),
        Route("/api/isOperational", is_operational_endpoint, methods=["GET"]),
        # Versioned API endpoints
        Route("/api/v1/health", health_endpoint, methods=["GET"]),
    ]

    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=settings.allowed_origins,
            allow_methods=["GET", "OPTIONS"],
            allow_headers=["Content-Type", "X-Request-ID"],
        ),
        Middleware(CorrelationIdMiddleware),
    ]

    app = Starlette(
        routes=routes,
        middleware=middleware,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.ledger = ledger or create_ledger(settings)
    app.state.responder = responder
    return app


# Global app instance for uvicorn
app = create_app()


def run(settings: ServerSettings | None = None) -> None:
    """Run the server using uvicorn."""
    import uvicorn

    settings = settings or get_settings()

    logger.info(f"Starting FlightSurety HTTP server on {settings.host}:{settings.port}")

    uvicorn.run(
        create_app(settings=settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()

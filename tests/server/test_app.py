"""Tests for the Starlette application."""

from __future__ import annotations

import time

import pytest
from starlette.applications import Starlette
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from flightsurety.core.logging import get_correlation_id
from flightsurety.ledger import LedgerStateMachine, RequestKey
from flightsurety.server.app import CorrelationIdMiddleware, create_app
from flightsurety.server.config import ServerSettings

BOOTSTRAP_FLIGHTS = ["DL1937", "EI5321", "EY8252"]


@pytest.fixture
def settings(clean_env):
    return ServerSettings(genesis_airline="airline-1", responder_enabled=False, random_seed=1)


@pytest.fixture
def client(settings):
    app = create_app(settings=settings)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def ledger(client) -> LedgerStateMachine:
    return client.app.state.ledger


# =============================================================================
# Dapp endpoints
# =============================================================================


class TestRegisteredFlights:
    def test_lists_bootstrap_flights(self, client):
        response = client.get("/api/getRegisteredFlights")

        assert response.status_code == 200
        assert response.json() == BOOTSTRAP_FLIGHTS

    def test_includes_new_flights_in_order(self, client, ledger):
        ledger.register_flight("airline-1", "AA100", 1)
        assert client.get("/api/getRegisteredFlights").json() == BOOTSTRAP_FLIGHTS + ["AA100"]

    def test_any_origin_allowed(self, client):
        response = client.get("/api/getRegisteredFlights", headers={"Origin": "http://localhost:8000"})
        assert response.headers["access-control-allow-origin"] == "*"


class TestFetchFlight:
    def test_opens_status_request(self, client, ledger):
        response = client.get("/api/fetchFlight", params={"flight": "DL1937"})

        assert response.status_code == 200
        data = response.json()
        assert set(data) == {"index", "airline", "flight", "timestamp"}
        assert data["flight"] == "DL1937"
        assert data["airline"] == "airline-1"
        assert 0 <= data["index"] < 10
        assert ledger.get_status_request(RequestKey.from_dict(data)).is_open

    def test_missing_flight(self, client):
        response = client.get("/api/fetchFlight")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_MISSING_FIELD"

    def test_unknown_flight(self, client):
        response = client.get("/api/fetchFlight", params={"flight": "XX1"})

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "error": {"code": "NOT_FOUND_FLIGHT", "message": "Flight XX1 not found"},
        }

    def test_suspended_ledger(self, client, ledger):
        ledger.set_operating_status("owner", False)

        response = client.get("/api/fetchFlight", params={"flight": "DL1937"})

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "LEDGER_SUSPENDED"


class TestIsOperational:
    def test_reports_status(self, client, ledger):
        assert client.get("/api/isOperational").json() == {"operational": True}
        ledger.set_operating_status("owner", False)
        assert client.get("/api/isOperational").json() == {"operational": False}


# =============================================================================
# Health
# =============================================================================


class TestHealth:
    def test_healthy(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["server"] == "flightsurety"
        assert data["operational"] is True
        assert data["flights"] == 3
        assert data["oracles"] == 0

    def test_degraded_when_suspended(self, client, ledger):
        ledger.set_operating_status("owner", False)

        response = client.get("/api/v1/health")

        assert response.status_code == 503
        assert response.json()["status"] == "degraded"


# =============================================================================
# Lifespan
# =============================================================================


class TestLifespan:
    def test_uses_injected_ledger(self, settings):
        ledger = LedgerStateMachine(owner="owner", genesis_airline="airline-1")
        app = create_app(ledger=ledger, settings=settings)

        with TestClient(app):
            assert ledger.registered_flights() == BOOTSTRAP_FLIGHTS

    def test_runs_responder(self, clean_env):
        settings = ServerSettings(genesis_airline="airline-1", oracle_count=3, random_seed=1)
        app = create_app(settings=settings)

        with TestClient(app) as client:
            health = client.get("/api/v1/health").json()
            assert health["status"] == "healthy"
            assert health["oracles"] == 3

            client.get("/api/fetchFlight", params={"flight": "EI5321"})
            responder = app.state.responder
            deadline = time.monotonic() + 2
            while responder.get_stats()["notifications"] < 1 and time.monotonic() < deadline:
                time.sleep(0.01)
            assert responder.get_stats()["notifications"] == 1

        assert not responder.running


# =============================================================================
# Middleware
# =============================================================================


class TestCorrelationIdMiddleware:
    @pytest.fixture
    def echo_client(self):
        async def echo(request):
            return JSONResponse({"correlation_id": get_correlation_id()})

        app = Starlette(routes=[Route("/", echo)])
        return TestClient(CorrelationIdMiddleware(app))

    def test_uses_request_id_header(self, echo_client):
        response = echo_client.get("/", headers={"X-Request-ID": "req-123"})
        assert response.json()["correlation_id"] == "req-123"

    def test_generates_id(self, echo_client):
        assert echo_client.get("/").json()["correlation_id"]

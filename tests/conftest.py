"""Global test fixtures for the FlightSurety test suite."""

from __future__ import annotations

import itertools
import os

import pytest

from flightsurety.core.config import clear_config_cache
from flightsurety.ledger import AIRLINE_MIN_STAKE, LedgerStateMachine, ScriptedRandomSource, SeededRandomSource
from flightsurety.server.config import clear_settings_cache

START_TIME = 1_700_000_000


# ============================================================================
# Environment
# ============================================================================


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all FLIGHTSURETY_ environment variables."""
    for key in list(os.environ.keys()):
        if key.startswith("FLIGHTSURETY_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def reset_settings():
    """Reset cached settings between tests."""
    clear_config_cache()
    clear_settings_cache()
    yield
    clear_config_cache()
    clear_settings_cache()


# ============================================================================
# Ledger
# ============================================================================


@pytest.fixture
def clock():
    """Strictly increasing ledger clock starting at a fixed timestamp."""
    return itertools.count(START_TIME).__next__


@pytest.fixture
def make_ledger(clock):
    """Factory for ledgers owned by "owner" with "airline-1" as genesis airline.

    ``random_values`` scripts every index draw in order; otherwise a seeded
    source is used.
    """

    def _make(random_values=None, seed=7, **kwargs):
        if random_values is not None:
            source = ScriptedRandomSource(random_values)
        else:
            source = SeededRandomSource(seed)
        return LedgerStateMachine(
            owner="owner",
            genesis_airline="airline-1",
            random_source=source,
            clock=clock,
            **kwargs,
        )

    return _make


@pytest.fixture
def ledger(make_ledger):
    """Fresh ledger with an admitted but unfunded genesis airline."""
    return make_ledger()


@pytest.fixture
def fund_airlines():
    """Make airline-1..airline-N operational.

    Each new airline collects votes from the operational airlines in order
    until it is admitted, then deposits the minimum stake.
    """

    def _fund(ledger, count):
        addresses = [f"airline-{i}" for i in range(1, count + 1)]
        for address in addresses:
            if not ledger.is_airline_registered(address):
                voters = [a for a in addresses if ledger.is_airline_operational(a)]
                for voter in voters:
                    if ledger.register_airline(address, voter).admitted:
                        break
            ledger.fund_airline(address, AIRLINE_MIN_STAKE)
        return addresses

    return _fund


@pytest.fixture
def flight_ledger(ledger, fund_airlines):
    """Ledger with a funded genesis airline and flight DL1937 registered."""
    fund_airlines(ledger, 1)
    ledger.register_flight("airline-1", "DL1937", START_TIME)
    return ledger

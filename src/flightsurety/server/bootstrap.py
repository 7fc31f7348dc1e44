"""Start-up sequence: create the ledger, fund the genesis airline, seed flights."""

from __future__ import annotations

import logging
import time

from ..core.exceptions import ConfigException
from ..ledger.machine import LedgerStateMachine
from ..ledger.policy import AIRLINE_MIN_STAKE
from ..ledger.randomness import create_random_source
from ..oracle.gateway import LocalLedgerGateway
from ..oracle.responder import OracleResponder, ResponderConfig
from .config import ServerSettings

logger = logging.getLogger(__name__)


def create_ledger(settings: ServerSettings) -> LedgerStateMachine:
    """Create an empty ledger owned by the configured administrator."""
    missing = [
        var
        for var, value in (
            ("FLIGHTSURETY_OWNER_ADDRESS", settings.owner_address),
            ("FLIGHTSURETY_GENESIS_AIRLINE", settings.genesis_airline),
        )
        if not value
    ]
    if missing:
        raise ConfigException("Ledger identities are not configured", missing_vars=missing)

    return LedgerStateMachine(
        owner=settings.owner_address,
        genesis_airline=settings.genesis_airline,
        random_source=create_random_source(settings.random_seed),
    )


def bootstrap_ledger(ledger: LedgerStateMachine, settings: ServerSettings) -> list[str]:
    """Fund the genesis airline and register the initial flights.

    Steps already applied to ``ledger`` are skipped, so restarting against a
    populated ledger is harmless.

    Returns:
        Codes of the flights registered by this call.
    """
    airline = ledger.genesis_airline or settings.genesis_airline
    if not ledger.is_airline_operational(airline):
        ledger.fund_airline(airline, AIRLINE_MIN_STAKE)
        logger.info(f"Funded genesis airline {airline}")

    existing = set(ledger.registered_flights())
    now = int(time.time())
    registered = []
    for code in settings.bootstrap_flights:
        if code in existing:
            continue
        ledger.register_flight(airline, code, now)
        registered.append(code)

    if registered:
        logger.info(f"Registered flights {', '.join(registered)} for {airline}")
    return registered


def create_responder(ledger: LedgerStateMachine, settings: ServerSettings) -> OracleResponder:
    """Oracle responder voting through an in-process gateway."""
    return OracleResponder(LocalLedgerGateway(ledger), ResponderConfig.from_settings(settings))

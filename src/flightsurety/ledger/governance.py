"""Airline governance: multi-party admission, funding and flight registration.

Admission rules:
- The proposer must be an operational airline.
- Fewer than AIRLINES_WITHOUT_CONSENSUS operational airlines: the first
  vote admits the candidate.
- Otherwise the candidate needs votes from required_votes(operational_count)
  distinct operational airlines. The threshold is recomputed at every vote, so
  funding new airlines between votes raises it. Repeat votes never count twice.

An admitted airline cannot vote, be counted for quorum or register flights
until it deposits AIRLINE_MIN_STAKE.
"""

from __future__ import annotations

import logging

from ..core.exceptions import AlreadyExists, InsufficientStake, NotFoundError, Unauthorized, ValidationException
from . import events
from .models import AdmissionOutcome, AdmissionReceipt, Airline, Flight
from .operations import FundAirline, RegisterAirline, RegisterFlight
from .policy import AIRLINE_MIN_STAKE, admission_threshold
from .state import LedgerState, TransitionContext

logger = logging.getLogger(__name__)


def register_genesis_airline(state: LedgerState, address: str) -> Airline:
    """Admit the first airline when the ledger is created. It still has to fund."""
    airline = Airline(address=address, registered=True, required_votes=0)
    state.airlines[address] = airline
    return airline


def register_airline(state: LedgerState, ctx: TransitionContext, op: RegisterAirline) -> AdmissionReceipt:
    state.require_operational_airline(op.proposer)

    candidate = state.airlines.get(op.candidate)
    if candidate is not None and candidate.registered:
        raise AlreadyExists(f"Airline already registered: {op.candidate}", existing_id=op.candidate)
    if candidate is None:
        candidate = Airline(address=op.candidate)
        state.airlines[op.candidate] = candidate

    operational_count = state.operational_airline_count()
    candidate.required_votes = admission_threshold(operational_count)

    if op.proposer in candidate.voters:
        logger.debug(f"Ignoring repeat vote by {op.proposer} for {op.candidate}")
    else:
        candidate.voters.append(op.proposer)
        ctx.emit(
            events.AIRLINE_VOTED,
            candidate=op.candidate,
            voter=op.proposer,
            votes=len(candidate.voters),
            required=candidate.required_votes,
        )

    votes = len(candidate.voters)
    if votes < candidate.required_votes:
        logger.info(f"Airline {op.candidate} has {votes}/{candidate.required_votes} votes")
        return AdmissionReceipt(op.candidate, AdmissionOutcome.QUORUM_NOT_REACHED, votes, candidate.required_votes)

    candidate.registered = True
    ctx.emit(events.AIRLINE_REGISTERED, airline=op.candidate, votes=votes)
    logger.info(f"Airline {op.candidate} admitted with {votes}/{candidate.required_votes} votes")
    return AdmissionReceipt(op.candidate, AdmissionOutcome.ADMITTED, votes, candidate.required_votes)


def fund_airline(state: LedgerState, ctx: TransitionContext, op: FundAirline) -> Airline:
    airline = state.airlines.get(op.airline)
    if airline is None:
        raise NotFoundError("Airline", op.airline)
    if not airline.registered:
        raise Unauthorized(f"Airline {op.airline} has not been admitted", caller=op.airline)
    if airline.operational:
        raise AlreadyExists(f"Airline already funded: {op.airline}", existing_id=op.airline)
    if op.amount < AIRLINE_MIN_STAKE:
        raise InsufficientStake(
            f"Airline funding below the minimum stake of {AIRLINE_MIN_STAKE}",
            provided=op.amount,
            required=AIRLINE_MIN_STAKE,
        )

    airline.funds += op.amount
    airline.operational = True
    state.treasury += op.amount
    ctx.emit(events.AIRLINE_FUNDED, airline=op.airline, amount=op.amount)
    logger.info(f"Airline {op.airline} is operational")
    return airline


def register_flight(state: LedgerState, ctx: TransitionContext, op: RegisterFlight) -> Flight:
    state.require_operational_airline(op.airline)
    if not op.flight:
        raise ValidationException("Flight code is required", field="flight")
    if op.timestamp < 0:
        raise ValidationException("Timestamp must not be negative", field="timestamp", value=op.timestamp)
    if op.flight in state.flights:
        raise AlreadyExists(f"Flight already registered: {op.flight}", existing_id=op.flight)

    flight = Flight(airline=op.airline, code=op.flight, scheduled_timestamp=op.timestamp)
    state.flights[op.flight] = flight
    state.flight_order.append(op.flight)
    ctx.emit(events.FLIGHT_REGISTERED, airline=op.airline, flight=op.flight, timestamp=op.timestamp)
    return flight

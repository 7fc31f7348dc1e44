"""Oracle registry, shard index assignment and status consensus.

Registry:
- Registration costs ORACLE_REGISTRATION_FEE and assigns INDEXES_PER_ORACLE
  distinct shard indexes, fixed for the oracle's lifetime.

Consensus:
- requestFlightStatus draws one shard index and opens a round keyed by
  (index, airline, flight, timestamp). The timestamp comes from the ledger
  clock and strictly increases, so every request opens an independent key.
- Only oracles holding the round's index may vote; others are no-ops.
- The first status code to reach MIN_RESPONSES votes finalizes the round.
  Votes after that are no-ops reported as ALREADY_FINALIZED.
- A flight is settled by the first round that finalizes, whatever its
  status. Later rounds close but never revisit it.
"""

from __future__ import annotations

import logging

from ..core.exceptions import AlreadyExists, InsufficientStake, NotFoundError, Unauthorized, ValidationException
from . import events
from .insurance import settle_flight
from .models import OracleRegistration, RequestKey, StatusCode, StatusRequest, VoteOutcome, VoteReceipt
from .operations import RegisterOracle, RequestFlightStatus, SubmitOracleResponse
from .policy import INDEXES_PER_ORACLE, MIN_RESPONSES, ORACLE_REGISTRATION_FEE, SHARD_COUNT
from .randomness import draw_distinct
from .state import LedgerState, TransitionContext

logger = logging.getLogger(__name__)


# ============================================================================
# Registry
# ============================================================================


def register_oracle(state: LedgerState, ctx: TransitionContext, op: RegisterOracle) -> OracleRegistration:
    if op.fee < ORACLE_REGISTRATION_FEE:
        raise InsufficientStake(
            f"Oracle registration fee is {ORACLE_REGISTRATION_FEE}",
            provided=op.fee,
            required=ORACLE_REGISTRATION_FEE,
        )
    if op.oracle in state.oracles:
        raise AlreadyExists(f"Oracle already registered: {op.oracle}", existing_id=op.oracle)

    indexes = draw_distinct(ctx.random, SHARD_COUNT, INDEXES_PER_ORACLE, salt=op.oracle)
    registration = OracleRegistration(address=op.oracle, indexes=indexes, fee=op.fee)
    state.oracles[op.oracle] = registration
    state.treasury += op.fee
    ctx.emit(events.ORACLE_REGISTERED, oracle=op.oracle, indexes=list(indexes))
    logger.debug(f"Oracle {op.oracle} registered with indexes {list(indexes)}")
    return registration


def get_my_indexes(state: LedgerState, oracle: str) -> tuple[int, ...]:
    registration = state.oracles.get(oracle)
    if registration is None:
        raise NotFoundError("Oracle", oracle)
    return registration.indexes


# ============================================================================
# Consensus
# ============================================================================


def request_flight_status(state: LedgerState, ctx: TransitionContext, op: RequestFlightStatus) -> RequestKey:
    flight = state.require_flight(op.flight)

    index = ctx.random.randbelow(SHARD_COUNT, salt=op.requester)
    timestamp = max(ctx.clock(), state.last_request_timestamp + 1)
    state.last_request_timestamp = timestamp

    key = RequestKey(index=index, airline=flight.airline, flight=flight.code, timestamp=timestamp)
    state.requests[key] = StatusRequest(key=key, requester=op.requester)
    ctx.emit(events.ORACLE_REQUEST, **key.to_dict())
    logger.info(f"Status requested for {flight.code} with index {index}")
    return key


def submit_oracle_response(state: LedgerState, ctx: TransitionContext, op: SubmitOracleResponse) -> VoteReceipt:
    registration = state.oracles.get(op.voter)
    if registration is None:
        raise Unauthorized(f"Oracle {op.voter} is not registered", caller=op.voter)
    try:
        status = StatusCode(op.status)
    except ValueError:
        raise ValidationException("Unknown status code", field="status", value=op.status) from None

    key = RequestKey(index=op.index, airline=op.airline, flight=op.flight, timestamp=op.timestamp)
    if op.index not in registration.indexes:
        return VoteReceipt(key, op.voter, status, VoteOutcome.INDEX_MISMATCH)

    request = state.requests.get(key)
    if request is None:
        raise NotFoundError("StatusRequest", str(key))
    if not request.is_open:
        return VoteReceipt(key, op.voter, status, VoteOutcome.ALREADY_FINALIZED, request.vote_count(status))
    if op.voter in request.voters:
        return VoteReceipt(key, op.voter, status, VoteOutcome.DUPLICATE, request.vote_count(status))

    request.votes.setdefault(status, []).append(op.voter)
    votes = request.vote_count(status)
    ctx.emit(events.ORACLE_REPORT, flight=op.flight, status=int(status))

    if votes < MIN_RESPONSES:
        return VoteReceipt(key, op.voter, status, VoteOutcome.RECORDED, votes)

    finalize_request(state, ctx, request, status)
    return VoteReceipt(key, op.voter, status, VoteOutcome.FINALIZED, votes)


def finalize_request(state: LedgerState, ctx: TransitionContext, request: StatusRequest, status: StatusCode) -> None:
    """Close the round, record the flight status and run settlement."""
    request.finalized_status = status
    key = request.key
    ctx.emit(
        events.FLIGHT_STATUS_INFO,
        airline=key.airline,
        flight=key.flight,
        timestamp=key.timestamp,
        status=int(status),
    )

    flight = state.require_flight(key.flight)
    if flight.settled:
        logger.info(f"Round {key} closed with {status.name}; {flight.code} already settled as {flight.status.name}")
        return

    flight.status = status
    flight.settled = True
    logger.info(f"Consensus reached for {flight.code}: {status.name}")
    settle_flight(state, ctx, flight, status)

"""Ledger state machine - the single source of truth.

Every mutating call is turned into an immutable operation record and applied
by ``transition``, a function of (state, operation, context) that works on a
copy-on-write draft of the state. The machine commits the draft, journals
the operation and appends the emitted events only when the transition
returns, so a failed operation never leaves partial state behind. Only the
records an operation looks up are copied.

Transitions are serialized by a lock, which makes ledger writes
linearizable even with many concurrent callers. Consensus tallying therefore
needs no locking of its own.

Example:
    ledger = LedgerStateMachine(owner="owner", genesis_airline="airline-0")
    ledger.fund_airline("airline-0", AIRLINE_MIN_STAKE)
    ledger.register_flight("airline-0", "DL1937", 1700000000)
    key = ledger.request_flight_status("DL1937")
"""

from __future__ import annotations

import copy
import logging
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from ..core.exceptions import OperationSuspended, ReentrantCall, Unauthorized, ValidationException
from ..core.logging import log_ledger_event
from . import events, governance, insurance, oracles
from .events import EventLog
from .models import (
    AdmissionReceipt,
    Airline,
    Flight,
    InsurancePolicy,
    LedgerEvent,
    OracleRegistration,
    RequestKey,
    StatusCode,
    StatusRequest,
    VoteReceipt,
)
from .operations import (
    BuyInsurance,
    FundAirline,
    Operation,
    RegisterAirline,
    RegisterFlight,
    RegisterOracle,
    RequestFlightStatus,
    SetOperatingStatus,
    SubmitOracleResponse,
    WithdrawPayout,
)
from .policy import admission_threshold
from .randomness import RandomSource, SystemRandomSource
from .state import LedgerState, TransferHook, TransitionContext

logger = logging.getLogger(__name__)


def _wall_clock() -> int:
    return int(time.time())


def set_operating_status(state: LedgerState, ctx: TransitionContext, op: SetOperatingStatus) -> bool:
    if op.caller != state.owner:
        raise Unauthorized("Caller is not the contract owner", caller=op.caller)
    if state.operational != op.operational:
        state.operational = op.operational
        ctx.emit(events.OPERATING_STATUS_CHANGED, operational=op.operational, caller=op.caller)
        logger.warning(f"Ledger operating status set to {op.operational} by {op.caller}")
    return state.operational


_HANDLERS: dict[type[Operation], Callable[[LedgerState, TransitionContext, Any], Any]] = {
    SetOperatingStatus: set_operating_status,
    RegisterAirline: governance.register_airline,
    FundAirline: governance.fund_airline,
    RegisterFlight: governance.register_flight,
    BuyInsurance: insurance.buy_insurance,
    WithdrawPayout: insurance.withdraw_payout,
    RegisterOracle: oracles.register_oracle,
    RequestFlightStatus: oracles.request_flight_status,
    SubmitOracleResponse: oracles.submit_oracle_response,
}


@dataclass
class Transition:
    """Result of applying one operation: the uncommitted next state, its events and the return value."""

    state: LedgerState
    events: list[tuple[str, dict[str, Any]]]
    result: Any


def transition(state: LedgerState, operation: Operation, context: TransitionContext) -> Transition:
    """Apply ``operation`` to a draft of ``state``. ``state`` itself is never mutated."""
    handler = _HANDLERS.get(type(operation))
    if handler is None:
        raise ValidationException(f"Unsupported operation: {operation.name}", field="operation")
    if not state.operational and not isinstance(operation, SetOperatingStatus):
        raise OperationSuspended(operation.name)

    draft = state.draft()
    result = handler(draft, context, operation)
    return Transition(state=draft, events=list(context.events), result=result)


class LedgerStateMachine:
    """Owns the ledger state and applies operations to it one at a time."""

    def __init__(
        self,
        owner: str,
        genesis_airline: str | None = None,
        random_source: RandomSource | None = None,
        clock: Callable[[], int] | None = None,
        transfer: TransferHook | None = None,
        event_log: EventLog | None = None,
    ):
        """Create a ledger.

        Args:
            owner: Administrator identity allowed to toggle the operating status
            genesis_airline: Airline admitted at creation (it still has to fund)
            random_source: Source for shard index draws
            clock: Returns the current time in whole seconds
            transfer: Called with (payee, amount) when a payout is withdrawn
            event_log: Log receiving emitted events
        """
        self._state = LedgerState(owner=owner)
        self._genesis_airline = genesis_airline
        if genesis_airline:
            governance.register_genesis_airline(self._state, genesis_airline)
        self.random = random_source or SystemRandomSource()
        self.clock = clock or _wall_clock
        self.transfer = transfer
        self.events = event_log or EventLog()
        self._journal: list[Operation] = []
        self._lock = threading.RLock()
        self._applying = False

    # -------------------------------------------------------------------------
    # Core
    # -------------------------------------------------------------------------

    def apply(self, operation: Operation) -> Any:
        """Apply one operation atomically and publish its events."""
        with self._lock:
            if self._applying:
                raise ReentrantCall(operation.name)
            self._applying = True
            try:
                context = TransitionContext(random=self.random, clock=self.clock, transfer=self.transfer)
                outcome = transition(self._state, operation, context)
            finally:
                self._applying = False

            self._state = outcome.state.commit()
            self._journal.append(operation)
            for name, payload in outcome.events:
                event = self.events.append(name, payload)
                log_ledger_event(logger, name, event.position, payload)
            return copy.deepcopy(outcome.result)

    @property
    def journal(self) -> list[Operation]:
        """Operations applied so far, in log order."""
        return list(self._journal)

    @property
    def state(self) -> LedgerState:
        """A copy of the current state."""
        with self._lock:
            return copy.deepcopy(self._state)

    @classmethod
    def replay(
        cls,
        journal: Iterable[Operation],
        owner: str,
        genesis_airline: str | None = None,
        random_source: RandomSource | None = None,
        clock: Callable[[], int] | None = None,
    ) -> LedgerStateMachine:
        """Rebuild a ledger by applying ``journal`` in order.

        Given the same randomness and clock the result equals the original.
        """
        machine = cls(owner, genesis_airline, random_source=random_source, clock=clock)
        for operation in journal:
            machine.apply(operation)
        return machine

    # -------------------------------------------------------------------------
    # Mutating operations
    # -------------------------------------------------------------------------

    def set_operating_status(self, caller: str, operational: bool) -> bool:
        return self.apply(SetOperatingStatus(caller=caller, operational=operational))

    def register_airline(self, candidate: str, proposer: str) -> AdmissionReceipt:
        return self.apply(RegisterAirline(candidate=candidate, proposer=proposer))

    def fund_airline(self, airline: str, amount: int) -> Airline:
        return self.apply(FundAirline(airline=airline, amount=amount))

    def register_flight(self, airline: str, flight: str, timestamp: int) -> Flight:
        return self.apply(RegisterFlight(airline=airline, flight=flight, timestamp=timestamp))

    def buy_insurance(self, passenger: str, flight: str, premium: int) -> InsurancePolicy:
        return self.apply(BuyInsurance(passenger=passenger, flight=flight, premium=premium))

    def withdraw_payout(self, passenger: str) -> int:
        return self.apply(WithdrawPayout(passenger=passenger))

    def register_oracle(self, oracle: str, fee: int) -> OracleRegistration:
        return self.apply(RegisterOracle(oracle=oracle, fee=fee))

    def request_flight_status(self, flight: str, requester: str | None = None) -> RequestKey:
        return self.apply(RequestFlightStatus(flight=flight, requester=requester or self._state.owner))

    def submit_oracle_response(
        self,
        index: int,
        airline: str,
        flight: str,
        timestamp: int,
        status: StatusCode | int,
        voter: str,
    ) -> VoteReceipt:
        return self.apply(
            SubmitOracleResponse(
                index=index,
                airline=airline,
                flight=flight,
                timestamp=timestamp,
                status=status,
                voter=voter,
            )
        )

    # -------------------------------------------------------------------------
    # Read-only queries (available while suspended)
    # -------------------------------------------------------------------------

    @property
    def owner(self) -> str:
        return self._state.owner

    @property
    def genesis_airline(self) -> str | None:
        return self._genesis_airline

    def is_operational(self) -> bool:
        return self._state.operational

    def get_airline(self, address: str) -> Airline | None:
        airline = self._state.airlines.get(address)
        return copy.deepcopy(airline) if airline else None

    def is_airline_registered(self, address: str) -> bool:
        airline = self._state.airlines.get(address)
        return bool(airline and airline.registered)

    def is_airline_operational(self, address: str) -> bool:
        airline = self._state.airlines.get(address)
        return bool(airline and airline.operational)

    def operational_airline_count(self) -> int:
        with self._lock:
            return self._state.operational_airline_count()

    def quorum_for_registration(self) -> int:
        """Votes a new candidate needs right now."""
        return admission_threshold(self.operational_airline_count())

    def get_flight(self, code: str) -> Flight:
        return copy.deepcopy(self._state.require_flight(code))

    def get_number_of_flights(self) -> int:
        return len(self._state.flight_order)

    def get_flight_by_index(self, index: int) -> str:
        if not 0 <= index < len(self._state.flight_order):
            raise ValidationException("Flight index out of range", field="index", value=index)
        return self._state.flight_order[index]

    def registered_flights(self) -> list[str]:
        return list(self._state.flight_order)

    def get_policy(self, passenger: str, flight: str) -> InsurancePolicy | None:
        policy = self._state.policies.get((passenger, flight))
        return copy.deepcopy(policy) if policy else None

    def get_payout_balance(self, passenger: str) -> int:
        return self._state.payouts.get(passenger, 0)

    def has_claimable_insurance(self, passenger: str) -> bool:
        return self.get_payout_balance(passenger) > 0

    def get_my_indexes(self, oracle: str) -> tuple[int, ...]:
        return oracles.get_my_indexes(self._state, oracle)

    def get_status_request(self, key: RequestKey) -> StatusRequest | None:
        request = self._state.requests.get(key)
        return copy.deepcopy(request) if request else None

    def treasury(self) -> int:
        return self._state.treasury

    def events_named(self, name: str, from_position: int = 0) -> list[LedgerEvent]:
        return self.events.events(name, from_position)

"""Tests for the ledger state machine: operating status, atomicity and replay."""

from __future__ import annotations

import itertools
import threading

import pytest

from flightsurety.core.exceptions import (
    NotFoundError,
    OperationSuspended,
    Unauthorized,
    ValidationException,
)
from flightsurety.ledger import (
    AIRLINE_MIN_STAKE,
    MAX_PREMIUM,
    ORACLE_REGISTRATION_FEE,
    LedgerState,
    LedgerStateMachine,
    SeededRandomSource,
    StatusCode,
    transition,
)
from flightsurety.ledger.events import OPERATING_STATUS_CHANGED
from flightsurety.ledger.operations import BuyInsurance, FundAirline, Operation, RegisterFlight
from flightsurety.ledger.state import TransitionContext

START_TIME = 1_700_000_000


# =============================================================================
# Operating status
# =============================================================================


class TestOperatingStatus:
    def test_operational_by_default(self, ledger):
        assert ledger.is_operational()

    def test_owner_toggles(self, ledger):
        assert ledger.set_operating_status("owner", False) is False
        assert not ledger.is_operational()
        assert ledger.events_named(OPERATING_STATUS_CHANGED)[-1]["operational"] is False

        ledger.set_operating_status("owner", True)
        assert ledger.is_operational()

    def test_non_owner_rejected(self, ledger):
        with pytest.raises(Unauthorized):
            ledger.set_operating_status("airline-1", False)
        assert ledger.is_operational()

    def test_same_value_emits_nothing(self, ledger):
        ledger.set_operating_status("owner", True)
        assert ledger.events_named(OPERATING_STATUS_CHANGED) == []

    def test_suspension_blocks_every_mutation(self, flight_ledger):
        flight_ledger.set_operating_status("owner", False)

        attempts = [
            lambda: flight_ledger.register_airline("airline-2", "airline-1"),
            lambda: flight_ledger.register_flight("airline-1", "EI5321", 1),
            lambda: flight_ledger.buy_insurance("alice", "DL1937", 100),
            lambda: flight_ledger.withdraw_payout("alice"),
            lambda: flight_ledger.register_oracle("oracle-1", ORACLE_REGISTRATION_FEE),
            lambda: flight_ledger.request_flight_status("DL1937"),
        ]
        for attempt in attempts:
            with pytest.raises(OperationSuspended):
                attempt()

    def test_queries_available_while_suspended(self, flight_ledger):
        flight_ledger.set_operating_status("owner", False)

        assert flight_ledger.registered_flights() == ["DL1937"]
        assert flight_ledger.get_flight("DL1937").status == StatusCode.UNKNOWN
        assert flight_ledger.is_airline_operational("airline-1")


# =============================================================================
# Atomicity
# =============================================================================


class TestAtomicity:
    def test_failed_operation_leaves_no_trace(self, flight_ledger):
        state_before = flight_ledger.state.to_dict()
        journal_before = len(flight_ledger.journal)
        events_before = len(flight_ledger.events)

        with pytest.raises(NotFoundError):
            flight_ledger.buy_insurance("alice", "XX1", 100)

        assert flight_ledger.state.to_dict() == state_before
        assert len(flight_ledger.journal) == journal_before
        assert len(flight_ledger.events) == events_before

    def test_returned_records_are_copies(self, flight_ledger):
        flight = flight_ledger.get_flight("DL1937")
        flight.insurees.append("mallory")
        assert flight_ledger.get_flight("DL1937").insurees == []

        airline = flight_ledger.get_airline("airline-1")
        airline.funds = 0
        assert flight_ledger.get_airline("airline-1").funds == AIRLINE_MIN_STAKE

    def test_transition_does_not_mutate_input(self):
        state = LedgerState(owner="owner")
        context = TransitionContext(random=SeededRandomSource(1), clock=lambda: START_TIME)

        with pytest.raises(Unauthorized):
            transition(state, RegisterFlight(airline="airline-1", flight="DL1937", timestamp=1), context)
        with pytest.raises(NotFoundError):
            transition(state, BuyInsurance(passenger="alice", flight="DL1937", premium=1), context)

        assert state.flights == {}
        assert state.policies == {}

    def test_transition_returns_next_state_and_events(self):
        state = LedgerStateMachine(owner="owner", genesis_airline="airline-1").state
        context = TransitionContext(random=SeededRandomSource(1), clock=lambda: START_TIME)

        outcome = transition(state, FundAirline(airline="airline-1", amount=AIRLINE_MIN_STAKE), context)

        assert outcome.state.airlines["airline-1"].operational
        assert not state.airlines["airline-1"].operational
        assert [name for name, _ in outcome.events] == ["AirlineFunded"]

    def test_unsupported_operation(self, ledger):
        with pytest.raises(ValidationException):
            ledger.apply(Operation())

    def test_concurrent_purchases_serialize(self, flight_ledger):
        errors = []

        def buy(passenger):
            try:
                flight_ledger.buy_insurance(passenger, "DL1937", 100)
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=buy, args=(f"passenger-{i}",)) for i in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(flight_ledger.get_flight("DL1937").insurees) == 20
        assert flight_ledger.treasury() == AIRLINE_MIN_STAKE + 20 * 100


# =============================================================================
# Replay
# =============================================================================


class TestReplay:
    def test_journal_records_applied_operations(self, flight_ledger):
        names = [op.name for op in flight_ledger.journal]
        assert names == ["FundAirline", "RegisterFlight"]
        assert flight_ledger.journal[0].to_dict() == {
            "operation": "FundAirline",
            "airline": "airline-1",
            "amount": AIRLINE_MIN_STAKE,
        }

    def test_replay_reproduces_state(self, make_ledger, fund_airlines):
        original = make_ledger(seed=11)
        fund_airlines(original, 5)
        original.register_flight("airline-1", "DL1937", START_TIME)
        original.buy_insurance("alice", "DL1937", MAX_PREMIUM)
        for i in range(10):
            original.register_oracle(f"oracle-{i}", ORACLE_REGISTRATION_FEE)
        key = original.request_flight_status("DL1937")
        for i in range(10):
            oracle = f"oracle-{i}"
            if key.index in original.get_my_indexes(oracle):
                original.submit_oracle_response(
                    key.index, key.airline, key.flight, key.timestamp, StatusCode.LATE_AIRLINE, oracle
                )

        replayed = LedgerStateMachine.replay(
            original.journal,
            owner="owner",
            genesis_airline="airline-1",
            random_source=SeededRandomSource(11),
            clock=itertools.count(START_TIME).__next__,
        )

        assert replayed.state.to_dict() == original.state.to_dict()
        assert [e.to_dict() for e in replayed.events] == [e.to_dict() for e in original.events]

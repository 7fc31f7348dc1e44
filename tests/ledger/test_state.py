"""Tests for the ledger state container and its copy-on-write drafts."""

from __future__ import annotations

import pytest

from flightsurety.ledger import ORACLE_REGISTRATION_FEE, StatusCode, VoteOutcome, transition
from flightsurety.ledger.models import Airline
from flightsurety.ledger.operations import SubmitOracleResponse
from flightsurety.ledger.state import CopyOnWriteDict, LedgerState, TransitionContext

START_TIME = 1_700_000_000


class TestCopyOnWriteDict:
    def test_lookup_returns_private_copy(self):
        base = {"airline-1": Airline(address="airline-1")}
        table = CopyOnWriteDict(base)

        table["airline-1"].operational = True

        assert table["airline-1"].operational
        assert not base["airline-1"].operational

    def test_untouched_records_are_not_copied(self):
        base = {f"airline-{i}": Airline(address=f"airline-{i}") for i in range(5)}
        table = CopyOnWriteDict(base)

        assert "airline-3" in table
        table.get("airline-1")

        assert set(table.touched) == {"airline-1"}

    def test_missing_key(self):
        table = CopyOnWriteDict({})
        assert table.get("ghost") is None
        with pytest.raises(KeyError):
            table["ghost"]

    def test_iteration_keeps_base_order_then_new_keys(self):
        table = CopyOnWriteDict({"a": 1, "b": 2})
        table["c"] = 3
        table["a"] = 10

        assert list(table) == ["a", "b", "c"]
        assert len(table) == 3
        assert dict(table) == {"a": 10, "b": 2, "c": 3}

    def test_merge_updates_base_in_place(self):
        base = {"a": 1, "b": 2}
        table = CopyOnWriteDict(base)
        table["c"] = 3
        table["a"] = 10

        assert table.merge() is base
        assert list(base.items()) == [("a", 10), ("b", 2), ("c", 3)]

    def test_records_cannot_be_removed(self):
        table = CopyOnWriteDict({"a": 1})
        with pytest.raises(TypeError):
            del table["a"]


class TestDraft:
    def test_draft_leaves_state_untouched_until_commit(self):
        state = LedgerState(owner="owner", airlines={"airline-1": Airline(address="airline-1")})

        draft = state.draft()
        draft.airlines["airline-1"].operational = True
        draft.flight_order.append("DL1937")
        draft.treasury = 5

        assert not state.airlines["airline-1"].operational
        assert state.flight_order == []
        assert state.treasury == 0

        committed = draft.commit()

        assert committed.airlines["airline-1"].operational
        assert committed.flight_order == ["DL1937"]
        assert committed.treasury == 5
        assert type(committed.airlines) is dict


# =============================================================================
# Work per transition
# =============================================================================


@pytest.fixture
def busy_ledger(make_ledger, fund_airlines):
    """Three oracles holding index 0 and thirty rounds already finalized."""
    rounds = 30
    ledger = make_ledger(random_values=[0, 1, 2] * 3 + [0] * (rounds + 1))
    fund_airlines(ledger, 1)
    ledger.register_flight("airline-1", "DL1937", START_TIME)
    for i in range(3):
        ledger.register_oracle(f"oracle-{i}", ORACLE_REGISTRATION_FEE)
    for _ in range(rounds):
        key = ledger.request_flight_status("DL1937")
        for i in range(3):
            ledger.submit_oracle_response(
                key.index, key.airline, key.flight, key.timestamp, StatusCode.ON_TIME, f"oracle-{i}"
            )
    return ledger


class TestTransitionCost:
    def test_vote_copies_only_its_round(self, busy_ledger):
        key = busy_ledger.request_flight_status("DL1937")
        state = busy_ledger.state
        history = dict(state.requests)
        context = TransitionContext(random=busy_ledger.random, clock=busy_ledger.clock)
        vote = SubmitOracleResponse(
            index=key.index,
            airline=key.airline,
            flight=key.flight,
            timestamp=key.timestamp,
            status=StatusCode.ON_TIME,
            voter="oracle-0",
        )

        outcome = transition(state, vote, context)

        assert outcome.result.outcome == VoteOutcome.RECORDED
        assert set(outcome.state.requests.touched) == {key}
        assert set(outcome.state.oracles.touched) == {"oracle-0"}
        assert outcome.state.policies.touched == {}

        committed = outcome.state.commit()
        assert len(committed.requests) == 31
        untouched = [k for k in history if k != key]
        assert all(committed.requests[k] is history[k] for k in untouched)
        assert committed.requests[key].vote_count(StatusCode.ON_TIME) == 1

    def test_finalized_rounds_stay_committed_across_writes(self, busy_ledger):
        before = busy_ledger.state.to_dict()["requests"]

        busy_ledger.request_flight_status("DL1937")

        after = busy_ledger.state.to_dict()["requests"]
        assert after[:-1] == before
        assert after[-1]["is_open"]

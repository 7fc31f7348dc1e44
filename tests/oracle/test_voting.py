"""Tests for oracle voting policies."""

from __future__ import annotations

import pytest

from flightsurety.ledger import RequestKey, ScriptedRandomSource, StatusCode
from flightsurety.oracle.voting import (
    STATUS_CODES,
    FixedVotingPolicy,
    PerOracleVotingPolicy,
    RandomVotingPolicy,
    SequenceVotingPolicy,
    VotingPolicy,
)

KEY = RequestKey(index=3, airline="airline-1", flight="DL1937", timestamp=1_700_000_000)


class TestRandomVotingPolicy:
    def test_draws_from_status_codes(self):
        policy = RandomVotingPolicy(ScriptedRandomSource([0, 2, 5]))
        assert [policy.choose("oracle-1", KEY) for _ in range(3)] == [
            StatusCode.UNKNOWN,
            StatusCode.LATE_AIRLINE,
            StatusCode.LATE_OTHER,
        ]

    def test_default_source(self):
        policy = RandomVotingPolicy()
        assert isinstance(policy, VotingPolicy)
        for _ in range(50):
            assert policy.choose("oracle-1", KEY) in STATUS_CODES


class TestDeterministicPolicies:
    def test_fixed(self):
        policy = FixedVotingPolicy(20)
        assert policy.choose("oracle-1", KEY) is StatusCode.LATE_AIRLINE
        assert policy.choose("oracle-2", KEY) is StatusCode.LATE_AIRLINE

    def test_sequence_cycles(self):
        policy = SequenceVotingPolicy([StatusCode.ON_TIME, StatusCode.LATE_WEATHER])
        assert [policy.choose("o", KEY) for _ in range(3)] == [
            StatusCode.ON_TIME,
            StatusCode.LATE_WEATHER,
            StatusCode.ON_TIME,
        ]

    def test_sequence_requires_statuses(self):
        with pytest.raises(ValueError):
            SequenceVotingPolicy([])

    def test_invalid_status_rejected(self):
        with pytest.raises(ValueError):
            FixedVotingPolicy(25)

    def test_per_oracle(self):
        policy = PerOracleVotingPolicy({"oracle-1": StatusCode.LATE_TECHNICAL}, default=StatusCode.ON_TIME)
        assert policy.choose("oracle-1", KEY) == StatusCode.LATE_TECHNICAL
        assert policy.choose("oracle-2", KEY) == StatusCode.ON_TIME

"""Voting policies: which status an oracle reports for a request.

Production oracles draw uniformly from the status codes. Tests pin the
choice so consensus outcomes are deterministic.
"""

from __future__ import annotations

import itertools
import threading
from collections.abc import Iterable, Mapping
from typing import Protocol, runtime_checkable

from ..ledger.models import RequestKey, StatusCode
from ..ledger.randomness import RandomSource, SystemRandomSource, choice

STATUS_CODES: tuple[StatusCode, ...] = tuple(StatusCode)


@runtime_checkable
class VotingPolicy(Protocol):
    def choose(self, oracle: str, key: RequestKey) -> StatusCode: ...


class RandomVotingPolicy:
    """Uniform draw over every status code."""

    def __init__(self, random_source: RandomSource | None = None):
        self.random = random_source or SystemRandomSource()
        self._lock = threading.Lock()

    def choose(self, oracle: str, key: RequestKey) -> StatusCode:
        with self._lock:
            return choice(self.random, STATUS_CODES, salt=oracle)


class FixedVotingPolicy:
    """Every oracle always reports the same status."""

    def __init__(self, status: StatusCode):
        self.status = StatusCode(status)

    def choose(self, oracle: str, key: RequestKey) -> StatusCode:
        return self.status


class SequenceVotingPolicy:
    """Cycles through ``statuses`` in call order."""

    def __init__(self, statuses: Iterable[StatusCode]):
        statuses = [StatusCode(s) for s in statuses]
        if not statuses:
            raise ValueError("SequenceVotingPolicy needs at least one status")
        self._cycle = itertools.cycle(statuses)
        self._lock = threading.Lock()

    def choose(self, oracle: str, key: RequestKey) -> StatusCode:
        with self._lock:
            return next(self._cycle)


class PerOracleVotingPolicy:
    """Fixed status per oracle, with a default for the rest."""

    def __init__(self, statuses: Mapping[str, StatusCode], default: StatusCode = StatusCode.UNKNOWN):
        self.statuses = {oracle: StatusCode(s) for oracle, s in statuses.items()}
        self.default = StatusCode(default)

    def choose(self, oracle: str, key: RequestKey) -> StatusCode:
        return self.statuses.get(oracle, self.default)

"""Immutable records for every state-mutating ledger operation.

The state machine journals applied operations so a ledger can be rebuilt
by replaying them in order.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from .models import StatusCode


@dataclass(frozen=True)
class Operation:
    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        return {"operation": self.name, **asdict(self)}


@dataclass(frozen=True)
class SetOperatingStatus(Operation):
    caller: str
    operational: bool


@dataclass(frozen=True)
class RegisterAirline(Operation):
    candidate: str
    proposer: str


@dataclass(frozen=True)
class FundAirline(Operation):
    airline: str
    amount: int


@dataclass(frozen=True)
class RegisterFlight(Operation):
    airline: str
    flight: str
    timestamp: int


@dataclass(frozen=True)
class BuyInsurance(Operation):
    passenger: str
    flight: str
    premium: int


@dataclass(frozen=True)
class WithdrawPayout(Operation):
    passenger: str


@dataclass(frozen=True)
class RegisterOracle(Operation):
    oracle: str
    fee: int


@dataclass(frozen=True)
class RequestFlightStatus(Operation):
    flight: str
    requester: str


@dataclass(frozen=True)
class SubmitOracleResponse(Operation):
    index: int
    airline: str
    flight: str
    timestamp: int
    status: StatusCode
    voter: str

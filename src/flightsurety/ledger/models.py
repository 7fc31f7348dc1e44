"""Ledger records, receipts and events.

All records are owned by the ledger state; callers only ever receive them
through read-only queries or receipts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from typing import Any

from ..core.exceptions import AlreadyFinalized, IndexMismatch, QuorumNotReached

# ============================================================================
# Enums
# ============================================================================


class StatusCode(IntEnum):
    """Flight status codes reported by oracles."""

    UNKNOWN = 0
    ON_TIME = 10
    LATE_AIRLINE = 20
    LATE_WEATHER = 30
    LATE_TECHNICAL = 40
    LATE_OTHER = 50


class AdmissionOutcome(StrEnum):
    ADMITTED = "admitted"
    QUORUM_NOT_REACHED = "quorum_not_reached"


class VoteOutcome(StrEnum):
    """What happened to a submitted oracle vote."""

    RECORDED = "recorded"
    FINALIZED = "finalized"  # This vote closed the round
    INDEX_MISMATCH = "index_mismatch"  # Voter not assigned the index, no-op
    ALREADY_FINALIZED = "already_finalized"  # Round closed earlier, no-op
    DUPLICATE = "duplicate"  # Voter already voted in this round, no-op

    @property
    def accepted(self) -> bool:
        return self in (VoteOutcome.RECORDED, VoteOutcome.FINALIZED)


# ============================================================================
# Records
# ============================================================================


@dataclass
class Airline:
    """An airline candidate or member.

    ``registered`` means admitted; ``operational`` additionally requires the
    minimum stake to have been deposited.
    """

    address: str
    registered: bool = False
    operational: bool = False
    voters: list[str] = field(default_factory=list)
    required_votes: int = 1
    funds: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "registered": self.registered,
            "operational": self.operational,
            "voters": list(self.voters),
            "required_votes": self.required_votes,
            "funds": self.funds,
        }


@dataclass
class Flight:
    """A registered flight and its consensus-determined status."""

    airline: str
    code: str
    scheduled_timestamp: int
    status: StatusCode = StatusCode.UNKNOWN
    settled: bool = False
    insurees: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "airline": self.airline,
            "flight": self.code,
            "timestamp": self.scheduled_timestamp,
            "status": int(self.status),
            "status_name": self.status.name,
            "settled": self.settled,
            "insurees": list(self.insurees),
        }


@dataclass
class InsurancePolicy:
    passenger: str
    flight_code: str
    premium: int
    credited: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "passenger": self.passenger,
            "flight": self.flight_code,
            "premium": self.premium,
            "credited": self.credited,
        }


@dataclass
class OracleRegistration:
    address: str
    indexes: tuple[int, ...]
    fee: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "indexes": list(self.indexes),
            "fee": self.fee,
        }


@dataclass(frozen=True)
class RequestKey:
    """Identifies one consensus round."""

    index: int
    airline: str
    flight: str
    timestamp: int

    def __str__(self) -> str:
        return f"{self.index}:{self.airline}:{self.flight}:{self.timestamp}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "airline": self.airline,
            "flight": self.flight,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RequestKey:
        return cls(
            index=int(data["index"]),
            airline=data["airline"],
            flight=data["flight"],
            timestamp=int(data["timestamp"]),
        )


@dataclass
class StatusRequest:
    """One open or finalized consensus round."""

    key: RequestKey
    requester: str
    votes: dict[StatusCode, list[str]] = field(default_factory=dict)
    finalized_status: StatusCode | None = None

    @property
    def is_open(self) -> bool:
        return self.finalized_status is None

    @property
    def voters(self) -> set[str]:
        return {voter for voters in self.votes.values() for voter in voters}

    def vote_count(self, status: StatusCode) -> int:
        return len(self.votes.get(status, []))

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.key.to_dict(),
            "requester": self.requester,
            "votes": {int(status): list(voters) for status, voters in self.votes.items()},
            "is_open": self.is_open,
            "finalized_status": int(self.finalized_status) if self.finalized_status is not None else None,
        }


# ============================================================================
# Receipts
# ============================================================================


@dataclass(frozen=True)
class AdmissionReceipt:
    candidate: str
    outcome: AdmissionOutcome
    votes: int
    required: int

    @property
    def admitted(self) -> bool:
        return self.outcome == AdmissionOutcome.ADMITTED

    def raise_for_outcome(self) -> None:
        if not self.admitted:
            raise QuorumNotReached(self.candidate, self.votes, self.required)


@dataclass(frozen=True)
class VoteReceipt:
    key: RequestKey
    voter: str
    status: StatusCode
    outcome: VoteOutcome
    votes: int = 0  # Votes for ``status`` after this submission

    def raise_for_outcome(self) -> None:
        """Raise for the no-op outcomes that callers may want to treat as failures."""
        if self.outcome == VoteOutcome.INDEX_MISMATCH:
            raise IndexMismatch(self.voter, self.key.index)
        if self.outcome == VoteOutcome.ALREADY_FINALIZED:
            raise AlreadyFinalized(str(self.key))

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.key.to_dict(),
            "voter": self.voter,
            "status": int(self.status),
            "outcome": self.outcome.value,
            "votes": self.votes,
        }


# ============================================================================
# Events
# ============================================================================


@dataclass(frozen=True)
class LedgerEvent:
    """An event emitted by an applied transition, positioned in the log."""

    position: int
    name: str
    payload: dict[str, Any]

    def __getitem__(self, item: str) -> Any:
        return self.payload[item]

    def to_dict(self) -> dict[str, Any]:
        return {"position": self.position, "name": self.name, "payload": dict(self.payload)}

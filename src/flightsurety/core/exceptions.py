# SPDX-License-Identifier: MIT
# Copyright (c) 2026 FlightSurety Contributors

"""Custom exception hierarchy for FlightSurety.

Every ledger operation either succeeds or raises one of these exceptions
without leaving partial state behind. Vote outcomes that are valid
intermediate states (quorum not reached, index mismatch, late vote) are
reported through receipts; the matching exception classes exist for callers
that want a loud failure.
"""

from __future__ import annotations

from typing import Any


class FlightSuretyException(Exception):  # noqa: N818
    """Base exception for all FlightSurety errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class OperationSuspended(FlightSuretyException):
    """Raised by every mutating operation while the ledger is toggled off."""

    def __init__(self, operation: str):
        super().__init__(f"Ledger is not operational: {operation} rejected", {"operation": operation})
        self.operation = operation


class Unauthorized(FlightSuretyException):
    """Caller lacks the required role or operational status.

    Raised when:
    - A non-owner toggles the operating status
    - A non-operational airline proposes an airline or registers a flight
    - An unregistered identity submits an oracle vote
    """

    def __init__(self, message: str, caller: str | None = None):
        details = {}
        if caller:
            details["caller"] = caller
        super().__init__(message, details)
        self.caller = caller


class AlreadyExists(FlightSuretyException):
    """Duplicate airline, flight, oracle or insurance policy registration."""

    def __init__(self, message: str, existing_id: str | None = None):
        details = {}
        if existing_id:
            details["existing_id"] = existing_id
        super().__init__(message, details)
        self.existing_id = existing_id


class NotFoundError(FlightSuretyException):
    """Exception for unknown flight, airline, oracle or request references."""

    def __init__(self, resource_type: str, resource_id: str):
        message = f"{resource_type} not found: {resource_id}"
        details = {
            "resource_type": resource_type,
            "resource_id": resource_id,
        }
        super().__init__(message, details)
        self.resource_type = resource_type
        self.resource_id = resource_id


class ValidationException(FlightSuretyException):
    """Exception for malformed operation arguments."""

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details)
        self.field = field
        self.value = value


class PremiumCapExceeded(ValidationException):
    """Insurance premium above the fixed maximum."""

    def __init__(self, premium: int, cap: int):
        super().__init__(f"Premium {premium} exceeds the maximum of {cap}", field="premium", value=premium)
        self.cap = cap


class InsufficientStake(FlightSuretyException):
    """Airline funding or oracle registration fee below the minimum."""

    def __init__(self, message: str, provided: int, required: int):
        super().__init__(message, {"provided": provided, "required": required})
        self.provided = provided
        self.required = required


class InsufficientBalance(FlightSuretyException):
    """Withdrawal requested with no withdrawable credit."""

    def __init__(self, account: str, balance: int = 0):
        super().__init__(f"No withdrawable balance for {account}", {"account": account, "balance": balance})
        self.account = account
        self.balance = balance


class ReentrantCall(FlightSuretyException):
    """A transition tried to re-enter the ledger while it was being applied."""

    def __init__(self, operation: str):
        super().__init__(f"Re-entrant ledger call rejected: {operation}", {"operation": operation})
        self.operation = operation


class QuorumNotReached(FlightSuretyException):
    """Vote recorded for a candidate airline but the quorum is not met yet."""

    def __init__(self, candidate: str, votes: int, required: int):
        super().__init__(
            f"Airline {candidate} has {votes} of {required} required votes",
            {"candidate": candidate, "votes": votes, "required": required},
        )
        self.candidate = candidate
        self.votes = votes
        self.required = required


class IndexMismatch(FlightSuretyException):
    """Oracle voted for a request outside its assigned shard indexes."""

    def __init__(self, oracle: str, index: int):
        super().__init__(f"Oracle {oracle} is not assigned index {index}", {"oracle": oracle, "index": index})
        self.oracle = oracle
        self.index = index


class AlreadyFinalized(FlightSuretyException):
    """Vote received after the status request reached consensus."""

    def __init__(self, key: str):
        super().__init__(f"Status request already finalized: {key}", {"key": key})
        self.key = key


class ConfigException(FlightSuretyException):
    """Exception for configuration errors."""

    def __init__(self, message: str, missing_vars: list[str] | None = None):
        details = {}
        if missing_vars:
            details["missing_vars"] = missing_vars
        super().__init__(message, details)
        self.missing_vars = missing_vars or []

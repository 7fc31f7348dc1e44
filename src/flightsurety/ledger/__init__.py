"""Ledger state machine: airline governance, insurance and oracle consensus."""

from .events import EventLog, Subscription
from .machine import LedgerStateMachine, Transition, transition
from .models import (
    AdmissionOutcome,
    AdmissionReceipt,
    Airline,
    Flight,
    InsurancePolicy,
    LedgerEvent,
    OracleRegistration,
    RequestKey,
    StatusCode,
    StatusRequest,
    VoteOutcome,
    VoteReceipt,
)
from .policy import (
    AIRLINE_MIN_STAKE,
    MAX_PREMIUM,
    MIN_RESPONSES,
    ORACLE_REGISTRATION_FEE,
    SHARD_COUNT,
    UNIT,
    required_votes,
)
from .randomness import (
    HashChainRandomSource,
    RandomSource,
    ScriptedRandomSource,
    SeededRandomSource,
    SystemRandomSource,
    create_random_source,
)
from .state import LedgerState

__all__ = [
    "AIRLINE_MIN_STAKE",
    "MAX_PREMIUM",
    "MIN_RESPONSES",
    "ORACLE_REGISTRATION_FEE",
    "SHARD_COUNT",
    "UNIT",
    "AdmissionOutcome",
    "AdmissionReceipt",
    "Airline",
    "EventLog",
    "Flight",
    "HashChainRandomSource",
    "InsurancePolicy",
    "LedgerEvent",
    "LedgerState",
    "LedgerStateMachine",
    "OracleRegistration",
    "RandomSource",
    "RequestKey",
    "ScriptedRandomSource",
    "SeededRandomSource",
    "StatusCode",
    "StatusRequest",
    "Subscription",
    "SystemRandomSource",
    "Transition",
    "VoteOutcome",
    "VoteReceipt",
    "create_random_source",
    "required_votes",
    "transition",
]

"""Off-chain oracle responder: answers status requests for the oracles it owns."""

from .gateway import LedgerGateway, LedgerRequestStream, LocalLedgerGateway, StatusRequestStream, TransportError
from .responder import OracleIdentity, OracleResponder, ResponderConfig
from .voting import (
    STATUS_CODES,
    FixedVotingPolicy,
    PerOracleVotingPolicy,
    RandomVotingPolicy,
    SequenceVotingPolicy,
    VotingPolicy,
)

__all__ = [
    "STATUS_CODES",
    "FixedVotingPolicy",
    "LedgerGateway",
    "LedgerRequestStream",
    "LocalLedgerGateway",
    "OracleIdentity",
    "OracleResponder",
    "PerOracleVotingPolicy",
    "RandomVotingPolicy",
    "ResponderConfig",
    "SequenceVotingPolicy",
    "StatusRequestStream",
    "TransportError",
    "VotingPolicy",
]

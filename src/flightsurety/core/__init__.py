"""Ambient services shared by the ledger, the oracle responder and the server."""

from .exceptions import (
    AlreadyExists,
    AlreadyFinalized,
    ConfigException,
    FlightSuretyException,
    IndexMismatch,
    InsufficientBalance,
    InsufficientStake,
    NotFoundError,
    OperationSuspended,
    PremiumCapExceeded,
    QuorumNotReached,
    ReentrantCall,
    Unauthorized,
    ValidationException,
)

__all__ = [
    "AlreadyExists",
    "AlreadyFinalized",
    "ConfigException",
    "FlightSuretyException",
    "IndexMismatch",
    "InsufficientBalance",
    "InsufficientStake",
    "NotFoundError",
    "OperationSuspended",
    "PremiumCapExceeded",
    "QuorumNotReached",
    "ReentrantCall",
    "Unauthorized",
    "ValidationException",
]

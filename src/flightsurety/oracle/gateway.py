"""Ledger gateway - how the oracle responder reaches the ledger.

The responder only needs four things from a ledger: register an oracle,
look up its indexes, submit a vote and stream status requests. Remote
transports implement ``LedgerGateway`` and raise ``TransportError`` for
failures worth retrying; ``LocalLedgerGateway`` adapts an in-process
``LedgerStateMachine``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol, runtime_checkable

from ..core.exceptions import FlightSuretyException
from ..ledger.events import ORACLE_REQUEST, Subscription
from ..ledger.machine import LedgerStateMachine
from ..ledger.models import RequestKey, StatusCode, VoteReceipt
from ..ledger.policy import ORACLE_REGISTRATION_FEE

logger = logging.getLogger(__name__)


class TransportError(FlightSuretyException):
    """A gateway call failed before reaching the ledger. Safe to retry."""

    def __init__(self, message: str, operation: str | None = None):
        details = {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)
        self.operation = operation


@runtime_checkable
class StatusRequestStream(Protocol):
    """Cancellable stream of status-request keys."""

    def __aiter__(self) -> StatusRequestStream: ...

    async def __anext__(self) -> RequestKey: ...

    def close(self) -> None: ...


@runtime_checkable
class LedgerGateway(Protocol):
    async def registration_fee(self) -> int: ...

    async def register_oracle(self, oracle: str, fee: int) -> None: ...

    async def get_my_indexes(self, oracle: str) -> tuple[int, ...]: ...

    async def submit_oracle_response(self, oracle: str, key: RequestKey, status: StatusCode) -> VoteReceipt: ...

    async def subscribe_status_requests(self) -> StatusRequestStream: ...


class LedgerRequestStream:
    """Maps OracleRequest events of a ledger subscription to request keys."""

    def __init__(self, subscription: Subscription):
        self._subscription = subscription

    @property
    def closed(self) -> bool:
        return self._subscription.closed

    def __aiter__(self) -> LedgerRequestStream:
        return self

    async def __anext__(self) -> RequestKey:
        event = await self._subscription.__anext__()
        return RequestKey.from_dict(event.payload)

    def close(self) -> None:
        self._subscription.close()


class LocalLedgerGateway:
    """Gateway to a ledger running in the same process.

    Mutating calls run in a worker thread so lock contention on the ledger
    never blocks the responder's event loop.
    """

    def __init__(self, ledger: LedgerStateMachine):
        self.ledger = ledger

    async def registration_fee(self) -> int:
        return ORACLE_REGISTRATION_FEE

    async def register_oracle(self, oracle: str, fee: int) -> None:
        await asyncio.to_thread(self.ledger.register_oracle, oracle, fee)

    async def get_my_indexes(self, oracle: str) -> tuple[int, ...]:
        return self.ledger.get_my_indexes(oracle)

    async def submit_oracle_response(self, oracle: str, key: RequestKey, status: StatusCode) -> VoteReceipt:
        return await asyncio.to_thread(
            self.ledger.submit_oracle_response,
            key.index,
            key.airline,
            key.flight,
            key.timestamp,
            status,
            oracle,
        )

    async def subscribe_status_requests(self) -> LedgerRequestStream:
        subscription = self.ledger.events.subscribe({ORACLE_REQUEST})
        logger.debug(f"Subscribed to status requests from position {subscription.start_position}")
        return LedgerRequestStream(subscription)

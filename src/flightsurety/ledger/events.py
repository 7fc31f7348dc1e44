"""Append-only ledger event log with cancellable subscriptions.

Every applied transition appends its events here in log order. Observers
(the oracle responder, monitoring, tests) subscribe from the current head
of the log, or from an explicit earlier position, and consume events as an
asynchronous iterator bound to their own event loop. Appends may happen on
any thread; delivery goes through ``loop.call_soon_threadsafe``.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Iterable, Iterator
from typing import Any

from .models import LedgerEvent

logger = logging.getLogger(__name__)

# Event names
ORACLE_REQUEST = "OracleRequest"
ORACLE_REPORT = "OracleReport"
FLIGHT_STATUS_INFO = "FlightStatusInfo"
ORACLE_REGISTERED = "OracleRegistered"
AIRLINE_VOTED = "AirlineVoted"
AIRLINE_REGISTERED = "AirlineRegistered"
AIRLINE_FUNDED = "AirlineFunded"
FLIGHT_REGISTERED = "FlightRegistered"
INSURANCE_PURCHASED = "InsurancePurchased"
INSUREE_CREDITED = "InsureeCredited"
PAYOUT_WITHDRAWN = "PayoutWithdrawn"
OPERATING_STATUS_CHANGED = "OperatingStatusChanged"

_CLOSED = object()


class Subscription:
    """A cancellable stream of ledger events.

    Usage:
        subscription = log.subscribe({ORACLE_REQUEST})
        async for event in subscription:
            ...
        # elsewhere
        subscription.close()
    """

    def __init__(
        self,
        log: EventLog,
        loop: asyncio.AbstractEventLoop,
        names: frozenset[str] | None,
        start_position: int,
    ):
        self._log = log
        self._loop = loop
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self.names = names
        self.start_position = start_position
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def matches(self, event: LedgerEvent) -> bool:
        return self.names is None or event.name in self.names

    def _deliver(self, event: LedgerEvent) -> None:
        if self._closed or not self.matches(event):
            return
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, event)
        except RuntimeError:
            # Subscriber's loop is gone; nobody can consume any more
            logger.debug("Dropping subscription bound to a closed event loop")
            self._closed = True
            self._log._detach(self)

    def close(self) -> None:
        """Stop delivering events. Pending and future ``__anext__`` calls end iteration."""
        if self._closed:
            return
        self._closed = True
        self._log._detach(self)
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, _CLOSED)
        except RuntimeError:
            pass

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> LedgerEvent:
        if self._closed:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED or self._closed:
            raise StopAsyncIteration
        return item

    async def next(self, timeout: float | None = None) -> LedgerEvent:
        """Wait for the next event, raising TimeoutError after ``timeout`` seconds."""
        return await asyncio.wait_for(self.__anext__(), timeout=timeout)


class EventLog:
    """Ordered, append-only log of ledger events."""

    def __init__(self) -> None:
        self._events: list[LedgerEvent] = []
        self._subscriptions: list[Subscription] = []
        self._lock = threading.RLock()

    @property
    def head(self) -> int:
        """Position the next appended event will take."""
        return len(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[LedgerEvent]:
        return iter(list(self._events))

    def append(self, name: str, payload: dict[str, Any]) -> LedgerEvent:
        with self._lock:
            event = LedgerEvent(position=len(self._events), name=name, payload=dict(payload))
            self._events.append(event)
            for subscription in list(self._subscriptions):
                subscription._deliver(event)
        return event

    def events(self, name: str | None = None, from_position: int = 0) -> list[LedgerEvent]:
        """Events at or after ``from_position``, optionally filtered by name."""
        return [e for e in self._events[from_position:] if name is None or e.name == name]

    def subscribe(
        self,
        names: Iterable[str] | None = None,
        from_position: int | None = None,
    ) -> Subscription:
        """Subscribe from ``from_position`` (default: current head, no history).

        Must be called from the event loop that will consume the subscription.
        """
        loop = asyncio.get_running_loop()
        name_filter = frozenset(names) if names is not None else None
        with self._lock:
            start = self.head if from_position is None else max(0, from_position)
            subscription = Subscription(self, loop, name_filter, start)
            for event in self._events[start:]:
                if subscription.matches(event):
                    subscription._queue.put_nowait(event)
            self._subscriptions.append(subscription)
        logger.debug(f"Subscription opened at position {start} for {sorted(name_filter) if name_filter else 'all'}")
        return subscription

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def _detach(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

"""
Oracle Responder - votes on status requests for every oracle identity it owns.

This module manages:
- Registering oracle identities and recording their shard indexes
- Subscribing to status requests from the current ledger position
- Fanning each request out to the identities holding its index
- Submitting votes with per-submission retries and timeouts

One identity's failed or late submission never affects the others, and
never ends the subscription.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..core.exceptions import AlreadyExists, FlightSuretyException
from ..core.logging import correlation_context
from ..ledger.models import RequestKey, StatusCode, VoteOutcome, VoteReceipt
from .gateway import LedgerGateway, StatusRequestStream, TransportError
from .voting import RandomVotingPolicy, VotingPolicy

if TYPE_CHECKING:
    from ..server.config import ServerSettings

logger = logging.getLogger(__name__)

_OUTCOME_COUNTERS = {
    VoteOutcome.RECORDED: "recorded",
    VoteOutcome.FINALIZED: "finalized",
    VoteOutcome.ALREADY_FINALIZED: "late",
    VoteOutcome.INDEX_MISMATCH: "mismatched",
    VoteOutcome.DUPLICATE: "duplicate",
}


@dataclass
class ResponderConfig:
    """Configuration for OracleResponder."""

    oracle_count: int = 20
    identity_prefix: str = "oracle"
    identities: list[str] | None = None  # Explicit addresses override prefix/count

    # Submission limits
    max_concurrent_submissions: int = 16
    submit_timeout: float = 10.0  # seconds
    submit_max_attempts: int = 3
    retry_backoff: float = 0.5  # doubled per attempt
    max_retry_backoff: float = 5.0

    # Shutdown
    drain_timeout: float = 30.0

    def identity_addresses(self) -> list[str]:
        if self.identities is not None:
            return list(self.identities)
        return [f"{self.identity_prefix}-{i}" for i in range(self.oracle_count)]

    @classmethod
    def from_settings(cls, settings: ServerSettings) -> ResponderConfig:
        return cls(
            oracle_count=settings.oracle_count,
            identity_prefix=settings.oracle_identity_prefix,
            max_concurrent_submissions=settings.responder_max_concurrent_submissions,
            submit_timeout=settings.responder_submit_timeout,
            submit_max_attempts=settings.responder_submit_max_attempts,
            retry_backoff=settings.responder_retry_backoff,
            max_retry_backoff=settings.responder_max_retry_backoff,
            drain_timeout=settings.responder_drain_timeout,
        )


@dataclass(frozen=True)
class OracleIdentity:
    """An oracle account owned by this responder."""

    address: str
    indexes: tuple[int, ...]

    def holds(self, index: int) -> bool:
        return index in self.indexes


class OracleResponder:
    """
    Long-running oracle service.

    Usage:
        responder = OracleResponder(LocalLedgerGateway(ledger))
        await responder.start()
        task = responder.start_background()
        ...
        await responder.stop()
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        config: ResponderConfig | None = None,
        policy: VotingPolicy | None = None,
    ):
        self.gateway = gateway
        self.config = config or ResponderConfig()
        self.policy = policy or RandomVotingPolicy()

        self._identities: tuple[OracleIdentity, ...] = ()
        self._stream: StatusRequestStream | None = None
        self._run_task: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()
        self._semaphore: asyncio.Semaphore | None = None
        self._running = False

        self._stats: dict[str, int] = {
            "notifications": 0,
            "submitted": 0,
            "recorded": 0,
            "finalized": 0,
            "late": 0,
            "mismatched": 0,
            "duplicate": 0,
            "rejected": 0,
            "retries": 0,
            "failures": 0,
        }

    @property
    def identities(self) -> tuple[OracleIdentity, ...]:
        return self._identities

    @property
    def running(self) -> bool:
        return self._running

    def get_stats(self) -> dict[str, Any]:
        """Get responder statistics."""
        return {
            **self._stats,
            "identities": len(self._identities),
            "inflight": len(self._inflight),
        }

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Register every identity, then subscribe from the current ledger position."""
        if self._running:
            logger.warning("Oracle responder already running")
            return

        fee = await self.gateway.registration_fee()
        identities = []
        for address in self.config.identity_addresses():
            try:
                await self.gateway.register_oracle(address, fee)
            except AlreadyExists:
                logger.info(f"Oracle {address} already registered, reusing its indexes")
            indexes = await self.gateway.get_my_indexes(address)
            identities.append(OracleIdentity(address=address, indexes=tuple(indexes)))
        self._identities = tuple(identities)
        logger.info(f"Registered {len(self._identities)} oracle identities")

        self._semaphore = asyncio.Semaphore(self.config.max_concurrent_submissions)
        self._stream = await self.gateway.subscribe_status_requests()
        self._running = True

    async def run(self) -> None:
        """Consume status requests until the subscription is closed."""
        if self._stream is None:
            raise RuntimeError("OracleResponder.start() must be called before run()")

        async for key in self._stream:
            self._stats["notifications"] += 1
            try:
                self.handle_request(key)
            except Exception as e:  # Intentionally broad: one bad notification must not end the loop
                logger.exception(f"Failed to dispatch status request {key}: {e}")

        logger.info("Status request subscription closed")

    def start_background(self) -> asyncio.Task:
        """Run the consume loop as a background task."""
        self._run_task = asyncio.create_task(self.run())
        return self._run_task

    async def stop(self) -> None:
        """Stop consuming and let in-flight submissions finish."""
        if not self._running:
            return
        self._running = False

        if self._stream is not None:
            self._stream.close()
        if self._run_task is not None:
            try:
                await self._run_task
            except asyncio.CancelledError:
                pass
            self._run_task = None

        await self.drain(self.config.drain_timeout)
        logger.info("Oracle responder stopped")

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight submissions. Anything left after ``timeout`` is cancelled."""
        if not self._inflight:
            return
        done, pending = await asyncio.wait(set(self._inflight), timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning(f"Cancelled {len(pending)} submissions still running after {timeout}s")
            await asyncio.gather(*pending, return_exceptions=True)

    # -------------------------------------------------------------------------
    # Request handling
    # -------------------------------------------------------------------------

    def handle_request(self, key: RequestKey) -> list[asyncio.Task]:
        """Schedule one submission per owned identity holding ``key.index``."""
        matching = [identity for identity in self._identities if identity.holds(key.index)]
        logger.info(f"Status request for {key.flight} with index {key.index}: {len(matching)} of our oracles respond")

        tasks = []
        with correlation_context(f"{key.flight}-{key.index}-{key.timestamp}"):
            for identity in matching:
                task = asyncio.create_task(self._submit(identity, key))
                self._inflight.add(task)
                task.add_done_callback(self._inflight.discard)
                tasks.append(task)
        return tasks

    async def _submit(self, identity: OracleIdentity, key: RequestKey) -> VoteReceipt | None:
        """Submit one vote, retrying transport failures. Never raises except on cancellation."""
        assert self._semaphore is not None
        async with self._semaphore:
            status = self.policy.choose(identity.address, key)
            self._stats["submitted"] += 1

            delay = self.config.retry_backoff
            for attempt in range(1, self.config.submit_max_attempts + 1):
                try:
                    receipt = await asyncio.wait_for(
                        self.gateway.submit_oracle_response(identity.address, key, status),
                        timeout=self.config.submit_timeout,
                    )
                except (TransportError, asyncio.TimeoutError) as e:
                    if attempt >= self.config.submit_max_attempts:
                        self._stats["failures"] += 1
                        logger.warning(
                            f"Oracle {identity.address} gave up on {key} after {attempt} attempts: {e!r}"
                        )
                        return None
                    self._stats["retries"] += 1
                    logger.debug(f"Oracle {identity.address} retrying {key} in {delay:.2f}s: {e!r}")
                    await asyncio.sleep(delay)
                    delay = min(delay * 2, self.config.max_retry_backoff)
                    continue
                except FlightSuretyException as e:
                    self._stats["rejected"] += 1
                    logger.warning(f"Ledger rejected vote from {identity.address} for {key}: {e.message}")
                    return None
                except Exception as e:  # Intentionally broad: isolate this identity's failure
                    self._stats["rejected"] += 1
                    logger.exception(f"Unexpected error submitting vote from {identity.address}: {e}")
                    return None

                self._record_outcome(identity, receipt)
                return receipt
        return None

    def _record_outcome(self, identity: OracleIdentity, receipt: VoteReceipt) -> None:
        outcome = receipt.outcome
        self._stats[_OUTCOME_COUNTERS[outcome]] += 1
        if outcome == VoteOutcome.FINALIZED:
            logger.info(f"Oracle {identity.address} closed {receipt.key} with {StatusCode(receipt.status).name}")
        elif outcome.accepted:
            logger.debug(f"Oracle {identity.address} voted {StatusCode(receipt.status).name} for {receipt.key}")
        else:
            # Late, duplicate or mismatched votes are expected with independent responders
            logger.debug(f"Oracle {identity.address} vote for {receipt.key} was a no-op: {outcome.value}")

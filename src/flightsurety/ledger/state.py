"""The single owned ledger state container and per-transition context."""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterator, MutableMapping
from dataclasses import dataclass, field, replace
from typing import Any, TypeVar

from ..core.exceptions import NotFoundError, Unauthorized
from .models import Airline, Flight, InsurancePolicy, OracleRegistration, RequestKey, StatusRequest
from .randomness import RandomSource

# Called with (payee, amount) while a withdrawal is being applied.
TransferHook = Callable[[str, int], None]


K = TypeVar("K")
V = TypeVar("V")


class CopyOnWriteDict(MutableMapping[K, V]):
    """
    Working view over a committed mapping for one transition.

    A record is deep-copied the first time it is looked up, so handlers can
    mutate whatever they fetch while the committed mapping stays untouched.
    Records the transition never reads are never copied. ``merge`` folds the
    touched records back into the committed mapping.

    Ledger records are never removed, so deletion is not supported.
    """

    def __init__(self, base: dict[K, V]):
        self._base = base
        self._touched: dict[K, V] = {}

    def __getitem__(self, key: K) -> V:
        if key not in self._touched:
            self._touched[key] = copy.deepcopy(self._base[key])
        return self._touched[key]

    def __setitem__(self, key: K, value: V) -> None:
        self._touched[key] = value

    def __delitem__(self, key: K) -> None:
        raise TypeError("Ledger records cannot be removed")

    def __contains__(self, key: object) -> bool:
        return key in self._touched or key in self._base

    def __iter__(self) -> Iterator[K]:
        yield from self._base
        for key in self._touched:
            if key not in self._base:
                yield key

    def __len__(self) -> int:
        return len(self._base) + sum(1 for key in self._touched if key not in self._base)

    @property
    def touched(self) -> dict[K, V]:
        """Records copied or written by this transition."""
        return self._touched

    def merge(self) -> dict[K, V]:
        """Write touched records into the committed mapping and return it.

        Existing keys keep their position; new keys are appended in the order
        the transition added them.
        """
        self._base.update(self._touched)
        return self._base


@dataclass
class LedgerState:
    """Authoritative ledger state.

    Only transition functions mutate it, and only on a working copy that the
    state machine commits after the transition returns.
    """

    owner: str
    operational: bool = True
    airlines: dict[str, Airline] = field(default_factory=dict)
    flights: dict[str, Flight] = field(default_factory=dict)
    flight_order: list[str] = field(default_factory=list)
    policies: dict[tuple[str, str], InsurancePolicy] = field(default_factory=dict)
    payouts: dict[str, int] = field(default_factory=dict)
    oracles: dict[str, OracleRegistration] = field(default_factory=dict)
    requests: dict[RequestKey, StatusRequest] = field(default_factory=dict)
    treasury: int = 0
    last_request_timestamp: int = 0

    def draft(self) -> LedgerState:
        """Working state for one transition.

        Costs the same however much history the ledger holds: records are
        copied only when the transition looks them up.
        """
        return replace(
            self,
            flight_order=list(self.flight_order),
            **{name: CopyOnWriteDict(getattr(self, name)) for name in _RECORD_TABLES},
        )

    def commit(self) -> LedgerState:
        """Fold a finished draft into the state it was drafted from."""
        return replace(
            self,
            **{name: _merged(getattr(self, name)) for name in _RECORD_TABLES},
        )

    def operational_airline_count(self) -> int:
        return sum(1 for airline in self.airlines.values() if airline.operational)

    def require_operational_airline(self, address: str) -> Airline:
        airline = self.airlines.get(address)
        if airline is None or not airline.operational:
            raise Unauthorized(f"Airline {address} is not operational", caller=address)
        return airline

    def require_flight(self, code: str) -> Flight:
        flight = self.flights.get(code)
        if flight is None:
            raise NotFoundError("Flight", code)
        return flight

    def policies_for(self, flight_code: str) -> list[InsurancePolicy]:
        flight = self.require_flight(flight_code)
        return [self.policies[(passenger, flight_code)] for passenger in flight.insurees]

    def to_dict(self) -> dict[str, Any]:
        """Snapshot used to compare replayed ledgers."""
        return {
            "owner": self.owner,
            "operational": self.operational,
            "airlines": {k: v.to_dict() for k, v in self.airlines.items()},
            "flights": [self.flights[code].to_dict() for code in self.flight_order],
            "policies": [p.to_dict() for p in self.policies.values()],
            "payouts": dict(self.payouts),
            "oracles": {k: v.to_dict() for k, v in self.oracles.items()},
            "requests": [r.to_dict() for r in self.requests.values()],
            "treasury": self.treasury,
            "last_request_timestamp": self.last_request_timestamp,
        }


_RECORD_TABLES = ("airlines", "flights", "policies", "payouts", "oracles", "requests")


def _merged(table: Any) -> dict:
    return table.merge() if isinstance(table, CopyOnWriteDict) else table


@dataclass
class TransitionContext:
    """Collaborators and the event buffer for one transition."""

    random: RandomSource
    clock: Callable[[], int]
    transfer: TransferHook | None = None
    events: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    def emit(self, name: str, **payload: Any) -> None:
        self.events.append((name, payload))

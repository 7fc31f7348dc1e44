"""Injectable randomness for shard index and status draws.

Index assignment and request index selection must be unpredictable to
outside observers before the draw, but need not be cryptographic. Tests
supply deterministic sources so every draw can be replayed.

Sources:
- SystemRandomSource: OS randomness via ``secrets`` (production default)
- SeededRandomSource: reproducible ``random.Random`` stream
- HashChainRandomSource: SHA-256 over (seed, nonce, salt), mirroring a
  block-hash draw salted with the caller's address
- ScriptedRandomSource: fixed sequence of values for tests
"""

from __future__ import annotations

import hashlib
import random
import secrets
from collections.abc import Iterable, Sequence
from typing import Protocol, TypeVar, runtime_checkable

T = TypeVar("T")

DOMAIN_SEPARATOR_DRAW = b"flightsurety-draw-v1"


@runtime_checkable
class RandomSource(Protocol):
    """Source of integers in ``[0, upper)``."""

    def randbelow(self, upper: int, salt: str = "") -> int:
        """Draw an integer in [0, upper). ``salt`` identifies the caller."""
        ...


class SystemRandomSource:
    """OS-backed randomness. Not reproducible."""

    def randbelow(self, upper: int, salt: str = "") -> int:
        _check_upper(upper)
        return secrets.randbelow(upper)


class SeededRandomSource:
    """Reproducible stream for a given seed."""

    def __init__(self, seed: int):
        self.seed = seed
        self._rng = random.Random(seed)

    def randbelow(self, upper: int, salt: str = "") -> int:
        _check_upper(upper)
        return self._rng.randrange(upper)


class HashChainRandomSource:
    """Draws from SHA-256(domain || seed || nonce || salt).

    The nonce advances on every draw so repeated draws for the same caller
    differ, while the same seed always replays the same sequence.
    """

    def __init__(self, seed: bytes | None = None):
        self.seed = seed if seed is not None else secrets.token_bytes(32)
        self.nonce = 0

    def randbelow(self, upper: int, salt: str = "") -> int:
        _check_upper(upper)
        digest = hashlib.sha256(
            DOMAIN_SEPARATOR_DRAW + self.seed + self.nonce.to_bytes(8, "big") + salt.encode()
        ).digest()
        self.nonce += 1
        return int.from_bytes(digest, "big") % upper


class ScriptedRandomSource:
    """Returns a fixed sequence of values, for deterministic tests."""

    def __init__(self, values: Iterable[int]):
        self._values = list(values)
        self._position = 0

    @property
    def remaining(self) -> int:
        return len(self._values) - self._position

    def randbelow(self, upper: int, salt: str = "") -> int:
        _check_upper(upper)
        if self._position >= len(self._values):
            raise ValueError("Scripted random source exhausted")
        value = self._values[self._position]
        self._position += 1
        if not 0 <= value < upper:
            raise ValueError(f"Scripted value {value} outside [0, {upper})")
        return value


def choice(source: RandomSource, options: Sequence[T], salt: str = "") -> T:
    """Pick one element of ``options`` using ``source``."""
    if not options:
        raise ValueError("Cannot choose from an empty sequence")
    return options[source.randbelow(len(options), salt)]


def draw_distinct(source: RandomSource, upper: int, count: int, salt: str = "", max_draws: int = 1000) -> tuple[int, ...]:
    """Draw ``count`` distinct integers in [0, upper), in draw order.

    Collisions are redrawn. Raises ValueError if ``count`` exceeds ``upper``
    or ``max_draws`` draws do not yield enough distinct values.
    """
    if count > upper:
        raise ValueError(f"Cannot draw {count} distinct values below {upper}")
    drawn: list[int] = []
    for _ in range(max_draws):
        if len(drawn) == count:
            break
        value = source.randbelow(upper, salt)
        if value not in drawn:
            drawn.append(value)
    if len(drawn) < count:
        raise ValueError(f"Could not draw {count} distinct values in {max_draws} draws")
    return tuple(drawn)


def create_random_source(seed: int | None = None) -> RandomSource:
    """Seeded source when a seed is configured, system randomness otherwise."""
    if seed is None:
        return SystemRandomSource()
    return SeededRandomSource(seed)


def _check_upper(upper: int) -> None:
    if upper <= 0:
        raise ValueError(f"upper must be positive, got {upper}")

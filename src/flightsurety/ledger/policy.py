"""Fixed policy constants and quorum arithmetic.

Amounts are integers in the ledger's smallest indivisible unit. None of these
values is runtime-configurable.

Airline admission:
- Fewer than AIRLINES_WITHOUT_CONSENSUS operational airlines: first vote admits
- Otherwise: required_votes(operational_count) distinct operational voters

Oracle consensus:
- Each oracle holds INDEXES_PER_ORACLE distinct indexes in [0, SHARD_COUNT)
- A status request finalizes when one status code gets MIN_RESPONSES votes
"""

from __future__ import annotations

UNIT = 10**18

# Airline governance
AIRLINES_WITHOUT_CONSENSUS = 4
AIRLINE_MIN_STAKE = 10 * UNIT

# Insurance
MAX_PREMIUM = 1 * UNIT
PAYOUT_NUMERATOR = 3
PAYOUT_DENOMINATOR = 2

# Oracles
ORACLE_REGISTRATION_FEE = 1 * UNIT
SHARD_COUNT = 10
INDEXES_PER_ORACLE = 3
MIN_RESPONSES = 3


def required_votes(participant_count: int) -> int:
    """Votes needed for a 50% quorum of ``participant_count`` participants.

    Equivalent to ceil(participant_count / 2), never less than one.

    >>> required_votes(4)
    2
    >>> required_votes(5)
    3
    """
    if participant_count < 0:
        raise ValueError(f"participant_count must be >= 0, got {participant_count}")
    return max(1, (participant_count + 1) // 2)


def admission_threshold(operational_count: int) -> int:
    """Votes needed to admit a candidate given the operational airline count."""
    if operational_count < AIRLINES_WITHOUT_CONSENSUS:
        return 1
    return required_votes(operational_count)


def payout_for(premium: int) -> int:
    """Credit owed for a premium when the airline caused the delay (1.5x)."""
    return premium * PAYOUT_NUMERATOR // PAYOUT_DENOMINATOR

"""Insurance ledger: purchase, settlement credit and withdrawal.

Purchase:
- 0 < premium <= MAX_PREMIUM
- At most one policy per (passenger, flight); a second purchase fails
  instead of overwriting the first

Settlement runs when a consensus round finalizes. Only LATE_AIRLINE
credits passengers, each policy at most once, for premium * 3 // 2.

Withdrawal zeroes the balance on the working state before the transfer hook
runs, so a hook that re-enters the ledger can never observe the old balance.
"""

from __future__ import annotations

import logging

from ..core.exceptions import AlreadyExists, InsufficientBalance, PremiumCapExceeded, ValidationException
from . import events
from .models import Flight, InsurancePolicy, StatusCode
from .operations import BuyInsurance, WithdrawPayout
from .policy import MAX_PREMIUM, payout_for
from .state import LedgerState, TransitionContext

logger = logging.getLogger(__name__)


def buy_insurance(state: LedgerState, ctx: TransitionContext, op: BuyInsurance) -> InsurancePolicy:
    if op.premium <= 0:
        raise ValidationException("Premium must be positive", field="premium", value=op.premium)
    if op.premium > MAX_PREMIUM:
        raise PremiumCapExceeded(op.premium, MAX_PREMIUM)

    flight = state.require_flight(op.flight)
    if (op.passenger, op.flight) in state.policies:
        raise AlreadyExists("Passenger already insured for flight", existing_id=f"{op.passenger}:{op.flight}")

    policy = InsurancePolicy(passenger=op.passenger, flight_code=op.flight, premium=op.premium)
    state.policies[(op.passenger, op.flight)] = policy
    flight.insurees.append(op.passenger)
    state.treasury += op.premium
    ctx.emit(events.INSURANCE_PURCHASED, passenger=op.passenger, flight=op.flight, premium=op.premium)
    return policy


def settle_flight(state: LedgerState, ctx: TransitionContext, flight: Flight, status: StatusCode) -> int:
    """Credit every insured passenger of ``flight`` if the airline caused the delay.

    Returns:
        Total amount credited.
    """
    if status != StatusCode.LATE_AIRLINE:
        return 0

    total = 0
    for policy in state.policies_for(flight.code):
        if policy.credited:
            continue
        amount = payout_for(policy.premium)
        policy.credited = True
        state.payouts[policy.passenger] = state.payouts.get(policy.passenger, 0) + amount
        total += amount
        ctx.emit(events.INSUREE_CREDITED, passenger=policy.passenger, flight=flight.code, amount=amount)

    if total:
        logger.info(f"Credited {total} to insurees of {flight.code}")
    return total


def withdraw_payout(state: LedgerState, ctx: TransitionContext, op: WithdrawPayout) -> int:
    amount = state.payouts.get(op.passenger, 0)
    if amount <= 0:
        raise InsufficientBalance(op.passenger)
    if state.treasury < amount:
        raise InsufficientBalance(op.passenger, balance=amount)

    # Effects before interaction
    state.payouts[op.passenger] = 0
    state.treasury -= amount
    ctx.emit(events.PAYOUT_WITHDRAWN, passenger=op.passenger, amount=amount)

    if ctx.transfer is not None:
        ctx.transfer(op.passenger, amount)
    return amount

"""Allocation engine: turns a total and a strategy into per-participant shares.

Pure functions, no I/O. Sum checks for PERCENTAGE/AMOUNT/CUSTOM inputs are the
caller's job (see ``app.services.validation``); the engine only computes.

Participants can be any object exposing ``user_id``, ``percentage`` and
``amount`` attributes: request schemas, template rows or ``ParticipantInput``.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Sequence

from app.core.exceptions import EmptyParticipants, InvalidAmount, InvalidStrategy
from app.core.utils import CENTS, HUNDRED, ZERO, dsum, percent_of, qfloor, qround, to_decimal
from app.models.split_record import SplitStatus, SplitStrategy


@dataclass
class ParticipantInput:
    user_id: int
    percentage: Optional[Decimal] = None
    amount: Optional[Decimal] = None


@dataclass
class AllocatedShare:
    user_id: int
    amount: Decimal
    percentage: Optional[Decimal]
    status: SplitStatus = SplitStatus.PENDING


def parse_strategy(strategy) -> SplitStrategy:
    if isinstance(strategy, SplitStrategy):
        return strategy
    try:
        return SplitStrategy(str(strategy).upper())
    except ValueError:
        raise InvalidStrategy(strategy) from None


def _absorb_remainder(shares: List[AllocatedShare], total: Decimal) -> None:
    # rounding dust goes to the last participant that can take it without going negative
    diff = total - dsum(s.amount for s in shares)
    if not diff:
        return
    for share in reversed(shares):
        if share.amount + diff >= ZERO:
            share.amount += diff
            return


def _equal(total: Decimal, participants: Sequence, tolerance: Decimal) -> List[AllocatedShare]:
    n = len(participants)
    share = qround(total / n)
    if share * (n - 1) > total:
        # half-up rounding would leave the last share negative on tiny totals
        share = qfloor(total / n)

    shares = []
    remaining = total
    for index, p in enumerate(participants):
        amount = remaining if index == n - 1 else share
        remaining -= amount
        shares.append(AllocatedShare(p.user_id, amount, percent_of(amount, total)))
    return shares


def _percentage(total: Decimal, participants: Sequence, tolerance: Decimal) -> List[AllocatedShare]:
    shares = []
    for p in participants:
        pct = to_decimal(p.percentage) or ZERO
        shares.append(AllocatedShare(p.user_id, qround(total * pct / HUNDRED), pct))

    if abs(dsum(s.percentage for s in shares) - HUNDRED) <= tolerance:
        _absorb_remainder(shares, total)
    return shares


def _amount(total: Decimal, participants: Sequence, tolerance: Decimal) -> List[AllocatedShare]:
    shares = [AllocatedShare(p.user_id, qround(to_decimal(p.amount) or ZERO), None) for p in participants]
    if abs(total - dsum(s.amount for s in shares)) <= tolerance:
        _absorb_remainder(shares, total)
    for s in shares:
        s.percentage = percent_of(s.amount, total)
    return shares


def _custom(total: Decimal, participants: Sequence, tolerance: Decimal) -> List[AllocatedShare]:
    shares = [
        AllocatedShare(p.user_id, qround(to_decimal(p.amount) or ZERO), to_decimal(p.percentage))
        for p in participants
    ]
    if abs(total - dsum(s.amount for s in shares)) <= tolerance:
        _absorb_remainder(shares, total)
    return shares


_ALLOCATORS: Dict[SplitStrategy, Callable[[Decimal, Sequence, Decimal], List[AllocatedShare]]] = {
    SplitStrategy.EQUAL: _equal,
    SplitStrategy.PERCENTAGE: _percentage,
    SplitStrategy.AMOUNT: _amount,
    SplitStrategy.CUSTOM: _custom,
}


def allocate(total_amount, strategy, participants: Sequence, tolerance: Decimal = CENTS) -> List[AllocatedShare]:
    """Compute each participant's share of ``total_amount``.

    Shares come back in participant order, all PENDING. For EQUAL the last
    participant absorbs the rounding remainder, so 100.00 over three people
    is [33.33, 33.33, 33.34]. PERCENTAGE, AMOUNT and CUSTOM inputs that are
    off by no more than ``tolerance`` get the same treatment, so the shares
    add up to the total exactly.

    Raises InvalidStrategy, EmptyParticipants or InvalidAmount.
    """
    strategy = parse_strategy(strategy)

    if not participants:
        raise EmptyParticipants()

    total = to_decimal(total_amount)
    if total is None or total <= 0:
        raise InvalidAmount("Total amount must be greater than 0", total_amount=total)
    total = qround(total)

    return _ALLOCATORS[strategy](total, participants, tolerance)

from decimal import Decimal
from typing import Sequence

from app.core.exceptions import (
    AmountSumMismatch,
    DuplicateParticipant,
    EmptyParticipants,
    InvalidAmount,
    PercentageSumMismatch,
)
from app.core.utils import CENTS, HUNDRED, ZERO, dsum, to_decimal
from app.models.split_record import SplitStrategy


def check_participants(participants: Sequence) -> None:
    if not participants:
        raise EmptyParticipants()

    user_ids = [p.user_id for p in participants]
    seen = set()
    for uid in user_ids:
        if uid in seen:
            raise DuplicateParticipant(uid)
        seen.add(uid)

    for p in participants:
        amount = to_decimal(getattr(p, "amount", None))
        if amount is not None and amount < 0:
            raise InvalidAmount("Split amounts cannot be negative", user_id=p.user_id, amount=amount)
        pct = to_decimal(getattr(p, "percentage", None))
        if pct is not None and not (ZERO <= pct <= HUNDRED):
            raise InvalidAmount("Percentages must be between 0 and 100", user_id=p.user_id, percentage=pct)


def check_percentage_sum(participants: Sequence, tolerance: Decimal = CENTS) -> None:
    total_pct = dsum(p.percentage for p in participants)
    if abs(total_pct - HUNDRED) > tolerance:
        raise PercentageSumMismatch(total_pct)


def check_amount_sum(total_amount: Decimal, participants: Sequence, tolerance: Decimal = CENTS) -> None:
    split_sum = dsum(p.amount for p in participants)
    if abs(split_sum - total_amount) > tolerance:
        raise AmountSumMismatch(split_sum, total_amount)


def validate_split_data(
    total_amount,
    strategy: SplitStrategy,
    participants: Sequence,
    tolerance: Decimal = CENTS,
) -> None:
    """Precondition checks that run before the allocation engine.

    PERCENTAGE inputs must add up to 100 and AMOUNT/CUSTOM inputs to the
    total, each within ``tolerance``.
    """
    check_participants(participants)

    total = to_decimal(total_amount)
    if total is None or total <= 0:
        raise InvalidAmount("Total amount must be greater than 0", total_amount=total)

    if strategy == SplitStrategy.PERCENTAGE:
        check_percentage_sum(participants, tolerance)
    elif strategy in (SplitStrategy.AMOUNT, SplitStrategy.CUSTOM):
        check_amount_sum(total, participants, tolerance)

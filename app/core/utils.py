from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP, getcontext
from typing import Iterable, Optional

getcontext().prec = 28
CENTS = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0")


def qround(d: Decimal) -> Decimal:
    return d.quantize(CENTS, rounding=ROUND_HALF_UP)


def qfloor(d: Decimal) -> Decimal:
    return d.quantize(CENTS, rounding=ROUND_DOWN)


def to_decimal(value) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    # str() first so floats like 0.1 don't leak binary noise
    return Decimal(str(value))


def dsum(values: Iterable[Optional[Decimal]]) -> Decimal:
    total = ZERO
    for v in values:
        if v is not None:
            total += to_decimal(v)
    return total


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    if whole == 0:
        return ZERO
    return qround(part / whole * HUNDRED)

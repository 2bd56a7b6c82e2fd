from __future__ import annotations
from decimal import Decimal

import pytest

from app.core.exceptions import EmptyParticipants, InvalidAmount, InvalidStrategy
from app.models.split_record import SplitStatus, SplitStrategy
from app.services.allocation import _ALLOCATORS, ParticipantInput, allocate, parse_strategy


def people(*user_ids, **kw):
    return [ParticipantInput(user_id=uid, **kw) for uid in user_ids]


def amounts(shares):
    return [s.amount for s in shares]


def test_equal_remainder_goes_to_last_participant():
    shares = allocate(Decimal("100.00"), SplitStrategy.EQUAL, people(1, 2, 3))

    assert amounts(shares) == [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")]
    assert [s.user_id for s in shares] == [1, 2, 3]
    assert sum(amounts(shares)) == Decimal("100.00")


def test_equal_even_split_has_display_percentages():
    shares = allocate(Decimal("50"), "EQUAL", people(1, 2))

    assert amounts(shares) == [Decimal("25.00"), Decimal("25.00")]
    assert [s.percentage for s in shares] == [Decimal("50.00"), Decimal("50.00")]


def test_equal_single_participant_takes_everything():
    shares = allocate(Decimal("19.99"), SplitStrategy.EQUAL, people(7))
    assert amounts(shares) == [Decimal("19.99")]


@pytest.mark.parametrize("total", ["0.01", "0.09", "1.00", "10.00", "99.99", "1234.57"])
@pytest.mark.parametrize("n", [1, 2, 3, 6, 7])
def test_equal_shares_sum_to_total_and_stay_non_negative(total, n):
    total = Decimal(total)
    shares = allocate(total, SplitStrategy.EQUAL, people(*range(1, n + 1)))

    assert sum(amounts(shares)) == total
    assert all(a >= 0 for a in amounts(shares))


def test_percentage_template_split():
    participants = [
        ParticipantInput(user_id=1, percentage=Decimal("60")),
        ParticipantInput(user_id=2, percentage=Decimal("40")),
    ]
    shares = allocate(Decimal("200.00"), SplitStrategy.PERCENTAGE, participants)

    assert amounts(shares) == [Decimal("120.00"), Decimal("80.00")]
    assert [s.percentage for s in shares] == [Decimal("60"), Decimal("40")]


def test_percentage_rounding_dust_lands_on_last_participant():
    participants = [
        ParticipantInput(user_id=1, percentage=Decimal("33.33")),
        ParticipantInput(user_id=2, percentage=Decimal("33.33")),
        ParticipantInput(user_id=3, percentage=Decimal("33.34")),
    ]
    shares = allocate(Decimal("10.00"), SplitStrategy.PERCENTAGE, participants)

    assert amounts(shares) == [Decimal("3.33"), Decimal("3.33"), Decimal("3.34")]
    assert sum(amounts(shares)) == Decimal("10.00")


def test_percentage_does_not_validate_sum():
    participants = [
        ParticipantInput(user_id=1, percentage=Decimal("10")),
        ParticipantInput(user_id=2, percentage=Decimal("10")),
    ]
    shares = allocate(Decimal("100"), SplitStrategy.PERCENTAGE, participants)
    assert amounts(shares) == [Decimal("10.00"), Decimal("10.00")]


def test_amount_strategy_derives_percentages():
    participants = [
        ParticipantInput(user_id=1, amount=Decimal("25")),
        ParticipantInput(user_id=2, amount=Decimal("75")),
    ]
    shares = allocate(Decimal("100"), SplitStrategy.AMOUNT, participants)

    assert amounts(shares) == [Decimal("25.00"), Decimal("75.00")]
    assert [s.percentage for s in shares] == [Decimal("25.00"), Decimal("75.00")]


def test_amount_within_tolerance_is_topped_up_on_last_participant():
    participants = [
        ParticipantInput(user_id=1, amount=Decimal("50.00")),
        ParticipantInput(user_id=2, amount=Decimal("49.99")),
    ]
    shares = allocate(Decimal("100.00"), SplitStrategy.AMOUNT, participants)

    assert amounts(shares) == [Decimal("50.00"), Decimal("50.00")]
    assert [s.percentage for s in shares] == [Decimal("50.00"), Decimal("50.00")]


def test_amount_outside_tolerance_is_left_alone():
    participants = [
        ParticipantInput(user_id=1, amount=Decimal("50")),
        ParticipantInput(user_id=2, amount=Decimal("40")),
    ]
    shares = allocate(Decimal("100"), SplitStrategy.AMOUNT, participants)
    assert amounts(shares) == [Decimal("50.00"), Decimal("40.00")]


def test_overshoot_skips_a_last_participant_at_zero():
    participants = [
        ParticipantInput(user_id=1, amount=Decimal("10.01")),
        ParticipantInput(user_id=2, amount=Decimal("0")),
    ]
    shares = allocate(Decimal("10.00"), SplitStrategy.CUSTOM, participants)
    assert amounts(shares) == [Decimal("10.00"), Decimal("0.00")]


def test_custom_strategy_passes_values_through():
    participants = [
        ParticipantInput(user_id=1, amount=Decimal("70"), percentage=Decimal("70")),
        ParticipantInput(user_id=2, amount=Decimal("30")),
    ]
    shares = allocate(Decimal("100"), SplitStrategy.CUSTOM, participants)

    assert amounts(shares) == [Decimal("70.00"), Decimal("30.00")]
    assert [s.percentage for s in shares] == [Decimal("70"), None]


def test_every_share_starts_pending():
    for strategy in SplitStrategy:
        shares = allocate(
            Decimal("10"),
            strategy,
            [ParticipantInput(user_id=1, percentage=Decimal("100"), amount=Decimal("10"))],
        )
        assert [s.status for s in shares] == [SplitStatus.PENDING]


def test_every_strategy_has_an_allocator():
    assert set(_ALLOCATORS) == set(SplitStrategy)


def test_strategy_names_are_case_insensitive():
    assert parse_strategy("percentage") is SplitStrategy.PERCENTAGE


def test_unknown_strategy():
    with pytest.raises(InvalidStrategy) as exc:
        allocate(Decimal("10"), "SHARES", people(1))
    assert exc.value.context["strategy"] == "SHARES"


def test_empty_participants():
    with pytest.raises(EmptyParticipants):
        allocate(Decimal("10"), SplitStrategy.EQUAL, [])


@pytest.mark.parametrize("total", [Decimal("0"), Decimal("-5")])
def test_total_must_be_positive(total):
    with pytest.raises(InvalidAmount):
        allocate(total, SplitStrategy.EQUAL, people(1, 2))

"""Tests for booking price calculation."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

import pytest

from apps.bookings.domain.pricing import MONTHLY, ONE_TIME, FeeLine, calculate_price, manual_quote
from apps.bookings.exceptions import InvalidInputError


@dataclass
class StubCoupon:
    valid: bool
    final_amount: Decimal
    promotion_id: object = None
    error: str = ""


def test_plan_only_price() -> None:
    quote = calculate_price(Decimal("1000"), [], 1)

    assert quote.subtotal.amount == Decimal("1000.00")
    assert quote.total.amount == Decimal("1000.00")
    assert quote.discount.amount == Decimal("0.00")
    assert [share.amount for share in quote.per_cycle] == [Decimal("1000.00")]


def test_one_time_fee_is_charged_every_cycle() -> None:
    fees = [FeeLine("Registration", Decimal("100"), ONE_TIME)]

    quote = calculate_price(Decimal("1000"), fees, 3, plan_duration=1, plan_unit="months")

    assert quote.cycle_amount.amount == Decimal("1100.00")
    assert quote.subtotal.amount == Decimal("3300.00")


def test_monthly_fee_scales_with_monthly_plan_duration() -> None:
    fees = [FeeLine("Locker", Decimal("200"), MONTHLY)]

    quote = calculate_price(Decimal("2700"), fees, 1, plan_duration=3, plan_unit="months")

    assert quote.cycle_amount.amount == Decimal("3300.00")


def test_monthly_fee_is_flat_for_non_monthly_plans() -> None:
    fees = [FeeLine("Locker", Decimal("200"), MONTHLY)]

    quote = calculate_price(Decimal("300"), fees, 2, plan_duration=2, plan_unit="weeks")

    assert quote.cycle_amount.amount == Decimal("500.00")
    assert quote.subtotal.amount == Decimal("1000.00")


def test_valid_coupon_replaces_total() -> None:
    seen = []

    def coupon(subtotal):
        seen.append(subtotal)
        return StubCoupon(valid=True, final_amount=Decimal("1800.00"), promotion_id="promo-1")

    quote = calculate_price(Decimal("1000"), [], 2, coupon=coupon)

    assert seen == [Decimal("2000.00")]
    assert quote.total.amount == Decimal("1800.00")
    assert quote.discount.amount == Decimal("200.00")
    assert quote.promotion_id == "promo-1"


def test_invalid_coupon_leaves_total_untouched() -> None:
    quote = calculate_price(
        Decimal("1000"),
        [],
        1,
        coupon=lambda subtotal: StubCoupon(valid=False, final_amount=subtotal, error="expired"),
    )

    assert quote.total.amount == Decimal("1000.00")
    assert quote.discount.amount == Decimal("0.00")
    assert quote.coupon_error == "expired"
    assert quote.promotion_id is None


def test_coupon_cannot_raise_the_total() -> None:
    quote = calculate_price(
        Decimal("500"),
        [],
        1,
        coupon=lambda subtotal: StubCoupon(valid=True, final_amount=Decimal("900")),
    )

    assert quote.total.amount == Decimal("500.00")


def test_last_cycle_absorbs_the_remainder() -> None:
    quote = calculate_price(Decimal("1000"), [], 3, coupon=lambda s: StubCoupon(True, Decimal("1000.00")))

    shares = [share.amount for share in quote.per_cycle]
    assert shares == [Decimal("333.33"), Decimal("333.33"), Decimal("333.34")]
    assert sum(shares) == quote.total.amount


@pytest.mark.parametrize("total,count", [("100.00", 3), ("0.05", 4), ("999.99", 7), ("0", 2)])
def test_per_cycle_shares_sum_to_total(total, count) -> None:
    quote = manual_quote(Decimal(total), count)

    assert sum(share.amount for share in quote.per_cycle) == Decimal(total)
    assert len(quote.per_cycle) == count


def test_manual_quote_keeps_supplied_discount() -> None:
    quote = manual_quote(Decimal("1000"), 1, discount=Decimal("150"))

    assert quote.total.amount == Decimal("1000.00")
    assert quote.discount.amount == Decimal("150.00")
    assert quote.subtotal.amount == Decimal("1150.00")


def test_manual_quote_rejects_negative_amount() -> None:
    with pytest.raises(InvalidInputError):
        manual_quote(Decimal("-1"), 1)


def test_zero_cycles_are_rejected() -> None:
    with pytest.raises(InvalidInputError):
        calculate_price(Decimal("1000"), [], 0)


def test_receipt_lines_list_plan_and_fees() -> None:
    fees = [FeeLine("Registration", Decimal("100"), ONE_TIME)]

    quote = calculate_price(Decimal("1000"), fees, 2, plan_name="Monthly")

    assert [item.description for item in quote.items] == ["Plan: Monthly (x2)", "Registration (x2)"]
    assert quote.items[1].amount.amount == Decimal("200")

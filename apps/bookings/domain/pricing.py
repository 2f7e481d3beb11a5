"""
Booking Price Calculation

Pure pricing for a multi-cycle booking:

    cycle amount = plan price + sum(adjusted fees)
    subtotal     = cycle amount x cycle count
    total        = subtotal, or the coupon's final amount when a valid coupon applies
    discount     = subtotal - total

Fee adjustment: ``ONE_TIME`` fees are charged once per cycle. ``MONTHLY``
fees are multiplied by the plan duration when the plan is measured in
months, and behave like ``ONE_TIME`` otherwise.

Rounding policy: the total is rounded half-up to cents and then split
across cycles with ``Money.split``. Every cycle but the last gets the
truncated even share; the last cycle absorbs the remainder, so the
per-cycle amounts always add up to the payment total exactly.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Iterable, List, Optional

from apps.bookings.domain.cycles import MONTHS
from apps.bookings.exceptions import InvalidInputError
from shared.domain.value_objects import Money

ONE_TIME = 'ONE_TIME'
MONTHLY = 'MONTHLY'


@dataclass(frozen=True)
class FeeLine:
    """A selected additional fee, as priced for one cycle"""
    name: str
    amount: Decimal
    bill_type: str = ONE_TIME


@dataclass(frozen=True)
class LineItem:
    description: str
    amount: Money


@dataclass
class PriceQuote:
    """Outcome of pricing a booking"""
    cycle_amount: Money
    subtotal: Money
    total: Money
    discount: Money
    per_cycle: List[Money]
    items: List[LineItem] = field(default_factory=list)
    promotion_id: Any = None
    coupon_error: str = ''

    @property
    def cycle_count(self) -> int:
        return len(self.per_cycle)


# Coupon collaborator bound to one booking: receives the subtotal and
# returns an object exposing ``valid`` and ``final_amount``
CouponApplier = Callable[[Decimal], Any]


def adjusted_fee_amount(fee: FeeLine, plan_duration: int, plan_unit: str) -> Decimal:
    """Per-cycle amount of one fee"""
    if fee.bill_type == MONTHLY and plan_unit == MONTHS:
        return Decimal(fee.amount) * plan_duration
    return Decimal(fee.amount)


def _validate_count(cycle_count: int):
    if isinstance(cycle_count, bool) or not isinstance(cycle_count, int) or cycle_count < 1:
        raise InvalidInputError(f"Cycle count must be a positive integer, got {cycle_count!r}")


def calculate_price(
    plan_price: Decimal,
    fees: Iterable[FeeLine],
    cycle_count: int,
    *,
    plan_duration: int = 1,
    plan_unit: str = MONTHS,
    plan_name: str = 'Plan',
    coupon: Optional[CouponApplier] = None,
    currency: str = 'INR',
) -> PriceQuote:
    """
    Price a booking of ``cycle_count`` cycles

    Args:
        plan_price: Price of one cycle of the plan
        fees: Selected additional fees
        cycle_count: Number of cycles booked
        plan_duration: Plan duration value, used for MONTHLY fees
        plan_unit: Plan duration unit, used for MONTHLY fees
        plan_name: Label for the receipt line
        coupon: Optional coupon collaborator applied to the subtotal
        currency: ISO currency of every amount

    Returns:
        PriceQuote with per-cycle shares that sum to the total
    """
    _validate_count(cycle_count)
    fees = list(fees)

    plan_money = Money(Decimal(plan_price), currency)
    cycle_amount = plan_money
    items = [LineItem(f"Plan: {plan_name} (x{cycle_count})", plan_money * cycle_count)]

    for fee in fees:
        fee_money = Money(adjusted_fee_amount(fee, plan_duration, plan_unit), currency)
        cycle_amount = cycle_amount + fee_money
        items.append(LineItem(f"{fee.name} (x{cycle_count})", fee_money * cycle_count))

    subtotal = (cycle_amount * cycle_count).quantize()
    total = subtotal
    promotion_id = None
    coupon_error = ''

    if coupon is not None:
        outcome = coupon(subtotal.amount)
        if outcome.valid:
            final_amount = min(Decimal(outcome.final_amount), subtotal.amount)
            total = Money(max(final_amount, Decimal('0')), currency).quantize()
            promotion_id = getattr(outcome, 'promotion_id', None)
        else:
            coupon_error = getattr(outcome, 'error', '') or 'Invalid coupon'

    return PriceQuote(
        cycle_amount=cycle_amount.quantize(),
        subtotal=subtotal,
        total=total,
        discount=subtotal - total,
        per_cycle=total.split(cycle_count),
        items=items,
        promotion_id=promotion_id,
        coupon_error=coupon_error,
    )


def manual_quote(
    amount: Decimal,
    cycle_count: int,
    *,
    discount: Decimal = Decimal('0'),
    currency: str = 'INR',
) -> PriceQuote:
    """
    Quote for a staff-entered payment

    The entered amount is authoritative and the discount is taken as
    supplied; only the per-cycle split is computed.
    """
    _validate_count(cycle_count)
    try:
        total = Money(Decimal(amount), currency).quantize()
        discount_money = Money(Decimal(discount or 0), currency).quantize()
    except ValueError as exc:
        raise InvalidInputError(str(exc)) from exc

    return PriceQuote(
        cycle_amount=total.split(cycle_count)[0],
        subtotal=total + discount_money,
        total=total,
        discount=discount_money,
        per_cycle=total.split(cycle_count),
        items=[LineItem(f"Manual payment (x{cycle_count})", total)],
    )

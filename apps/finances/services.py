"""Payment helpers: invoice numbering, gateway references and coupon validation."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from django.conf import settings  # type: ignore
from django.utils import timezone  # type: ignore

from .models import Payment, Promotion

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def generate_invoice_no() -> str:
    """Unique invoice number: INV-{timestamp}-{random}."""
    prefix = getattr(settings, "BOOKING_INVOICE_PREFIX", "INV")
    timestamp = timezone.now().strftime("%Y%m%d%H%M%S")
    return f"{prefix}-{timestamp}-{secrets.token_hex(3).upper()}"


def generate_gateway_order_id(provider: str) -> str:
    """Placeholder order reference until the gateway returns its own."""
    return f"order_{provider}_{secrets.token_hex(6)}"


@dataclass
class CouponResult:
    valid: bool
    final_amount: Decimal
    discount: Decimal = Decimal("0.00")
    promotion_id: Any = None
    error: str = ""


def _rejected(subtotal: Decimal, message: str) -> CouponResult:
    return CouponResult(valid=False, final_amount=subtotal, error=message)


def validate_coupon(
    code: str,
    subtotal: Decimal,
    student_id: Any = None,
    plan_id: Any = None,
    branch_id: Any = None,
) -> CouponResult:
    """
    Validate a coupon code against a subtotal.

    Checks activity, validity window, global usage limit, minimum order
    value and library scope, then applies a percentage (capped by
    ``max_discount``) or fixed discount. The final amount never goes below
    zero and is rounded to cents.

    Args:
        code: Coupon code as typed by the student (case-insensitive)
        subtotal: Amount the coupon is applied to
        student_id: Requesting student
        plan_id: Plan being booked
        branch_id: Branch of the booking; the coupon must belong to its library

    Returns:
        CouponResult: ``valid`` False carries the reason in ``error``
    """
    subtotal = Decimal(subtotal)
    promo = Promotion.objects.filter(code=(code or "").strip().upper()).first()
    if promo is None:
        return _rejected(subtotal, "Invalid coupon code")

    if not promo.is_active:
        return _rejected(subtotal, "This coupon is no longer active")

    now = timezone.now()
    if now < promo.starts_at:
        return _rejected(subtotal, "This coupon is not valid yet")
    if now > promo.ends_at:
        return _rejected(subtotal, "This coupon has expired")

    if branch_id is not None:
        from apps.libraries.models import Branch

        if not Branch.objects.filter(id=branch_id, library_id=promo.library_id).exists():
            return _rejected(subtotal, "This coupon is not valid at this branch")

    if promo.usage_limit:
        used = Payment.objects.filter(promotion=promo).exclude(status=Payment.Status.FAILED).count()
        if used >= promo.usage_limit:
            return _rejected(subtotal, "Coupon usage limit reached")

    if promo.min_order_value and subtotal < promo.min_order_value:
        return _rejected(subtotal, f"Minimum order of {promo.min_order_value} required to use this coupon")

    if promo.discount_type == Promotion.DiscountType.PERCENTAGE:
        discount = subtotal * promo.discount_value / Decimal("100")
        if promo.max_discount and discount > promo.max_discount:
            discount = promo.max_discount
    else:
        discount = promo.discount_value

    final_amount = max(Decimal("0"), subtotal - discount).quantize(CENT, rounding=ROUND_HALF_UP)
    logger.info(
        "Coupon %s applied for student %s: %s -> %s",
        promo.code,
        student_id,
        subtotal,
        final_amount,
    )
    return CouponResult(
        valid=True,
        final_amount=final_amount,
        discount=subtotal - final_amount,
        promotion_id=promo.id,
    )

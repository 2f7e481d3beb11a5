"""Tests for coupon validation and payment references."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from apps.bookings.tests.factories import make_branch, make_library, make_student
from apps.finances.models import Payment, Promotion
from apps.finances.services import generate_gateway_order_id, generate_invoice_no, validate_coupon


class ValidateCouponTests(TestCase):
    def setUp(self) -> None:
        self.library = make_library()
        self.branch = make_branch(self.library)
        now = timezone.now()
        self.promo = Promotion.objects.create(
            library=self.library,
            code="SAVE20",
            discount_type=Promotion.DiscountType.PERCENTAGE,
            discount_value=Decimal("20"),
            starts_at=now - timedelta(days=1),
            ends_at=now + timedelta(days=30),
        )

    def test_percentage_discount_is_case_insensitive(self) -> None:
        result = validate_coupon(" save20 ", Decimal("1500.00"), branch_id=self.branch.id)

        self.assertTrue(result.valid)
        self.assertEqual(result.final_amount, Decimal("1200.00"))
        self.assertEqual(result.discount, Decimal("300.00"))
        self.assertEqual(result.promotion_id, self.promo.id)

    def test_percentage_discount_is_capped(self) -> None:
        self.promo.max_discount = Decimal("100.00")
        self.promo.save()

        result = validate_coupon("SAVE20", Decimal("1500.00"))

        self.assertEqual(result.final_amount, Decimal("1400.00"))

    def test_fixed_discount_never_goes_negative(self) -> None:
        self.promo.discount_type = Promotion.DiscountType.FIXED
        self.promo.discount_value = Decimal("5000.00")
        self.promo.save()

        result = validate_coupon("SAVE20", Decimal("1500.00"))

        self.assertTrue(result.valid)
        self.assertEqual(result.final_amount, Decimal("0.00"))

    def test_unknown_code_is_rejected(self) -> None:
        result = validate_coupon("NOPE", Decimal("1500.00"))

        self.assertFalse(result.valid)
        self.assertEqual(result.final_amount, Decimal("1500.00"))
        self.assertEqual(result.error, "Invalid coupon code")

    def test_expired_and_inactive_codes_are_rejected(self) -> None:
        self.promo.ends_at = timezone.now() - timedelta(minutes=1)
        self.promo.save()
        self.assertEqual(validate_coupon("SAVE20", Decimal("100")).error, "This coupon has expired")

        self.promo.is_active = False
        self.promo.save()
        self.assertEqual(validate_coupon("SAVE20", Decimal("100")).error, "This coupon is no longer active")

    def test_minimum_order_value(self) -> None:
        self.promo.min_order_value = Decimal("2000.00")
        self.promo.save()

        result = validate_coupon("SAVE20", Decimal("1500.00"))

        self.assertFalse(result.valid)
        self.assertIn("Minimum order", result.error)

    def test_coupon_of_another_library_is_rejected(self) -> None:
        foreign_branch = make_branch(make_library(name="Elsewhere"))

        result = validate_coupon("SAVE20", Decimal("1500.00"), branch_id=foreign_branch.id)

        self.assertFalse(result.valid)

    def test_usage_limit_ignores_failed_payments(self) -> None:
        self.promo.usage_limit = 1
        self.promo.save()
        student = make_student()
        Payment.objects.create(
            student=student,
            library=self.library,
            branch=self.branch,
            promotion=self.promo,
            status=Payment.Status.FAILED,
            invoice_no="INV-1",
        )
        self.assertTrue(validate_coupon("SAVE20", Decimal("100")).valid)

        Payment.objects.create(
            student=student,
            library=self.library,
            branch=self.branch,
            promotion=self.promo,
            status=Payment.Status.COMPLETED,
            invoice_no="INV-2",
        )
        self.assertEqual(validate_coupon("SAVE20", Decimal("100")).error, "Coupon usage limit reached")


class PaymentReferenceTests(TestCase):
    def test_invoice_numbers_are_unique_and_prefixed(self) -> None:
        numbers = {generate_invoice_no() for _ in range(20)}

        self.assertEqual(len(numbers), 20)
        self.assertTrue(all(number.startswith("INV-") for number in numbers))

    def test_gateway_order_id_names_the_provider(self) -> None:
        self.assertTrue(generate_gateway_order_id("razorpay").startswith("order_razorpay_"))

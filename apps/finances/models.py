"""Financial domain models: payments and promotion coupons."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Payment(models.Model):
    """A payment funding one booking. A single payment may cover several cycles."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Awaiting payment")
        PENDING_VERIFICATION = "pending_verification", _("Awaiting manual verification")
        COMPLETED = "completed", _("Paid")
        FAILED = "failed", _("Failed")

    class Method(models.TextChoices):
        CASH = "cash", _("Cash")
        UPI = "upi", _("UPI")
        CARD = "card", _("Card")
        TRANSFER = "transfer", _("Bank transfer")
        GATEWAY = "gateway", _("Online gateway")
        UNKNOWN = "unknown", _("Unknown")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    student = models.ForeignKey("students.Student", on_delete=models.CASCADE, related_name="payments")
    library = models.ForeignKey("libraries.Library", on_delete=models.CASCADE, related_name="payments")
    branch = models.ForeignKey("libraries.Branch", on_delete=models.CASCADE, related_name="payments")
    plan = models.ForeignKey(
        "libraries.Plan",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payments",
    )
    subscription = models.ForeignKey(
        "bookings.Subscription",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="anchored_payments",
        help_text=_("First reservation funded by this payment; anchor for receipts."),
    )
    promotion = models.ForeignKey(
        "finances.Promotion",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payments",
    )
    type = models.CharField(max_length=20, default="subscription")
    status = models.CharField(max_length=24, choices=Status.choices, default=Status.PENDING)
    method = models.CharField(max_length=20, choices=Method.choices, default=Method.UNKNOWN)
    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="INR")
    invoice_no = models.CharField(max_length=40, unique=True)
    gateway_provider = models.CharField(max_length=30, blank=True)
    gateway_order_id = models.CharField(max_length=64, blank=True)
    proof_url = models.URLField(blank=True)
    transaction_ref = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Payment")
        verbose_name_plural = _("Payments")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Payment {self.invoice_no} ({self.status})"

    @property
    def subscription_ids(self) -> list[str]:
        return list(self.metadata.get("subscription_ids", []))

    @property
    def is_bookable(self) -> bool:
        """Whether reservations may still be created against this payment."""
        return self.status != self.Status.FAILED


class Promotion(models.Model):
    """A coupon code offering a percentage or fixed discount."""

    class DiscountType(models.TextChoices):
        PERCENTAGE = "percentage", _("Percentage")
        FIXED = "fixed", _("Fixed amount")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    library = models.ForeignKey("libraries.Library", on_delete=models.CASCADE, related_name="promotions")
    code = models.CharField(max_length=40, unique=True)
    description = models.CharField(max_length=255, blank=True)
    discount_type = models.CharField(max_length=12, choices=DiscountType.choices)
    discount_value = models.DecimalField(max_digits=12, decimal_places=2)
    max_discount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    min_order_value = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    starts_at = models.DateTimeField(default=timezone.now)
    ends_at = models.DateTimeField()
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name = _("Promotion")
        verbose_name_plural = _("Promotions")
        ordering = ["-starts_at"]

    def __str__(self) -> str:
        return self.code

    def save(self, *args, **kwargs):  # type: ignore
        self.code = self.code.upper()
        super().save(*args, **kwargs)

"""Reservation model for seat and locker bookings."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class SubscriptionQuerySet(models.QuerySet):
    def blocking(self):
        """Reservations that hold their resource."""
        return self.filter(status__in=Subscription.BLOCKING_STATUSES)

    def overlapping(self, start, end):
        """Half-open overlap with ``[start, end)``."""
        return self.filter(start_date__lt=end, end_date__gt=start)

    def running(self, now=None):
        now = now or timezone.now()
        return self.filter(status=Subscription.Status.ACTIVE, start_date__lte=now, end_date__gt=now)


class Subscription(models.Model):
    """A student's claim on a seat and/or locker for exactly one billing cycle."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Awaiting payment")
        ACTIVE = "active", _("Active")
        CANCELLED = "cancelled", _("Cancelled")
        EXPIRED = "expired", _("Expired")

    BLOCKING_STATUSES = (Status.PENDING, Status.ACTIVE)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    student = models.ForeignKey("students.Student", on_delete=models.CASCADE, related_name="subscriptions")
    library = models.ForeignKey("libraries.Library", on_delete=models.CASCADE, related_name="subscriptions")
    branch = models.ForeignKey("libraries.Branch", on_delete=models.CASCADE, related_name="subscriptions")
    plan = models.ForeignKey("libraries.Plan", on_delete=models.PROTECT, related_name="subscriptions")
    seat = models.ForeignKey(
        "libraries.Seat",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="subscriptions",
    )
    locker = models.ForeignKey(
        "libraries.Locker",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="subscriptions",
    )
    status = models.CharField(max_length=12, choices=Status.choices, default=Status.PENDING)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("This cycle's share of the payment total."),
    )
    has_locker = models.BooleanField(default=False)
    cycle_index = models.PositiveSmallIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = SubscriptionQuerySet.as_manager()

    class Meta:
        verbose_name = _("Subscription")
        verbose_name_plural = _("Subscriptions")
        ordering = ["start_date"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F("start_date")),
                name="subscription_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["seat", "start_date", "end_date"]),
            models.Index(fields=["locker", "start_date", "end_date"]),
            models.Index(fields=["student", "branch", "status"]),
        ]

    def __str__(self) -> str:
        return f"Subscription {self.id} [{self.start_date:%Y-%m-%d} - {self.end_date:%Y-%m-%d}] ({self.status})"

    @property
    def is_blocking(self) -> bool:
        return self.status in self.BLOCKING_STATUSES

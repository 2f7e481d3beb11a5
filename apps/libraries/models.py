"""Library catalogue models: libraries, branches, bookable resources, plans and fees."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.value_objects import SUPPORTED_CURRENCIES


class Library(models.Model):
    """A library business operating one or more branches."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    currency = models.CharField(
        max_length=3,
        default="INR",
        choices=[(code, code) for code in SUPPORTED_CURRENCIES],
    )
    is_active = models.BooleanField(default=True)
    max_active_students = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text=_("Limit of simultaneously active reservations. Empty means unlimited."),
    )
    max_total_students = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text=_("Limit of registered students. Empty means unlimited."),
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Library")
        verbose_name_plural = _("Libraries")
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Branch(models.Model):
    """A physical location of a library."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    library = models.ForeignKey(Library, on_delete=models.CASCADE, related_name="branches")
    name = models.CharField(max_length=255)
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100, blank=True)
    is_active = models.BooleanField(default=True)
    has_lockers = models.BooleanField(default=False)
    is_locker_separate = models.BooleanField(
        default=False,
        help_text=_("Lockers are chosen independently instead of following the seat number."),
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Branch")
        verbose_name_plural = _("Branches")
        ordering = ["library", "name"]

    def __str__(self) -> str:
        return f"{self.library.name} / {self.name}"


class BranchResource(models.Model):
    """Common fields of a time-exclusive resource at a branch."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    number = models.CharField(max_length=20)
    is_active = models.BooleanField(default=True)

    label_prefix = "S"

    class Meta:
        abstract = True
        ordering = ["number"]

    def __str__(self) -> str:
        return self.label

    @property
    def label(self) -> str:
        return format_resource_number(self.number, self.label_prefix)


class Seat(BranchResource):
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, related_name="seats")
    section = models.CharField(max_length=50, blank=True)

    class Meta(BranchResource.Meta):
        verbose_name = _("Seat")
        verbose_name_plural = _("Seats")
        constraints = [
            models.UniqueConstraint(fields=["branch", "number"], name="seat_unique_number_per_branch"),
        ]


class Locker(BranchResource):
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, related_name="lockers")

    label_prefix = "L"

    class Meta(BranchResource.Meta):
        verbose_name = _("Locker")
        verbose_name_plural = _("Lockers")
        constraints = [
            models.UniqueConstraint(fields=["branch", "number"], name="locker_unique_number_per_branch"),
        ]


class Plan(models.Model):
    """A priced billing cycle. ``branch`` is empty for library-wide plans."""

    class DurationUnit(models.TextChoices):
        DAYS = "days", _("Days")
        WEEKS = "weeks", _("Weeks")
        MONTHS = "months", _("Months")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    library = models.ForeignKey(Library, on_delete=models.CASCADE, related_name="plans")
    branch = models.ForeignKey(
        Branch,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="plans",
    )
    name = models.CharField(max_length=255)
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    duration = models.PositiveSmallIntegerField(default=1)
    duration_unit = models.CharField(
        max_length=10,
        choices=DurationUnit.choices,
        default=DurationUnit.MONTHS,
    )
    includes_locker = models.BooleanField(default=False)
    hours_per_day = models.PositiveSmallIntegerField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name = _("Plan")
        verbose_name_plural = _("Plans")
        ordering = ["price"]

    def __str__(self) -> str:
        return f"{self.name} ({self.duration} {self.duration_unit})"


class AdditionalFee(models.Model):
    """An add-on charge selectable at booking time. ``branch`` is empty for library-wide fees."""

    class BillType(models.TextChoices):
        ONE_TIME = "ONE_TIME", _("Once per cycle")
        MONTHLY = "MONTHLY", _("Per month of the plan")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    library = models.ForeignKey(Library, on_delete=models.CASCADE, related_name="additional_fees")
    branch = models.ForeignKey(
        Branch,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="additional_fees",
    )
    name = models.CharField(max_length=255)
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    bill_type = models.CharField(max_length=10, choices=BillType.choices, default=BillType.ONE_TIME)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name = _("Additional fee")
        verbose_name_plural = _("Additional fees")
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.name} ({self.amount})"

    @property
    def is_locker_fee(self) -> bool:
        return "locker" in self.name.lower()


def format_resource_number(number: str, prefix: str = "S") -> str:
    """Human-facing resource label: ``7`` -> ``S-07``."""
    if number.startswith(f"{prefix}-"):
        return number
    return f"{prefix}-{number.zfill(2)}"

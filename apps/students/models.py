"""Student (requester) model."""

from __future__ import annotations

import uuid

from django.core.validators import RegexValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


PHONE_VALIDATOR = RegexValidator(
    regex=r"^\+?\d{7,15}$",
    message=_("Invalid phone number. Use the international format without spaces."),
)


class Student(models.Model):
    """A person who books seats and lockers.

    ``library`` and ``branch`` point at the location of the student's most
    recent active or pending booking. Only the reservation ledger writes
    them, inside the booking transaction.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True, db_index=True)
    phone = models.CharField(max_length=20, blank=True, validators=[PHONE_VALIDATOR], db_index=True)
    dob = models.DateField(null=True, blank=True)
    is_blocked = models.BooleanField(default=False)
    library = models.ForeignKey(
        "libraries.Library",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="students",
    )
    branch = models.ForeignKey(
        "libraries.Branch",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="students",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Student")
        verbose_name_plural = _("Students")
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name or self.email or str(self.id)

"""Domain services for booking workflows: conflict detection and chaining lookups."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from django.db import transaction  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore
from django.utils import timezone  # type: ignore

from .exceptions import ResourceUnavailableError
from .models import Subscription

logger = logging.getLogger(__name__)

RESOURCE_FIELDS = ("seat", "locker")


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection(queryset.db).in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def _conflicting_reservations(resource, start: datetime, end: datetime, *, field: str):
    if field not in RESOURCE_FIELDS:
        raise ValueError(f"Unknown resource field: {field}")
    return (
        Subscription.objects.blocking()
        .filter(**{field: resource})
        .overlapping(start, end)
    )


def has_conflict(resource, start: datetime, end: datetime, *, field: str = "seat") -> bool:
    """
    Whether any pending or active reservation on ``resource`` overlaps ``[start, end)``.

    ``field`` names the reservation column the resource lives in
    (``seat`` or ``locker``); a missing resource never conflicts.
    """

    if resource is None:
        return False

    reservations = _lock_queryset_if_possible(
        _conflicting_reservations(resource, start, end, field=field)
    )
    return reservations.exists()


def ensure_resource_is_available(resource, start: datetime, end: datetime, *, field: str = "seat") -> None:
    """Ensure the seat or locker is free for the given period."""

    if has_conflict(resource, start, end, field=field):
        logger.info(
            "%s %s is occupied between %s and %s",
            field.capitalize(),
            getattr(resource, "pk", resource),
            start,
            end,
        )
        raise ResourceUnavailableError(
            f"{getattr(resource, 'label', field.capitalize())} is occupied for the selected dates"
        )


def latest_chainable_reservation(student, branch, now: Optional[datetime] = None) -> Optional[Subscription]:
    """The student's reservation at ``branch`` that a renewal should follow, if any."""

    now = now or timezone.now()
    return (
        Subscription.objects.blocking()
        .filter(student=student, branch=branch, end_date__gt=now)
        .order_by("-end_date")
        .first()
    )


def has_active_reservation(student_id, branch_id, now: Optional[datetime] = None) -> bool:
    """Read-only check used by the availability endpoint."""

    return Subscription.objects.running(now).filter(student_id=student_id, branch_id=branch_id).exists()


def count_active_students(library, now: Optional[datetime] = None) -> int:
    return (
        Subscription.objects.running(now)
        .filter(library=library)
        .values("student_id")
        .distinct()
        .count()
    )

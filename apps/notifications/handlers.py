"""Post-commit event handlers."""

from __future__ import annotations

import logging

from apps.bookings.domain.events import BookingCreated
from apps.finances.models import Payment
from apps.students.events import StudentRegistered

from .tasks import send_booking_receipt, send_welcome_email

logger = logging.getLogger(__name__)


def dispatch_receipt(event: BookingCreated) -> None:
    """Queue the receipt email for a paid booking."""
    if event.payment_status != Payment.Status.COMPLETED:
        logger.debug("No receipt for payment %s in status %s", event.payment_id, event.payment_status)
        return
    if not event.receipt.get("student_email"):
        logger.info("Student %s has no email, receipt for payment %s skipped", event.student_id, event.payment_id)
        return
    send_booking_receipt.delay(event.receipt)


def dispatch_welcome(event: StudentRegistered) -> None:
    """Queue the welcome email for a student registered by the public form."""
    if not event.email:
        logger.info("Student %s has no email, welcome email skipped", event.aggregate_id)
        return
    send_welcome_email.delay(event.name, event.email)

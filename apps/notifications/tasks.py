"""Celery tasks for notifications."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .services import send_booking_receipt_email, send_welcome_email_notification

logger = logging.getLogger(__name__)


@shared_task(name="notifications.send_booking_receipt")
def send_booking_receipt(receipt: dict) -> bool:
    """Send the receipt email for a committed booking."""
    sent = send_booking_receipt_email(receipt)
    if not sent:
        logger.warning("Receipt %s was not delivered", receipt.get("invoice_no"))
    return sent


@shared_task(name="notifications.send_welcome_email")
def send_welcome_email(name: str, email: str) -> bool:
    return send_welcome_email_notification(name, email)

"""Notification services for sending emails."""

from __future__ import annotations

import logging

from django.conf import settings  # type: ignore
from django.core.mail import send_mail  # type: ignore
from django.template.loader import render_to_string  # type: ignore
from django.utils.html import strip_tags  # type: ignore

logger = logging.getLogger(__name__)


def send_email_notification(
    recipient_email: str,
    subject: str,
    template_name: str,
    context: dict,
    *,
    html_message: str | None = None,
) -> bool:
    """
    Send a single email notification.

    Args:
        recipient_email: Recipient address
        subject: Email subject
        template_name: Django template for the HTML body (optional)
        context: Template context
        html_message: Pre-rendered HTML body (optional)

    Returns:
        bool: True if the email was handed to the mail backend
    """
    try:
        if html_message:
            text_message = strip_tags(html_message)
        elif template_name:
            html_message = render_to_string(template_name, context)
            text_message = strip_tags(html_message)
        else:
            text_message = context.get("message", "")
            html_message = None

        send_mail(
            subject=subject,
            message=text_message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient_email],
            html_message=html_message,
            fail_silently=False,
        )

        logger.info(f"Email sent successfully to {recipient_email}: {subject}")
        return True

    except Exception as e:
        logger.error(f"Failed to send email to {recipient_email}: {e}", exc_info=True)
        return False


def send_booking_receipt_email(receipt: dict) -> bool:
    """Email the payment receipt of a committed booking to the student."""
    recipient = receipt.get("student_email")
    if not recipient:
        return False

    subject = f"Payment receipt {receipt.get('invoice_no', '')} - {receipt.get('branch_name', '')}"
    return send_email_notification(
        recipient_email=recipient,
        subject=subject,
        template_name="notifications/booking_receipt.html",
        context={"receipt": receipt},
    )


def send_welcome_email_notification(name: str, email: str) -> bool:
    """Greet a student registered through the public booking form."""
    if not email:
        return False

    return send_email_notification(
        recipient_email=email,
        subject="Welcome to your library",
        template_name="notifications/welcome.html",
        context={"name": name},
    )

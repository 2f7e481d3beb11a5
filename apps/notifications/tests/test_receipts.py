"""Tests for booking receipt delivery."""

from __future__ import annotations

import uuid
from unittest import mock

from django.core import mail
from django.test import TestCase

from apps.bookings.domain.events import BookingCreated
from apps.finances.models import Payment
from apps.notifications.handlers import dispatch_receipt, dispatch_welcome
from apps.notifications.services import send_booking_receipt_email
from apps.notifications.tasks import send_booking_receipt
from apps.students.events import StudentRegistered
from shared.application.message_bus import message_bus

RECEIPT = {
    "invoice_no": "INV-20240301000000-ABC123",
    "student_name": "Asha Rao",
    "student_email": "asha@example.com",
    "branch_name": "Main Street",
    "plan_name": "Monthly",
    "start_date": "2024-03-01T00:00:00+05:30",
    "end_date": "2024-04-01T00:00:00+05:30",
    "seat": "S-07",
    "locker": "",
    "cycles": 1,
    "subtotal": "1000.00",
    "discount": "0.00",
    "amount": "1000.00",
    "currency": "INR",
    "method": "cash",
    "items": [{"description": "Manual payment (x1)", "amount": "1000.00"}],
}


def booking_created(status: str = Payment.Status.COMPLETED, **receipt) -> BookingCreated:
    return BookingCreated(
        aggregate_id=uuid.uuid4(),
        payment_id=uuid.uuid4(),
        reservation_ids=[uuid.uuid4()],
        student_id=uuid.uuid4(),
        branch_id=uuid.uuid4(),
        payment_status=status,
        receipt={**RECEIPT, **receipt},
    )


class ReceiptEmailTests(TestCase):
    def test_receipt_is_rendered_and_sent(self) -> None:
        self.assertTrue(send_booking_receipt_email(RECEIPT))

        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.to, ["asha@example.com"])
        self.assertEqual(message.subject, "Payment receipt INV-20240301000000-ABC123 - Main Street")
        self.assertIn("S-07", message.body)

    def test_receipt_without_email_is_skipped(self) -> None:
        self.assertFalse(send_booking_receipt_email({**RECEIPT, "student_email": ""}))
        self.assertEqual(len(mail.outbox), 0)

    def test_mail_failure_is_logged_not_raised(self) -> None:
        with mock.patch("apps.notifications.services.send_mail", side_effect=OSError("smtp down")):
            with self.assertLogs("apps.notifications", level="ERROR"):
                self.assertFalse(send_booking_receipt.delay(RECEIPT).get())


class DispatchReceiptTests(TestCase):
    def test_handler_is_registered_for_booking_created(self) -> None:
        self.assertIn(dispatch_receipt, message_bus.handlers_for(BookingCreated))

    def test_completed_payment_sends_receipt(self) -> None:
        dispatch_receipt(booking_created())

        self.assertEqual(len(mail.outbox), 1)

    def test_pending_payment_sends_nothing(self) -> None:
        for status in (Payment.Status.PENDING, Payment.Status.PENDING_VERIFICATION):
            dispatch_receipt(booking_created(status))

        self.assertEqual(len(mail.outbox), 0)

    def test_student_without_email_sends_nothing(self) -> None:
        dispatch_receipt(booking_created(student_email=""))

        self.assertEqual(len(mail.outbox), 0)


class DispatchWelcomeTests(TestCase):
    def test_handler_is_registered_for_student_registered(self) -> None:
        self.assertIn(dispatch_welcome, message_bus.handlers_for(StudentRegistered))

    def test_welcome_email_is_sent(self) -> None:
        dispatch_welcome(StudentRegistered(aggregate_id=uuid.uuid4(), name="Meera", email="meera@example.com"))

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].subject, "Welcome to your library")

    def test_student_without_email_is_skipped(self) -> None:
        dispatch_welcome(StudentRegistered(aggregate_id=uuid.uuid4(), name="Meera", phone="+919811111111"))

        self.assertEqual(len(mail.outbox), 0)

"""Tests for matching public booking contacts to students."""

from __future__ import annotations

from datetime import date

from django.core import mail
from django.test import TestCase

from apps.bookings.tests.factories import make_student
from apps.students.models import Student
from apps.students.services import ContactInfo, StudentResolutionError, resolve_student


class ResolveStudentTests(TestCase):
    def test_registers_new_student(self) -> None:
        resolved = resolve_student(
            ContactInfo(name=" Meera Iyer ", email="meera@example.com", phone="+919811111111", dob="2001-05-04")
        )

        self.assertTrue(resolved.is_new)
        self.assertEqual(resolved.student.name, "Meera Iyer")
        self.assertEqual(resolved.student.dob, date(2001, 5, 4))
        self.assertIsNone(resolved.student.library_id)

    def test_matches_by_phone_or_email(self) -> None:
        student = make_student()

        by_phone = resolve_student(ContactInfo(name="A", email="other@example.com", phone=student.phone))
        by_email = resolve_student(ContactInfo(name="A", email="ASHA@EXAMPLE.COM", phone="+919822222222"))

        self.assertEqual(by_phone.student, student)
        self.assertEqual(by_email.student, student)
        self.assertFalse(by_email.is_new)
        self.assertEqual(Student.objects.count(), 1)

    def test_masked_phone_only_matches_by_email(self) -> None:
        student = make_student()

        resolved = resolve_student(ContactInfo(name="Asha", email="asha@example.com", phone="+91******01"))

        self.assertEqual(resolved.student, student)

    def test_masked_details_cannot_register(self) -> None:
        with self.assertRaises(StudentResolutionError):
            resolve_student(ContactInfo(name="New", email="new@example.com", phone="+91******01"))
        with self.assertRaises(StudentResolutionError):
            resolve_student(ContactInfo(name="New", email="new@example.com", phone="+919833333333", dob="**-**-2001"))
        self.assertFalse(Student.objects.exists())

    def test_blocked_student_is_refused(self) -> None:
        make_student(is_blocked=True)

        with self.assertRaises(StudentResolutionError) as ctx:
            resolve_student(ContactInfo(name="Asha", email="asha@example.com", phone="+919800000001"))

        self.assertTrue(ctx.exception.blocked)

    def test_invalid_dob_is_refused(self) -> None:
        with self.assertRaises(StudentResolutionError):
            resolve_student(ContactInfo(name="New", email="new@example.com", phone="+919833333333", dob="2001-13-40"))


class StudentWelcomeTests(TestCase):
    def test_new_student_is_welcomed_after_commit(self) -> None:
        contact = ContactInfo(name="Meera Iyer", email="meera@example.com", phone="+919811111111")

        with self.captureOnCommitCallbacks(execute=True):
            resolve_student(contact)
            self.assertEqual(len(mail.outbox), 0)

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["meera@example.com"])
        self.assertIn("Meera Iyer", mail.outbox[0].body)

    def test_returning_student_is_not_welcomed_again(self) -> None:
        make_student()

        with self.captureOnCommitCallbacks(execute=True):
            resolve_student(ContactInfo(name="Asha", email="asha@example.com", phone="+919800000001"))

        self.assertEqual(len(mail.outbox), 0)

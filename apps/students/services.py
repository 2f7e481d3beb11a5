"""Identity resolution for self-service bookings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from django.db.models import Q  # type: ignore

from shared.application.uow import DjangoUnitOfWork

from .events import StudentRegistered
from .models import Student

logger = logging.getLogger(__name__)

MASK_CHAR = "*"


class StudentResolutionError(Exception):
    """The contact details cannot be matched to, or used to create, a student."""

    def __init__(self, message: str, *, blocked: bool = False):
        super().__init__(message)
        self.blocked = blocked


@dataclass
class ContactInfo:
    name: str
    email: str
    phone: str
    dob: str = ""


@dataclass
class ResolvedStudent:
    student: Student
    is_new: bool


def _is_masked(value: str | None) -> bool:
    return bool(value) and MASK_CHAR in value


def _find_existing(contact: ContactInfo) -> Student | None:
    email = contact.email.strip()
    if _is_masked(contact.phone):
        # A masked phone comes from a prefilled form: email is the only usable key
        return Student.objects.filter(email__iexact=email).first() if email else None

    lookup = Q()
    if contact.phone:
        lookup |= Q(phone=contact.phone.strip())
    if email:
        lookup |= Q(email__iexact=email)
    if not lookup:
        return None
    return Student.objects.filter(lookup).order_by("created_at").first()


def resolve_student(contact: ContactInfo) -> ResolvedStudent:
    """
    Find the student matching ``contact`` or register a new one.

    Masked phone or date-of-birth values are accepted only when they
    identify an existing student. Blocked students are refused.
    """
    student = _find_existing(contact)

    if student is None:
        if _is_masked(contact.phone):
            raise StudentResolutionError(
                "Cannot create new account with masked phone number. Please enter full details."
            )
        if _is_masked(contact.dob):
            raise StudentResolutionError(
                "Cannot create new account with masked date of birth. Please enter full details."
            )
        dob = _parse_dob(contact.dob)
        with DjangoUnitOfWork() as uow:
            student = Student.objects.create(
                name=contact.name.strip(),
                email=contact.email.strip(),
                phone=contact.phone.strip(),
                dob=dob,
            )
            uow.add_event(StudentRegistered(
                aggregate_id=student.pk,
                name=student.name,
                email=student.email,
                phone=student.phone,
            ))
        logger.info("Registered student %s from public booking", student.id)
        return ResolvedStudent(student=student, is_new=True)

    if student.is_blocked:
        raise StudentResolutionError("Account is blocked. Please contact support.", blocked=True)
    return ResolvedStudent(student=student, is_new=False)


def _parse_dob(value: str) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise StudentResolutionError(f"Invalid date of birth: {value}") from exc

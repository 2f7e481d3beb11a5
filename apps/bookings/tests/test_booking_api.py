"""Integration tests for booking API endpoints."""

from __future__ import annotations

from decimal import Decimal

from django.contrib.auth.models import User
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Subscription
from apps.bookings.tests.factories import (
    aware,
    make_branch,
    make_fee,
    make_library,
    make_plan,
    make_reservation,
    make_seat,
    make_student,
)
from apps.finances.models import Payment
from apps.students.models import Student


class BookingAPITestCase(APITestCase):
    def setUp(self) -> None:
        self.library = make_library()
        self.branch = make_branch(self.library)
        self.plan = make_plan(self.library, price=Decimal("1000.00"))
        self.student = make_student()
        self.seat = make_seat(self.branch, number="7")


class StaffBookingAPITests(BookingAPITestCase):
    """Covers creation, conflicts and error mapping of staff bookings."""

    def setUp(self) -> None:
        super().setUp()
        self.staff = User.objects.create_user(username="desk", password="DeskPass123")
        self.client.force_authenticate(self.staff)
        self.url = reverse("booking-create")

    def _payload(self, **overrides) -> dict:
        payload = {
            "student": str(self.student.id),
            "branch": str(self.branch.id),
            "plan": str(self.plan.id),
            "seat": str(self.seat.id),
            "start_date": "2024-03-01T00:00:00",
            "cycle_count": 1,
        }
        payload.update(overrides)
        return payload

    def test_staff_can_book_with_manual_payment(self) -> None:
        response = self.client.post(
            self.url,
            self._payload(manual_payment={"amount": "1000.00", "method": "upi"}),
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["status"], Payment.Status.COMPLETED)
        self.assertEqual(response.data["resource_label"], "S-07")
        self.assertEqual(Decimal(response.data["amount"]), Decimal("1000.00"))
        payment = Payment.objects.get()
        self.assertEqual(payment.method, Payment.Method.UPI)
        self.assertEqual(str(payment.subscription_id), response.data["reservation_ids"][0])

    def test_overlap_is_reported_as_conflict(self) -> None:
        other = make_student(name="Ravi", email="ravi@example.com", phone="+919800000002")
        make_reservation(other, self.plan, self.branch, aware(2024, 2, 15), aware(2024, 3, 15), seat=self.seat)

        response = self.client.post(self.url, self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(response.data["error"], "resource_unavailable")
        self.assertEqual(Subscription.objects.count(), 1)

    def test_unknown_plan_is_not_found(self) -> None:
        response = self.client.post(self.url, self._payload(plan=str(self.student.id)), format="json")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND, response.data)
        self.assertEqual(response.data["error"], "not_found")

    def test_limit_reached_maps_to_conflict(self) -> None:
        self.library.max_total_students = 0
        self.library.save()

        response = self.client.post(self.url, self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(response.data["error"], "limit_reached")

    def test_zero_cycles_is_rejected(self) -> None:
        response = self.client.post(self.url, self._payload(cycle_count=0), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["error"], "invalid_input")
        self.assertIn("cycle_count", response.data["detail"])

    def test_payment_and_manual_payment_are_exclusive(self) -> None:
        payload = self._payload(
            payment=str(self.student.id),
            manual_payment={"amount": "1000.00"},
        )

        response = self.client.post(self.url, payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)

    def test_anonymous_user_cannot_book_for_others(self) -> None:
        self.client.force_authenticate(None)

        response = self.client.post(self.url, self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(Subscription.objects.count(), 0)


class PublicBookingAPITests(BookingAPITestCase):
    def setUp(self) -> None:
        super().setUp()
        self.url = reverse("booking-public")

    def _payload(self, **overrides) -> dict:
        payload = {
            "name": "Meera Iyer",
            "email": "meera@example.com",
            "phone": "+919811111111",
            "branch": str(self.branch.id),
            "plan": str(self.plan.id),
            "seat": str(self.seat.id),
            "start_date": "2024-03-01T00:00:00",
        }
        payload.update(overrides)
        return payload

    def test_new_student_books_and_is_remembered_in_session(self) -> None:
        response = self.client.post(self.url, self._payload(gateway_provider="razorpay"), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertTrue(response.data["is_new_student"])
        self.assertEqual(response.data["status"], Payment.Status.PENDING)
        student = Student.objects.get(email="meera@example.com")
        self.assertEqual(self.client.session["student_id"], str(student.id))

    def test_manual_proof_requires_reference_or_file(self) -> None:
        response = self.client.post(self.url, self._payload(manual_payment={}), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(Payment.objects.count(), 0)

    def test_manual_proof_awaits_verification(self) -> None:
        response = self.client.post(
            self.url,
            self._payload(manual_payment={"transaction_ref": "UTR998877"}),
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["status"], Payment.Status.PENDING_VERIFICATION)

    def test_blocked_student_is_refused(self) -> None:
        self.student.is_blocked = True
        self.student.save()

        response = self.client.post(
            self.url,
            self._payload(email=self.student.email, phone=self.student.phone),
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertNotIn("student_id", self.client.session)


class AvailabilityAPITests(BookingAPITestCase):
    def test_requires_student_and_branch(self) -> None:
        response = self.client.get(reverse("booking-availability"), {"student": str(self.student.id)})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reports_no_running_reservation(self) -> None:
        response = self.client.get(
            reverse("booking-availability"),
            {"student": str(self.student.id), "branch": str(self.branch.id)},
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {"has_active_reservation": False})


class BranchCatalogAPITests(BookingAPITestCase):
    def test_branch_rows_come_before_library_rows(self) -> None:
        branch_plan = make_plan(self.library, name="Evening", price=Decimal("1500.00"), branch=self.branch)
        make_plan(make_library(name="Elsewhere"), name="Foreign")
        make_fee(self.library, name="Registration")
        make_fee(self.library, name="Locker rent", branch=self.branch)

        response = self.client.get(reverse("branch-catalog", kwargs={"branch_id": self.branch.id}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        plans = response.data["plans"]
        self.assertEqual([plan["name"] for plan in plans], ["Evening", "Monthly"])
        self.assertEqual(plans[0]["id"], str(branch_plan.id))
        self.assertEqual([plan["scope"] for plan in plans], ["branch", "global"])
        self.assertEqual([fee["name"] for fee in response.data["fees"]], ["Locker rent", "Registration"])

    def test_inactive_branch_is_not_found(self) -> None:
        self.branch.is_active = False
        self.branch.save()

        response = self.client.get(reverse("branch-catalog", kwargs={"branch_id": self.branch.id}))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

"""
Reservation Ledger

The transactional writer of the booking engine. Given validated inputs it
creates, in one database transaction:

1. the payment record (unless an existing payment funds the booking)
2. one reservation row per billing cycle
3. the payment -> first reservation link
4. the student's current library/branch pointer

The seat and locker rows are locked with SELECT FOR UPDATE and overlap is
re-checked under that lock; the pre-check done by the orchestrator outside
the transaction is only a fast path. Any failure rolls the whole set back.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, DatabaseError, IntegrityError, OperationalError
from django.utils import timezone

from shared.application.uow import DjangoUnitOfWork
from shared.domain.value_objects import Money, Period
from apps.bookings.domain.cycles import span_of
from apps.bookings.domain.events import BookingCreated
from apps.bookings.domain.pricing import PriceQuote
from apps.bookings.exceptions import (
    BookingError,
    InvalidInputError,
    InvalidPaymentStateError,
    ResourceUnavailableError,
    TransactionAbortError,
    TransactionTimeoutError,
)
from apps.bookings.models import Subscription
from apps.bookings.services import ensure_resource_is_available
from apps.finances.models import Payment
from apps.finances.services import generate_invoice_no
from apps.libraries.models import Locker, Seat
from apps.students.models import Student

logger = logging.getLogger(__name__)

# SQLSTATE codes raised by PostgreSQL when lock_timeout / statement_timeout fire
LOCK_NOT_AVAILABLE = '55P03'
QUERY_CANCELED = '57014'
TIMEOUT_SQLSTATES = (LOCK_NOT_AVAILABLE, QUERY_CANCELED)

RESERVATION_STATUS_FOR_PAYMENT = {
    Payment.Status.COMPLETED: Subscription.Status.ACTIVE,
    Payment.Status.PENDING: Subscription.Status.PENDING,
    Payment.Status.PENDING_VERIFICATION: Subscription.Status.PENDING,
}


@dataclass
class LedgerRequest:
    """Validated, priced booking ready to be written"""
    student: Student
    plan: Any
    branch: Any
    periods: List[Period]
    quote: PriceQuote
    seat: Optional[Seat] = None
    locker: Optional[Locker] = None
    has_locker: bool = False
    existing_payment: Optional[Payment] = None
    payment_status: str = Payment.Status.PENDING
    payment_method: str = Payment.Method.UNKNOWN
    payment_type: str = 'subscription'
    gateway_provider: str = ''
    gateway_order_id: str = ''
    proof_url: str = ''
    transaction_ref: str = ''
    notes: str = ''
    receipt: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LedgerReceipt:
    """What the ledger committed"""
    payment_id: UUID
    reservation_ids: List[UUID]
    invoice_no: str
    status: str
    reservation_status: str
    amount: Decimal
    discount: Decimal


def reservation_status_for(payment_status: str) -> str:
    try:
        return RESERVATION_STATUS_FOR_PAYMENT[payment_status]
    except KeyError:
        raise InvalidPaymentStateError(f"Payment status '{payment_status}' cannot fund a booking")


def _sqlstate(exc: BaseException) -> Optional[str]:
    cause = exc.__cause__ or exc
    # psycopg 3 exposes ``sqlstate``, psycopg2 ``pgcode``
    return getattr(cause, 'sqlstate', None) or getattr(cause, 'pgcode', None)


def _is_resource_violation(exc: IntegrityError) -> bool:
    # Exclusion or unique constraints guarding seat/locker occupancy
    message = str(exc).lower()
    return any(token in message for token in ('seat', 'locker', 'exclu'))


def _is_timeout(exc: OperationalError) -> bool:
    if _sqlstate(exc) in TIMEOUT_SQLSTATES:
        return True
    message = str(exc).lower()
    return 'timeout' in message or 'database is locked' in message


class ReservationLedger:
    """
    Writes a booking atomically

    Usage:
        receipt = ReservationLedger().commit(LedgerRequest(...))
    """

    def __init__(
        self,
        *,
        using: str = DEFAULT_DB_ALIAS,
        lock_timeout: float | None = None,
        statement_timeout: float | None = None,
    ):
        self.using = using
        self.lock_timeout = (
            lock_timeout if lock_timeout is not None
            else getattr(settings, 'BOOKING_TRANSACTION_MAX_WAIT', 5)
        )
        self.statement_timeout = (
            statement_timeout if statement_timeout is not None
            else getattr(settings, 'BOOKING_TRANSACTION_TIMEOUT', 20)
        )

    def commit(self, request: LedgerRequest) -> LedgerReceipt:
        """
        Commit payment, reservations and student pointer in one transaction

        Raises:
            ResourceUnavailableError: Seat or locker taken under lock
            InvalidPaymentStateError: Existing payment failed meanwhile
            TransactionTimeoutError: Lock wait or statement timeout exceeded
            TransactionAbortError: Any other database failure
        """
        if not request.periods:
            raise InvalidInputError("At least one billing cycle is required")
        if len(request.periods) != len(request.quote.per_cycle):
            raise InvalidInputError(
                f"Quote covers {len(request.quote.per_cycle)} cycles, "
                f"booking has {len(request.periods)}"
            )

        try:
            with DjangoUnitOfWork(
                using=self.using,
                lock_timeout=self.lock_timeout,
                statement_timeout=self.statement_timeout,
            ) as uow:
                receipt = self._write(request, uow)
        except BookingError:
            raise
        except IntegrityError as exc:
            logger.warning(f"Booking transaction rejected by integrity check: {exc}")
            if _is_resource_violation(exc):
                raise ResourceUnavailableError(
                    "Resource is occupied for the selected dates"
                ) from exc
            raise TransactionAbortError(str(exc)) from exc
        except OperationalError as exc:
            if _is_timeout(exc):
                logger.warning(f"Booking transaction timed out: {exc}")
                raise TransactionTimeoutError(
                    "Booking took too long to commit, please try again"
                ) from exc
            logger.error(f"Booking transaction aborted: {exc}", exc_info=True)
            raise TransactionAbortError(str(exc)) from exc
        except DatabaseError as exc:
            logger.error(f"Booking transaction aborted: {exc}", exc_info=True)
            raise TransactionAbortError(str(exc)) from exc

        logger.info(
            f"Booking committed: payment {receipt.payment_id} ({receipt.status}), "
            f"{len(receipt.reservation_ids)} reservation(s), invoice {receipt.invoice_no}"
        )
        return receipt

    # ----- transaction body -----

    def _write(self, request: LedgerRequest, uow: DjangoUnitOfWork) -> LedgerReceipt:
        span = span_of(request.periods)
        self._lock_and_recheck(request, span)

        if request.existing_payment is not None:
            payment = self._lock_existing_payment(request.existing_payment)
        else:
            payment = self._create_payment(request)

        status = reservation_status_for(payment.status)

        reservations = []
        for index, (period, share) in enumerate(zip(request.periods, request.quote.per_cycle)):
            reservations.append(
                self._create_reservation(request, period, share, index, status)
            )

        self._link_payment(payment, reservations)

        if status in Subscription.BLOCKING_STATUSES:
            self._update_student_location(request.student, request.branch)

        reservation_ids = [reservation.pk for reservation in reservations]
        uow.add_event(BookingCreated(
            aggregate_id=payment.pk,
            payment_id=payment.pk,
            reservation_ids=reservation_ids,
            student_id=request.student.pk,
            branch_id=request.branch.pk,
            payment_status=payment.status,
            receipt=self._receipt_data(request, payment, span),
        ))

        return LedgerReceipt(
            payment_id=payment.pk,
            reservation_ids=reservation_ids,
            invoice_no=payment.invoice_no,
            status=payment.status,
            reservation_status=status,
            amount=payment.amount,
            discount=payment.discount_amount,
        )

    def _lock_and_recheck(self, request: LedgerRequest, span: Period):
        if request.seat is not None:
            Seat.objects.using(self.using).select_for_update().get(pk=request.seat.pk)
            ensure_resource_is_available(request.seat, span.start, span.end, field='seat')
        if request.locker is not None:
            Locker.objects.using(self.using).select_for_update().get(pk=request.locker.pk)
            ensure_resource_is_available(request.locker, span.start, span.end, field='locker')

    def _lock_existing_payment(self, payment: Payment) -> Payment:
        locked = Payment.objects.using(self.using).select_for_update().get(pk=payment.pk)
        if not locked.is_bookable:
            raise InvalidPaymentStateError("Payment failed, cannot book")
        return locked

    def _create_payment(self, request: LedgerRequest) -> Payment:
        quote = request.quote
        return Payment.objects.using(self.using).create(
            student=request.student,
            library_id=request.plan.library_id,
            branch=request.branch,
            plan=request.plan,
            promotion_id=quote.promotion_id,
            type=request.payment_type,
            status=request.payment_status,
            method=request.payment_method,
            amount=quote.total.amount,
            discount_amount=quote.discount.amount,
            currency=quote.total.currency,
            invoice_no=generate_invoice_no(),
            gateway_provider=request.gateway_provider,
            gateway_order_id=request.gateway_order_id,
            proof_url=request.proof_url,
            transaction_ref=request.transaction_ref,
            notes=request.notes or ', '.join(item.description for item in quote.items),
            paid_at=timezone.now() if request.payment_status == Payment.Status.COMPLETED else None,
        )

    def _create_reservation(
        self,
        request: LedgerRequest,
        period: Period,
        share: Money,
        index: int,
        status: str,
    ) -> Subscription:
        return Subscription.objects.using(self.using).create(
            student=request.student,
            library_id=request.plan.library_id,
            branch=request.branch,
            plan=request.plan,
            seat=request.seat,
            locker=request.locker,
            status=status,
            start_date=period.start,
            end_date=period.end,
            amount=share.amount,
            has_locker=request.has_locker or request.locker is not None,
            cycle_index=index,
        )

    def _link_payment(self, payment: Payment, reservations: List[Subscription]):
        metadata = dict(payment.metadata or {})
        # An existing payment may already fund earlier reservations
        linked = list(metadata.get('subscription_ids', []))
        linked.extend(str(reservation.pk) for reservation in reservations)
        metadata['subscription_ids'] = linked
        payment.metadata = metadata
        if payment.subscription_id is None:
            payment.subscription = reservations[0]
        payment.save(using=self.using, update_fields=['subscription', 'metadata', 'updated_at'])

    def _update_student_location(self, student: Student, branch):
        Student.objects.using(self.using).filter(pk=student.pk).update(
            library_id=branch.library_id,
            branch_id=branch.pk,
            updated_at=timezone.now(),
        )
        student.library_id = branch.library_id
        student.branch_id = branch.pk

    def _receipt_data(self, request: LedgerRequest, payment: Payment, span: Period) -> Dict[str, Any]:
        quote = request.quote
        data = {
            'invoice_no': payment.invoice_no,
            'student_name': request.student.name,
            'student_email': request.student.email,
            'student_phone': request.student.phone,
            'branch_name': request.branch.name,
            'branch_address': getattr(request.branch, 'address', ''),
            'plan_name': request.plan.name,
            'plan_duration': f"{request.plan.duration * len(request.periods)} {request.plan.duration_unit}",
            'start_date': span.start.isoformat(),
            'end_date': span.end.isoformat(),
            'seat': request.seat.label if request.seat is not None else '',
            'locker': request.locker.label if request.locker is not None else '',
            'cycles': len(request.periods),
            'subtotal': str(quote.subtotal.amount),
            'discount': str(payment.discount_amount),
            'amount': str(payment.amount),
            'currency': payment.currency,
            'method': payment.method,
            'items': [
                {'description': item.description, 'amount': str(item.amount.amount)}
                for item in quote.items
            ],
        }
        data.update(request.receipt)
        return data

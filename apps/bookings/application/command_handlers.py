"""
Booking Command Handlers

These are the use cases for the booking domain.
They validate references, then run the booking pipeline:

    Validating -> ConflictChecking -> Pricing -> Committing -> Succeeded | Failed

Commands:
- CreateBookingCommand: Staff-initiated booking for a known student
- CreatePublicBookingCommand: Self-service booking; resolves or registers the student first

Facades (never raise BookingError, return a BookingResult instead):
- create_booking
- create_public_booking
- check_resource_availability
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, List, Optional, Union
from uuid import UUID
import logging

from django.conf import settings
from django.core.exceptions import ValidationError
from django.utils import timezone

from shared.domain.value_objects import SUPPORTED_CURRENCIES
from apps.bookings.application.ledger import LedgerReceipt, LedgerRequest, ReservationLedger
from apps.bookings.domain.cycles import expand_cycles, span_of
from apps.bookings.domain.pricing import FeeLine, PriceQuote, calculate_price, manual_quote
from apps.bookings.exceptions import (
    BookingError,
    InvalidInputError,
    InvalidPaymentStateError,
    LimitReachedError,
    NotFoundError,
)
from apps.bookings.models import Subscription
from apps.bookings.services import (
    count_active_students,
    ensure_resource_is_available,
    has_active_reservation,
    latest_chainable_reservation,
)
from apps.finances.models import Payment
from apps.finances.services import generate_gateway_order_id, validate_coupon
from apps.libraries.models import Branch, Locker, Plan, Seat
from apps.libraries.selectors import fees_for_branch, locker_for_seat_number, plan_is_offered_at
from apps.students.models import Student
from apps.students.services import ContactInfo, StudentResolutionError, resolve_student

logger = logging.getLogger(__name__)


class BookingState(str, Enum):
    VALIDATING = 'validating'
    CONFLICT_CHECKING = 'conflict_checking'
    PRICING = 'pricing'
    COMMITTING = 'committing'
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'


# ===== Commands =====

@dataclass
class ManualPayment:
    """Payment taken by staff at the desk; its amount is authoritative"""
    amount: Decimal
    discount: Decimal = Decimal('0')
    method: str = Payment.Method.CASH
    type: str = 'subscription'
    remarks: str = ''
    proof_url: str = ''
    transaction_ref: str = ''


@dataclass
class ManualPaymentProof:
    """Proof of an offline transfer attached to a public booking"""
    transaction_ref: str = ''
    proof_url: str = ''


@dataclass
class CreateBookingCommand:
    """
    Command to create a booking for a known student

    ``start_date`` is ignored when the student already holds a running or
    pending reservation at the branch: the booking then chains from its end.
    """
    student_id: UUID
    branch_id: UUID
    plan_id: UUID
    seat_id: Optional[UUID] = None
    locker_id: Optional[UUID] = None
    start_date: Optional[datetime] = None
    cycle_count: int = 1
    fee_ids: List[UUID] = field(default_factory=list)
    existing_payment_id: Optional[UUID] = None
    manual_payment: Optional[ManualPayment] = None
    is_add_on: bool = False


@dataclass
class CreatePublicBookingCommand:
    """Command for the self-service booking form"""
    contact: ContactInfo
    branch_id: UUID
    plan_id: UUID
    seat_id: Optional[UUID] = None
    locker_id: Optional[UUID] = None
    fee_ids: List[UUID] = field(default_factory=list)
    cycle_count: int = 1
    start_date: Optional[datetime] = None
    coupon_code: str = ''
    gateway_provider: str = ''
    manual_payment_proof: Optional[ManualPaymentProof] = None


@dataclass
class PublicPaymentTerms:
    coupon_code: str = ''
    gateway_provider: str = ''
    proof: Optional[ManualPaymentProof] = None


# ===== Results =====

@dataclass
class BookingSuccess:
    reservation_ids: List[UUID]
    payment_id: UUID
    invoice_no: str
    amount: Decimal
    discount: Decimal
    resource_label: str = ''
    status: str = ''
    student_id: Optional[UUID] = None
    is_new_student: bool = False

    succeeded = True


@dataclass
class BookingFailure:
    error_kind: str
    message: str
    retryable: bool = False

    succeeded = False

    @classmethod
    def from_error(cls, error: BookingError) -> 'BookingFailure':
        return cls(error_kind=error.error_kind, message=error.message, retryable=error.retryable)


BookingResult = Union[BookingSuccess, BookingFailure]


@dataclass
class _ValidatedBooking:
    student: Student
    plan: Plan
    branch: Branch
    seat: Optional[Seat]
    locker: Optional[Locker]
    fees: list
    existing_payment: Optional[Payment]
    has_locker: bool


def _aware_start(value: Any) -> Optional[datetime]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime.combine(value, time.min)
    elif isinstance(value, str):
        try:
            moment = datetime.fromisoformat(value)
        except ValueError:
            raise InvalidInputError(f"Malformed start date: {value!r}")
    else:
        raise InvalidInputError(f"Malformed start date: {value!r}")
    if timezone.is_naive(moment):
        moment = timezone.make_aware(moment)
    return moment


def _validate_cycle_count(cycle_count: Any):
    if isinstance(cycle_count, bool) or not isinstance(cycle_count, int) or cycle_count < 1:
        raise InvalidInputError(f"Cycle count must be a positive integer, got {cycle_count!r}")


def _supported_currency(code: str) -> str:
    if code not in SUPPORTED_CURRENCIES:
        raise InvalidInputError(f"Currency {code!r} is not supported for bookings")
    return code


# ===== Command Handlers =====

class CreateBookingHandler:
    """
    Handler for CreateBooking command

    Strategy:
    1. Validate every referenced row before anything is written
    2. Resolve the effective start (chaining) and expand the billing cycles
    3. Pre-check seat/locker overlap outside the transaction (fast path)
    4. Price the booking (manual amount, existing payment, or plan + fees + coupon)
    5. Hand the result to the ReservationLedger, which locks, re-checks and writes
       everything in one transaction
    6. BookingCreated is published after commit (receipt dispatch)
    """

    def __init__(
        self,
        ledger: Optional[ReservationLedger] = None,
        coupon_validator: Callable[..., Any] = validate_coupon,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self.ledger = ledger or ReservationLedger()
        self.coupon_validator = coupon_validator
        self.clock = clock

    def handle(
        self,
        command: CreateBookingCommand,
        terms: Optional[PublicPaymentTerms] = None,
    ) -> BookingSuccess:
        """
        Handle booking creation

        Returns: BookingSuccess describing the committed booking

        Raises:
            BookingError: Any validation, conflict or transaction failure
        """
        ref = f"student {command.student_id} @ branch {command.branch_id}"
        state = BookingState.VALIDATING
        try:
            self._transition(state, ref)
            _validate_cycle_count(command.cycle_count)
            requested_start = _aware_start(command.start_date)
            booking = self._validate(command)
            now = self.clock()
            self._enforce_capacity(booking, command, now)

            start = self._effective_start(booking, command, requested_start, now)
            periods = expand_cycles(start, booking.plan.duration, booking.plan.duration_unit, command.cycle_count)
            span = span_of(periods)

            state = BookingState.CONFLICT_CHECKING
            self._transition(state, ref, span=str(span))
            ensure_resource_is_available(booking.seat, span.start, span.end, field='seat')
            ensure_resource_is_available(booking.locker, span.start, span.end, field='locker')

            state = BookingState.PRICING
            self._transition(state, ref)
            quote = self._price(booking, command, terms)
            payment_status = self._payment_status(booking, command, terms)

            state = BookingState.COMMITTING
            self._transition(state, ref, total=str(quote.total.amount), cycles=len(periods))
            receipt = self.ledger.commit(
                self._ledger_request(booking, command, terms, periods, quote, payment_status)
            )
        except BookingError as exc:
            logger.info(
                f"Booking {ref}: {state.value} -> {BookingState.FAILED.value} "
                f"({exc.error_kind}: {exc.message})"
            )
            raise

        self._transition(BookingState.SUCCEEDED, ref, invoice=receipt.invoice_no)
        return self._success(booking, receipt)

    # ----- Validating -----

    def _validate(self, command: CreateBookingCommand) -> _ValidatedBooking:
        student = self._get(Student, command.student_id, "Student not found")
        plan = self._get(Plan, command.plan_id, "Plan not found")
        branch = self._get(Branch.objects.select_related('library'), command.branch_id, "Branch not found")

        if not branch.is_active or not branch.library.is_active:
            raise InvalidInputError("This branch is not accepting bookings")
        if not plan.is_active:
            raise InvalidInputError("This plan is no longer available")
        if not plan_is_offered_at(plan, branch):
            raise InvalidInputError("Plan is not offered at this branch")

        seat = None
        if command.seat_id:
            seat = self._get(Seat, command.seat_id, "Seat not found")
            self._check_resource_branch(seat, branch)

        locker = None
        if command.locker_id:
            locker = self._get(Locker, command.locker_id, "Locker not found")
            self._check_resource_branch(locker, branch)
        elif plan.includes_locker and branch.has_lockers:
            locker = self._assign_locker(branch, seat)

        fee_ids = list(dict.fromkeys(command.fee_ids or []))
        fees = fees_for_branch(branch, fee_ids) if fee_ids else []
        if len(fees) != len(fee_ids):
            raise NotFoundError("Additional fee not found")

        existing_payment = None
        if command.existing_payment_id:
            existing_payment = self._get(Payment, command.existing_payment_id, "Payment record not found")
            if not existing_payment.is_bookable:
                raise InvalidPaymentStateError("Payment failed, cannot book")
            if existing_payment.student_id != student.pk:
                raise InvalidInputError("Payment belongs to another student")

        has_locker = plan.includes_locker or any(fee.is_locker_fee for fee in fees)

        return _ValidatedBooking(
            student=student,
            plan=plan,
            branch=branch,
            seat=seat,
            locker=locker,
            fees=fees,
            existing_payment=existing_payment,
            has_locker=has_locker,
        )

    @staticmethod
    def _get(model_or_queryset, pk, message: str):
        queryset = getattr(model_or_queryset, 'objects', model_or_queryset)
        try:
            return queryset.get(pk=pk)
        except (queryset.model.DoesNotExist, ValidationError, ValueError, TypeError):
            raise NotFoundError(message)

    @staticmethod
    def _check_resource_branch(resource, branch: Branch):
        if resource.branch_id != branch.pk:
            raise InvalidInputError(f"{resource.label} does not belong to this branch")
        if not resource.is_active:
            raise InvalidInputError(f"{resource.label} is out of service")

    @staticmethod
    def _assign_locker(branch: Branch, seat: Optional[Seat]) -> Locker:
        if branch.is_locker_separate:
            raise InvalidInputError("Locker selection required")
        # Lockers are fixed to seats: take the one with the seat's number
        if seat is None:
            raise InvalidInputError("Seat selection required for this plan")
        locker = locker_for_seat_number(branch, seat.number)
        if locker is None:
            raise NotFoundError(f"Locker {seat.number} not found")
        return locker

    def _enforce_capacity(self, booking: _ValidatedBooking, command: CreateBookingCommand, now: datetime):
        library = booking.branch.library

        if library.max_active_students is not None:
            will_activate = bool(command.manual_payment) or (
                booking.existing_payment is not None
                and booking.existing_payment.status == Payment.Status.COMPLETED
            )
            active = count_active_students(library, now)
            already_active = Subscription.objects.running(now).filter(
                library=library, student=booking.student,
            ).exists()
            if will_activate and not already_active:
                active += 1
            if active > library.max_active_students:
                raise LimitReachedError("Active student limit reached")

        if library.max_total_students is not None and booking.student.library_id != library.pk:
            if Student.objects.filter(library=library).count() >= library.max_total_students:
                raise LimitReachedError("Total student limit reached")

    # ----- Chaining -----

    def _effective_start(
        self,
        booking: _ValidatedBooking,
        command: CreateBookingCommand,
        requested_start: Optional[datetime],
        now: datetime,
    ) -> datetime:
        if not command.is_add_on:
            previous = latest_chainable_reservation(booking.student, booking.branch, now)
            if previous is not None:
                logger.debug(f"Chaining booking after reservation {previous.pk} ending {previous.end_date}")
                return timezone.localtime(previous.end_date)
        # Month arithmetic works on local wall-clock dates, not on UTC values
        return timezone.localtime(requested_start or now)

    # ----- Pricing -----

    def _price(
        self,
        booking: _ValidatedBooking,
        command: CreateBookingCommand,
        terms: Optional[PublicPaymentTerms],
    ) -> PriceQuote:
        currency = _supported_currency(
            booking.branch.library.currency or getattr(settings, 'BOOKING_DEFAULT_CURRENCY', 'INR')
        )

        if booking.existing_payment is not None:
            return manual_quote(
                booking.existing_payment.amount,
                command.cycle_count,
                discount=booking.existing_payment.discount_amount,
                currency=_supported_currency(booking.existing_payment.currency or currency),
            )

        if command.manual_payment is not None:
            return manual_quote(
                command.manual_payment.amount,
                command.cycle_count,
                discount=command.manual_payment.discount,
                currency=currency,
            )

        coupon = None
        if terms is not None and terms.coupon_code:
            coupon = self._bind_coupon(terms.coupon_code, booking)

        quote = calculate_price(
            Decimal('0') if command.is_add_on else booking.plan.price,
            [FeeLine(fee.name, fee.amount, fee.bill_type) for fee in booking.fees],
            command.cycle_count,
            plan_duration=booking.plan.duration,
            plan_unit=booking.plan.duration_unit,
            plan_name='Add-on' if command.is_add_on else booking.plan.name,
            coupon=coupon,
            currency=currency,
        )
        if quote.coupon_error:
            logger.info(f"Coupon {terms.coupon_code!r} not applied: {quote.coupon_error}")
        return quote

    def _bind_coupon(self, code: str, booking: _ValidatedBooking):
        def apply(subtotal: Decimal):
            return self.coupon_validator(
                code,
                subtotal,
                booking.student.pk,
                booking.plan.pk,
                booking.branch.pk,
            )
        return apply

    @staticmethod
    def _payment_status(
        booking: _ValidatedBooking,
        command: CreateBookingCommand,
        terms: Optional[PublicPaymentTerms],
    ) -> str:
        if booking.existing_payment is not None:
            return booking.existing_payment.status
        if command.manual_payment is not None:
            return Payment.Status.COMPLETED
        if terms is not None and terms.proof is not None:
            return Payment.Status.PENDING_VERIFICATION
        return Payment.Status.PENDING

    # ----- Committing -----

    @staticmethod
    def _ledger_request(
        booking: _ValidatedBooking,
        command: CreateBookingCommand,
        terms: Optional[PublicPaymentTerms],
        periods,
        quote: PriceQuote,
        payment_status: str,
    ) -> LedgerRequest:
        request = LedgerRequest(
            student=booking.student,
            plan=booking.plan,
            branch=booking.branch,
            periods=periods,
            quote=quote,
            seat=booking.seat,
            locker=booking.locker,
            has_locker=booking.has_locker,
            existing_payment=booking.existing_payment,
            payment_status=payment_status,
        )

        manual = command.manual_payment
        if manual is not None:
            request.payment_method = manual.method
            request.payment_type = manual.type or 'subscription'
            request.proof_url = manual.proof_url
            request.transaction_ref = manual.transaction_ref
            descriptions = ', '.join(item.description for item in quote.items)
            request.notes = f"{descriptions}. {manual.remarks}" if manual.remarks else ''
        elif terms is not None:
            if terms.proof is not None:
                request.payment_method = Payment.Method.TRANSFER
                request.proof_url = terms.proof.proof_url
                request.transaction_ref = terms.proof.transaction_ref
            elif terms.gateway_provider:
                request.payment_method = Payment.Method.GATEWAY
                request.gateway_provider = terms.gateway_provider
                request.gateway_order_id = generate_gateway_order_id(terms.gateway_provider)
        return request

    @staticmethod
    def _success(booking: _ValidatedBooking, receipt: LedgerReceipt) -> BookingSuccess:
        resource = booking.seat or booking.locker
        return BookingSuccess(
            reservation_ids=receipt.reservation_ids,
            payment_id=receipt.payment_id,
            invoice_no=receipt.invoice_no,
            amount=receipt.amount,
            discount=receipt.discount,
            resource_label=resource.label if resource is not None else '',
            status=receipt.status,
            student_id=booking.student.pk,
        )

    @staticmethod
    def _transition(state: BookingState, ref: str, **details):
        suffix = f" {details}" if details else ''
        logger.info(f"Booking {ref}: {state.value}{suffix}")


class CreatePublicBookingHandler:
    """
    Handler for CreatePublicBooking command

    Resolves (or registers) the student from the contact details, then
    delegates to CreateBookingHandler with the public payment terms: coupon,
    gateway provider and optional manual payment proof.
    """

    def __init__(
        self,
        booking_handler: Optional[CreateBookingHandler] = None,
        identity_resolver: Callable[[ContactInfo], Any] = resolve_student,
    ):
        self.booking_handler = booking_handler or CreateBookingHandler()
        self.identity_resolver = identity_resolver

    def handle(self, command: CreatePublicBookingCommand) -> BookingSuccess:
        _validate_cycle_count(command.cycle_count)
        _aware_start(command.start_date)

        try:
            resolved = self.identity_resolver(command.contact)
        except StudentResolutionError as exc:
            logger.info(f"Public booking refused for {command.contact.email}: {exc}")
            raise InvalidInputError(str(exc)) from exc

        logger.info(
            f"Public booking for {'new' if resolved.is_new else 'existing'} "
            f"student {resolved.student.pk}"
        )

        result = self.booking_handler.handle(
            CreateBookingCommand(
                student_id=resolved.student.pk,
                branch_id=command.branch_id,
                plan_id=command.plan_id,
                seat_id=command.seat_id,
                locker_id=command.locker_id,
                start_date=command.start_date,
                cycle_count=command.cycle_count,
                fee_ids=list(command.fee_ids or []),
            ),
            terms=PublicPaymentTerms(
                coupon_code=(command.coupon_code or '').strip(),
                gateway_provider=command.gateway_provider,
                proof=command.manual_payment_proof,
            ),
        )
        result.is_new_student = resolved.is_new
        return result


# ===== Facades =====

def create_booking(
    command: CreateBookingCommand,
    handler: Optional[CreateBookingHandler] = None,
) -> BookingResult:
    """Create a staff booking; failures come back as BookingFailure"""
    handler = handler or CreateBookingHandler()
    try:
        return handler.handle(command)
    except BookingError as exc:
        return BookingFailure.from_error(exc)


def create_public_booking(
    command: CreatePublicBookingCommand,
    handler: Optional[CreatePublicBookingHandler] = None,
) -> BookingResult:
    """Create a self-service booking; failures come back as BookingFailure"""
    handler = handler or CreatePublicBookingHandler()
    try:
        return handler.handle(command)
    except BookingError as exc:
        return BookingFailure.from_error(exc)


def check_resource_availability(student_id, branch_id) -> dict:
    """Whether the student holds a running reservation at the branch"""
    return {'has_active_reservation': has_active_reservation(student_id, branch_id)}

"""Booking failure taxonomy.

Every failure the booking engine reports is a ``BookingError``; its
``error_kind`` is the stable identifier returned to callers.
"""

from __future__ import annotations


class BookingError(Exception):
    """Base class for booking failures."""

    error_kind = "booking_error"
    retryable = False

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__ or self.error_kind)
        self.message = str(self.args[0])


class NotFoundError(BookingError):
    """A referenced student, plan, branch, resource or payment does not exist."""

    error_kind = "not_found"


class ResourceUnavailableError(BookingError):
    """The resource is occupied for the selected dates."""

    error_kind = "resource_unavailable"


class InvalidPaymentStateError(BookingError):
    """The referenced payment can no longer fund a booking."""

    error_kind = "invalid_payment_state"


class InvalidInputError(BookingError):
    """The request is malformed."""

    error_kind = "invalid_input"


class LimitReachedError(BookingError):
    """The library's student capacity is exhausted."""

    error_kind = "limit_reached"


class TransactionTimeoutError(BookingError):
    """The booking transaction exceeded its lock wait or statement timeout."""

    error_kind = "transaction_timeout"
    retryable = True


class TransactionAbortError(BookingError):
    """The booking transaction was aborted by the database."""

    error_kind = "transaction_aborted"
    retryable = True

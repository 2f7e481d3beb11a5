"""
Unit of Work Pattern

Manages database transactions and ensures that domain events
are published only after successful transaction commit.
"""

from abc import ABC, abstractmethod
from typing import List
import logging
import sys

from django.db import connections, transaction, DEFAULT_DB_ALIAS

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(ABC):
    """Abstract Unit of Work pattern"""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def commit(self):
        """Commit the transaction"""
        pass

    @abstractmethod
    def rollback(self):
        """Rollback the transaction"""
        pass

    @abstractmethod
    def add_event(self, event: DomainEvent):
        """Queue an event for publishing after commit"""
        pass


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Django implementation of Unit of Work

    Manages Django database transactions and ensures domain events
    are published after successful commit.

    ``lock_timeout`` bounds how long a statement waits for row locks and
    ``statement_timeout`` bounds any single statement, both in seconds.
    They are applied with ``SET LOCAL`` semantics on PostgreSQL and are
    ignored on backends without an equivalent.

    Usage:
        with DjangoUnitOfWork(lock_timeout=5, statement_timeout=20) as uow:
            seat = Seat.objects.select_for_update().get(pk=seat_id)
            ...
            uow.add_event(BookingCreated(...))
            # Transaction commits here
        # Events are published after commit
    """

    def __init__(
        self,
        *,
        using: str = DEFAULT_DB_ALIAS,
        lock_timeout: float | None = None,
        statement_timeout: float | None = None,
    ):
        self.using = using
        self.lock_timeout = lock_timeout
        self.statement_timeout = statement_timeout
        self._events: List[DomainEvent] = []
        self._transaction = None

    def __enter__(self):
        """Start database transaction"""
        self._transaction = transaction.atomic(using=self.using)
        self._transaction.__enter__()
        try:
            self._apply_timeouts()
        except BaseException:
            self._transaction.__exit__(*sys.exc_info())
            raise
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Complete or rollback transaction"""
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            if self._transaction:
                self._transaction.__exit__(exc_type, exc_val, exc_tb)

    def _apply_timeouts(self):
        connection = connections[self.using]
        if connection.vendor != 'postgresql':
            return
        settings_to_apply = []
        if self.lock_timeout:
            settings_to_apply.append(('lock_timeout', f"{int(self.lock_timeout * 1000)}ms"))
        if self.statement_timeout:
            settings_to_apply.append(('statement_timeout', f"{int(self.statement_timeout * 1000)}ms"))
        if not settings_to_apply:
            return
        with connection.cursor() as cursor:
            for name, value in settings_to_apply:
                # is_local=true scopes the setting to the current transaction
                cursor.execute("SELECT set_config(%s, %s, true)", [name, value])
        logger.debug(f"Transaction envelope applied: {dict(settings_to_apply)}")

    def commit(self):
        """
        Commit changes and publish events

        Events are published using Django's transaction.on_commit()
        to ensure they're only sent after database commit succeeds.
        """
        logger.debug(f"Committing transaction with {len(self._events)} events")

        # Copy events before clearing
        events = self._events.copy()
        self._events.clear()

        # Schedule event publishing after commit
        if events:
            transaction.on_commit(lambda: self._publish_events(events), using=self.using)

    def rollback(self):
        """Rollback changes and discard events"""
        logger.warning(f"Rolling back transaction, discarding {len(self._events)} events")
        self._events.clear()

    def add_event(self, event: DomainEvent):
        self._events.append(event)

    def _publish_events(self, events: List[DomainEvent]):
        """
        Publish collected events to message bus

        Called after successful transaction commit.
        """
        from shared.application.message_bus import message_bus

        logger.info(f"Publishing {len(events)} domain events after commit")

        try:
            message_bus.publish_events(events)
        except Exception as e:
            logger.error(f"Error publishing events: {e}", exc_info=True)
            # Events are already committed to database
            # Failure to publish events should be handled by monitoring

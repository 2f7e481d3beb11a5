"""Tests for the unit of work and message bus."""

from __future__ import annotations

from dataclasses import dataclass

from django.test import TestCase

from shared.application.message_bus import MessageBus, message_bus
from shared.application.uow import DjangoUnitOfWork
from shared.domain.base import DomainEvent


@dataclass
class SomethingHappened(DomainEvent):
    name: str = ""


class MessageBusTests(TestCase):
    def test_failing_handler_does_not_stop_others(self) -> None:
        bus = MessageBus()
        received = []

        def broken(event):
            raise RuntimeError("boom")

        def recorder(event):
            received.append(event.name)

        bus.register_event_handler(SomethingHappened, broken)
        bus.register_event_handler(SomethingHappened, recorder)

        bus.publish_events([SomethingHappened(name="first")])

        self.assertEqual(received, ["first"])

    def test_handler_registration_is_idempotent(self) -> None:
        bus = MessageBus()

        def handler(event):
            return None

        bus.register_event_handler(SomethingHappened, handler)
        bus.register_event_handler(SomethingHappened, handler)

        self.assertEqual(bus.handlers_for(SomethingHappened), [handler])


class DjangoUnitOfWorkTests(TestCase):
    def setUp(self) -> None:
        self.received = []
        message_bus.register_event_handler(SomethingHappened, self._record)

    def tearDown(self) -> None:
        message_bus.unregister_event_handler(SomethingHappened, self._record)

    def _record(self, event) -> None:
        self.received.append(event.name)

    def test_events_are_published_after_commit(self) -> None:
        with self.captureOnCommitCallbacks(execute=True):
            with DjangoUnitOfWork(lock_timeout=5, statement_timeout=20) as uow:
                uow.add_event(SomethingHappened(name="committed"))
                self.assertEqual(self.received, [])

        self.assertEqual(self.received, ["committed"])

    def test_events_are_discarded_on_rollback(self) -> None:
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            try:
                with DjangoUnitOfWork() as uow:
                    uow.add_event(SomethingHappened(name="lost"))
                    raise ValueError("abort")
            except ValueError:
                pass

        self.assertEqual(callbacks, [])
        self.assertEqual(self.received, [])

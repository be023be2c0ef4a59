import uuid
from types import SimpleNamespace

from django.test import SimpleTestCase

from clinic_billing.core.application.cqrs import CommandBusImpl, QueryBusImpl
from clinic_billing.core.domain.events.events import DomainEvent, RecurrenceOccurrencesGeneratedEvent
from clinic_billing.core.domain.services.event_dispatcher import EventDispatcher


class Ping:
    pass


class EchoHandler:
    def __init__(self, result):
        self.result = result

    def handle(self, message):
        return self.result


def recurrence_event():
    return RecurrenceOccurrencesGeneratedEvent(recurrence_id=uuid.uuid4(), clinic_id=uuid.uuid4(), created=3)


class BusTests(SimpleTestCase):
    def test_unregistered_message(self):
        with self.assertRaises(LookupError):
            QueryBusImpl().dispatch(Ping())

    def test_command_bus_publishes_result_events(self):
        dispatcher = EventDispatcher()
        received = []
        dispatcher.subscribe(RecurrenceOccurrencesGeneratedEvent, received.append)
        event = recurrence_event()
        bus = CommandBusImpl(dispatcher)
        bus.register(Ping, EchoHandler(SimpleNamespace(events=[event])))

        bus.dispatch(Ping())
        self.assertEqual(received, [event])
        self.assertEqual(bus.registered(), ["Ping"])

    def test_command_bus_publishes_event_result(self):
        dispatcher = EventDispatcher()
        received = []
        dispatcher.subscribe(RecurrenceOccurrencesGeneratedEvent, received.append)
        bus = CommandBusImpl(dispatcher)
        event = recurrence_event()
        bus.register(Ping, EchoHandler(event))

        self.assertIs(bus.dispatch(Ping()), event)
        self.assertEqual(received, [event])


class EventDispatcherTests(SimpleTestCase):
    def test_base_class_listener_sees_subclasses(self):
        dispatcher = EventDispatcher()
        seen = []
        dispatcher.subscribe(DomainEvent, lambda e: seen.append("base"))
        dispatcher.subscribe(RecurrenceOccurrencesGeneratedEvent, lambda e: seen.append("exact"))

        dispatcher.dispatch(recurrence_event())
        self.assertEqual(sorted(seen), ["base", "exact"])

    def test_failing_listener_does_not_stop_others(self):
        dispatcher = EventDispatcher()
        seen = []

        def broken(_event):
            raise RuntimeError("falhou")

        dispatcher.subscribe(RecurrenceOccurrencesGeneratedEvent, broken)
        dispatcher.subscribe(RecurrenceOccurrencesGeneratedEvent, seen.append)

        dispatcher.dispatch_all([recurrence_event(), recurrence_event()])
        self.assertEqual(len(seen), 2)

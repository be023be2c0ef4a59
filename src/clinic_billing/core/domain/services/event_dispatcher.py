from collections import defaultdict
from collections.abc import Callable, Iterable

import structlog

from clinic_billing.core.domain.events.events import DomainEvent

logger = structlog.get_logger(__name__)

Listener = Callable[[DomainEvent], None]


def _listener_name(listener: Listener) -> str:
    return getattr(listener, "__name__", type(listener).__name__)


class EventDispatcher:
    """
    Publica eventos de domínio para os listeners registrados.

    Um listener inscrito numa classe base (ex.: DomainEvent) recebe também os
    eventos das subclasses. Erro de listener é logado e não interrompe os demais.
    """

    def __init__(self) -> None:
        self._listeners: dict[type[DomainEvent], list[Listener]] = defaultdict(list)

    def subscribe(self, event_type: type[DomainEvent], listener: Listener) -> None:
        self._listeners[event_type].append(listener)
        logger.debug("event.subscribed", event_type=event_type.__name__, listener=_listener_name(listener))

    def listeners_for(self, event: DomainEvent) -> list[Listener]:
        return [
            listener
            for klass in type(event).__mro__
            for listener in self._listeners.get(klass, ())
        ]

    def dispatch(self, event: DomainEvent) -> None:
        listeners = self.listeners_for(event)
        logger.debug("event.dispatch", event_name=type(event).__name__, listeners=len(listeners))
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "event.listener_error",
                    event_name=type(event).__name__,
                    listener=_listener_name(listener),
                )

    def dispatch_all(self, events: Iterable[DomainEvent]) -> None:
        for event in events:
            self.dispatch(event)

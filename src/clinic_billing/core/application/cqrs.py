from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar

import structlog

from clinic_billing.adapters.observability.metrics import BUS_DURATION
from clinic_billing.core.domain.events.events import DomainEvent
from clinic_billing.core.domain.services.event_dispatcher import EventDispatcher

C = TypeVar("C")  # comando
Q = TypeVar("Q")  # filtros da query
R = TypeVar("R")  # resultado da query

logger = structlog.get_logger(__name__)


# ───────────────────────────────────────────────
# Mensagens
# ───────────────────────────────────────────────
@dataclass(frozen=True)
class CommandDTO:
    """Base dos comandos de escrita da agenda e do faturamento."""


@dataclass(frozen=True)
class QueryDTO(Generic[Q]):
    """Consulta genérica por dicionário de filtros (sempre com clinic_id)."""
    filtros: Q


class CommandHandler(Protocol, Generic[C]):
    def handle(self, command: C) -> Any: ...


class QueryHandler(Protocol, Generic[Q, R]):
    def handle(self, query: Q) -> R: ...


# ───────────────────────────────────────────────
# Buses
# ───────────────────────────────────────────────
class _TimedBus:
    """Roteia mensagens pelo tipo exato e mede cada execução (log + histograma)."""

    kind = "message"

    def __init__(self) -> None:
        self._handlers: dict[type, Any] = {}

    def register(self, message_type: type, handler: Any) -> None:
        if message_type in self._handlers:
            logger.warning("bus.handler_replaced", kind=self.kind, message=message_type.__name__)
        self._handlers[message_type] = handler

    def registered(self) -> list[str]:
        return sorted(t.__name__ for t in self._handlers)

    def dispatch(self, message: Any) -> Any:
        name = type(message).__name__
        handler = self._handlers.get(type(message))
        if handler is None:
            raise LookupError(f"Nenhum handler registrado para {self.kind} {name}")

        start = time.perf_counter()
        try:
            return handler.handle(message)
        finally:
            elapsed = time.perf_counter() - start
            BUS_DURATION.labels(kind=self.kind, name=name).observe(elapsed)
            logger.debug("bus.dispatched", kind=self.kind, message=name, duration_ms=round(elapsed * 1000, 1))


class CommandBusImpl(_TimedBus):
    """
    Além de despachar o comando, publica os eventos de domínio do resultado:
    o próprio resultado quando é um DomainEvent, ou o atributo `events` dos
    DTOs de resultado (créditos emitidos, faturas geradas...).
    """

    kind = "command"

    def __init__(self, dispatcher: EventDispatcher):
        super().__init__()
        self.dispatcher = dispatcher

    def dispatch(self, command: Any) -> Any:
        result = super().dispatch(command)
        if isinstance(result, DomainEvent):
            self.dispatcher.dispatch(result)
        else:
            self.dispatcher.dispatch_all(getattr(result, "events", None) or ())
        return result


class QueryBusImpl(_TimedBus):
    kind = "query"

from __future__ import annotations

import structlog

from clinic_billing.adapters.observability.metrics import SESSION_CREDIT_EVENTS
from clinic_billing.core.domain.events.events import (
    InvoiceSentEvent,
    InvoicesGeneratedEvent,
    SessionCreditConsumedEvent,
    SessionCreditIssuedEvent,
    SessionCreditReleasedEvent,
)
from clinic_billing.core.domain.services.event_dispatcher import EventDispatcher

log = structlog.get_logger(__name__)

_CREDIT_EVENT_LABELS = {
    SessionCreditIssuedEvent: "issued",
    SessionCreditConsumedEvent: "consumed",
    SessionCreditReleasedEvent: "released",
}


def count_credit_event(event) -> None:
    SESSION_CREDIT_EVENTS.labels(event=_CREDIT_EVENT_LABELS[type(event)]).inc()


def log_invoices_generated(event: InvoicesGeneratedEvent) -> None:
    log.info(
        "invoices.generated",
        clinic_id=str(event.clinic_id),
        period=f"{event.reference_month:02d}/{event.reference_year}",
        generated=event.generated,
        updated=event.updated,
        skipped=event.skipped,
    )


def log_invoice_sent(event: InvoiceSentEvent) -> None:
    log.info("invoice.sent_event", invoice_id=str(event.invoice_id), total=str(event.total_amount))


def register_event_listeners(dispatcher: EventDispatcher) -> None:
    for event_type in _CREDIT_EVENT_LABELS:
        dispatcher.subscribe(event_type, count_credit_event)
    dispatcher.subscribe(InvoicesGeneratedEvent, log_invoices_generated)
    dispatcher.subscribe(InvoiceSentEvent, log_invoice_sent)

from __future__ import annotations

import uuid
from datetime import UTC, datetime

import structlog

from clinic_billing.core.application.services.utils.formatters import BrazilianFormatter
from clinic_billing.core.domain.entities.appointment_entity import AppointmentEntity
from clinic_billing.core.domain.entities.enums import AppointmentStatus
from clinic_billing.core.domain.entities.session_credit_entity import SessionCreditEntity
from clinic_billing.core.domain.events.events import (
    SessionCreditConsumedEvent,
    SessionCreditIssuedEvent,
    SessionCreditReleasedEvent,
)
from clinic_billing.core.domain.events.exceptions import (
    CreditAlreadyConsumedError,
    CreditConsumedTransitionError,
)
from clinic_billing.core.domain.repositories.session_credit_repository import SessionCreditRepository
from clinic_billing.core.domain.services.event_dispatcher import EventDispatcher

logger = structlog.get_logger(__name__)

_BLOCKED_MESSAGES = {
    AppointmentStatus.CANCELADO_FALTA.value: "Crédito já foi utilizado em uma fatura. Não é possível alterar para Falta.",
    AppointmentStatus.CANCELADO_PROFISSIONAL.value: "Crédito já foi utilizado em uma fatura. Não é possível alterar para cancelado sem cobrança.",
}
_DEFAULT_BLOCKED_MESSAGE = "Crédito já foi utilizado em uma fatura. Exclua a fatura antes de alterar o status."


def credit_reason_for(appointment: AppointmentEntity, tz) -> str:
    return f"Desmarcou - {BrazilianFormatter.format_date(appointment.scheduled_at.astimezone(tz))}"


class SessionCreditLedger:
    """
    Livro-razão dos créditos de sessão.

    Um crédito nasce de um cancelamento acordado, é consumido por no máximo
    uma fatura por vez e volta a ficar disponível quando liberado.
    """

    def __init__(self, repo: SessionCreditRepository, dispatcher: EventDispatcher | None = None):
        self.repo = repo
        self.dispatcher = dispatcher

    def _emit(self, event) -> None:
        if self.dispatcher is not None:
            self.dispatcher.dispatch(event)

    def issue_credit(self, appointment: AppointmentEntity, reason: str) -> SessionCreditEntity:
        credit = SessionCreditEntity(
            id=uuid.uuid4(),
            clinic_id=appointment.clinic_id,
            professional_profile_id=appointment.professional_profile_id,
            patient_id=appointment.patient_id,
            origin_appointment_id=appointment.id,
            reason=reason,
        )
        credit = self.repo.save(credit)
        logger.info("credit.issued", credit_id=str(credit.id), appointment_id=str(appointment.id))
        self._emit(SessionCreditIssuedEvent(
            credit_id=credit.id, patient_id=credit.patient_id, origin_appointment_id=appointment.id,
        ))
        return credit

    def consume_credit(self, credit: SessionCreditEntity, invoice_id: uuid.UUID, at: datetime | None = None) -> SessionCreditEntity:
        if credit.is_consumed:
            raise CreditAlreadyConsumedError(credit.id, credit.consumed_by_invoice_id)
        credit.consumed_by_invoice_id = invoice_id
        credit.consumed_at = at or datetime.now(UTC)
        credit = self.repo.save(credit)
        logger.debug("credit.consumed", credit_id=str(credit.id), invoice_id=str(invoice_id))
        self._emit(SessionCreditConsumedEvent(credit_id=credit.id, invoice_id=invoice_id))
        return credit

    def release_credit(self, credit: SessionCreditEntity) -> SessionCreditEntity:
        invoice_id = credit.consumed_by_invoice_id
        credit.consumed_by_invoice_id = None
        credit.consumed_at = None
        credit = self.repo.save(credit)
        logger.debug("credit.released", credit_id=str(credit.id), invoice_id=str(invoice_id))
        self._emit(SessionCreditReleasedEvent(credit_id=credit.id, invoice_id=invoice_id))
        return credit

    def release_invoice_credits(self, invoice_id: uuid.UUID) -> list[SessionCreditEntity]:
        released = [self.release_credit(c) for c in self.repo.list_consumed_by_invoice(invoice_id)]
        if released:
            logger.info("credit.invoice_released", invoice_id=str(invoice_id), count=len(released))
        return released

    def revoke_credit(self, appointment: AppointmentEntity, target_status: str) -> None:
        """
        Remove o crédito de um agendamento que sai de CANCELADO_ACORDADO.
        Bloqueia a transição se o crédito já foi consumido por uma fatura.
        """
        credit = self.repo.find_by_origin_appointment(appointment.id)
        if credit is not None:
            if credit.is_consumed:
                raise CreditConsumedTransitionError(_BLOCKED_MESSAGES.get(target_status, _DEFAULT_BLOCKED_MESSAGE))
            self.repo.delete(credit.id)
            logger.info("credit.revoked", credit_id=str(credit.id), appointment_id=str(appointment.id))
        appointment.credit_generated = False

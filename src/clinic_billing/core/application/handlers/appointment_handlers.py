from __future__ import annotations

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

import structlog
from django.db import transaction

from clinic_billing.core.application.commands.appointment_commands import ChangeAppointmentStatusCommand
from clinic_billing.core.application.cqrs import CommandHandler
from clinic_billing.core.application.dtos.appointment_dto import StatusChangeResultDTO
from clinic_billing.core.application.services.credit_ledger import SessionCreditLedger, credit_reason_for
from clinic_billing.core.application.services.status_transitions import (
    allowed_transitions,
    apply_status_change,
    is_valid_transition,
    should_update_last_visit,
)
from clinic_billing.core.domain.entities.enums import AppointmentStatus
from clinic_billing.core.domain.events.events import AppointmentStatusChangedEvent
from clinic_billing.core.domain.events.exceptions import (
    AppointmentNotFoundError,
    BillingValidationError,
    InvalidStatusTransitionError,
)
from clinic_billing.core.domain.repositories.appointment_repository import AppointmentRepository
from clinic_billing.core.domain.repositories.clinic_repository import ClinicRepository
from clinic_billing.core.domain.repositories.patient_repository import PatientRepository

logger = structlog.get_logger(__name__)


class ChangeAppointmentStatusHandler(CommandHandler[ChangeAppointmentStatusCommand]):
    """
    Aplica a tabela de transições de status e os efeitos no livro de créditos:
    entrar em CANCELADO_ACORDADO emite um crédito (uma única vez por
    agendamento); sair dele remove o crédito, ou bloqueia a mudança se o
    crédito já foi consumido por uma fatura.
    """
    def __init__(
        self,
        appointment_repo: AppointmentRepository,
        patient_repo: PatientRepository,
        clinic_repo: ClinicRepository,
        ledger: SessionCreditLedger,
    ):
        self.appointment_repo = appointment_repo
        self.patient_repo = patient_repo
        self.clinic_repo = clinic_repo
        self.ledger = ledger

    def handle(self, cmd: ChangeAppointmentStatusCommand) -> StatusChangeResultDTO:
        if cmd.status not in AppointmentStatus.values():
            raise BillingValidationError(f"Status inválido: {cmd.status}")

        appointment = self.appointment_repo.find_by_id(cmd.appointment_id)
        if appointment is None or appointment.clinic_id != cmd.clinic_id:
            raise AppointmentNotFoundError(cmd.appointment_id)

        previous = appointment.status
        if previous == cmd.status:
            return StatusChangeResultDTO(appointment=appointment, changed=False)

        if not is_valid_transition(previous, cmd.status):
            raise InvalidStatusTransitionError(previous, cmd.status, allowed_transitions(previous))

        clinic = self.clinic_repo.find_by_id(appointment.clinic_id)
        tz = ZoneInfo(clinic.timezone if clinic else "America/Sao_Paulo")
        now = datetime.now(UTC)
        credit = None

        with transaction.atomic():
            if previous == AppointmentStatus.CANCELADO_ACORDADO.value:
                self.ledger.revoke_credit(appointment, cmd.status)

            apply_status_change(appointment, cmd.status, now, cmd.reason)
            appointment = self.appointment_repo.save(appointment)

            if (
                cmd.status == AppointmentStatus.CANCELADO_ACORDADO.value
                and appointment.patient_id
                and not appointment.credit_generated
            ):
                credit = self.ledger.issue_credit(appointment, credit_reason_for(appointment, tz))
                appointment.credit_generated = True
                appointment = self.appointment_repo.save(appointment)

            if should_update_last_visit(cmd.status) and appointment.patient_id:
                self.patient_repo.touch_last_visit(appointment.patient_id, appointment.scheduled_at)

        logger.info(
            "appointment.status_changed",
            appointment_id=str(appointment.id),
            previous=previous,
            status=cmd.status,
            credit_issued=credit is not None,
        )
        return StatusChangeResultDTO(
            appointment=appointment,
            changed=True,
            credit=credit,
            events=[AppointmentStatusChangedEvent(
                appointment_id=appointment.id,
                clinic_id=appointment.clinic_id,
                previous_status=previous,
                new_status=cmd.status,
            )],
        )

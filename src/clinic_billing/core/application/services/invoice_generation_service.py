"""
Geração e regeneração idempotente das faturas mensais de uma clínica.

Cada execução cobre (clínica, mês, ano) e roda numa única transação: ou
todas as faturas do período são atualizadas, ou nenhuma. Faturas PAGO/ENVIADO
nunca são tocadas; itens manuais sobrevivem à regeneração.
"""
from __future__ import annotations

import calendar
import uuid
from collections import defaultdict
from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

import structlog

from clinic_billing.adapters.db.transaction import atomic_with_timeout
from clinic_billing.adapters.observability.metrics import (
    INVOICE_REGENERATION_COUNT,
    INVOICE_REGENERATION_DURATION,
    INVOICES_PROCESSED,
)
from clinic_billing.core.application.dtos.invoice_dto import InvoiceDetailDTO, InvoiceGenerationResultDTO
from clinic_billing.core.application.services.appointment_classifier import classify_appointments
from clinic_billing.core.application.services.credit_ledger import SessionCreditLedger
from clinic_billing.core.application.services.invoice_builder import (
    applicable_credits,
    build_invoice_items,
    calculate_invoice_totals,
    determine_invoice_professional,
    separate_manual_items,
)
from clinic_billing.core.application.services.invoice_template import (
    build_detail_block,
    build_template_variables,
    render_invoice_template,
    resolve_template,
)
from clinic_billing.core.domain.entities.clinic_entity import ClinicEntity
from clinic_billing.core.domain.entities.invoice_entity import InvoiceEntity, InvoiceItemEntity
from clinic_billing.core.domain.entities.patient_entity import PatientEntity
from clinic_billing.core.domain.events.events import InvoicesGeneratedEvent
from clinic_billing.core.domain.events.exceptions import ClinicNotFoundError
from clinic_billing.core.domain.repositories.appointment_repository import AppointmentRepository
from clinic_billing.core.domain.repositories.clinic_repository import ClinicRepository, ProfessionalRepository
from clinic_billing.core.domain.repositories.invoice_repository import InvoiceRepository
from clinic_billing.core.domain.repositories.patient_repository import PatientRepository
from clinic_billing.core.domain.repositories.session_credit_repository import SessionCreditRepository

logger = structlog.get_logger(__name__)


def month_bounds(year: int, month: int, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """[primeiro dia do mês, primeiro dia do mês seguinte) no fuso da clínica."""
    start = datetime(year, month, 1, tzinfo=tz)
    end = datetime(year + 1, 1, 1, tzinfo=tz) if month == 12 else datetime(year, month + 1, 1, tzinfo=tz)
    return start, end


def invoice_due_date(year: int, month: int, due_day: int) -> date:
    return date(year, month, min(due_day, calendar.monthrange(year, month)[1]))


class InvoiceRecalculationService:
    """Recalcula totais e mensagem de uma fatura a partir dos itens atuais."""

    def __init__(
        self,
        invoice_repo: InvoiceRepository,
        appointment_repo: AppointmentRepository,
        patient_repo: PatientRepository,
        clinic_repo: ClinicRepository,
        professional_repo: ProfessionalRepository,
    ):
        self.invoice_repo = invoice_repo
        self.appointment_repo = appointment_repo
        self.patient_repo = patient_repo
        self.clinic_repo = clinic_repo
        self.professional_repo = professional_repo

    def recalculate(
        self,
        invoice: InvoiceEntity,
        *,
        patient: PatientEntity | None = None,
        clinic: ClinicEntity | None = None,
        items: list[InvoiceItemEntity] | None = None,
    ) -> tuple[InvoiceEntity, list[InvoiceItemEntity]]:
        items = items if items is not None else self.invoice_repo.list_items(invoice.id)
        patient = patient or self.patient_repo.find_by_id(invoice.patient_id)
        clinic = clinic or self.clinic_repo.find_by_id(invoice.clinic_id)
        professional = self.professional_repo.find_by_id(invoice.professional_profile_id)

        totals = calculate_invoice_totals(items)
        invoice.apply_totals(totals)

        appointment_dates = {}
        if invoice.show_appointment_days:
            linked = [i.appointment_id for i in items if i.appointment_id]
            appointment_dates = {a.id: a.scheduled_at for a in self.appointment_repo.list_by_ids(linked)}

        variables = build_template_variables(
            patient=patient,
            professional_name=professional.name if professional else None,
            reference_month=invoice.reference_month,
            reference_year=invoice.reference_year,
            due_date=invoice.due_date,
            totals=totals,
            items=items,
            session_fee=patient.session_fee,
            detail_block=build_detail_block(items, appointment_dates, tz=clinic.timezone),
        )
        template = resolve_template(patient.invoice_message_template, clinic.invoice_message_template)
        invoice.message_body = render_invoice_template(template, variables)
        return self.invoice_repo.save(invoice), items


class InvoiceGenerationService:
    def __init__(
        self,
        appointment_repo: AppointmentRepository,
        patient_repo: PatientRepository,
        clinic_repo: ClinicRepository,
        invoice_repo: InvoiceRepository,
        credit_repo: SessionCreditRepository,
        ledger: SessionCreditLedger,
        recalculator: InvoiceRecalculationService,
        due_day: int = 15,
        timeout_ms: int | None = None,
    ):
        self.appointment_repo = appointment_repo
        self.patient_repo = patient_repo
        self.clinic_repo = clinic_repo
        self.invoice_repo = invoice_repo
        self.credit_repo = credit_repo
        self.ledger = ledger
        self.recalculator = recalculator
        self.due_day = due_day
        self.timeout_ms = timeout_ms

    def generate(
        self,
        clinic_id: uuid.UUID,
        month: int,
        year: int,
        professional_id: uuid.UUID | None = None,
    ) -> InvoiceGenerationResultDTO:
        clinic = self.clinic_repo.find_by_id(clinic_id)
        if clinic is None:
            raise ClinicNotFoundError(clinic_id)

        log = logger.bind(clinic_id=str(clinic_id), month=month, year=year,
                          professional_id=str(professional_id) if professional_id else None)
        tz = ZoneInfo(clinic.timezone)
        start, end = month_bounds(year, month, tz)

        appointments = self.appointment_repo.list_for_billing(clinic_id, start, end, professional_id)
        if professional_id is not None and appointments:
            # o filtro escolhe os pacientes; a fatura cobre todos os atendimentos deles na clínica
            patient_ids = {a.patient_id for a in appointments}
            appointments = self.appointment_repo.list_for_billing(clinic_id, start, end, patient_ids=patient_ids)

        by_patient: dict[uuid.UUID, list] = defaultdict(list)
        for apt in appointments:
            by_patient[apt.patient_id].append(apt)

        result = InvoiceGenerationResultDTO()
        if not by_patient:
            log.info("invoice.generation_empty")
            return result

        patients = self.patient_repo.find_many(by_patient.keys())
        due_date = invoice_due_date(year, month, self.due_day)

        with INVOICE_REGENERATION_DURATION.time():
            try:
                with atomic_with_timeout(self.timeout_ms):
                    for patient_id, patient_apts in by_patient.items():
                        self._process_patient(
                            result, clinic, patients.get(patient_id), patient_id, patient_apts,
                            month, year, due_date, professional_id, tz,
                        )
            except Exception:
                INVOICE_REGENERATION_COUNT.labels(success="false").inc()
                log.exception("invoice.generation_failed")
                raise

        INVOICE_REGENERATION_COUNT.labels(success="true").inc()
        INVOICES_PROCESSED.labels(outcome="generated").inc(result.generated)
        INVOICES_PROCESSED.labels(outcome="updated").inc(result.updated)
        INVOICES_PROCESSED.labels(outcome="skipped").inc(result.skipped)
        log.info("invoice.generation_done", generated=result.generated, updated=result.updated,
                 skipped=result.skipped)
        result.events.append(InvoicesGeneratedEvent(
            clinic_id=clinic_id, reference_month=month, reference_year=year,
            generated=result.generated, updated=result.updated, skipped=result.skipped,
        ))
        return result

    def _process_patient(
        self,
        result: InvoiceGenerationResultDTO,
        clinic: ClinicEntity,
        patient: PatientEntity | None,
        patient_id: uuid.UUID,
        appointments: list,
        month: int,
        year: int,
        due_date: date,
        professional_id: uuid.UUID | None,
        tz: ZoneInfo,
    ) -> None:
        if patient is None or not patient.session_fee:
            logger.info("invoice.patient_without_fee", patient_id=str(patient_id))
            result.skipped += 1
            return

        existing = self.invoice_repo.find_by_period(clinic.id, patient_id, month, year)
        if existing is not None and existing.is_locked:
            logger.info("invoice.skipped_locked", invoice_id=str(existing.id), status=existing.status)
            result.skipped += 1
            return

        invoice_professional = professional_id or determine_invoice_professional(
            patient.reference_professional_id, appointments,
        )
        manual_items: list[InvoiceItemEntity] = []

        if existing is not None:
            consumed = self.credit_repo.list_consumed_by_invoice(existing.id)
            auto_items, manual_items = separate_manual_items(self.invoice_repo.list_items(existing.id), consumed)
            for credit in consumed:
                self.ledger.release_credit(credit)
            self.invoice_repo.delete_items([i.id for i in auto_items])
            invoice = existing
            invoice.professional_profile_id = invoice_professional
            invoice.show_appointment_days = patient.show_appointment_days_on_invoice
            invoice.due_date = due_date
        else:
            invoice = self.invoice_repo.save(InvoiceEntity(
                id=uuid.uuid4(),
                clinic_id=clinic.id,
                patient_id=patient_id,
                professional_profile_id=invoice_professional,
                reference_month=month,
                reference_year=year,
                due_date=due_date,
                show_appointment_days=patient.show_appointment_days_on_invoice,
            ))

        classified = classify_appointments(appointments)
        credits = applicable_credits(
            classified, self.credit_repo.list_available(clinic.id, patient_id), patient.billing_mode,
        )
        drafts = build_invoice_items(
            classified,
            patient.session_fee,
            credits,
            show_appointment_days=patient.show_appointment_days_on_invoice,
            billing_mode=patient.billing_mode,
            reference_month=month,
            reference_year=year,
            tz=tz,
        )
        new_items = self.invoice_repo.add_items(invoice.id, drafts)

        now = datetime.now(UTC)
        for credit in credits:
            self.ledger.consume_credit(credit, invoice.id, now)

        invoice, items = self.recalculator.recalculate(
            invoice, patient=patient, clinic=clinic, items=[*new_items, *manual_items],
        )

        if existing is not None:
            result.updated += 1
        else:
            result.generated += 1
        result.invoices.append(InvoiceDetailDTO(invoice=invoice, items=items, patient_name=patient.name))
        logger.debug("invoice.processed", invoice_id=str(invoice.id), total=str(invoice.total_amount),
                     items=len(items), credits=len(credits))

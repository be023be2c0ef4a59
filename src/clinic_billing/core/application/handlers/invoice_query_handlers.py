from __future__ import annotations

from clinic_billing.core.application.cqrs import QueryHandler
from clinic_billing.core.application.dtos.invoice_dto import InvoiceDetailDTO, RepasseReportDTO
from clinic_billing.core.application.queries.invoice_queries import (
    GetInvoiceQuery,
    GetRepasseQuery,
    ListInvoicesQuery,
    ListSessionCreditsQuery,
)
from clinic_billing.core.application.services.invoice_sort import (
    earliest_recurrence_by_patient,
    sort_invoices_by_recurrence,
)
from clinic_billing.core.application.services.repasse import (
    REPASSE_BILLABLE_INVOICE_STATUSES,
    build_repasse_lines,
    summarize_repasse,
)
from clinic_billing.core.domain.entities.session_credit_entity import SessionCreditEntity
from clinic_billing.core.domain.events.exceptions import (
    BillingValidationError,
    ClinicNotFoundError,
    InvoiceNotFoundError,
    ProfessionalNotFoundError,
)
from clinic_billing.core.domain.repositories.clinic_repository import ClinicRepository, ProfessionalRepository
from clinic_billing.core.domain.repositories.invoice_repository import InvoiceRepository
from clinic_billing.core.domain.repositories.patient_repository import PatientRepository
from clinic_billing.core.domain.repositories.recurrence_repository import RecurrenceRepository
from clinic_billing.core.domain.repositories.session_credit_repository import SessionCreditRepository


class GetInvoiceHandler(QueryHandler[GetInvoiceQuery, InvoiceDetailDTO]):
    def __init__(self, invoice_repo: InvoiceRepository, patient_repo: PatientRepository,
                 professional_repo: ProfessionalRepository):
        self.invoice_repo = invoice_repo
        self.patient_repo = patient_repo
        self.professional_repo = professional_repo

    def handle(self, query: GetInvoiceQuery) -> InvoiceDetailDTO:
        invoice = self.invoice_repo.find_by_id(query.invoice_id)
        if invoice is None or invoice.clinic_id != query.clinic_id:
            raise InvoiceNotFoundError(query.invoice_id)
        patient = self.patient_repo.find_by_id(invoice.patient_id)
        professional = self.professional_repo.find_by_id(invoice.professional_profile_id)
        return InvoiceDetailDTO(
            invoice=invoice,
            items=self.invoice_repo.list_items(invoice.id),
            patient_name=patient.name if patient else None,
            professional_name=professional.name if professional else None,
        )


class ListInvoicesHandler(QueryHandler[ListInvoicesQuery, list[InvoiceDetailDTO]]):
    """Lista faturas ordenadas pelo horário semanal do paciente (sem itens)."""
    def __init__(self, invoice_repo: InvoiceRepository, patient_repo: PatientRepository,
                 recurrence_repo: RecurrenceRepository):
        self.invoice_repo = invoice_repo
        self.patient_repo = patient_repo
        self.recurrence_repo = recurrence_repo

    def handle(self, query: ListInvoicesQuery) -> list[InvoiceDetailDTO]:
        filtros = dict(query.filtros)
        clinic_id = filtros.pop("clinic_id")
        invoices = self.invoice_repo.filter(clinic_id, **filtros)
        patient_ids = list({inv.patient_id for inv in invoices})
        names = {pid: p.name for pid, p in self.patient_repo.find_many(patient_ids).items()}
        recurrences = earliest_recurrence_by_patient(self.recurrence_repo.list_active_for_patients(patient_ids))
        ordered = sort_invoices_by_recurrence(invoices, recurrences, names)
        return [InvoiceDetailDTO(invoice=inv, items=[], patient_name=names.get(inv.patient_id)) for inv in ordered]


class ListSessionCreditsHandler(QueryHandler[ListSessionCreditsQuery, list[SessionCreditEntity]]):
    def __init__(self, credit_repo: SessionCreditRepository):
        self.credit_repo = credit_repo

    def handle(self, query: ListSessionCreditsQuery) -> list[SessionCreditEntity]:
        filtros = dict(query.filtros)
        clinic_id = filtros.pop("clinic_id")
        status = filtros.get("status")
        if status not in (None, "available", "consumed"):
            raise BillingValidationError("status deve ser 'available' ou 'consumed'")
        return self.credit_repo.filter(clinic_id, **filtros)


class GetRepasseHandler(QueryHandler[GetRepasseQuery, RepasseReportDTO]):
    """Repasse do profissional no mês: faturas PENDENTE, ENVIADO e PAGO."""
    def __init__(self, invoice_repo: InvoiceRepository, patient_repo: PatientRepository,
                 clinic_repo: ClinicRepository, professional_repo: ProfessionalRepository):
        self.invoice_repo = invoice_repo
        self.patient_repo = patient_repo
        self.clinic_repo = clinic_repo
        self.professional_repo = professional_repo

    def handle(self, query: GetRepasseQuery) -> RepasseReportDTO:
        clinic = self.clinic_repo.find_by_id(query.clinic_id)
        if clinic is None:
            raise ClinicNotFoundError(query.clinic_id)
        professional = self.professional_repo.find_by_id(query.professional_profile_id)
        if professional is None or professional.clinic_id != clinic.id:
            raise ProfessionalNotFoundError(query.professional_profile_id)

        invoices = self.invoice_repo.filter(
            clinic.id,
            month=query.month,
            year=query.year,
            professional_id=professional.id,
            statuses=REPASSE_BILLABLE_INVOICE_STATUSES,
        )
        names = {pid: p.name for pid, p in self.patient_repo.find_many({i.patient_id for i in invoices}).items()}
        lines = build_repasse_lines(invoices, names, clinic.tax_percentage, professional.repasse_percentage)
        lines.sort(key=lambda line: line.patient_name.casefold())
        return RepasseReportDTO(
            professional_id=professional.id,
            professional_name=professional.name,
            month=query.month,
            year=query.year,
            tax_percentage=clinic.tax_percentage,
            repasse_percentage=professional.repasse_percentage,
            lines=lines,
            summary=summarize_repasse(lines),
        )

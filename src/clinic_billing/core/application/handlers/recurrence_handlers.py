from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

import structlog
from django.db import transaction

from clinic_billing.adapters.observability.metrics import RECURRENCE_OCCURRENCES_CREATED
from clinic_billing.core.application.commands.appointment_commands import (
    CreateRecurrenceCommand,
    ExtendRecurrencesCommand,
    FinalizeRecurrenceCommand,
    SkipRecurrenceDateCommand,
    UnskipRecurrenceDateCommand,
    UpdateRecurrenceCommand,
)
from clinic_billing.core.application.cqrs import CommandHandler
from clinic_billing.core.application.dtos.appointment_dto import (
    RecurrenceExtensionResultDTO,
    RecurrenceResultDTO,
)
from clinic_billing.core.application.services.invoice_generation_service import InvoiceRecalculationService
from clinic_billing.core.application.services.recurrence_expander import (
    Occurrence,
    add_exception,
    add_months,
    exclude_conflicts,
    exclude_exceptions,
    exclude_existing,
    expand_occurrences,
    occurrence_window,
    remove_exception,
    validate_recurrence,
)
from clinic_billing.core.application.services.status_transitions import apply_status_change
from clinic_billing.core.domain.entities.appointment_entity import AppointmentEntity
from clinic_billing.core.domain.entities.enums import (
    AppointmentStatus,
    AppointmentType,
    RecurrenceEndType,
    RecurrenceType,
)
from clinic_billing.core.domain.entities.recurrence_entity import AppointmentRecurrenceEntity
from clinic_billing.core.domain.events.events import RecurrenceOccurrencesGeneratedEvent
from clinic_billing.core.domain.events.exceptions import (
    BillingError,
    RecurrenceNotFoundError,
    RecurrenceValidationError,
)
from clinic_billing.core.domain.repositories.appointment_repository import AppointmentRepository
from clinic_billing.core.domain.repositories.clinic_repository import ClinicRepository, ProfessionalRepository
from clinic_billing.core.domain.repositories.invoice_repository import InvoiceRepository
from clinic_billing.core.domain.repositories.recurrence_repository import RecurrenceRepository

logger = structlog.get_logger(__name__)

OPEN_STATUSES = (AppointmentStatus.AGENDADO.value, AppointmentStatus.CONFIRMADO.value)
SKIP_REASON = "Exceção na recorrência - data pulada"
FINALIZE_REASON = "Recorrência finalizada"


def build_occurrence_appointments(
    recurrence: AppointmentRecurrenceEntity,
    occurrences: list[Occurrence],
    price: Decimal | None = None,
) -> list[AppointmentEntity]:
    return [
        AppointmentEntity(
            id=uuid.uuid4(),
            clinic_id=recurrence.clinic_id,
            professional_profile_id=recurrence.professional_profile_id,
            patient_id=recurrence.patient_id,
            title=recurrence.title,
            scheduled_at=occ.scheduled_at,
            end_at=occ.end_at,
            type=recurrence.appointment_type,
            recurrence_id=recurrence.id,
            price=price,
        )
        for occ in occurrences
    ]


class _RecurrenceHandlerBase:
    def __init__(
        self,
        recurrence_repo: RecurrenceRepository,
        appointment_repo: AppointmentRepository,
        clinic_repo: ClinicRepository,
        invoice_repo: InvoiceRepository | None = None,
        recalculator: InvoiceRecalculationService | None = None,
    ):
        self.recurrence_repo = recurrence_repo
        self.appointment_repo = appointment_repo
        self.clinic_repo = clinic_repo
        self.invoice_repo = invoice_repo
        self.recalculator = recalculator

    def _tz(self, clinic_id: uuid.UUID) -> ZoneInfo:
        clinic = self.clinic_repo.find_by_id(clinic_id)
        return ZoneInfo(clinic.timezone if clinic else "America/Sao_Paulo")

    def _load(self, recurrence_id: uuid.UUID, clinic_id: uuid.UUID) -> AppointmentRecurrenceEntity:
        recurrence = self.recurrence_repo.find_by_id(recurrence_id)
        if recurrence is None or recurrence.clinic_id != clinic_id:
            raise RecurrenceNotFoundError(recurrence_id)
        return recurrence

    def _expand(self, recurrence: AppointmentRecurrenceEntity, start: date, window_end: date,
                tz: ZoneInfo, limit: int | None = None) -> list[Occurrence]:
        return expand_occurrences(
            start, window_end, recurrence.day_of_week, recurrence.start_time,
            recurrence.duration_minutes, recurrence.recurrence_type, tz, limit,
        )

    def _create_free(self, recurrence: AppointmentRecurrenceEntity, occurrences: list[Occurrence],
                     price: Decimal | None = None) -> tuple[list[AppointmentEntity], list[date]]:
        """Cria os agendamentos cujos horários ainda não estão ocupados."""
        occurrences = exclude_exceptions(occurrences, recurrence.exceptions)
        if not occurrences:
            return [], []
        taken = self.appointment_repo.existing_start_times(
            recurrence.professional_profile_id, occurrences[0].scheduled_at, occurrences[-1].end_at,
        )
        free = exclude_existing(occurrences, taken)
        free_dates = {occ.date for occ in free}
        skipped = [occ.date for occ in occurrences if occ.date not in free_dates]
        created = self.appointment_repo.bulk_create(build_occurrence_appointments(recurrence, free, price))
        RECURRENCE_OCCURRENCES_CREATED.inc(len(created))
        return created, skipped

    def _delete_appointments(self, appointment_ids: list[uuid.UUID]) -> int:
        """
        Remove agendamentos e, antes, as linhas deles nas faturas ainda
        regeneráveis (PENDENTE/CANCELADO), que são recalculadas em seguida.
        Faturas ENVIADO/PAGO mantêm a linha como histórico.
        """
        if not appointment_ids:
            return 0
        if self.invoice_repo is None:
            return self.appointment_repo.delete_many(appointment_ids)

        invoices = {}
        stale_items = []
        for item in self.invoice_repo.list_items_by_appointments(appointment_ids):
            invoice = invoices.get(item.invoice_id) or self.invoice_repo.find_by_id(item.invoice_id)
            if invoice is None or invoice.is_locked:
                continue
            invoices[invoice.id] = invoice
            stale_items.append(item.id)

        self.invoice_repo.delete_items(stale_items)
        removed = self.appointment_repo.delete_many(appointment_ids)
        for invoice in invoices.values():
            self.recalculator.recalculate(invoice)
            logger.info("invoice.lines_dropped", invoice_id=str(invoice.id), reason="appointment_removed")
        return removed


def _day_bounds(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=tz)
    return start, start + timedelta(days=1)


class CreateRecurrenceHandler(_RecurrenceHandlerBase, CommandHandler[CreateRecurrenceCommand]):
    """Cria a regra e gera os agendamentos da janela inicial."""

    def handle(self, cmd: CreateRecurrenceCommand) -> RecurrenceResultDTO:
        if cmd.recurrence_type not in RecurrenceType.values():
            raise RecurrenceValidationError(f"Tipo de recorrência inválido: {cmd.recurrence_type}")
        if cmd.appointment_type not in AppointmentType.values():
            raise RecurrenceValidationError(f"Tipo de agendamento inválido: {cmd.appointment_type}")
        if cmd.recurrence_end_type == RecurrenceEndType.BY_DATE.value and cmd.end_date and cmd.end_date < cmd.start_date:
            raise RecurrenceValidationError("Data final deve ser posterior à data inicial")

        tz = self._tz(cmd.clinic_id)
        window_end, limit = occurrence_window(
            cmd.start_date, cmd.day_of_week, cmd.recurrence_type, cmd.recurrence_end_type,
            cmd.end_date, cmd.occurrences,
        )
        recurrence = AppointmentRecurrenceEntity(
            id=uuid.uuid4(),
            clinic_id=cmd.clinic_id,
            professional_profile_id=cmd.professional_profile_id,
            patient_id=cmd.patient_id,
            title=cmd.title,
            appointment_type=cmd.appointment_type,
            recurrence_type=cmd.recurrence_type,
            recurrence_end_type=cmd.recurrence_end_type,
            day_of_week=cmd.day_of_week,
            start_time=cmd.start_time,
            duration_minutes=cmd.duration_minutes,
            start_date=cmd.start_date,
            end_date=cmd.end_date,
            occurrences=cmd.occurrences,
        )
        occurrences = self._expand(recurrence, cmd.start_date, window_end, tz, limit)
        if not occurrences:
            raise RecurrenceValidationError("Nenhuma ocorrência no período informado")

        with transaction.atomic():
            recurrence.last_generated_date = occurrences[-1].date
            recurrence = self.recurrence_repo.save(recurrence)
            created, skipped = self._create_free(recurrence, occurrences, cmd.price)

        logger.info("recurrence.created", recurrence_id=str(recurrence.id), created=len(created),
                    skipped=len(skipped))
        return RecurrenceResultDTO(
            recurrence=recurrence,
            created=created,
            skipped_dates=skipped,
            events=[RecurrenceOccurrencesGeneratedEvent(
                recurrence_id=recurrence.id, clinic_id=recurrence.clinic_id, created=len(created),
            )],
        )


class UpdateRecurrenceHandler(_RecurrenceHandlerBase, CommandHandler[UpdateRecurrenceCommand]):
    """
    Atualiza a regra. Com apply_to="future", agendamentos ainda abertos são
    ajustados: mudança de horário/duração desloca cada um no mesmo dia;
    mudança de dia da semana ou de frequência recria a série a partir de hoje.
    """

    def handle(self, cmd: UpdateRecurrenceCommand) -> RecurrenceResultDTO:
        recurrence = self._load(cmd.recurrence_id, cmd.clinic_id)
        if cmd.recurrence_type is not None and cmd.recurrence_type not in RecurrenceType.values():
            raise RecurrenceValidationError(f"Tipo de recorrência inválido: {cmd.recurrence_type}")
        if cmd.day_of_week is not None and not 0 <= cmd.day_of_week <= 6:
            raise RecurrenceValidationError("Dia da semana deve estar entre 0 (domingo) e 6 (sábado)")

        rule_changed = (
            (cmd.day_of_week is not None and cmd.day_of_week != recurrence.day_of_week)
            or (cmd.recurrence_type is not None and cmd.recurrence_type != recurrence.recurrence_type)
        )
        time_changed = (
            (cmd.start_time is not None and cmd.start_time != recurrence.start_time)
            or (cmd.duration_minutes is not None and cmd.duration_minutes != recurrence.duration_minutes)
        )

        changes = {
            name: value for name, value in (
                ("day_of_week", cmd.day_of_week),
                ("start_time", cmd.start_time),
                ("duration_minutes", cmd.duration_minutes),
                ("recurrence_type", cmd.recurrence_type),
                ("recurrence_end_type", cmd.recurrence_end_type),
                ("end_date", cmd.end_date),
                ("occurrences", cmd.occurrences),
            ) if value is not None
        }
        recurrence = replace(recurrence, **changes)
        validate_recurrence(recurrence.recurrence_end_type, recurrence.end_date, recurrence.occurrences)

        tz = self._tz(recurrence.clinic_id)
        now = datetime.now(UTC)
        result = RecurrenceResultDTO(recurrence=recurrence)

        with transaction.atomic():
            if cmd.apply_to == "future" and (rule_changed or time_changed):
                future = self.appointment_repo.list_by_recurrence(recurrence.id, start=now, statuses=OPEN_STATUSES)
                if rule_changed:
                    result.removed = self._delete_appointments([a.id for a in future])
                    result.created, result.skipped_dates = self._regenerate_from_today(recurrence, now, tz)
                else:
                    for apt in future:
                        local_day = apt.scheduled_at.astimezone(tz).date()
                        apt.scheduled_at = datetime.combine(local_day, recurrence.start_time, tzinfo=tz)
                        apt.end_at = apt.scheduled_at + timedelta(minutes=recurrence.duration_minutes)
                        self.appointment_repo.save(apt)
            result.recurrence = self.recurrence_repo.save(recurrence)

        logger.info("recurrence.updated", recurrence_id=str(recurrence.id), apply_to=cmd.apply_to,
                    rule_changed=rule_changed, time_changed=time_changed)
        return result

    def _regenerate_from_today(self, recurrence: AppointmentRecurrenceEntity, now: datetime,
                               tz: ZoneInfo) -> tuple[list[AppointmentEntity], list[date]]:
        today = now.astimezone(tz).date()
        start = max(today, recurrence.start_date)
        occurrences_left = recurrence.occurrences
        if recurrence.recurrence_end_type == RecurrenceEndType.BY_OCCURRENCES.value:
            past = self.appointment_repo.list_by_recurrence(recurrence.id, end=now)
            occurrences_left = recurrence.occurrences - len(past)
            if occurrences_left < 1:
                return [], []
        window_end, limit = occurrence_window(
            start, recurrence.day_of_week, recurrence.recurrence_type, recurrence.recurrence_end_type,
            recurrence.end_date, occurrences_left,
        )
        occurrences = self._expand(recurrence, start, window_end, tz, limit)
        if occurrences:
            recurrence.last_generated_date = occurrences[-1].date
        return self._create_free(recurrence, occurrences)


class SkipRecurrenceDateHandler(_RecurrenceHandlerBase, CommandHandler[SkipRecurrenceDateCommand]):
    """Adiciona a data às exceções e remove o horário se ele ainda não ocorreu."""

    def handle(self, cmd: SkipRecurrenceDateCommand) -> RecurrenceResultDTO:
        recurrence = self._load(cmd.recurrence_id, cmd.clinic_id)
        if recurrence.is_exception(cmd.date):
            raise RecurrenceValidationError("Data já está nas exceções da recorrência")

        tz = self._tz(recurrence.clinic_id)
        now = datetime.now(UTC)
        day_start, day_end = _day_bounds(cmd.date, tz)

        with transaction.atomic():
            recurrence.exceptions = add_exception(recurrence.exceptions, cmd.date)
            recurrence = self.recurrence_repo.save(recurrence)
            same_day = self.appointment_repo.list_by_recurrence(
                recurrence.id, start=day_start, end=day_end, statuses=OPEN_STATUSES,
            )
            removable = [a.id for a in same_day if not a.has_occurred(now)]
            removed = self._delete_appointments(removable)

        logger.info("recurrence.date_skipped", recurrence_id=str(recurrence.id), date=cmd.date.isoformat(),
                    removed=removed, reason=SKIP_REASON)
        return RecurrenceResultDTO(recurrence=recurrence, removed=removed)


class UnskipRecurrenceDateHandler(_RecurrenceHandlerBase, CommandHandler[UnskipRecurrenceDateCommand]):
    """Remove a data das exceções e recria o horário se ele pertence à série."""

    def handle(self, cmd: UnskipRecurrenceDateCommand) -> RecurrenceResultDTO:
        recurrence = self._load(cmd.recurrence_id, cmd.clinic_id)
        if not recurrence.is_exception(cmd.date):
            raise RecurrenceValidationError("Data não está nas exceções da recorrência")

        tz = self._tz(recurrence.clinic_id)
        today = datetime.now(UTC).astimezone(tz).date()
        result = RecurrenceResultDTO(recurrence=recurrence)

        with transaction.atomic():
            recurrence.exceptions = remove_exception(recurrence.exceptions, cmd.date)
            result.recurrence = self.recurrence_repo.save(recurrence)
            if recurrence.is_active and cmd.date >= today and self._belongs_to_series(recurrence, cmd.date):
                occurrence = self._expand(recurrence, cmd.date, cmd.date, tz)
                result.created, result.skipped_dates = self._create_free(recurrence, occurrence)

        logger.info("recurrence.date_restored", recurrence_id=str(recurrence.id), date=cmd.date.isoformat(),
                    created=len(result.created))
        return result

    def _belongs_to_series(self, recurrence: AppointmentRecurrenceEntity, day: date) -> bool:
        if recurrence.end_date and day > recurrence.end_date:
            return False
        if recurrence.last_generated_date and day > recurrence.last_generated_date:
            return False
        series = self._expand(recurrence, recurrence.start_date, day, ZoneInfo("UTC"))
        return bool(series) and series[-1].date == day


class FinalizeRecurrenceHandler(_RecurrenceHandlerBase, CommandHandler[FinalizeRecurrenceCommand]):
    """Converte a recorrência em BY_DATE com a data final informada."""

    def handle(self, cmd: FinalizeRecurrenceCommand) -> RecurrenceResultDTO:
        recurrence = self._load(cmd.recurrence_id, cmd.clinic_id)
        tz = self._tz(recurrence.clinic_id)
        now = datetime.now(UTC)
        if cmd.end_date < now.astimezone(tz).date():
            raise RecurrenceValidationError("Data final não pode estar no passado")

        recurrence.recurrence_end_type = RecurrenceEndType.BY_DATE.value
        recurrence.end_date = cmd.end_date
        recurrence.occurrences = None
        cancelled = 0

        with transaction.atomic():
            recurrence = self.recurrence_repo.save(recurrence)
            if cmd.cancel_future_appointments:
                after_end, _ = _day_bounds(cmd.end_date + timedelta(days=1), tz)
                for apt in self.appointment_repo.list_by_recurrence(recurrence.id, start=after_end,
                                                                    statuses=OPEN_STATUSES):
                    apply_status_change(apt, AppointmentStatus.CANCELADO_PROFISSIONAL.value, now, FINALIZE_REASON)
                    self.appointment_repo.save(apt)
                    cancelled += 1

        logger.info("recurrence.finalized", recurrence_id=str(recurrence.id), end_date=cmd.end_date.isoformat(),
                    cancelled=cancelled)
        return RecurrenceResultDTO(recurrence=recurrence, cancelled=cancelled)


class ExtendRecurrencesHandler(_RecurrenceHandlerBase, CommandHandler[ExtendRecurrencesCommand]):
    """
    Estende recorrências INDEFINITE: quando a última data gerada está a menos
    de `horizon_months` de hoje, gera mais `extension_months` de agenda,
    pulando exceções e conflitos com a agenda do profissional.
    """

    def __init__(
        self,
        recurrence_repo: RecurrenceRepository,
        appointment_repo: AppointmentRepository,
        clinic_repo: ClinicRepository,
        professional_repo: ProfessionalRepository,
        extension_months: int = 3,
        horizon_months: int = 2,
    ):
        super().__init__(recurrence_repo, appointment_repo, clinic_repo)
        self.professional_repo = professional_repo
        self.extension_months = extension_months
        self.horizon_months = horizon_months

    def handle(self, cmd: ExtendRecurrencesCommand) -> RecurrenceExtensionResultDTO:
        today = cmd.today or datetime.now(UTC).date()
        horizon = add_months(today, self.horizon_months)
        result = RecurrenceExtensionResultDTO()

        for recurrence in self.recurrence_repo.list_active_indefinite():
            result.processed += 1
            last = recurrence.last_generated_date
            if last is not None and last > horizon:
                continue
            try:
                created = self._extend(recurrence, last)
            except BillingError as exc:
                logger.warning("recurrence.extend_failed", recurrence_id=str(recurrence.id), error=str(exc))
                result.errors.append(f"{recurrence.id}: {exc}")
                continue
            if created is None:
                continue
            result.extended += 1
            result.created += created
            result.events.append(RecurrenceOccurrencesGeneratedEvent(
                recurrence_id=recurrence.id, clinic_id=recurrence.clinic_id, created=created,
            ))

        logger.info("recurrence.extend_done", processed=result.processed, extended=result.extended,
                    created=result.created, errors=len(result.errors))
        return result

    def _extend(self, recurrence: AppointmentRecurrenceEntity, last: date | None) -> int | None:
        tz = self._tz(recurrence.clinic_id)
        # a partir da última ocorrência mantém a fase das séries quinzenais/28 dias
        start = last + timedelta(days=recurrence.interval_days) if last else recurrence.start_date
        window_end = add_months(last or recurrence.start_date, self.extension_months)
        occurrences = self._expand(recurrence, start, window_end, tz)
        if not occurrences:
            return None

        professional = self.professional_repo.find_by_id(recurrence.professional_profile_id)
        buffer = professional.buffer_between_slots if professional else 0
        candidates = exclude_exceptions(occurrences, recurrence.exceptions)
        busy = self.appointment_repo.busy_intervals(
            recurrence.professional_profile_id,
            occurrences[0].scheduled_at - timedelta(minutes=buffer),
            occurrences[-1].end_at + timedelta(minutes=buffer),
        )
        free = exclude_conflicts(candidates, busy, buffer)

        with transaction.atomic():
            created = self.appointment_repo.bulk_create(build_occurrence_appointments(recurrence, free))
            recurrence.last_generated_date = occurrences[-1].date
            self.recurrence_repo.save(recurrence)

        RECURRENCE_OCCURRENCES_CREATED.inc(len(created))
        logger.debug("recurrence.extended", recurrence_id=str(recurrence.id), created=len(created),
                     last_generated_date=recurrence.last_generated_date.isoformat())
        return len(created)

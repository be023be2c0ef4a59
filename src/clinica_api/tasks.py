from __future__ import annotations

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

import structlog
from celery import Task, shared_task
from django.core.management import call_command

from plugins.django_interface.models import Clinic

log = structlog.get_logger(__name__)

# ──────────────────────────────────────────────────────────────────────────
# Constantes de filas
# ──────────────────────────────────────────────────────────────────────────
QUEUE_SCHEDULING = "scheduling"
QUEUE_BILLING    = "billing"


# ──────────────────────────────────────────────────────────────────────────
# Base das tasks de agenda/faturamento
# ──────────────────────────────────────────────────────────────────────────
class ClinicJobTask(Task):
    """
    Jobs idempotentes: uma falha não é reenfileirada. O log leva os
    argumentos para que o operador rode o comando de gestão equivalente.
    """

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        log.error(
            "task.failed",
            task=self.name,
            task_id=task_id,
            task_args=list(args or ()),
            task_kwargs=dict(kwargs or {}),
            error=str(exc),
            error_type=type(exc).__name__,
        )
        super().on_failure(exc, task_id, args, kwargs, einfo)


def reference_period(tz_name: str, now: datetime | None = None) -> tuple[int, int]:
    """(mês, ano) corrente no fuso da clínica."""
    local = (now or datetime.now(UTC)).astimezone(ZoneInfo(tz_name))
    return local.month, local.year


# ──────────────────────────────────────────────────────────────────────────
# Agenda: extensão das recorrências sem data final
# ──────────────────────────────────────────────────────────────────────────
@shared_task(base=ClinicJobTask, bind=True, acks_late=True, queue=QUEUE_SCHEDULING)
def extend_recurrences(self, today: str | None = None):
    """Gera mais agenda para as recorrências INDEFINITE perto do fim da janela."""
    args = ["--today", today] if today else []
    log.info("recurrences.extend.start", today=today)
    call_command("extend_recurrences", *args)
    log.info("recurrences.extend.ok")


# ──────────────────────────────────────────────────────────────────────────
# Faturamento: geração mensal por clínica
# ──────────────────────────────────────────────────────────────────────────
@shared_task(base=ClinicJobTask, bind=True, acks_late=True, queue=QUEUE_BILLING)
def generate_invoices_for_clinic(self, clinic_id: str, month: int, year: int):
    """Gera/regenera as faturas de UMA clínica no período (sem retentativa)."""
    log.info("invoices.generate.run", clinic_id=clinic_id, month=month, year=year)
    call_command("generate_invoices", "--clinic-id", clinic_id, "--month", str(month), "--year", str(year))
    log.info("invoices.generate.ok", clinic_id=clinic_id)


@shared_task(base=ClinicJobTask, bind=True, queue=QUEUE_BILLING)
def schedule_monthly_invoices(self, month: int | None = None, year: int | None = None):
    """
    [Orquestração] Enfileira a geração para cada clínica ativa. Sem período
    explícito, usa o mês corrente no fuso de cada clínica.
    """
    now = datetime.now(UTC)
    total = 0
    for clinic_id, tz_name in Clinic.objects.filter(is_active=True).values_list("id", "timezone"):
        local_month, local_year = reference_period(tz_name, now)
        generate_invoices_for_clinic.delay(str(clinic_id), month or local_month, year or local_year)
        total += 1
    log.info("invoices.generate.enqueued", total=total, month=month, year=year)
    return total

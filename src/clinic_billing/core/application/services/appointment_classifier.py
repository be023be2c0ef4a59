from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from clinic_billing.core.domain.entities.enums import BILLABLE_STATUSES, AppointmentType


@dataclass(slots=True)
class ClassifiedAppointments:
    regular: list[Any] = field(default_factory=list)
    extra: list[Any] = field(default_factory=list)
    group: list[Any] = field(default_factory=list)
    school_meeting: list[Any] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.regular) + len(self.extra) + len(self.group) + len(self.school_meeting)

    def all(self) -> list[Any]:
        return [*self.regular, *self.extra, *self.group, *self.school_meeting]


def filter_billable(appointments: Iterable[Any]) -> list[Any]:
    return [a for a in appointments if a.status in BILLABLE_STATUSES]


def classify_appointments(appointments: Iterable[Any]) -> ClassifiedAppointments:
    """
    Separa os agendamentos faturáveis em quatro grupos disjuntos.
    Ordem (primeira regra vence): grupo → reunião escolar → recorrente → extra.
    """
    result = ClassifiedAppointments()
    for apt in sorted(filter_billable(appointments), key=lambda a: a.scheduled_at):
        if apt.group_id:
            result.group.append(apt)
        elif apt.type == AppointmentType.REUNIAO.value:
            result.school_meeting.append(apt)
        elif apt.recurrence_id:
            result.regular.append(apt)
        else:
            result.extra.append(apt)
    return result

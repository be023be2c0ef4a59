from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from clinic_billing.core.domain.entities.appointment_entity import AppointmentEntity


class AppointmentRepository(ABC):
    @abstractmethod
    def find_by_id(self, appointment_id: UUID) -> AppointmentEntity | None:
        """Recupera um agendamento pelo ID."""
        ...

    @abstractmethod
    def list_for_billing(
        self,
        clinic_id: UUID,
        start: datetime,
        end: datetime,
        professional_id: UUID | None = None,
        patient_ids: Iterable[UUID] | None = None,
    ) -> list[AppointmentEntity]:
        """
        Agendamentos faturáveis em potencial no intervalo [start, end):
        tipos CONSULTA/REUNIAO com paciente definido, qualquer status.
        A filtragem por status faturável acontece no classificador.
        """
        ...

    @abstractmethod
    def list_by_recurrence(
        self,
        recurrence_id: UUID,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        statuses: Iterable[str] | None = None,
    ) -> list[AppointmentEntity]:
        """Agendamentos gerados por uma recorrência, opcionalmente filtrados."""
        ...

    @abstractmethod
    def list_by_ids(self, appointment_ids: Iterable[UUID]) -> list[AppointmentEntity]:
        ...

    @abstractmethod
    def existing_start_times(self, professional_id: UUID, start: datetime, end: datetime) -> set[datetime]:
        """Horários de início já ocupados pelo profissional (exceto cancelados)."""
        ...

    @abstractmethod
    def busy_intervals(self, professional_id: UUID, start: datetime, end: datetime) -> list[tuple[datetime, datetime]]:
        """Intervalos (início, fim) ocupados pelo profissional (exceto cancelados)."""
        ...

    @abstractmethod
    def bulk_create(self, appointments: list[AppointmentEntity]) -> list[AppointmentEntity]:
        ...

    @abstractmethod
    def save(self, appointment: AppointmentEntity) -> AppointmentEntity:
        """Cria ou atualiza um agendamento."""
        ...

    @abstractmethod
    def delete_many(self, appointment_ids: Iterable[UUID]) -> int:
        """Remove fisicamente agendamentos (apenas horários ainda não ocorridos)."""
        ...

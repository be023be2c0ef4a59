"""
Criação enxuta de registros para os testes de agenda e faturamento.
Todas as datas/horas são locais ao fuso da clínica (America/Sao_Paulo).
"""
from __future__ import annotations

from datetime import datetime, time, timedelta
from decimal import Decimal
from itertools import count
from zoneinfo import ZoneInfo

from django.contrib.auth import get_user_model

from plugins.django_interface.models import (
    Appointment,
    AppointmentRecurrence,
    Clinic,
    ClinicMember,
    Patient,
    ProfessionalProfile,
    SessionCredit,
)

TZ = ZoneInfo("America/Sao_Paulo")
_seq = count(1)


def local_dt(year: int, month: int, day: int, hour: int = 9, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=TZ)


def make_clinic(**kw) -> Clinic:
    n = next(_seq)
    data = {"name": f"Clínica {n}", "slug": f"clinica-{n}", "timezone": "America/Sao_Paulo"}
    data.update(kw)
    return Clinic.objects.create(**data)


def make_professional(clinic: Clinic, **kw) -> ProfessionalProfile:
    data = {"name": "Dra. Helena", "repasse_percentage": Decimal("50")}
    data.update(kw)
    return ProfessionalProfile.objects.create(clinic=clinic, **data)


def make_patient(clinic: Clinic, **kw) -> Patient:
    data = {"name": "Lucas", "mother_name": "Ana", "session_fee": Decimal("150.00")}
    data.update(kw)
    return Patient.objects.create(clinic=clinic, **data)


def make_recurrence(clinic: Clinic, professional: ProfessionalProfile, patient: Patient | None = None,
                    **kw) -> AppointmentRecurrence:
    data = {
        "recurrence_type": "WEEKLY",
        "recurrence_end_type": "INDEFINITE",
        "day_of_week": 1,
        "start_time": time(9, 0),
        "duration_minutes": 50,
        "start_date": local_dt(2024, 1, 1).date(),
    }
    data.update(kw)
    return AppointmentRecurrence.objects.create(
        clinic=clinic, professional_profile=professional, patient=patient, **data,
    )


def make_appointment(clinic: Clinic, professional: ProfessionalProfile, patient: Patient | None,
                     scheduled_at: datetime, minutes: int = 50, **kw) -> Appointment:
    return Appointment.objects.create(
        clinic=clinic,
        professional_profile=professional,
        patient=patient,
        scheduled_at=scheduled_at,
        end_at=scheduled_at + timedelta(minutes=minutes),
        **kw,
    )


def make_credit(appointment: Appointment, **kw) -> SessionCredit:
    data = {"reason": f"Desmarcou - {appointment.scheduled_at.astimezone(TZ):%d/%m/%Y}"}
    data.update(kw)
    return SessionCredit.objects.create(
        clinic_id=appointment.clinic_id,
        professional_profile_id=appointment.professional_profile_id,
        patient_id=appointment.patient_id,
        origin_appointment=appointment,
        **data,
    )


def make_member(clinic: Clinic, role: str = "ADMIN", professional: ProfessionalProfile | None = None,
                username: str | None = None):
    user = get_user_model().objects.create_user(username=username or f"user{next(_seq)}", password="senha123")
    member = ClinicMember.objects.create(user=user, clinic=clinic, role=role, professional_profile=professional)
    return user, member

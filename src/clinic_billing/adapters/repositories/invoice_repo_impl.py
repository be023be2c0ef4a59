from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from uuid import UUID

from django.db.models import Max

from clinic_billing.core.domain.entities.invoice_entity import InvoiceEntity, InvoiceItemEntity
from clinic_billing.core.domain.repositories.invoice_repository import InvoiceRepository
from plugins.django_interface.models import Invoice as InvoiceModel
from plugins.django_interface.models import InvoiceItem as InvoiceItemModel

# filtro da API → lookup do ORM
_FILTER_LOOKUPS = {
    "month": "reference_month",
    "year": "reference_year",
    "professional_id": "professional_profile_id",
    "patient_id": "patient_id",
    "status": "status",
    "statuses": "status__in",
}


class InvoiceRepoImpl(InvoiceRepository):
    """
    Faturas e itens no ORM do Django.

    Os itens guardam `position` para manter a ordem de inclusão.
    """

    # ────────────────────────── faturas ──────────────────────────
    def find_by_id(self, invoice_id: UUID) -> InvoiceEntity | None:
        model = InvoiceModel.objects.filter(id=invoice_id).first()
        return InvoiceEntity.from_model(model) if model else None

    def find_by_period(self, clinic_id: UUID, patient_id: UUID, month: int, year: int) -> InvoiceEntity | None:
        model = InvoiceModel.objects.filter(
            clinic_id=clinic_id, patient_id=patient_id, reference_month=month, reference_year=year,
        ).first()
        return InvoiceEntity.from_model(model) if model else None

    def filter(self, clinic_id: UUID, **filtros: Any) -> list[InvoiceEntity]:
        lookups = {
            _FILTER_LOOKUPS[key]: value
            for key, value in filtros.items()
            if key in _FILTER_LOOKUPS and value not in (None, "")
        }
        if "status__in" in lookups:
            lookups["status__in"] = list(lookups["status__in"])
        qs = InvoiceModel.objects.filter(clinic_id=clinic_id, **lookups)
        return [InvoiceEntity.from_model(m) for m in qs.order_by("-reference_year", "-reference_month", "created_at")]

    def save(self, invoice: InvoiceEntity) -> InvoiceEntity:
        data = invoice.to_dict(exclude=("id", "created_at", "updated_at"))
        model, _ = InvoiceModel.objects.update_or_create(id=invoice.id, defaults=data)
        return InvoiceEntity.from_model(model)

    def delete(self, invoice_id: UUID) -> None:
        InvoiceModel.objects.filter(id=invoice_id).delete()

    # ────────────────────────── itens ──────────────────────────
    def list_items(self, invoice_id: UUID) -> list[InvoiceItemEntity]:
        qs = InvoiceItemModel.objects.filter(invoice_id=invoice_id).order_by("position", "created_at")
        return [InvoiceItemEntity.from_model(m) for m in qs]

    def find_item(self, invoice_id: UUID, item_id: UUID) -> InvoiceItemEntity | None:
        model = InvoiceItemModel.objects.filter(invoice_id=invoice_id, id=item_id).first()
        return InvoiceItemEntity.from_model(model) if model else None

    def add_items(self, invoice_id: UUID, items: Iterable[InvoiceItemEntity]) -> list[InvoiceItemEntity]:
        last = InvoiceItemModel.objects.filter(invoice_id=invoice_id).aggregate(last=Max("position"))["last"]
        start = 0 if last is None else last + 1
        models = [
            InvoiceItemModel(
                id=item.id,
                invoice_id=invoice_id,
                appointment_id=item.appointment_id,
                type=item.type,
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total=item.total,
                position=start + offset,
            )
            for offset, item in enumerate(items)
        ]
        created = InvoiceItemModel.objects.bulk_create(models)
        return [InvoiceItemEntity.from_model(m) for m in created]

    def save_item(self, item: InvoiceItemEntity) -> InvoiceItemEntity:
        InvoiceItemModel.objects.filter(id=item.id).update(
            description=item.description,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total=item.total,
        )
        return item

    def delete_items(self, item_ids: Iterable[UUID]) -> int:
        deleted, _ = InvoiceItemModel.objects.filter(id__in=list(item_ids)).delete()
        return deleted

    def list_items_by_appointments(self, appointment_ids: Iterable[UUID]) -> list[InvoiceItemEntity]:
        qs = InvoiceItemModel.objects.filter(appointment_id__in=list(appointment_ids))
        return [InvoiceItemEntity.from_model(m) for m in qs]

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal

import structlog
from django.db import transaction
from pydantic import ValidationError

from clinic_billing.core.application.commands.invoice_commands import (
    AddInvoiceItemCommand,
    DeleteInvoiceCommand,
    DeleteInvoiceItemCommand,
    GenerateMonthlyInvoicesCommand,
    SendInvoiceCommand,
    UpdateInvoiceCommand,
    UpdateInvoiceItemCommand,
)
from clinic_billing.core.application.cqrs import CommandHandler
from clinic_billing.core.application.dtos.invoice_dto import (
    InvoiceDetailDTO,
    InvoiceGenerationResultDTO,
    InvoiceItemInputDTO,
    InvoicePeriodDTO,
)
from clinic_billing.core.application.services.credit_ledger import SessionCreditLedger
from clinic_billing.core.application.services.invoice_generation_service import (
    InvoiceGenerationService,
    InvoiceRecalculationService,
)
from clinic_billing.core.domain.entities.enums import InvoiceItemType, InvoiceStatus
from clinic_billing.core.domain.entities.invoice_entity import InvoiceEntity, InvoiceItemEntity
from clinic_billing.core.domain.events.events import InvoiceSentEvent
from clinic_billing.core.domain.events.exceptions import (
    BillingValidationError,
    InvoiceItemNotFoundError,
    InvoiceLockedError,
    InvoiceNotFoundError,
    InvoiceValidationError,
)
from clinic_billing.core.domain.repositories.invoice_repository import InvoiceRepository

logger = structlog.get_logger(__name__)

_PERIOD_MESSAGES = {
    "month": "Mês deve estar entre 1 e 12",
    "year": "Ano deve estar entre 2020 e 2100",
}

MANUAL_ITEM_TYPES = frozenset({
    InvoiceItemType.SESSAO_EXTRA.value,
    InvoiceItemType.REUNIAO_ESCOLA.value,
    InvoiceItemType.CREDITO.value,
})

EDITABLE_STATUSES = frozenset({
    InvoiceStatus.PENDENTE.value,
    InvoiceStatus.PAGO.value,
    InvoiceStatus.CANCELADO.value,
})


def _load_invoice(repo: InvoiceRepository, invoice_id: uuid.UUID, clinic_id: uuid.UUID) -> InvoiceEntity:
    invoice = repo.find_by_id(invoice_id)
    if invoice is None or invoice.clinic_id != clinic_id:
        raise InvoiceNotFoundError(invoice_id)
    return invoice


def _signed_amounts(item_type: str, quantity: int, unit_price: Decimal) -> tuple[int, Decimal]:
    """CREDITO guarda quantidade e total negativos."""
    quantity = abs(quantity)
    total = Decimal(unit_price) * quantity
    if item_type == InvoiceItemType.CREDITO.value:
        return -quantity, -total
    return quantity, total


class GenerateMonthlyInvoicesHandler(CommandHandler[GenerateMonthlyInvoicesCommand]):
    """
    Valida o período e delega a geração ao InvoiceGenerationService.
    Erros de validação saem antes de qualquer consulta.
    """
    def __init__(self, generation_service: InvoiceGenerationService):
        self.generation_service = generation_service

    def handle(self, cmd: GenerateMonthlyInvoicesCommand) -> InvoiceGenerationResultDTO:
        try:
            period = InvoicePeriodDTO(
                month=cmd.month, year=cmd.year, professional_profile_id=cmd.professional_profile_id,
            )
        except ValidationError as exc:
            field = exc.errors()[0]["loc"][0]
            raise InvoiceValidationError(_PERIOD_MESSAGES.get(field, "Período inválido")) from exc

        return self.generation_service.generate(
            cmd.clinic_id, period.month, period.year, period.professional_profile_id,
        )


class UpdateInvoiceHandler(CommandHandler[UpdateInvoiceCommand]):
    def __init__(self, invoice_repo: InvoiceRepository):
        self.invoice_repo = invoice_repo

    def handle(self, cmd: UpdateInvoiceCommand) -> InvoiceEntity:
        invoice = _load_invoice(self.invoice_repo, cmd.invoice_id, cmd.clinic_id)
        if cmd.status is not None:
            if cmd.status not in EDITABLE_STATUSES:
                raise BillingValidationError(f"Status inválido: {cmd.status}")
            invoice.status = cmd.status
            if cmd.status == InvoiceStatus.PAGO.value:
                invoice.paid_at = datetime.now(UTC)
            elif cmd.status == InvoiceStatus.PENDENTE.value:
                invoice.paid_at = None
        if cmd.notes is not None:
            invoice.notes = cmd.notes
        invoice = self.invoice_repo.save(invoice)
        logger.info("invoice.updated", invoice_id=str(invoice.id), status=invoice.status)
        return invoice


class DeleteInvoiceHandler(CommandHandler[DeleteInvoiceCommand]):
    """Exclui a fatura liberando antes todos os créditos que ela consumiu."""
    def __init__(self, invoice_repo: InvoiceRepository, ledger: SessionCreditLedger):
        self.invoice_repo = invoice_repo
        self.ledger = ledger

    @transaction.atomic
    def handle(self, cmd: DeleteInvoiceCommand) -> None:
        invoice = _load_invoice(self.invoice_repo, cmd.invoice_id, cmd.clinic_id)
        released = self.ledger.release_invoice_credits(invoice.id)
        self.invoice_repo.delete(invoice.id)
        logger.info("invoice.deleted", invoice_id=str(invoice.id), credits_released=len(released))


class SendInvoiceHandler(CommandHandler[SendInvoiceCommand]):
    def __init__(self, invoice_repo: InvoiceRepository):
        self.invoice_repo = invoice_repo

    def handle(self, cmd: SendInvoiceCommand) -> InvoiceSentEvent:
        invoice = _load_invoice(self.invoice_repo, cmd.invoice_id, cmd.clinic_id)
        if invoice.status in (InvoiceStatus.PAGO.value, InvoiceStatus.CANCELADO.value):
            raise InvoiceLockedError(f"Fatura com status {invoice.status} não pode ser enviada")
        if not invoice.message_body:
            raise BillingValidationError("Fatura sem mensagem para envio")
        invoice.status = InvoiceStatus.ENVIADO.value
        invoice.sent_at = datetime.now(UTC)
        invoice = self.invoice_repo.save(invoice)
        logger.info("invoice.sent", invoice_id=str(invoice.id))
        return InvoiceSentEvent(invoice_id=invoice.id, patient_id=invoice.patient_id, total_amount=invoice.total_amount)


class _InvoiceItemHandlerBase:
    def __init__(self, invoice_repo: InvoiceRepository, recalculator: InvoiceRecalculationService):
        self.invoice_repo = invoice_repo
        self.recalculator = recalculator

    def _editable_invoice(self, invoice_id: uuid.UUID, clinic_id: uuid.UUID) -> InvoiceEntity:
        invoice = _load_invoice(self.invoice_repo, invoice_id, clinic_id)
        if invoice.status == InvoiceStatus.PAGO.value:
            raise InvoiceLockedError("Fatura paga não pode ter itens alterados")
        return invoice

    def _load_item(self, invoice_id: uuid.UUID, item_id: uuid.UUID) -> InvoiceItemEntity:
        item = self.invoice_repo.find_item(invoice_id, item_id)
        if item is None:
            raise InvoiceItemNotFoundError(item_id)
        return item

    def _detail(self, invoice: InvoiceEntity) -> InvoiceDetailDTO:
        invoice, items = self.recalculator.recalculate(invoice)
        return InvoiceDetailDTO(invoice=invoice, items=items)


class AddInvoiceItemHandler(_InvoiceItemHandlerBase, CommandHandler[AddInvoiceItemCommand]):
    @transaction.atomic
    def handle(self, cmd: AddInvoiceItemCommand) -> InvoiceDetailDTO:
        if cmd.type not in MANUAL_ITEM_TYPES:
            raise BillingValidationError(f"Tipo de item inválido: {cmd.type}")
        try:
            data = InvoiceItemInputDTO(
                type=cmd.type, description=cmd.description, quantity=cmd.quantity, unit_price=cmd.unit_price,
            )
        except ValidationError as exc:
            raise BillingValidationError(str(exc.errors()[0]["msg"])) from exc

        invoice = self._editable_invoice(cmd.invoice_id, cmd.clinic_id)
        quantity, total = _signed_amounts(data.type, data.quantity, data.unit_price)
        self.invoice_repo.add_items(invoice.id, [InvoiceItemEntity(
            id=uuid.uuid4(),
            invoice_id=invoice.id,
            type=data.type,
            description=data.description,
            quantity=quantity,
            unit_price=data.unit_price,
            total=total,
        )])
        logger.info("invoice.item_added", invoice_id=str(invoice.id), type=data.type)
        return self._detail(invoice)


class UpdateInvoiceItemHandler(_InvoiceItemHandlerBase, CommandHandler[UpdateInvoiceItemCommand]):
    @transaction.atomic
    def handle(self, cmd: UpdateInvoiceItemCommand) -> InvoiceDetailDTO:
        invoice = self._editable_invoice(cmd.invoice_id, cmd.clinic_id)
        item = self._load_item(invoice.id, cmd.item_id)
        if cmd.description is not None:
            if not cmd.description.strip():
                raise BillingValidationError("Descrição é obrigatória")
            item.description = cmd.description
        if cmd.quantity is not None and cmd.quantity < 1:
            raise BillingValidationError("Quantidade deve ser pelo menos 1")
        if cmd.unit_price is not None and cmd.unit_price < 0:
            raise BillingValidationError("Valor unitário não pode ser negativo")

        quantity = cmd.quantity if cmd.quantity is not None else abs(item.quantity)
        item.unit_price = Decimal(cmd.unit_price) if cmd.unit_price is not None else item.unit_price
        item.quantity, item.total = _signed_amounts(item.type, quantity, item.unit_price)
        self.invoice_repo.save_item(item)
        logger.info("invoice.item_updated", invoice_id=str(invoice.id), item_id=str(item.id))
        return self._detail(invoice)


class DeleteInvoiceItemHandler(_InvoiceItemHandlerBase, CommandHandler[DeleteInvoiceItemCommand]):
    @transaction.atomic
    def handle(self, cmd: DeleteInvoiceItemCommand) -> InvoiceDetailDTO:
        invoice = self._editable_invoice(cmd.invoice_id, cmd.clinic_id)
        item = self._load_item(invoice.id, cmd.item_id)
        self.invoice_repo.delete_items([item.id])
        logger.info("invoice.item_deleted", invoice_id=str(invoice.id), item_id=str(item.id))
        return self._detail(invoice)

class BillingError(Exception):
    """Classe base para todas as exceções do domínio de faturamento."""
    pass


class BillingValidationError(BillingError):
    """Entrada inválida, rejeitada antes de qualquer processamento."""
    pass


class InvoiceValidationError(BillingValidationError):
    """
    Parâmetros de geração de fatura inválidos.
    Exemplos:
    - mês fora de 1..12 ou ano fora de 2020..2100.
    - usuário não-admin sem perfil profissional.
    """
    pass


class RecurrenceValidationError(BillingValidationError):
    """Regra de recorrência inconsistente (ocorrências, data final, exceções)."""
    pass


class InvalidStatusTransitionError(BillingValidationError):
    def __init__(self, current: str, target: str, allowed: list[str] | None = None):
        self.current = current
        self.target = target
        self.allowed = allowed or []
        super().__init__(f"Transição de {current} para {target} não é permitida")


class BillingConflictError(BillingError):
    """Regra de negócio impede a operação no estado atual."""
    pass


class CreditAlreadyConsumedError(BillingConflictError):
    """Tentativa de consumir um crédito já vinculado a uma fatura."""

    def __init__(self, credit_id, invoice_id):
        self.credit_id = credit_id
        self.invoice_id = invoice_id
        super().__init__(f"Crédito {credit_id} já foi consumido pela fatura {invoice_id}")


class CreditConsumedTransitionError(BillingConflictError):
    """
    A mudança de status apagaria um crédito já consumido por uma fatura.
    A fatura precisa ser excluída antes (o que libera seus créditos).
    """
    pass


class InvoiceLockedError(BillingConflictError):
    """Fatura paga não aceita mais alterações de itens."""
    pass


class NotFoundError(BillingError):
    entity = "Registro"

    def __init__(self, entity_id=None):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} não encontrado(a)")


class AppointmentNotFoundError(NotFoundError):
    entity = "Agendamento"


class RecurrenceNotFoundError(NotFoundError):
    entity = "Recorrência"


class InvoiceNotFoundError(NotFoundError):
    entity = "Fatura"


class InvoiceItemNotFoundError(NotFoundError):
    entity = "Item"


class ClinicNotFoundError(NotFoundError):
    entity = "Clínica"


class ProfessionalNotFoundError(NotFoundError):
    entity = "Profissional"

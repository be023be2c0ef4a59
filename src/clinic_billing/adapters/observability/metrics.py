from prometheus_client import Counter, Histogram

# Registradas no REGISTRY padrão, exportado pelo django_prometheus em /metrics/

BUS_DURATION = Histogram(
    "clinic_billing_bus_duration_seconds",
    "Duracao de comandos e queries despachados pelos buses",
    ["kind", "name"],
)

INVOICE_REGENERATION_COUNT = Counter(
    "invoice_regeneration_total",
    "Execucoes de geracao/regeneracao de faturas",
    ["success"],
)

INVOICE_REGENERATION_DURATION = Histogram(
    "invoice_regeneration_duration_seconds",
    "Duracao da regeneracao de faturas de um periodo",
)

INVOICES_PROCESSED = Counter(
    "invoices_processed_total",
    "Faturas processadas pela regeneracao",
    ["outcome"],  # generated | updated | skipped
)

SESSION_CREDIT_EVENTS = Counter(
    "session_credit_events_total",
    "Eventos do livro-razao de creditos de sessao",
    ["event"],
)

RECURRENCE_OCCURRENCES_CREATED = Counter(
    "recurrence_occurrences_created_total",
    "Agendamentos criados a partir de recorrencias",
)

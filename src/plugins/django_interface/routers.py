from rest_framework.routers import DefaultRouter

from .views.core_views import (
    InvoiceViewSet,
    RecurrenceViewSet,
    SessionCreditViewSet,
)

# lista de (rota, ViewSet)
RESOURCES = [
    ("invoices",        InvoiceViewSet),
    ("recurrences",     RecurrenceViewSet),
    ("session-credits", SessionCreditViewSet),
]

def build_router() -> DefaultRouter:
    router = DefaultRouter()
    for prefix, viewset in RESOURCES:
        router.register(prefix, viewset, basename=prefix.replace('-', '_'))
    return router

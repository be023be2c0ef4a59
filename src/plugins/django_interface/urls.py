from django.conf import settings
from django.urls import include, path
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework import permissions

from .routers import build_router
from .views.core_views import AppointmentStatusView, RepasseView
from .views.extra_views import HealthCheckView, MeView

swagger_permissions = [permissions.IsAdminUser] if not settings.DEBUG else [permissions.AllowAny]

schema_view = get_schema_view(
    openapi.Info(
        title="Clínica – Agenda e Faturamento",
        default_version="v1",
        description="Camada HTTP da arquitetura CQRS + Bus",
    ),
    public=settings.DEBUG,
    permission_classes=swagger_permissions,
)

router = build_router()

urlpatterns = [
    path("healthz/", HealthCheckView.as_view(), name="healthz"),
    path("me/", MeView.as_view(), name="me"),
    path("appointments/<uuid:appointment_id>/status/", AppointmentStatusView.as_view(), name="appointment-status"),
    path("repasse/", RepasseView.as_view(), name="repasse"),

    path("swagger/",     schema_view.with_ui("swagger", cache_timeout=0), name="swagger-ui"),
    path("swagger.json", schema_view.without_ui(cache_timeout=0),         name="swagger-json"),
    path("redoc/",       schema_view.with_ui("redoc",   cache_timeout=0), name="redoc-ui"),

    path("", include(router.urls)),
]

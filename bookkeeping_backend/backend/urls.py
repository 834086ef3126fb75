# backend/urls.py
"""
Project routes. Everything public lives under /api/:

- accounting/  chart of accounts, journal, statements, reports
- invoicing/   customers, suppliers, invoices, vouchers
- auth/jwt/    SimpleJWT token pair + refresh
- schema/, docs/  OpenAPI schema and Swagger UI

The admin mount point comes from ADMIN_PATH (defaults to admin/).
"""

from __future__ import annotations

from django.conf import settings
from django.contrib import admin
from django.db import DatabaseError, connection
from django.urls import include, path
from django.views.generic import RedirectView
from drf_spectacular.utils import extend_schema, inline_serializer
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework import serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

MODULES = {
    "accounting": "/api/accounting/",
    "invoicing": "/api/invoicing/",
}


@extend_schema(
    responses=inline_serializer(
        "ApiIndex",
        fields={
            "name": serializers.CharField(),
            "modules": serializers.DictField(child=serializers.CharField()),
            "docs": serializers.CharField(),
        },
    )
)
@api_view(["GET"])
@permission_classes([AllowAny])
def api_index(request):
    return Response(
        {
            "name": settings.SPECTACULAR_SETTINGS["TITLE"],
            "modules": MODULES,
            "docs": "/api/docs/",
        }
    )


@extend_schema(
    responses={
        200: inline_serializer("Health", fields={"status": serializers.CharField()}),
        503: inline_serializer(
            "HealthDegraded",
            fields={"status": serializers.CharField(), "error": serializers.CharField()},
        ),
    }
)
@api_view(["GET"])
@permission_classes([AllowAny])
def health(request):
    """Liveness plus a one-row database round trip."""
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except DatabaseError as exc:
        return Response({"status": "degraded", "error": str(exc)}, status=503)
    return Response({"status": "ok"})


admin_path = getattr(settings, "ADMIN_PATH", "admin/").rstrip("/") + "/"

api_patterns = [
    path("", api_index, name="api-index"),
    path("health/", health, name="health"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("auth/jwt/create/", TokenObtainPairView.as_view(), name="jwt-create"),
    path("auth/jwt/refresh/", TokenRefreshView.as_view(), name="jwt-refresh"),
    path("accounting/", include("accounting.api.urls")),
    path("invoicing/", include("invoicing.api.urls")),
]

urlpatterns = [
    path(admin_path, admin.site.urls),
    path("", RedirectView.as_view(url="/api/docs/", permanent=False)),
    path("api/", include(api_patterns)),
]

"""
Audit app URL configuration.

    GET  /api/audit/logs/        → AuditLogViewSet.list
    GET  /api/audit/logs/{id}/   → AuditLogViewSet.retrieve
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import AuditLogViewSet

router = DefaultRouter()
router.register(r"audit/logs", AuditLogViewSet, basename="audit-log")

urlpatterns = [
    path("", include(router.urls)),
]

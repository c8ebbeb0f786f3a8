"""
Core app URL configuration.

URL prefix (registered in ``backend/urls.py``)::

    path('api/core/', include('core.urls'))

Endpoint summary
----------------
GET  /api/core/metrics/                    — Dashboard counters (HQ staff).
GET  /api/core/constants/                  — Choice enumerations for frontend dropdowns.
GET  /api/core/notifications/              — Notifications for the authenticated user.
POST /api/core/notifications/{id}/read/    — Mark a single notification as read.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from . import views

app_name = "core"

router = DefaultRouter()
router.register(
    prefix=r"notifications",
    viewset=views.NotificationViewSet,
    basename="notification",
)

urlpatterns = [
    path(
        "metrics/",
        views.SystemMetricsView.as_view(),
        name="system-metrics",
    ),
    path(
        "constants/",
        views.SystemConstantsView.as_view(),
        name="system-constants",
    ),

    # ── Notifications (router-generated URLs) ────────────────────────
    path("", include(router.urls)),
]

"""
Reports app URL configuration.

Route Hierarchy
---------------
  POST /api/reports/submit/                  → public submission
  GET  /api/reports/track/{serial_number}/   → public status lookup

  GET  /api/reports/                         → triage queue
  GET  /api/reports/{id}/                    → detail
  POST /api/reports/{id}/validate/           → validated / rejected
  GET  /api/reports/{id}/scans/              → attachment scan results
  GET  /api/reports/{id}/audit-trail/        → audit trail, oldest first
"""

from rest_framework.routers import DefaultRouter

from .views import ReportViewSet

router = DefaultRouter()
router.register(
    prefix=r"reports",
    viewset=ReportViewSet,
    basename="report",
)

urlpatterns = router.urls

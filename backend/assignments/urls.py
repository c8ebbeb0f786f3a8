"""
Assignments app URL configuration.

  GET  /api/assignments/                             → list (scoped)
  POST /api/assignments/                             → assign a report
  GET  /api/assignments/{id}/                        → retrieve
  POST /api/assignments/{id}/respond/                → accepted / responded_to
  POST /api/assignments/{id}/submit-resolution/      → commander files resolution
  POST /api/assignments/{id}/resolve/                → HQ closes
  POST /api/assignments/{id}/return-for-revision/    → HQ sends back
  POST /api/assignments/{id}/resubmit/               → commander revises
"""

from rest_framework.routers import DefaultRouter

from .views import AssignmentViewSet

router = DefaultRouter()
router.register(
    prefix=r"assignments",
    viewset=AssignmentViewSet,
    basename="assignment",
)

urlpatterns = router.urls

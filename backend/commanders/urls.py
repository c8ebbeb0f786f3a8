"""
Commanders app URL configuration.

  GET  /api/commanders/                        → list
  POST /api/commanders/                        → register
  GET  /api/commanders/{id}/                   → retrieve
  POST /api/commanders/{id}/set-status/        → activate / suspend / deactivate
  POST /api/commanders/{id}/resend-setup-link/ → new password-setup email
  POST /api/commanders/password-setup/         → public: redeem setup token
"""

from rest_framework.routers import DefaultRouter

from .views import CommanderViewSet

router = DefaultRouter()
router.register(
    prefix=r"commanders",
    viewset=CommanderViewSet,
    basename="commander",
)

urlpatterns = router.urls

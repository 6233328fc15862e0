"""
URL mappings for the references app.
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from references import views


router = DefaultRouter()
router.register(
    "failure-modes", views.FailureModeViewSet, basename="failure-mode"
)

app_name = "references"

urlpatterns = [
    path("", include(router.urls)),
]

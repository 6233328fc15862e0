"""
URL mappings for the tickets app.
"""

from django.urls import path, include

from rest_framework.routers import DefaultRouter

from tickets import views

router = DefaultRouter()
router.register("tickets", views.TicketViewSet)

app_name = "tickets"

urlpatterns = [
    path("", include(router.urls)),
]

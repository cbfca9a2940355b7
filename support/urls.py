from django.urls import include, path
from rest_framework.routers import DefaultRouter

from support.api.views import SupportTicketViewSet

router = DefaultRouter()
router.register(r"support/tickets", SupportTicketViewSet, basename="support-ticket")

app_name = "support"

urlpatterns = [
    path("", include(router.urls)),
]

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from chat.api.views import OrderChatViewSet

router = DefaultRouter()
router.register(r"chat", OrderChatViewSet, basename="chat")

app_name = "chat"

urlpatterns = [
    path("", include(router.urls)),
]

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from notifications.api.views import NotificationQueueViewSet, NotificationViewSet, PresenceViewSet

router = DefaultRouter()
# Registered before the notification detail route so "queue" and "presence" are not read as ids
router.register(r"notifications/queue", NotificationQueueViewSet, basename="notification-queue")
router.register(r"notifications/presence", PresenceViewSet, basename="presence")
router.register(r"notifications", NotificationViewSet, basename="notification")

app_name = "notifications"

urlpatterns = [
    path("", include(router.urls)),
]

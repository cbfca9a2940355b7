from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.permissions import ActiveAccountRequired, AdminRequired
from infrastructure.container import container
from notifications.api.serializers import (
    GroupedNotificationSerializer,
    HeartbeatSerializer,
    MarkReadSerializer,
    NotificationSerializer,
)
from utils.exceptions import ForbiddenError, raise_for_result
from utils.pagination import parse_page_params
from utils.rbac import is_admin


def _parse_bool(value):
    if value is None:
        return None
    return str(value).lower() in ("1", "true", "yes")


class NotificationViewSet(viewsets.ViewSet):
    permission_classes = [ActiveAccountRequired]
    lookup_value_regex = "[0-9a-f-]+"

    def get_service(self):
        return container.notification_service()

    def list(self, request):
        page, size = parse_page_params(request.query_params)
        data = raise_for_result(
            self.get_service().list_notifications(
                request.user, _parse_bool(request.query_params.get("is_read")), page, size
            )
        )
        data["results"] = GroupedNotificationSerializer(data["results"], many=True).data
        return Response(data)

    def retrieve(self, request, pk=None):
        notification = raise_for_result(self.get_service().get_notification(request.user, pk))
        return Response(NotificationSerializer(notification).data)

    def partial_update(self, request, pk=None):
        serializer = MarkReadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        notification = raise_for_result(
            self.get_service().mark_read(request.user, pk, serializer.validated_data["read"])
        )
        return Response(NotificationSerializer(notification).data)

    @action(detail=False, methods=["get"])
    def unread(self, request):
        page, size = parse_page_params(request.query_params)
        data = raise_for_result(self.get_service().list_unread(request.user, page, size))
        data["results"] = NotificationSerializer(data["results"], many=True).data
        return Response(data)

    @action(detail=False, methods=["get"])
    def stats(self, request):
        return Response(raise_for_result(self.get_service().stats(request.user)))

    @action(detail=False, methods=["post"], url_path="mark-all-read")
    def mark_all_read(self, request):
        updated = raise_for_result(self.get_service().mark_all_read(request.user))
        return Response({"updated": updated})


class PresenceViewSet(viewsets.ViewSet):
    permission_classes = [ActiveAccountRequired]

    def get_service(self):
        return container.presence_service()

    @action(detail=False, methods=["post"])
    def heartbeat(self, request):
        serializer = HeartbeatSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        service = self.get_service()
        service.heartbeat(request.user.id, socket_id=serializer.validated_data.get("socket_id", ""))
        return Response({"is_online": service.is_online(request.user.id)})

    def retrieve(self, request, pk=None):
        if str(pk) != str(request.user.id) and not is_admin(request.user):
            raise ForbiddenError("You can only view your own presence")
        service = self.get_service()
        return Response(
            {
                "user_id": str(pk),
                "is_online": service.is_online(pk),
                "minutes_since_last_seen": service.minutes_since_last_seen(pk),
                "presence": service.get_presence(pk),
            }
        )

    @action(detail=False, methods=["get"], permission_classes=[AdminRequired])
    def stats(self, request):
        return Response(self.get_service().stats())


class NotificationQueueViewSet(viewsets.ViewSet):
    """Admin view of the delayed notification email jobs."""

    permission_classes = [AdminRequired]

    def list(self, request):
        return Response(container.notification_dispatcher().queue_stats())

    @action(detail=False, methods=["post"])
    def clear(self, request):
        return Response({"revoked": container.notification_dispatcher().clear_queue()})

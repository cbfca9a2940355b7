from rest_framework import serializers

from authentication.api.serializers import PublicUserSerializer
from notifications.models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    actor = PublicUserSerializer(read_only=True)

    class Meta:
        model = Notification
        fields = ("id", "title", "heading", "message", "read", "resource", "icon", "actor", "created_at", "updated_at")
        read_only_fields = fields


class GroupedNotificationSerializer(serializers.Serializer):
    notification = NotificationSerializer()
    count = serializers.IntegerField()


class MarkReadSerializer(serializers.Serializer):
    read = serializers.BooleanField(default=True)


class HeartbeatSerializer(serializers.Serializer):
    socket_id = serializers.CharField(required=False, allow_blank=True, max_length=255)

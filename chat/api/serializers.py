from rest_framework import serializers

from authentication.api.serializers import PublicUserSerializer
from chat.domain.models import ChatMessage


class ChatMessageSerializer(serializers.ModelSerializer):
    sender = PublicUserSerializer(read_only=True)

    class Meta:
        model = ChatMessage
        fields = ("id", "order", "sender", "sender_type", "message", "image_url", "is_read", "created_at")
        read_only_fields = fields


class SendMessageSerializer(serializers.Serializer):
    message = serializers.CharField(required=False, allow_blank=True, max_length=5000)
    image_url = serializers.URLField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs.get("message", "").strip() and not attrs.get("image_url"):
            raise serializers.ValidationError("A message needs text or an image.")
        return attrs

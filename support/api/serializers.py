from rest_framework import serializers

from authentication.api.serializers import PublicUserSerializer
from support.domain.models import SupportTicket


class SupportTicketSerializer(serializers.ModelSerializer):
    user = PublicUserSerializer(read_only=True)
    assigned_admin = PublicUserSerializer(read_only=True)
    resolved_by = PublicUserSerializer(read_only=True)

    class Meta:
        model = SupportTicket
        fields = (
            "id",
            "user",
            "name",
            "email",
            "phone",
            "subject",
            "message",
            "type",
            "state",
            "priority",
            "category",
            "assigned_admin",
            "responses",
            "last_response_at",
            "resolved_at",
            "resolved_by",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class CreateTicketSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    subject = serializers.CharField(max_length=200)
    message = serializers.CharField()
    type = serializers.ChoiceField(choices=SupportTicket.TYPE_CHOICES, required=False)
    category = serializers.ChoiceField(choices=SupportTicket.CATEGORY_CHOICES, required=False)
    priority = serializers.ChoiceField(choices=SupportTicket.PRIORITY_CHOICES, required=False)


class AssignTicketSerializer(serializers.Serializer):
    admin_id = serializers.UUIDField()


class TicketStatusSerializer(serializers.Serializer):
    state = serializers.ChoiceField(choices=SupportTicket.STATE_CHOICES)


class TicketPrioritySerializer(serializers.Serializer):
    priority = serializers.ChoiceField(choices=SupportTicket.PRIORITY_CHOICES)


class TicketResponseSerializer(serializers.Serializer):
    message = serializers.CharField(max_length=5000)

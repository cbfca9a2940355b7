from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers

from authentication.domain.models import CustomUser, UserSettings


class UserSettingsSerializer(serializers.ModelSerializer):
    agent_status = serializers.CharField(read_only=True)
    is_accepting_orders = serializers.BooleanField(read_only=True)

    class Meta:
        model = UserSettings
        fields = (
            "is_kyc_verified",
            "is_blocked",
            "is_deactivated",
            "agent_status",
            "is_accepting_orders",
            "last_login_at",
            "join_date",
        )
        read_only_fields = fields


class UserSerializer(serializers.ModelSerializer):
    settings = UserSettingsSerializer(read_only=True)

    class Meta:
        model = CustomUser
        fields = (
            "id",
            "email",
            "first_name",
            "last_name",
            "phone_number",
            "display_image",
            "location",
            "role",
            "is_email_verified",
            "date_joined",
            "settings",
        )
        read_only_fields = ("id", "email", "role", "is_email_verified", "date_joined", "settings")


class PublicUserSerializer(serializers.ModelSerializer):
    class Meta:
        model = CustomUser
        fields = ("id", "first_name", "last_name", "display_image", "role")
        read_only_fields = fields


class UserRegistrationSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, validators=[validate_password])
    first_name = serializers.CharField(max_length=50, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=50, required=False, allow_blank=True)
    phone_number = serializers.CharField(max_length=20, required=False, allow_blank=True)
    role = serializers.ChoiceField(choices=["customer", "agent", "vendor"], default="customer")


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class ProfileUpdateSerializer(serializers.Serializer):
    first_name = serializers.CharField(max_length=50, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=50, required=False, allow_blank=True)
    phone_number = serializers.CharField(max_length=20, required=False, allow_blank=True)
    display_image = serializers.URLField(required=False, allow_blank=True)
    location = serializers.JSONField(required=False, allow_null=True)


class NinSerializer(serializers.Serializer):
    nin = serializers.CharField(max_length=20)


class KycImagesSerializer(serializers.Serializer):
    images = serializers.ListField(child=serializers.URLField(), allow_empty=False)

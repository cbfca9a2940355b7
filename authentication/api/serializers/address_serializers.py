from rest_framework import serializers

from authentication.domain.models import UserAddress


class UserAddressSerializer(serializers.ModelSerializer):
    class Meta:
        model = UserAddress
        fields = (
            "id",
            "title",
            "type",
            "full_address",
            "address",
            "city",
            "state",
            "country",
            "postal_code",
            "latitude",
            "longitude",
            "additional_directions",
            "contact_phone",
            "contact_name",
            "is_default",
            "last_used_at",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("id", "last_used_at", "created_at", "updated_at")

from rest_framework import serializers

from authentication.api.serializers import PublicUserSerializer
from marketplace.agents.domain.models import AgentLocation


class AgentSerializer(PublicUserSerializer):
    status = serializers.SerializerMethodField()
    is_kyc_verified = serializers.SerializerMethodField()

    class Meta(PublicUserSerializer.Meta):
        fields = PublicUserSerializer.Meta.fields + ("status", "is_kyc_verified", "is_active")
        read_only_fields = fields

    def _settings(self, obj):
        return getattr(obj, "settings", None)

    def get_status(self, obj):
        user_settings = self._settings(obj)
        return user_settings.agent_status if user_settings else "offline"

    def get_is_kyc_verified(self, obj):
        user_settings = self._settings(obj)
        return bool(user_settings and user_settings.is_kyc_verified)


class AgentLocationSerializer(serializers.ModelSerializer):
    latitude = serializers.DecimalField(max_digits=10, decimal_places=7, min_value=-90, max_value=90)
    longitude = serializers.DecimalField(max_digits=10, decimal_places=7, min_value=-180, max_value=180)
    radius = serializers.FloatField(min_value=0.1, required=False)

    class Meta:
        model = AgentLocation
        fields = ("id", "latitude", "longitude", "radius", "is_active", "name", "address", "created_at", "updated_at")
        read_only_fields = ("id", "created_at", "updated_at")


class NearbyAgentSerializer(serializers.Serializer):
    agent = AgentSerializer()
    location = AgentLocationSerializer()
    distance_km = serializers.FloatField()
    search_radius_km = serializers.FloatField()


class AgentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=["available", "busy", "away", "offline"])


class NearbyQuerySerializer(serializers.Serializer):
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)

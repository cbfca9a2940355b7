from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.api.serializers import KycImagesSerializer, NinSerializer
from authentication.permissions import AgentRequired
from infrastructure.container import container
from utils.exceptions import raise_for_result


class KycViewSet(viewsets.ViewSet):
    """Agent identity verification."""

    permission_classes = [AgentRequired]

    @action(detail=False, methods=["post"])
    def nin(self, request):
        serializer = NinSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = raise_for_result(container.kyc_service().upload_nin(request.user, serializer.validated_data["nin"]))
        return Response(data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["post"])
    def images(self, request):
        serializer = KycImagesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = raise_for_result(
            container.kyc_service().upload_images(request.user, serializer.validated_data["images"])
        )
        return Response(data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path="status")
    def kyc_status(self, request):
        return Response(raise_for_result(container.kyc_service().get_status(request.user)))

    @action(detail=False, methods=["post"])
    def submit(self, request):
        data = raise_for_result(container.kyc_service().submit(request.user))
        return Response({"message": "KYC verification completed", **data}, status=status.HTTP_200_OK)

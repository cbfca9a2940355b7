from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.api.serializers import UserAddressSerializer
from authentication.permissions import ActiveAccountRequired
from infrastructure.container import container
from utils.exceptions import raise_for_result


class UserAddressViewSet(viewsets.ViewSet):
    permission_classes = [ActiveAccountRequired]

    def get_service(self):
        return container.address_service()

    def list(self, request):
        addresses = raise_for_result(
            self.get_service().list_addresses(request.user, request.query_params.get("type"))
        )
        return Response(UserAddressSerializer(addresses, many=True).data)

    def create(self, request):
        serializer = UserAddressSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        address = raise_for_result(self.get_service().create_address(request.user, serializer.validated_data))
        return Response(UserAddressSerializer(address).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        address = raise_for_result(self.get_service().get_address(request.user, pk))
        return Response(UserAddressSerializer(address).data)

    def partial_update(self, request, pk=None):
        serializer = UserAddressSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        address = raise_for_result(self.get_service().update_address(request.user, pk, serializer.validated_data))
        return Response(UserAddressSerializer(address).data)

    def destroy(self, request, pk=None):
        raise_for_result(self.get_service().delete_address(request.user, pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"], url_path="set-default")
    def set_default(self, request, pk=None):
        address = raise_for_result(self.get_service().set_default(request.user, pk))
        return Response(UserAddressSerializer(address).data)

    @action(detail=False, methods=["get"])
    def default(self, request):
        address = raise_for_result(self.get_service().get_default(request.user))
        return Response(UserAddressSerializer(address).data)

    @action(detail=True, methods=["post"], url_path="mark-used")
    def mark_used(self, request, pk=None):
        address = raise_for_result(self.get_service().mark_used(request.user, pk))
        return Response(UserAddressSerializer(address).data)

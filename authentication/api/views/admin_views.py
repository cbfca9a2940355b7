from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.api.serializers import BlockUserSerializer, UserSerializer
from authentication.permissions import AdminRequired
from infrastructure.container import container
from utils.exceptions import raise_for_result
from utils.pagination import parse_page_params


class AdminUserViewSet(viewsets.ViewSet):
    """Account moderation endpoints."""

    permission_classes = [AdminRequired]

    def get_service(self):
        return container.admin_service()

    def list(self, request):
        page, size = parse_page_params(request.query_params)
        data = raise_for_result(
            self.get_service().list_users(
                role=request.query_params.get("role"),
                q=request.query_params.get("q"),
                page=page,
                size=size,
            )
        )
        data["results"] = UserSerializer(data["results"], many=True).data
        return Response(data)

    @action(detail=True, methods=["post"])
    def block(self, request, pk=None):
        serializer = BlockUserSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = raise_for_result(
            self.get_service().set_blocked(request.user, pk, True, serializer.validated_data["reason"])
        )
        return Response({"message": "User blocked", "user": UserSerializer(user).data})

    @action(detail=True, methods=["post"])
    def unblock(self, request, pk=None):
        serializer = BlockUserSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = raise_for_result(
            self.get_service().set_blocked(request.user, pk, False, serializer.validated_data["reason"])
        )
        return Response({"message": "User unblocked", "user": UserSerializer(user).data})

    @action(detail=True, methods=["post"])
    def deactivate(self, request, pk=None):
        user = raise_for_result(self.get_service().set_deactivated(request.user, pk, True))
        return Response({"message": "User deactivated", "user": UserSerializer(user).data})

    @action(detail=True, methods=["post"])
    def reactivate(self, request, pk=None):
        user = raise_for_result(self.get_service().set_deactivated(request.user, pk, False))
        return Response({"message": "User reactivated", "user": UserSerializer(user).data})

    @action(detail=True, methods=["post"], url_path="approve-kyc")
    def approve_kyc(self, request, pk=None):
        agent = raise_for_result(container.auth_service().get_user(pk))
        data = raise_for_result(container.kyc_service().approve(agent))
        return Response({"message": "KYC approved", **data})

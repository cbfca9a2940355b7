from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from authentication.permissions import ActiveAccountRequired, AdminRequired
from infrastructure.container import container
from support.api.serializers import (
    AssignTicketSerializer,
    CreateTicketSerializer,
    SupportTicketSerializer,
    TicketPrioritySerializer,
    TicketResponseSerializer,
    TicketStatusSerializer,
)
from utils.exceptions import raise_for_result
from utils.pagination import parse_page_params

ADMIN_ACTIONS = ("list", "assign", "update_status", "update_priority", "stats")


class SupportTicketViewSet(viewsets.ViewSet):
    lookup_value_regex = "[0-9a-f-]+"

    def get_permissions(self):
        if self.action == "create":
            return [AllowAny()]
        if self.action in ADMIN_ACTIONS:
            return [AdminRequired()]
        return [ActiveAccountRequired()]

    def get_service(self):
        return container.support_service()

    def _page(self, request, data):
        data["results"] = SupportTicketSerializer(data["results"], many=True).data
        return Response(data)

    def create(self, request):
        serializer = CreateTicketSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ticket = raise_for_result(
            self.get_service().create_ticket(
                serializer.validated_data,
                user=request.user,
                user_agent=request.META.get("HTTP_USER_AGENT", ""),
                ip_address=request.META.get("REMOTE_ADDR"),
            )
        )
        return Response(SupportTicketSerializer(ticket).data, status=status.HTTP_201_CREATED)

    def list(self, request):
        page, size = parse_page_params(request.query_params)
        filters = {
            key: request.query_params.get(key)
            for key in ("state", "priority", "category", "type", "assigned_admin", "user", "search")
        }
        return self._page(request, raise_for_result(self.get_service().list_tickets(request.user, filters, page, size)))

    def retrieve(self, request, pk=None):
        ticket = raise_for_result(self.get_service().get_ticket(pk, request.user))
        return Response(SupportTicketSerializer(ticket).data)

    @action(detail=False, methods=["get"])
    def mine(self, request):
        page, size = parse_page_params(request.query_params)
        return self._page(request, raise_for_result(self.get_service().list_my_tickets(request.user, page, size)))

    @action(detail=True, methods=["post"])
    def assign(self, request, pk=None):
        serializer = AssignTicketSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ticket = raise_for_result(
            self.get_service().assign_ticket(pk, serializer.validated_data["admin_id"], request.user)
        )
        return Response(SupportTicketSerializer(ticket).data)

    @action(detail=True, methods=["patch"], url_path="status")
    def update_status(self, request, pk=None):
        serializer = TicketStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ticket = raise_for_result(
            self.get_service().update_status(pk, serializer.validated_data["state"], request.user)
        )
        return Response(SupportTicketSerializer(ticket).data)

    @action(detail=True, methods=["patch"], url_path="priority")
    def update_priority(self, request, pk=None):
        serializer = TicketPrioritySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ticket = raise_for_result(
            self.get_service().update_priority(pk, serializer.validated_data["priority"], request.user)
        )
        return Response(SupportTicketSerializer(ticket).data)

    @action(detail=True, methods=["post"])
    def responses(self, request, pk=None):
        serializer = TicketResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ticket = raise_for_result(
            self.get_service().add_response(pk, request.user, serializer.validated_data["message"])
        )
        return Response(SupportTicketSerializer(ticket).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"])
    def stats(self, request):
        return Response(raise_for_result(self.get_service().stats(request.user)))

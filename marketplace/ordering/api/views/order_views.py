from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.permissions import ActiveAccountRequired, AdminRequired, AgentRequired
from infrastructure.container import container
from marketplace.ordering.api.serializers import (
    AssignOrderSerializer,
    CompleteOrderSerializer,
    NotesSerializer,
    OrderPaymentSerializer,
    OrderSerializer,
    OrderStatusSerializer,
    OrderTrailSerializer,
    RejectOrderSerializer,
)
from utils.exceptions import raise_for_result
from utils.pagination import parse_page_params

AGENT_ACTIONS = ("assigned", "accept", "reject", "agent_status", "complete", "agent_notes")
ADMIN_ACTIONS = ("assign", "payment")


class OrderViewSet(viewsets.ViewSet):
    lookup_value_regex = "[0-9a-f-]+"

    def get_permissions(self):
        if self.action in AGENT_ACTIONS:
            return [AgentRequired()]
        if self.action in ADMIN_ACTIONS:
            return [AdminRequired()]
        return [ActiveAccountRequired()]

    def get_service(self):
        return container.order_service()

    def _filters(self, request):
        page, size = parse_page_params(request.query_params)
        return {
            "status": request.query_params.get("status"),
            "start_date": request.query_params.get("start_date"),
            "end_date": request.query_params.get("end_date"),
            "page": page,
            "size": size,
        }

    def _page(self, data):
        data["results"] = OrderSerializer(data["results"], many=True).data
        return Response(data)

    def _order(self, result):
        return Response(OrderSerializer(raise_for_result(result)).data)

    def list(self, request):
        return self._page(raise_for_result(self.get_service().list_customer_orders(request.user, **self._filters(request))))

    def retrieve(self, request, pk=None):
        return self._order(self.get_service().get_order(pk, request.user))

    @action(detail=True, methods=["get"])
    def trail(self, request, pk=None):
        entries = raise_for_result(self.get_service().get_trail(pk, request.user))
        return Response(OrderTrailSerializer(entries, many=True).data)

    @action(detail=True, methods=["patch"], url_path="status")
    def update_status(self, request, pk=None):
        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._order(
            self.get_service().update_status(
                pk,
                request.user,
                serializer.validated_data["status"],
                reason=serializer.validated_data.get("reason", ""),
                request=request,
            )
        )

    @action(detail=True, methods=["patch"], url_path="customer-notes")
    def customer_notes(self, request, pk=None):
        serializer = NotesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._order(
            self.get_service().add_customer_notes(pk, request.user, serializer.validated_data["notes"], request=request)
        )

    # ===== Agent =====

    @action(detail=False, methods=["get"])
    def assigned(self, request):
        return self._page(raise_for_result(self.get_service().list_agent_orders(request.user, **self._filters(request))))

    @action(detail=True, methods=["post"])
    def accept(self, request, pk=None):
        return self._order(
            self.get_service().assign_order_to_agent(pk, request.user, assigned_by=request.user, request=request)
        )

    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        serializer = RejectOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._order(
            self.get_service().reject_order(
                pk, request.user, serializer.validated_data.get("reason", ""), request=request
            )
        )

    @action(detail=True, methods=["patch"], url_path="agent-status")
    def agent_status(self, request, pk=None):
        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._order(
            self.get_service().agent_update_status(
                pk, request.user, serializer.validated_data["status"], request=request
            )
        )

    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):
        serializer = CompleteOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._order(
            self.get_service().complete_order(
                pk, request.user, serializer.validated_data.get("actual_prices", []), request=request
            )
        )

    @action(detail=True, methods=["patch"], url_path="agent-notes")
    def agent_notes(self, request, pk=None):
        serializer = NotesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._order(
            self.get_service().add_agent_notes(pk, request.user, serializer.validated_data["notes"], request=request)
        )

    # ===== Admin =====

    @action(detail=True, methods=["post"])
    def assign(self, request, pk=None):
        serializer = AssignOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        agent = raise_for_result(container.agent_service().get_agent(serializer.validated_data["agent_id"]))
        return self._order(
            self.get_service().assign_order_to_agent(pk, agent, assigned_by=request.user, request=request)
        )

    @action(detail=True, methods=["post"])
    def payment(self, request, pk=None):
        serializer = OrderPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._order(
            self.get_service().record_payment(
                pk,
                request.user,
                serializer.validated_data["payment_status"],
                serializer.validated_data.get("payment_id", ""),
                request=request,
            )
        )

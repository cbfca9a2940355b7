from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.permissions import ActiveAccountRequired, AgentRequired
from infrastructure.container import container
from marketplace.ordering.api.serializers import (
    ActualPriceSerializer,
    ListStatusSerializer,
    OrderSerializer,
    RecordPaymentSerializer,
    ShoppingListItemInputSerializer,
    ShoppingListItemSerializer,
    ShoppingListSerializer,
    ShoppingListWriteSerializer,
    SuggestedListWriteSerializer,
)
from utils.exceptions import raise_for_result
from utils.pagination import parse_page_params

AGENT_ACTIONS = ("accept", "prices", "assigned")


class ShoppingListViewSet(viewsets.ViewSet):
    lookup_value_regex = "[0-9a-f-]+"

    def get_permissions(self):
        if self.action in AGENT_ACTIONS:
            return [AgentRequired()]
        return [ActiveAccountRequired()]

    def get_service(self):
        return container.shopping_list_service()

    def _page(self, data):
        data["results"] = ShoppingListSerializer(data["results"], many=True).data
        return Response(data)

    def list(self, request):
        page, size = parse_page_params(request.query_params)
        data = raise_for_result(
            self.get_service().list_user_lists(request.user, request.query_params.get("status"), page, size)
        )
        return self._page(data)

    def create(self, request):
        serializer = ShoppingListWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        shopping_list = raise_for_result(self.get_service().create_list(request.user, serializer.validated_data))
        return Response(ShoppingListSerializer(shopping_list).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        shopping_list = raise_for_result(self.get_service().get_list(pk, request.user))
        return Response(ShoppingListSerializer(shopping_list).data)

    def partial_update(self, request, pk=None):
        serializer = ShoppingListWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        shopping_list = raise_for_result(self.get_service().update_list(pk, request.user, serializer.validated_data))
        return Response(ShoppingListSerializer(shopping_list).data)

    def destroy(self, request, pk=None):
        raise_for_result(self.get_service().delete_list(pk, request.user))
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ===== Items =====

    @action(detail=True, methods=["post"])
    def items(self, request, pk=None):
        serializer = ShoppingListItemInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        item = raise_for_result(self.get_service().add_item(pk, request.user, serializer.validated_data))
        return Response(ShoppingListItemSerializer(item).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["patch", "delete"], url_path=r"items/(?P<item_id>[0-9a-f-]+)")
    def item_detail(self, request, pk=None, item_id=None):
        if request.method == "DELETE":
            raise_for_result(self.get_service().remove_item(pk, item_id, request.user))
            return Response(status=status.HTTP_204_NO_CONTENT)

        serializer = ShoppingListItemInputSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        item = raise_for_result(self.get_service().update_item(pk, item_id, request.user, serializer.validated_data))
        return Response(ShoppingListItemSerializer(item).data)

    # ===== Workflow =====

    @action(detail=True, methods=["post"])
    def submit(self, request, pk=None):
        shopping_list = raise_for_result(self.get_service().submit_list(pk, request.user))
        return Response(ShoppingListSerializer(shopping_list).data)

    @action(detail=True, methods=["patch"], url_path="status")
    def update_status(self, request, pk=None):
        serializer = ListStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        shopping_list = raise_for_result(
            self.get_service().update_status(pk, request.user, serializer.validated_data["status"])
        )
        return Response(ShoppingListSerializer(shopping_list).data)

    @action(detail=True, methods=["post"])
    def accept(self, request, pk=None):
        shopping_list = raise_for_result(self.get_service().accept_list(pk, request.user))
        return Response(ShoppingListSerializer(shopping_list).data)

    @action(detail=True, methods=["post"])
    def prices(self, request, pk=None):
        serializer = ActualPriceSerializer(data=request.data.get("prices", []), many=True)
        serializer.is_valid(raise_exception=True)
        shopping_list = raise_for_result(
            self.get_service().update_actual_prices(pk, request.user, serializer.validated_data)
        )
        return Response(ShoppingListSerializer(shopping_list).data)

    @action(detail=True, methods=["post"])
    def payment(self, request, pk=None):
        serializer = RecordPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = raise_for_result(
            self.get_service().record_payment(
                pk,
                request.user,
                data["payment_id"],
                delivery_address=data.get("delivery_address"),
                customer_notes=data.get("customer_notes", ""),
                discount_code=data.get("discount_code") or None,
            )
        )
        return Response(
            {
                "shopping_list": ShoppingListSerializer(result["shopping_list"]).data,
                "order": OrderSerializer(result["order"]).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=["get"])
    def assigned(self, request):
        page, size = parse_page_params(request.query_params)
        data = raise_for_result(
            self.get_service().list_agent_lists(request.user, request.query_params.get("status"), page, size)
        )
        return self._page(data)

    # ===== Suggested lists =====

    @action(detail=False, methods=["get", "post"])
    def suggested(self, request):
        if request.method == "POST":
            serializer = SuggestedListWriteSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            shopping_list = raise_for_result(
                self.get_service().create_suggested(request.user, serializer.validated_data)
            )
            return Response(ShoppingListSerializer(shopping_list).data, status=status.HTTP_201_CREATED)

        page, size = parse_page_params(request.query_params)
        data = raise_for_result(
            self.get_service().list_suggested(request.query_params.get("category"), page, size)
        )
        return self._page(data)

    @action(detail=True, methods=["post"])
    def copy(self, request, pk=None):
        shopping_list = raise_for_result(self.get_service().copy_suggested(pk, request.user))
        return Response(ShoppingListSerializer(shopping_list).data, status=status.HTTP_201_CREATED)

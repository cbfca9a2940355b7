from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.permissions import ActiveAccountRequired, AgentRequired
from infrastructure.container import container
from marketplace.agents.api.serializers import (
    AgentLocationSerializer,
    AgentSerializer,
    AgentStatusSerializer,
    NearbyAgentSerializer,
    NearbyQuerySerializer,
)
from marketplace.ordering.api.serializers import OrderSerializer
from utils.exceptions import ForbiddenError, raise_for_result
from utils.pagination import parse_page_params
from utils.rbac import is_admin

AGENT_ACTIONS = ("my_status", "locations", "location_detail", "available_orders", "me")


class AgentViewSet(viewsets.ViewSet):
    lookup_value_regex = "[0-9a-f-]+"

    def get_permissions(self):
        if self.action in AGENT_ACTIONS:
            return [AgentRequired()]
        return [ActiveAccountRequired()]

    def get_service(self):
        return container.agent_service()

    def list(self, request):
        page, size = parse_page_params(request.query_params)
        is_active = request.query_params.get("is_active")
        data = raise_for_result(
            self.get_service().list_agents(
                q=request.query_params.get("q"),
                is_active=None if is_active is None else is_active.lower() in ("1", "true"),
                page=page,
                size=size,
            )
        )
        data["results"] = AgentSerializer(data["results"], many=True).data
        return Response(data)

    def retrieve(self, request, pk=None):
        agent = raise_for_result(self.get_service().get_agent(pk))
        return Response(AgentSerializer(agent).data)

    @action(detail=True, methods=["get"])
    def stats(self, request, pk=None):
        if str(pk) != str(request.user.id) and not is_admin(request.user):
            raise ForbiddenError("You can only view your own stats")
        agent = raise_for_result(self.get_service().get_agent(pk))
        return Response(raise_for_result(self.get_service().get_stats(agent)))

    @action(detail=False, methods=["get"])
    def nearby(self, request):
        query = NearbyQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        matches = raise_for_result(
            self.get_service().find_nearby_agents(query.validated_data["latitude"], query.validated_data["longitude"])
        )
        return Response(NearbyAgentSerializer(matches, many=True).data)

    @action(detail=False, methods=["get"], url_path=r"for-list/(?P<list_id>[0-9a-f-]+)")
    def for_list(self, request, list_id=None):
        shopping_list = raise_for_result(container.shopping_list_service().get_list(list_id, request.user))
        matches = raise_for_result(self.get_service().available_agents_for_list(shopping_list))
        return Response(NearbyAgentSerializer(matches, many=True).data)

    # ===== The calling agent =====

    @action(detail=False, methods=["get"])
    def me(self, request):
        return Response(
            {
                "agent": AgentSerializer(request.user).data,
                "stats": raise_for_result(self.get_service().get_stats(request.user)),
            }
        )

    @action(detail=False, methods=["get", "put"], url_path="status")
    def my_status(self, request):
        if request.method == "PUT":
            serializer = AgentStatusSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            return Response(
                raise_for_result(self.get_service().set_status(request.user, serializer.validated_data["status"]))
            )
        return Response(raise_for_result(self.get_service().get_status(request.user)))

    @action(detail=False, methods=["get", "post"])
    def locations(self, request):
        if request.method == "POST":
            serializer = AgentLocationSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            location = raise_for_result(self.get_service().create_location(request.user, serializer.validated_data))
            return Response(AgentLocationSerializer(location).data, status=status.HTTP_201_CREATED)
        locations = raise_for_result(self.get_service().list_locations(request.user))
        return Response(AgentLocationSerializer(locations, many=True).data)

    @action(detail=False, methods=["patch", "delete"], url_path=r"locations/(?P<location_id>[0-9a-f-]+)")
    def location_detail(self, request, location_id=None):
        if request.method == "DELETE":
            raise_for_result(self.get_service().delete_location(request.user, location_id))
            return Response(status=status.HTTP_204_NO_CONTENT)
        serializer = AgentLocationSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        location = raise_for_result(
            self.get_service().update_location(request.user, location_id, serializer.validated_data)
        )
        return Response(AgentLocationSerializer(location).data)

    @action(detail=False, methods=["get"], url_path="available-orders")
    def available_orders(self, request):
        page, size = parse_page_params(request.query_params)
        data = raise_for_result(self.get_service().available_orders(request.user, page, size))
        data["results"] = OrderSerializer(data["results"], many=True).data
        return Response(data)

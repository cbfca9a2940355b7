from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from authentication.permissions import ActiveAccountRequired, AdminRequired
from infrastructure.container import container
from marketplace.meals.api.serializers import MealListSerializer, MealSerializer, MealShoppingListSerializer
from marketplace.ordering.api.serializers import ShoppingListSerializer
from utils.exceptions import BadRequestError, raise_for_result
from utils.pagination import parse_page_params

READ_ACTIONS = ("list", "retrieve", "search", "categories", "popular", "ingredients", "shopping_items")
MEAL_PAGE_SIZE = 20


def _servings_param(query_params):
    raw = query_params.get("servings")
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except ValueError:
        raise BadRequestError("servings must be a whole number")


class MealViewSet(viewsets.ViewSet):
    """Browsing is public; turning a meal into a list needs an account; editing needs an admin."""

    lookup_value_regex = "[0-9a-f-]+"

    def get_permissions(self):
        if self.action in READ_ACTIONS:
            return [AllowAny()]
        if self.action == "create_shopping_list":
            return [ActiveAccountRequired()]
        return [AdminRequired()]

    def get_service(self):
        return container.meal_service()

    def list(self, request):
        page, size = parse_page_params(request.query_params, default_size=MEAL_PAGE_SIZE)
        popular = request.query_params.get("popular")
        tags = request.query_params.get("tags")
        data = raise_for_result(
            self.get_service().list_meals(
                category=request.query_params.get("category"),
                cuisine=request.query_params.get("cuisine"),
                difficulty=request.query_params.get("difficulty"),
                popular=None if popular is None else popular.lower() in ("1", "true"),
                tags=[tag.strip() for tag in tags.split(",") if tag.strip()] if tags else None,
                page=page,
                size=size,
            )
        )
        data["results"] = MealListSerializer(data["results"], many=True).data
        return Response(data)

    def retrieve(self, request, pk=None):
        meal = raise_for_result(self.get_service().get_meal(pk))
        return Response(MealSerializer(meal).data)

    def create(self, request):
        serializer = MealSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        meal = raise_for_result(self.get_service().create_meal(request.user, serializer.validated_data))
        return Response(MealSerializer(meal).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        serializer = MealSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        meal = raise_for_result(self.get_service().update_meal(request.user, pk, serializer.validated_data))
        return Response(MealSerializer(meal).data)

    def destroy(self, request, pk=None):
        raise_for_result(self.get_service().delete_meal(request.user, pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"])
    def search(self, request):
        page, size = parse_page_params(request.query_params, default_size=MEAL_PAGE_SIZE)
        data = raise_for_result(self.get_service().search_meals(request.query_params.get("q"), page=page, size=size))
        data["results"] = MealListSerializer(data["results"], many=True).data
        return Response(data)

    @action(detail=False, methods=["get"])
    def categories(self, request):
        return Response(raise_for_result(self.get_service().list_categories()))

    @action(detail=False, methods=["get"])
    def popular(self, request):
        meals = raise_for_result(self.get_service().popular_meals())
        return Response(MealListSerializer(meals, many=True).data)

    @action(detail=True, methods=["get"])
    def ingredients(self, request, pk=None):
        return Response(
            raise_for_result(self.get_service().scaled_ingredients(pk, _servings_param(request.query_params)))
        )

    @action(detail=True, methods=["get"], url_path="shopping-items")
    def shopping_items(self, request, pk=None):
        items = raise_for_result(
            self.get_service().shopping_items(
                pk,
                _servings_param(request.query_params),
                include_optional=request.query_params.get("include_optional", "true").lower() in ("1", "true"),
            )
        )
        return Response(
            [
                {
                    **item,
                    "estimated_price": None if item["estimated_price"] is None else str(item["estimated_price"]),
                    "user_provided_price": (
                        None if item["user_provided_price"] is None else str(item["user_provided_price"])
                    ),
                }
                for item in items
            ]
        )

    @action(detail=True, methods=["post"], url_path="shopping-list")
    def create_shopping_list(self, request, pk=None):
        serializer = MealShoppingListSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        shopping_list = raise_for_result(
            self.get_service().create_shopping_list(
                pk,
                request.user,
                servings=data.get("servings"),
                name=data.get("name") or None,
                market_id=data.get("market_id"),
                include_optional=data.get("include_optional", True),
            )
        )
        return Response(ShoppingListSerializer(shopping_list).data, status=status.HTTP_201_CREATED)

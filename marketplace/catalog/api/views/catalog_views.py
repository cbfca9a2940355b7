from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from authentication.permissions import ActiveAccountRequired
from infrastructure.container import container
from marketplace.catalog.api.serializers import CategorySerializer, MarketSerializer, ProductSerializer
from utils.exceptions import BadRequestError, raise_for_result
from utils.pagination import parse_page_params

READ_ACTIONS = ("list", "retrieve", "products", "rating")


class CatalogViewSet(viewsets.ViewSet):
    """Public reads, authenticated writes. Ownership and roles are checked by CatalogService."""

    lookup_value_regex = "[0-9a-f-]+"

    def get_permissions(self):
        if self.action in READ_ACTIONS:
            return [AllowAny()]
        return [ActiveAccountRequired()]

    def get_service(self):
        return container.catalog_service()

    def _validated(self, serializer_class, request, partial=False):
        serializer = serializer_class(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data


class CategoryViewSet(CatalogViewSet):
    def list(self, request):
        categories = raise_for_result(self.get_service().list_categories(request.query_params.get("q")))
        return Response(CategorySerializer(categories, many=True).data)

    def retrieve(self, request, pk=None):
        category = raise_for_result(self.get_service().get_category(pk))
        return Response(CategorySerializer(category).data)

    def create(self, request):
        data = self._validated(CategorySerializer, request)
        category = raise_for_result(self.get_service().create_category(request.user, data))
        return Response(CategorySerializer(category).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        data = self._validated(CategorySerializer, request, partial=True)
        category = raise_for_result(self.get_service().update_category(request.user, pk, data))
        return Response(CategorySerializer(category).data)

    def destroy(self, request, pk=None):
        raise_for_result(self.get_service().delete_category(request.user, pk))
        return Response(status=status.HTTP_204_NO_CONTENT)


class MarketViewSet(CatalogViewSet):
    def list(self, request):
        page, size = parse_page_params(request.query_params)
        data = raise_for_result(
            self.get_service().list_markets(
                q=request.query_params.get("q"),
                market_type=request.query_params.get("market_type"),
                category_id=request.query_params.get("category"),
                page=page,
                size=size,
            )
        )
        data["results"] = MarketSerializer(data["results"], many=True).data
        return Response(data)

    def retrieve(self, request, pk=None):
        market = raise_for_result(self.get_service().get_market(pk))
        return Response(MarketSerializer(market).data)

    def create(self, request):
        data = self._validated(MarketSerializer, request)
        market = raise_for_result(self.get_service().create_market(request.user, data))
        return Response(MarketSerializer(market).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        data = self._validated(MarketSerializer, request, partial=True)
        market = raise_for_result(self.get_service().update_market(request.user, pk, data))
        return Response(MarketSerializer(market).data)

    def destroy(self, request, pk=None):
        raise_for_result(self.get_service().delete_market(request.user, pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["get"])
    def products(self, request, pk=None):
        raise_for_result(self.get_service().get_market(pk))
        page, size = parse_page_params(request.query_params)
        data = raise_for_result(
            self.get_service().list_products(market_id=pk, q=request.query_params.get("q"), page=page, size=size)
        )
        data["results"] = ProductSerializer(data["results"], many=True).data
        return Response(data)

    @action(detail=True, methods=["get"])
    def rating(self, request, pk=None):
        return Response(raise_for_result(container.review_service().average_rating(market_id=pk)))


class ProductViewSet(CatalogViewSet):
    def list(self, request):
        page, size = parse_page_params(request.query_params)
        data = raise_for_result(
            self.get_service().list_products(
                market_id=request.query_params.get("market"),
                q=request.query_params.get("q"),
                available_only=request.query_params.get("available") in ("1", "true"),
                page=page,
                size=size,
            )
        )
        data["results"] = ProductSerializer(data["results"], many=True).data
        return Response(data)

    def retrieve(self, request, pk=None):
        product = raise_for_result(self.get_service().get_product(pk))
        return Response(ProductSerializer(product).data)

    def create(self, request):
        data = self._validated(ProductSerializer, request)
        market_id = data.pop("market_id", None)
        if market_id is None:
            raise BadRequestError("market_id is required")
        product = raise_for_result(self.get_service().create_product(request.user, market_id, data))
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        data = self._validated(ProductSerializer, request, partial=True)
        data.pop("market_id", None)
        product = raise_for_result(self.get_service().update_product(request.user, pk, data))
        return Response(ProductSerializer(product).data)

    def destroy(self, request, pk=None):
        raise_for_result(self.get_service().delete_product(request.user, pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["get"])
    def rating(self, request, pk=None):
        return Response(raise_for_result(container.review_service().average_rating(product_id=pk)))

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from authentication.permissions import ActiveAccountRequired
from infrastructure.container import container
from marketplace.catalog.api.serializers import ReviewSerializer, ReviewUpdateSerializer
from utils.exceptions import raise_for_result
from utils.pagination import parse_page_params


class ReviewViewSet(viewsets.ViewSet):
    lookup_value_regex = "[0-9a-f-]+"

    def get_permissions(self):
        if self.action in ("list", "retrieve"):
            return [AllowAny()]
        return [ActiveAccountRequired()]

    def get_service(self):
        return container.review_service()

    def list(self, request):
        page, size = parse_page_params(request.query_params)
        data = raise_for_result(
            self.get_service().list_reviews(
                market_id=request.query_params.get("market"),
                product_id=request.query_params.get("product"),
                page=page,
                size=size,
            )
        )
        data["results"] = ReviewSerializer(data["results"], many=True).data
        return Response(data)

    def retrieve(self, request, pk=None):
        review = raise_for_result(self.get_service().get_review(pk))
        return Response(ReviewSerializer(review).data)

    def create(self, request):
        serializer = ReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        review = raise_for_result(
            self.get_service().create_review(
                request.user,
                rating=data["rating"],
                comment=data.get("comment", ""),
                images=data.get("images"),
                market_id=data.get("market_id"),
                product_id=data.get("product_id"),
            )
        )
        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        serializer = ReviewUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = raise_for_result(self.get_service().update_review(request.user, pk, serializer.validated_data))
        return Response(ReviewSerializer(review).data)

    def destroy(self, request, pk=None):
        raise_for_result(self.get_service().delete_review(request.user, pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"])
    def mine(self, request):
        page, size = parse_page_params(request.query_params)
        data = raise_for_result(self.get_service().list_user_reviews(request.user, page, size))
        data["results"] = ReviewSerializer(data["results"], many=True).data
        return Response(data)

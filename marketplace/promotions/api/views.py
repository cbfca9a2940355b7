from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.permissions import ActiveAccountRequired, AdminRequired
from infrastructure.container import container
from marketplace.promotions.api.serializers import (
    CampaignStatusSerializer,
    DiscountCampaignSerializer,
    DiscountCodeSerializer,
    DiscountOfferSerializer,
    DiscountPreviewSerializer,
    DiscountUsageSerializer,
    quote_data,
)
from utils.exceptions import raise_for_result
from utils.pagination import parse_page_params


class DiscountCampaignViewSet(viewsets.ViewSet):
    """Campaign management for admins."""

    permission_classes = [AdminRequired]
    lookup_value_regex = "[0-9a-f-]+"

    def get_service(self):
        return container.discount_service()

    def list(self, request):
        page, size = parse_page_params(request.query_params)
        data = raise_for_result(
            self.get_service().list_campaigns(
                request.user,
                status=request.query_params.get("status"),
                q=request.query_params.get("q"),
                page=page,
                size=size,
            )
        )
        data["results"] = DiscountCampaignSerializer(data["results"], many=True).data
        return Response(data)

    def retrieve(self, request, pk=None):
        campaign = raise_for_result(self.get_service().get_campaign(pk))
        return Response(DiscountCampaignSerializer(campaign).data)

    def create(self, request):
        serializer = DiscountCampaignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        campaign = raise_for_result(self.get_service().create_campaign(request.user, serializer.validated_data))
        return Response(DiscountCampaignSerializer(campaign).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        serializer = DiscountCampaignSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        campaign = raise_for_result(self.get_service().update_campaign(request.user, pk, serializer.validated_data))
        return Response(DiscountCampaignSerializer(campaign).data)

    def destroy(self, request, pk=None):
        result = raise_for_result(self.get_service().delete_campaign(request.user, pk))
        if result["deleted"]:
            return Response(status=status.HTTP_204_NO_CONTENT)
        # Redeemed campaigns are cancelled rather than deleted
        return Response(DiscountCampaignSerializer(result["campaign"]).data)

    @action(detail=True, methods=["patch"], url_path="status")
    def set_status(self, request, pk=None):
        serializer = CampaignStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        campaign = raise_for_result(
            self.get_service().set_status(request.user, pk, serializer.validated_data["status"])
        )
        return Response(DiscountCampaignSerializer(campaign).data)

    @action(detail=True, methods=["get"])
    def statistics(self, request, pk=None):
        return Response(raise_for_result(self.get_service().get_statistics(request.user, pk)))


class DiscountViewSet(viewsets.ViewSet):
    """Customer side of promotions: check a code, browse offers, preview totals."""

    permission_classes = [ActiveAccountRequired]

    def get_service(self):
        return container.discount_service()

    @action(detail=False, methods=["post"], url_path="validate-code")
    def validate_code(self, request):
        serializer = DiscountCodeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        quote = raise_for_result(
            self.get_service().validate_code(data["code"], request.user, data["shopping_list_id"])
        )
        return Response(quote_data(quote))

    @action(detail=False, methods=["get"])
    def available(self, request):
        offers = raise_for_result(
            self.get_service().available_discounts(request.user, request.query_params.get("shopping_list"))
        )
        return Response(
            [
                {
                    **DiscountOfferSerializer(offer["campaign"]).data,
                    "discount_amount": None if offer["discount_amount"] is None else str(offer["discount_amount"]),
                }
                for offer in offers
            ]
        )

    @action(detail=False, methods=["post"])
    def preview(self, request):
        serializer = DiscountPreviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        quote = raise_for_result(
            self.get_service().preview(request.user, data["shopping_list_id"], code=data.get("code") or None)
        )
        return Response(quote_data(quote))

    @action(detail=False, methods=["get"])
    def history(self, request):
        page, size = parse_page_params(request.query_params)
        data = raise_for_result(self.get_service().usage_history(request.user, page=page, size=size))
        data["results"] = DiscountUsageSerializer(data["results"], many=True).data
        return Response(data)

"""
CatalogService - categories, markets and products.

Reads are public. Writes are limited to admins, plus the owner of a market
for that market and its products.
"""

from typing import Dict, Optional

from django.db import transaction
from django.db.models import Q

from marketplace.catalog.domain.models import Category, Market, Product
from marketplace.infra.observability.tracing import add_span_attributes, tracer
from utils.pagination import paginate
from utils.rbac import is_admin
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

MARKET_FIELDS = (
    "name",
    "address",
    "location",
    "phone_number",
    "market_type",
    "description",
    "images",
    "operating_hours",
    "is_pinned",
    "is_active",
)
PRODUCT_FIELDS = (
    "name",
    "description",
    "price",
    "discount_price",
    "images",
    "barcode",
    "sku",
    "stock_quantity",
    "attributes",
    "is_available",
    "is_pinned",
)
CATEGORY_FIELDS = ("name", "description", "images", "icon", "is_pinned")


class CatalogService(BaseService):
    # ===== Categories =====

    def list_categories(self, q: Optional[str] = None):
        queryset = Category.objects.all()
        if q:
            queryset = queryset.filter(name__icontains=q)
        return service_ok(list(queryset))

    def get_category(self, category_id) -> ServiceResult[Category]:
        category = Category.objects.filter(pk=category_id).first()
        if category is None:
            return service_err(ErrorCodes.CATEGORY_NOT_FOUND, "Category not found")
        return service_ok(category)

    def create_category(self, user, data: Dict) -> ServiceResult[Category]:
        if not is_admin(user):
            return service_err(ErrorCodes.PERMISSION_DENIED, "Only admins can manage categories")
        if Category.objects.filter(name__iexact=data.get("name", "")).exists():
            return service_err(ErrorCodes.CONFLICT, "A category with this name already exists")
        category = Category.objects.create(**{k: v for k, v in data.items() if k in CATEGORY_FIELDS})
        return service_ok(category)

    def update_category(self, user, category_id, data: Dict) -> ServiceResult[Category]:
        if not is_admin(user):
            return service_err(ErrorCodes.PERMISSION_DENIED, "Only admins can manage categories")
        result = self.get_category(category_id)
        if not result.ok:
            return result
        category = result.value
        for key in CATEGORY_FIELDS:
            if key in data:
                setattr(category, key, data[key])
        category.save()
        return service_ok(category)

    def delete_category(self, user, category_id) -> ServiceResult[None]:
        if not is_admin(user):
            return service_err(ErrorCodes.PERMISSION_DENIED, "Only admins can manage categories")
        result = self.get_category(category_id)
        if not result.ok:
            return result
        result.value.delete()
        return service_ok(None)

    # ===== Markets =====

    @BaseService.log_performance
    def list_markets(
        self,
        q: Optional[str] = None,
        market_type: Optional[str] = None,
        category_id: Optional[str] = None,
        page: int = 1,
        size: int = 10,
    ) -> ServiceResult[Dict]:
        with tracer.start_as_current_span("catalog_list_markets") as span:
            add_span_attributes(span, q=q, market_type=market_type, category__id=category_id, page=page)
            queryset = Market.objects.filter(is_active=True).prefetch_related("categories")
            if q:
                queryset = queryset.filter(
                    Q(name__icontains=q) | Q(address__icontains=q) | Q(description__icontains=q)
                )
            if market_type:
                queryset = queryset.filter(market_type=market_type)
            if category_id:
                queryset = queryset.filter(categories__id=category_id)
            queryset = queryset.distinct().order_by("-is_pinned", "name")
            data = paginate(queryset, page, size)
            span.set_attribute("results.count", data["count"])
            return service_ok(data)

    def get_market(self, market_id) -> ServiceResult[Market]:
        market = Market.objects.filter(pk=market_id).prefetch_related("categories").first()
        if market is None:
            return service_err(ErrorCodes.MARKET_NOT_FOUND, "Market not found")
        return service_ok(market)

    def _can_manage_market(self, user, market: Market) -> bool:
        return is_admin(user) or (market.owner_id is not None and market.owner_id == user.id)

    @transaction.atomic
    def create_market(self, user, data: Dict) -> ServiceResult[Market]:
        if not (is_admin(user) or user.is_agent):
            return service_err(ErrorCodes.PERMISSION_DENIED, "Only admins and vendors can create markets")
        fields = {k: v for k, v in data.items() if k in MARKET_FIELDS}
        market = Market.objects.create(owner=user, **fields)
        if data.get("category_ids"):
            market.categories.set(Category.objects.filter(pk__in=data["category_ids"]))
        self.logger.info(f"Market {market.id} created by {user.id}")
        return service_ok(market)

    @transaction.atomic
    def update_market(self, user, market_id, data: Dict) -> ServiceResult[Market]:
        result = self.get_market(market_id)
        if not result.ok:
            return result
        market = result.value
        if not self._can_manage_market(user, market):
            return service_err(ErrorCodes.PERMISSION_DENIED, "You cannot modify this market")
        for key in MARKET_FIELDS:
            if key in data:
                setattr(market, key, data[key])
        market.save()
        if "category_ids" in data:
            market.categories.set(Category.objects.filter(pk__in=data["category_ids"] or []))
        return service_ok(market)

    def delete_market(self, user, market_id) -> ServiceResult[None]:
        result = self.get_market(market_id)
        if not result.ok:
            return result
        if not self._can_manage_market(user, result.value):
            return service_err(ErrorCodes.PERMISSION_DENIED, "You cannot delete this market")
        result.value.delete()
        return service_ok(None)

    # ===== Products =====

    @BaseService.log_performance
    def list_products(
        self,
        market_id: Optional[str] = None,
        q: Optional[str] = None,
        available_only: bool = False,
        page: int = 1,
        size: int = 10,
    ) -> ServiceResult[Dict]:
        with tracer.start_as_current_span("catalog_list_products") as span:
            add_span_attributes(span, market__id=market_id, q=q, available_only=available_only, page=page)
            queryset = Product.objects.select_related("market")
            if market_id:
                queryset = queryset.filter(market_id=market_id)
            if q:
                queryset = queryset.filter(Q(name__icontains=q) | Q(description__icontains=q))
            if available_only:
                queryset = queryset.filter(is_available=True)
            data = paginate(queryset.order_by("-is_pinned", "name"), page, size)
            span.set_attribute("results.count", data["count"])
            return service_ok(data)

    def get_product(self, product_id) -> ServiceResult[Product]:
        product = Product.objects.select_related("market").filter(pk=product_id).first()
        if product is None:
            return service_err(ErrorCodes.PRODUCT_NOT_FOUND, "Product not found")
        return service_ok(product)

    def create_product(self, user, market_id, data: Dict) -> ServiceResult[Product]:
        market_result = self.get_market(market_id)
        if not market_result.ok:
            return market_result
        if not self._can_manage_market(user, market_result.value):
            return service_err(ErrorCodes.PERMISSION_DENIED, "You cannot add products to this market")
        product = Product.objects.create(
            market=market_result.value, **{k: v for k, v in data.items() if k in PRODUCT_FIELDS}
        )
        return service_ok(product)

    def update_product(self, user, product_id, data: Dict) -> ServiceResult[Product]:
        result = self.get_product(product_id)
        if not result.ok:
            return result
        product = result.value
        if not self._can_manage_market(user, product.market):
            return service_err(ErrorCodes.PERMISSION_DENIED, "You cannot modify this product")
        for key in PRODUCT_FIELDS:
            if key in data:
                setattr(product, key, data[key])
        product.save()
        return service_ok(product)

    def delete_product(self, user, product_id) -> ServiceResult[None]:
        result = self.get_product(product_id)
        if not result.ok:
            return result
        if not self._can_manage_market(user, result.value.market):
            return service_err(ErrorCodes.PERMISSION_DENIED, "You cannot delete this product")
        result.value.delete()
        return service_ok(None)

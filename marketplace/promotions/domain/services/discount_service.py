"""
DiscountService - promotional campaigns and their redemption.

Admins manage campaigns. Customers check a code against one of their
shopping lists before paying; the discount is redeemed when the payment
turns the list into an order, inside the same transaction.

Amount rules:
    percentage     value% of the subtotal (at most 40%), capped by maximum_discount_amount
    fixed_amount   value, never more than the subtotal
    free_shipping  the delivery fee
    buy_x_get_y    for every buy + get units of an item, get units are free

Every discount except free delivery is capped at 40% of the subtotal.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Avg, Count, F, Q, Sum
from django.utils import timezone

from marketplace.infra.observability.metrics import discount_redemptions_total, discount_rejections_total
from marketplace.ordering.domain import workflow
from marketplace.ordering.domain.models import Order, ShoppingList
from marketplace.promotions.domain.models import DiscountCampaign, DiscountUsage
from utils.pagination import paginate
from utils.rbac import is_admin
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

MAX_DISCOUNT_RATE = Decimal("0.40")
ZERO = Decimal("0.00")

CAMPAIGN_FIELDS = (
    "name",
    "description",
    "code",
    "discount_type",
    "target_type",
    "value",
    "minimum_order_amount",
    "maximum_discount_amount",
    "usage_limit",
    "usage_limit_per_user",
    "start_date",
    "end_date",
    "status",
    "is_automatic_apply",
    "priority",
    "conditions",
    "buy_x_get_y_config",
    "target_market_ids",
    "target_product_ids",
    "target_category_ids",
    "target_user_ids",
)
ID_LIST_FIELDS = ("target_market_ids", "target_product_ids", "target_category_ids", "target_user_ids")
CAMPAIGN_STATUSES = [choice for choice, _ in DiscountCampaign.STATUS_CHOICES]


def _to_decimal(value) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def _positive_int(value) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return 0
    return number if number > 0 else 0


def _id_set(values) -> set:
    return {str(value) for value in (values or [])}


def _item_price(item) -> Decimal:
    price = item.actual_price if item.actual_price is not None else item.estimated_price
    return _to_decimal(price) or Decimal("0")


class DiscountService(BaseService):
    # ===== Campaign management =====

    @staticmethod
    def _denied(user) -> Optional[ServiceResult]:
        if not is_admin(user):
            return service_err(ErrorCodes.PERMISSION_DENIED, "Only admins can manage discount campaigns")
        return None

    def _validate(self, data: Dict, campaign: Optional[DiscountCampaign] = None) -> Optional[ServiceResult]:
        merged = {field: getattr(campaign, field) for field in CAMPAIGN_FIELDS} if campaign else {}
        merged.update(data)

        value = _to_decimal(merged.get("value"))
        if value is None or value < 0:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Discount value must be a non-negative number")
        if merged.get("discount_type") == "percentage" and value > 100:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Percentage discounts must be between 0 and 100")

        start, end = merged.get("start_date"), merged.get("end_date")
        if not start or not end:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Campaigns need a start and an end date")
        if start >= end:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Start date must be before end date")

        if merged.get("discount_type") == "buy_x_get_y":
            config = merged.get("buy_x_get_y_config") or {}
            if not (_positive_int(config.get("buy_quantity")) and _positive_int(config.get("get_quantity"))):
                return service_err(
                    ErrorCodes.VALIDATION_ERROR, "Buy X get Y campaigns need a buy_quantity and a get_quantity"
                )

        code = (merged.get("code") or "").strip()
        if code:
            clash = DiscountCampaign.objects.filter(code__iexact=code)
            if campaign is not None:
                clash = clash.exclude(pk=campaign.pk)
            if clash.exists():
                return service_err(ErrorCodes.CONFLICT, "A campaign with this code already exists")
        return None

    @staticmethod
    def _apply_fields(campaign: DiscountCampaign, data: Dict):
        for key in CAMPAIGN_FIELDS:
            if key not in data:
                continue
            value = data[key]
            if key == "code":
                value = (value or "").strip().upper() or None
            elif key in ID_LIST_FIELDS:
                value = [str(item) for item in (value or [])]
            setattr(campaign, key, value)

    def get_campaign(self, campaign_id) -> ServiceResult[DiscountCampaign]:
        campaign = DiscountCampaign.objects.filter(pk=campaign_id).first()
        if campaign is None:
            return service_err(ErrorCodes.DISCOUNT_NOT_FOUND, "Discount campaign not found")
        return service_ok(campaign)

    def list_campaigns(self, user, status: Optional[str] = None, q: Optional[str] = None, page=1, size=10):
        denied = self._denied(user)
        if denied:
            return denied
        queryset = DiscountCampaign.objects.all()
        if status:
            queryset = queryset.filter(status=status)
        if q:
            queryset = queryset.filter(Q(name__icontains=q) | Q(code__icontains=q))
        return service_ok(paginate(queryset, page, size))

    def create_campaign(self, user, data: Dict) -> ServiceResult[DiscountCampaign]:
        denied = self._denied(user)
        if denied:
            return denied
        invalid = self._validate(data)
        if invalid:
            return invalid
        campaign = DiscountCampaign(created_by=user)
        self._apply_fields(campaign, data)
        campaign.save()
        self.logger.info(f"Discount campaign {campaign.id} ({campaign.code or 'automatic'}) created by {user.id}")
        return service_ok(campaign)

    def update_campaign(self, user, campaign_id, data: Dict) -> ServiceResult[DiscountCampaign]:
        denied = self._denied(user)
        if denied:
            return denied
        result = self.get_campaign(campaign_id)
        if not result.ok:
            return result
        campaign = result.value
        invalid = self._validate(data, campaign)
        if invalid:
            return invalid
        self._apply_fields(campaign, data)
        campaign.save()
        return service_ok(campaign)

    def set_status(self, user, campaign_id, status: str) -> ServiceResult[DiscountCampaign]:
        denied = self._denied(user)
        if denied:
            return denied
        if status not in CAMPAIGN_STATUSES:
            return service_err(ErrorCodes.VALIDATION_ERROR, f"Status must be one of {', '.join(CAMPAIGN_STATUSES)}")
        result = self.get_campaign(campaign_id)
        if not result.ok:
            return result
        campaign = result.value
        if status == "active" and campaign.end_date < timezone.now():
            return service_err(ErrorCodes.INVALID_DISCOUNT, "This campaign has already ended")
        campaign.status = status
        campaign.save(update_fields=["status", "updated_at"])
        self.logger.info(f"Discount campaign {campaign.id} is now {status}")
        return service_ok(campaign)

    def delete_campaign(self, user, campaign_id) -> ServiceResult[Dict]:
        """Delete an unused campaign. A campaign that was redeemed is cancelled instead so its history stays."""
        denied = self._denied(user)
        if denied:
            return denied
        result = self.get_campaign(campaign_id)
        if not result.ok:
            return result
        campaign = result.value
        if campaign.usages.exists():
            campaign.status = "cancelled"
            campaign.save(update_fields=["status", "updated_at"])
            return service_ok({"deleted": False, "campaign": campaign})
        campaign.delete()
        return service_ok({"deleted": True, "campaign": None})

    def get_statistics(self, user, campaign_id) -> ServiceResult[Dict]:
        denied = self._denied(user)
        if denied:
            return denied
        result = self.get_campaign(campaign_id)
        if not result.ok:
            return result
        usages = result.value.usages.all()
        summary = usages.aggregate(
            total_usage=Count("id"),
            total_discount=Sum("discount_amount"),
            unique_users=Count("user", distinct=True),
            average_order_value=Avg("order_total"),
        )
        top_users = (
            usages.values("user_id")
            .annotate(uses=Count("id"), total_discount=Sum("discount_amount"))
            .order_by("-uses", "-total_discount")[:10]
        )
        average = summary["average_order_value"]
        return service_ok(
            {
                "campaign_id": str(result.value.id),
                "total_usage": summary["total_usage"],
                "total_discount_given": str(summary["total_discount"] or ZERO),
                "unique_users": summary["unique_users"],
                "average_order_value": str(
                    Decimal(str(average)).quantize(workflow.TWO_PLACES) if average is not None else ZERO
                ),
                "top_users": [
                    {"user_id": str(row["user_id"]), "uses": row["uses"], "total_discount": str(row["total_discount"])}
                    for row in top_users
                ],
            }
        )

    def expire_campaigns(self) -> int:
        """Mark active campaigns whose end date has passed as expired."""
        expired = DiscountCampaign.objects.filter(status="active", end_date__lt=timezone.now()).update(
            status="expired"
        )
        if expired:
            self.logger.info(f"Expired {expired} discount campaigns")
        return expired

    # ===== Pricing =====

    def calculate_discount(self, campaign: DiscountCampaign, items: Iterable, subtotal: Decimal) -> Decimal:
        """Discount a campaign gives on a list with this subtotal, after the caps."""
        if campaign.discount_type == "percentage":
            rate = min(campaign.value, MAX_DISCOUNT_RATE * 100) / 100
            amount = subtotal * rate
        elif campaign.discount_type == "fixed_amount":
            amount = min(campaign.value, subtotal)
        elif campaign.discount_type == "free_shipping":
            amount = workflow.DELIVERY_FEE
        elif campaign.discount_type == "buy_x_get_y":
            amount = self._free_units_value(campaign, items)
        else:
            amount = Decimal("0")

        if campaign.discount_type != "free_shipping":
            amount = min(amount, subtotal * MAX_DISCOUNT_RATE)
        if campaign.maximum_discount_amount is not None:
            amount = min(amount, campaign.maximum_discount_amount)
        return max(amount, Decimal("0")).quantize(workflow.TWO_PLACES, rounding=ROUND_HALF_UP)

    @staticmethod
    def _free_units_value(campaign: DiscountCampaign, items: Iterable) -> Decimal:
        config = campaign.buy_x_get_y_config or {}
        buy = _positive_int(config.get("buy_quantity"))
        get = _positive_int(config.get("get_quantity"))
        if not buy or not get:
            return Decimal("0")
        targeted = _id_set(campaign.target_product_ids) if campaign.target_type == "product" else None

        amount = Decimal("0")
        for item in items:
            if targeted is not None and str(item.product_id) not in targeted:
                continue
            free_units = (item.quantity // (buy + get)) * get
            amount += _item_price(item) * free_units
        return amount

    # ===== Eligibility =====

    def _live_campaigns(self, now):
        return DiscountCampaign.objects.filter(status="active", start_date__lte=now, end_date__gte=now).filter(
            Q(usage_limit__isnull=True) | Q(usage_count__lt=F("usage_limit"))
        )

    @staticmethod
    def _matches_target(campaign: DiscountCampaign, user, shopping_list: Optional[ShoppingList]) -> bool:
        target = campaign.target_type
        if target == "user":
            return str(user.id) in _id_set(campaign.target_user_ids)
        if target == "first_order":
            return not Order.objects.filter(customer=user).exclude(status="cancelled").exists()
        if target == "global" or shopping_list is None:
            # List-bound targets cannot be ruled out before there is a list
            return True
        if target == "market":
            return str(shopping_list.market_id) in _id_set(campaign.target_market_ids)
        if target == "product":
            product_ids = {str(item.product_id) for item in shopping_list.items.all() if item.product_id}
            return bool(product_ids & _id_set(campaign.target_product_ids))
        if target == "category":
            if shopping_list.market_id is None:
                return False
            category_ids = {str(pk) for pk in shopping_list.market.categories.values_list("id", flat=True)}
            return bool(category_ids & _id_set(campaign.target_category_ids))
        return False

    @staticmethod
    def _matches_conditions(campaign: DiscountCampaign, user, now) -> bool:
        conditions = campaign.conditions or {}
        user_type = conditions.get("user_type")
        if user_type and getattr(user, "role", None) != user_type:
            return False
        days = conditions.get("day_of_week")
        if days and timezone.localtime(now).weekday() not in days:
            return False
        return True

    def _ineligibility(
        self, campaign: DiscountCampaign, user, shopping_list: Optional[ShoppingList], subtotal, now
    ) -> Optional[str]:
        """Why this user cannot use the campaign on this list, or None when they can."""
        if campaign.usage_limit_per_user is not None:
            if campaign.usages.filter(user=user).count() >= campaign.usage_limit_per_user:
                return "You have already used this discount"
        if subtotal is not None and campaign.minimum_order_amount is not None:
            if subtotal < campaign.minimum_order_amount:
                return f"A minimum order of {campaign.minimum_order_amount} is required for this discount"
        if not self._matches_target(campaign, user, shopping_list):
            return "You are not eligible for this discount"
        if not self._matches_conditions(campaign, user, now):
            return "You are not eligible for this discount"
        return None

    @staticmethod
    def _reject(message: str, reason: str) -> ServiceResult:
        discount_rejections_total.labels(reason=reason).inc()
        return service_err(ErrorCodes.INVALID_DISCOUNT, message)

    def _quote(self, campaign: DiscountCampaign, user, shopping_list: ShoppingList) -> ServiceResult[Dict]:
        now = timezone.now()
        if campaign.status != "active":
            return self._reject("Discount code is not active", "inactive")
        if not campaign.is_running(now):
            return self._reject("Discount code has expired or is not yet active", "expired")
        if campaign.is_exhausted:
            return self._reject("Discount code has reached its usage limit", "exhausted")

        items = list(shopping_list.items.all())
        subtotal = workflow.calculate_totals(items)["subtotal"]
        reason = self._ineligibility(campaign, user, shopping_list, subtotal, now)
        if reason:
            return self._reject(reason, "ineligible")

        amount = self.calculate_discount(campaign, items, subtotal)
        return service_ok(
            {"campaign": campaign, "discount_amount": amount, "totals": workflow.calculate_totals(items, discount=amount)}
        )

    def _load_list(self, shopping_list_id, user) -> ServiceResult[ShoppingList]:
        try:
            shopping_list = ShoppingList.objects.select_related("market").filter(pk=shopping_list_id).first()
        except (ValueError, DjangoValidationError):
            shopping_list = None
        if shopping_list is None:
            return service_err(ErrorCodes.LIST_NOT_FOUND, "Shopping list not found")
        if shopping_list.customer_id != user.id:
            return service_err(ErrorCodes.NOT_OWNER, "You do not own this shopping list")
        return service_ok(shopping_list)

    # ===== Customer operations =====

    def validate_code(self, code: str, user, shopping_list_id) -> ServiceResult[Dict]:
        """Price a code against one of the user's lists without redeeming it."""
        list_result = self._load_list(shopping_list_id, user)
        if not list_result.ok:
            return list_result
        campaign = DiscountCampaign.objects.filter(code__iexact=(code or "").strip()).first()
        if campaign is None:
            return self._reject("Invalid discount code", "unknown")
        return self._quote(campaign, user, list_result.value)

    def available_discounts(self, user, shopping_list_id=None) -> ServiceResult[List[Dict]]:
        """
        Live campaigns this user can use, best first.

        With a list, each offer carries the amount it would take off that list.
        """
        shopping_list = None
        items: list = []
        subtotal = None
        if shopping_list_id:
            list_result = self._load_list(shopping_list_id, user)
            if not list_result.ok:
                return list_result
            shopping_list = list_result.value
            items = list(shopping_list.items.all())
            subtotal = workflow.calculate_totals(items)["subtotal"]

        now = timezone.now()
        offers = []
        for campaign in self._live_campaigns(now).order_by("-priority", "-value"):
            if self._ineligibility(campaign, user, shopping_list, subtotal, now):
                continue
            amount = self.calculate_discount(campaign, items, subtotal) if shopping_list is not None else None
            offers.append({"campaign": campaign, "discount_amount": amount})
        return service_ok(offers)

    def _best_automatic(self, user, shopping_list: ShoppingList) -> Optional[Dict]:
        offers = self.available_discounts(user, shopping_list.id).value
        automatic = [offer for offer in offers if offer["campaign"].is_automatic_apply and offer["discount_amount"]]
        if not automatic:
            return None
        # Ties keep the priority order from available_discounts
        best = max(automatic, key=lambda offer: offer["discount_amount"])
        return self._quote(best["campaign"], user, shopping_list).value

    def preview(self, user, shopping_list_id, code: Optional[str] = None) -> ServiceResult[Dict]:
        """Totals for a list with the given code, or with the best automatic discount when there is no code."""
        if code:
            return self.validate_code(code, user, shopping_list_id)
        list_result = self._load_list(shopping_list_id, user)
        if not list_result.ok:
            return list_result
        shopping_list = list_result.value
        quote = self._best_automatic(user, shopping_list)
        if quote:
            return service_ok(quote)
        return service_ok(
            {"campaign": None, "discount_amount": ZERO, "totals": workflow.calculate_totals(shopping_list.items.all())}
        )

    def quote_for_payment(self, user, shopping_list: ShoppingList, code: Optional[str] = None) -> ServiceResult:
        """
        Discount to apply when a list is paid for.

        Must run inside the payment transaction: a code's campaign row is
        locked so concurrent payments cannot overrun its usage limit. Returns
        None when there is no code and no automatic campaign applies.
        """
        if code:
            campaign = DiscountCampaign.objects.select_for_update().filter(code__iexact=code.strip()).first()
            if campaign is None:
                return self._reject("Invalid discount code", "unknown")
            return self._quote(campaign, user, shopping_list)
        return service_ok(self._best_automatic(user, shopping_list))

    def redeem(self, quote: Dict, user, shopping_list: ShoppingList, order: Order) -> DiscountUsage:
        """Record a redemption for an order that was priced with this quote."""
        campaign = quote["campaign"]
        usage = DiscountUsage.objects.create(
            campaign=campaign,
            user=user,
            order=order,
            shopping_list=shopping_list,
            discount_amount=quote["discount_amount"],
            order_total=order.total_amount,
            metadata={"code": campaign.code or "", "discount_type": campaign.discount_type},
        )
        DiscountCampaign.objects.filter(pk=campaign.pk).update(usage_count=F("usage_count") + 1)
        discount_redemptions_total.labels(discount_type=campaign.discount_type).inc()
        self.logger.info(f"Campaign {campaign.id} redeemed on order {order.order_number}: -{usage.discount_amount}")
        return usage

    def usage_history(self, user, page=1, size=10) -> ServiceResult[Dict]:
        queryset = DiscountUsage.objects.filter(user=user).select_related("campaign", "order")
        return service_ok(paginate(queryset, page, size))

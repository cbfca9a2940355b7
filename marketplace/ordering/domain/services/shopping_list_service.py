"""
ShoppingListService - customer shopping lists from draft to payment.

Lifecycle:
    draft -> pending (submitted) -> accepted (agent or payment) -> processing
    (order created) -> completed, with cancellation possible until completion
    and cancelled lists re-openable as drafts.

Items may only change while a list is a draft. When an item references a
catalogue product the product's name and effective price are used; products
without a price need a customer-provided estimate.
"""

from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from django.db import transaction
from django.utils import timezone

from marketplace.catalog.domain.models import Market, Product
from marketplace.infra.observability.metrics import shopping_list_transitions_total
from marketplace.infra.observability.tracing import add_span_attributes, tracer
from marketplace.ordering.domain import workflow
from marketplace.ordering.domain.models import ShoppingList, ShoppingListItem
from utils.pagination import paginate
from utils.rbac import is_admin
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

ITEM_FIELDS = ("name", "quantity", "unit", "notes", "estimated_price", "user_provided_price")
SUGGESTED_FIELDS = ("category", "is_popular", "sort_order", "is_read_only")


def _decimal_or_none(value) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


class ShoppingListService(BaseService):
    def __init__(self, agent_service=None, order_service=None, dispatcher=None, discount_service=None):
        super().__init__()
        self._agent_service = agent_service
        self._order_service = order_service
        self._dispatcher = dispatcher
        self._discount_service = discount_service

    # Collaborators are resolved lazily through the container to avoid import cycles
    @property
    def agent_service(self):
        if self._agent_service is None:
            from infrastructure.container import container

            self._agent_service = container.agent_service()
        return self._agent_service

    @property
    def order_service(self):
        if self._order_service is None:
            from infrastructure.container import container

            self._order_service = container.order_service()
        return self._order_service

    @property
    def dispatcher(self):
        if self._dispatcher is None:
            from infrastructure.container import container

            self._dispatcher = container.notification_dispatcher()
        return self._dispatcher

    @property
    def discount_service(self):
        if self._discount_service is None:
            from infrastructure.container import container

            self._discount_service = container.discount_service()
        return self._discount_service

    # ===== Lookups =====

    def _load(self, list_id) -> ServiceResult[ShoppingList]:
        shopping_list = (
            ShoppingList.objects.select_related("customer", "agent", "market")
            .prefetch_related("items")
            .filter(pk=list_id)
            .first()
        )
        if shopping_list is None:
            return service_err(ErrorCodes.LIST_NOT_FOUND, "Shopping list not found")
        return service_ok(shopping_list)

    def _load_owned(self, list_id, user) -> ServiceResult[ShoppingList]:
        result = self._load(list_id)
        if not result.ok:
            return result
        if result.value.customer_id != user.id:
            return service_err(ErrorCodes.NOT_OWNER, "You do not own this shopping list")
        return result

    def _load_editable(self, list_id, user) -> ServiceResult[ShoppingList]:
        result = self._load_owned(list_id, user)
        if not result.ok:
            return result
        shopping_list = result.value
        if shopping_list.is_read_only:
            return service_err(ErrorCodes.LIST_READ_ONLY, "This shopping list is read-only")
        if shopping_list.status != "draft":
            return service_err(ErrorCodes.INVALID_ORDER_STATE, "Items can only be changed while the list is a draft")
        return result

    def get_list(self, list_id, user) -> ServiceResult[ShoppingList]:
        result = self._load(list_id)
        if not result.ok:
            return result
        shopping_list = result.value
        if shopping_list.list_type == "suggested" and shopping_list.is_active:
            return result
        if user.id in (shopping_list.customer_id, shopping_list.agent_id) or is_admin(user):
            return result
        return service_err(ErrorCodes.PERMISSION_DENIED, "You do not have access to this shopping list")

    def list_user_lists(self, user, status: Optional[str] = None, page: int = 1, size: int = 10):
        queryset = ShoppingList.objects.filter(customer=user, list_type="personal").select_related("market", "agent")
        if status:
            queryset = queryset.filter(status=status)
        return service_ok(paginate(queryset.prefetch_related("items"), page, size))

    def list_agent_lists(self, agent, status: Optional[str] = None, page: int = 1, size: int = 10):
        queryset = ShoppingList.objects.filter(agent=agent).select_related("market", "customer")
        if status:
            queryset = queryset.filter(status=status)
        return service_ok(paginate(queryset.prefetch_related("items"), page, size))

    # ===== Items =====

    def _build_item(self, shopping_list: ShoppingList, data: Dict) -> ServiceResult[ShoppingListItem]:
        fields = {key: data[key] for key in ITEM_FIELDS if key in data}
        fields["estimated_price"] = _decimal_or_none(fields.get("estimated_price"))
        fields["user_provided_price"] = _decimal_or_none(fields.get("user_provided_price"))

        product_id = data.get("product_id")
        if product_id:
            product = Product.objects.filter(pk=product_id).first()
            if product is None:
                return service_err(ErrorCodes.PRODUCT_NOT_FOUND, f"Product {product_id} not found")
            fields["name"] = product.name
            if product.effective_price is None:
                if fields["user_provided_price"] is None:
                    return service_err(
                        ErrorCodes.VALIDATION_ERROR,
                        f"'{product.name}' has no listed price; please provide your own price estimate",
                    )
                fields["estimated_price"] = None
            else:
                fields["estimated_price"] = product.effective_price
            fields["product"] = product

        if not fields.get("name"):
            return service_err(ErrorCodes.VALIDATION_ERROR, "Item name is required")
        if int(fields.get("quantity") or 1) < 1:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Quantity must be at least 1")
        fields["quantity"] = int(fields.get("quantity") or 1)

        return service_ok(ShoppingListItem(shopping_list=shopping_list, **fields))

    def _refresh_total(self, shopping_list: ShoppingList):
        if getattr(shopping_list, "_prefetched_objects_cache", None):
            shopping_list._prefetched_objects_cache.pop("items", None)
        shopping_list.estimated_total = shopping_list.compute_estimated_total()
        shopping_list.save(update_fields=["estimated_total", "updated_at"])

    @BaseService.log_performance
    @transaction.atomic
    def create_list(self, user, data: Dict) -> ServiceResult[ShoppingList]:
        """Create a draft list, optionally with items, in one transaction."""
        if not data.get("name"):
            return service_err(ErrorCodes.VALIDATION_ERROR, "List name is required")

        market = None
        if data.get("market_id"):
            market = Market.objects.filter(pk=data["market_id"]).first()
            if market is None:
                return service_err(ErrorCodes.MARKET_NOT_FOUND, "Market not found")

        shopping_list = ShoppingList.objects.create(
            name=data["name"], notes=data.get("notes", ""), customer=user, market=market
        )

        for item_data in data.get("items") or []:
            item_result = self._build_item(shopping_list, item_data)
            if not item_result.ok:
                transaction.set_rollback(True)
                return item_result
            item_result.value.save()

        self._refresh_total(shopping_list)
        self.logger.info(f"Shopping list {shopping_list.id} created by {user.id}")
        return self._load(shopping_list.id)

    def update_list(self, list_id, user, data: Dict) -> ServiceResult[ShoppingList]:
        result = self._load_owned(list_id, user)
        if not result.ok:
            return result
        shopping_list = result.value

        if ("name" in data or "market_id" in data) and shopping_list.status != "draft":
            return service_err(
                ErrorCodes.INVALID_ORDER_STATE, "The name and market can only be changed while the list is a draft"
            )

        if "market_id" in data:
            market = Market.objects.filter(pk=data["market_id"]).first() if data["market_id"] else None
            if data["market_id"] and market is None:
                return service_err(ErrorCodes.MARKET_NOT_FOUND, "Market not found")
            shopping_list.market = market
        if "name" in data:
            shopping_list.name = data["name"]
        if "notes" in data:
            shopping_list.notes = data["notes"]
        shopping_list.save()
        return self._load(shopping_list.id)

    def delete_list(self, list_id, user) -> ServiceResult[None]:
        result = self._load_owned(list_id, user)
        if not result.ok:
            return result
        if result.value.status != "draft":
            return service_err(ErrorCodes.INVALID_ORDER_STATE, "Only draft lists can be deleted")
        result.value.delete()
        return service_ok(None)

    @transaction.atomic
    def add_item(self, list_id, user, data: Dict) -> ServiceResult[ShoppingListItem]:
        result = self._load_editable(list_id, user)
        if not result.ok:
            return result
        item_result = self._build_item(result.value, data)
        if not item_result.ok:
            return item_result
        item = item_result.value
        item.save()
        self._refresh_total(result.value)
        return service_ok(item)

    @transaction.atomic
    def update_item(self, list_id, item_id, user, data: Dict) -> ServiceResult[ShoppingListItem]:
        result = self._load_editable(list_id, user)
        if not result.ok:
            return result
        item = result.value.items.filter(pk=item_id).first()
        if item is None:
            return service_err(ErrorCodes.LIST_ITEM_NOT_FOUND, "Item not found in this list")

        for key in ("name", "unit", "notes"):
            if key in data:
                setattr(item, key, data[key])
        if "quantity" in data:
            if int(data["quantity"]) < 1:
                return service_err(ErrorCodes.VALIDATION_ERROR, "Quantity must be at least 1")
            item.quantity = int(data["quantity"])
        if "estimated_price" in data and item.product_id is None:
            item.estimated_price = _decimal_or_none(data["estimated_price"])
        if "user_provided_price" in data:
            item.user_provided_price = _decimal_or_none(data["user_provided_price"])
        item.save()
        self._refresh_total(result.value)
        return service_ok(item)

    @transaction.atomic
    def remove_item(self, list_id, item_id, user) -> ServiceResult[None]:
        result = self._load_editable(list_id, user)
        if not result.ok:
            return result
        deleted, _ = result.value.items.filter(pk=item_id).delete()
        if not deleted:
            return service_err(ErrorCodes.LIST_ITEM_NOT_FOUND, "Item not found in this list")
        self._refresh_total(result.value)
        return service_ok(None)

    # ===== Workflow =====

    @BaseService.log_performance
    def submit_list(self, list_id, user) -> ServiceResult[ShoppingList]:
        result = self._load_owned(list_id, user)
        if not result.ok:
            return result
        shopping_list = result.value

        if shopping_list.status != "draft":
            return service_err(ErrorCodes.INVALID_ORDER_STATE, "Only draft lists can be submitted")
        if shopping_list.market_id is None:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Select a market before submitting")
        if not shopping_list.items.exists():
            return service_err(ErrorCodes.VALIDATION_ERROR, "Add at least one item before submitting")

        shopping_list.status = "pending"
        shopping_list.save(update_fields=["status", "updated_at"])
        shopping_list_transitions_total.labels(status="pending").inc()

        self.dispatcher.dispatch(
            user=user,
            title="SHOPPING_LIST_SUBMITTED",
            heading="Shopping list submitted",
            message=f"Your shopping list '{shopping_list.name}' has been submitted.",
            resource=str(shopping_list.id),
            priority="low",
        )
        return self._load(shopping_list.id)

    @BaseService.log_performance
    def update_status(self, list_id, user, new_status: str) -> ServiceResult[ShoppingList]:
        """
        Apply a status change requested by the owner or the assigned agent.

        The agent may only move the list to processing or completed; the owner
        may only cancel it or send it back to draft, and not once an agent has
        committed to it.
        """
        result = self._load(list_id)
        if not result.ok:
            return result
        shopping_list = result.value

        if new_status not in workflow.LIST_TRANSITIONS:
            return service_err(ErrorCodes.VALIDATION_ERROR, f"Unknown status '{new_status}'")

        if shopping_list.agent_id is not None and shopping_list.agent_id == user.id:
            if new_status not in workflow.LIST_AGENT_STATUSES:
                return service_err(ErrorCodes.PERMISSION_DENIED, "Agents can only mark lists processing or completed")
        elif shopping_list.customer_id == user.id:
            if new_status not in workflow.LIST_OWNER_STATUSES:
                return service_err(ErrorCodes.PERMISSION_DENIED, "You can only cancel or re-draft your list")
            if new_status == "draft" and shopping_list.status in workflow.LIST_NO_REVERT_STATUSES:
                return service_err(
                    ErrorCodes.INVALID_TRANSITION, "A list cannot return to draft once an agent has accepted it"
                )
        else:
            return service_err(ErrorCodes.PERMISSION_DENIED, "You are not allowed to update this shopping list")

        if not workflow.is_valid_list_transition(shopping_list.status, new_status):
            return service_err(
                ErrorCodes.INVALID_TRANSITION,
                f"Cannot change status from {shopping_list.status} to {new_status}",
            )

        shopping_list.status = new_status
        if new_status == "draft":
            shopping_list.agent = None
        shopping_list.save()
        shopping_list_transitions_total.labels(status=new_status).inc()
        self.logger.info(f"Shopping list {shopping_list.id} moved to {new_status} by {user.id}")
        return self._load(shopping_list.id)

    @BaseService.log_performance
    def accept_list(self, list_id, agent) -> ServiceResult[ShoppingList]:
        if not agent.is_agent:
            return service_err(ErrorCodes.NOT_AGENT, "Only agents can accept shopping lists")
        eligible = self.agent_service.is_eligible(agent)
        if not eligible.ok:
            return eligible

        with transaction.atomic():
            shopping_list = ShoppingList.objects.select_for_update().filter(pk=list_id).first()
            if shopping_list is None:
                return service_err(ErrorCodes.LIST_NOT_FOUND, "Shopping list not found")
            if shopping_list.status != "pending":
                return service_err(ErrorCodes.INVALID_ORDER_STATE, "Only pending lists can be accepted")

            shopping_list.status = "accepted"
            shopping_list.agent = agent
            shopping_list.save(update_fields=["status", "agent", "updated_at"])
            self.agent_service.mark_busy(agent)

        shopping_list_transitions_total.labels(status="accepted").inc()
        self.dispatcher.dispatch(
            user=shopping_list.customer,
            actor=agent,
            title="SHOPPING_LIST_ACCEPTED",
            heading="Shopping list accepted",
            message=f"{agent.full_name} accepted your shopping list '{shopping_list.name}'.",
            resource=str(shopping_list.id),
            priority="high",
        )
        return self._load(shopping_list.id)

    @transaction.atomic
    def update_actual_prices(self, list_id, agent, prices: List[Dict]) -> ServiceResult[ShoppingList]:
        result = self._load(list_id)
        if not result.ok:
            return result
        shopping_list = result.value
        if shopping_list.agent_id != agent.id:
            return service_err(ErrorCodes.PERMISSION_DENIED, "You are not assigned to this shopping list")

        items = {str(item.id): item for item in shopping_list.items.all()}
        for entry in prices or []:
            item = items.get(str(entry.get("item_id")))
            if item is None:
                return service_err(ErrorCodes.LIST_ITEM_NOT_FOUND, f"Item {entry.get('item_id')} not found")
            price = _decimal_or_none(entry.get("actual_price"))
            if price is None or price < 0:
                return service_err(ErrorCodes.VALIDATION_ERROR, "Actual price must be a non-negative number")
            item.actual_price = price
            item.save(update_fields=["actual_price", "updated_at"])
        return self._load(shopping_list.id)

    @BaseService.log_performance
    def record_payment(
        self,
        list_id,
        user,
        payment_id: str,
        delivery_address: Optional[Dict] = None,
        customer_notes: str = "",
        discount_code: Optional[str] = None,
    ) -> ServiceResult[Dict]:
        """
        Record a confirmed payment and turn the list into an order.

        A discount code, or failing that the best automatic campaign, is
        priced into the order and redeemed in the same transaction. The order
        is assigned straight to the list's agent when there is one; otherwise
        agent assignment is queued for after the transaction commits.
        """
        with tracer.start_as_current_span("shopping_list_record_payment") as span:
            add_span_attributes(span, user__id=user.id, shopping_list__id=list_id, discount__code=discount_code)
            result = self._load_owned(list_id, user)
            if not result.ok:
                return result
            shopping_list = result.value
            if shopping_list.payment_status == "completed":
                return service_err(ErrorCodes.CONFLICT, "Payment has already been recorded for this list")
            if shopping_list.status not in ("pending", "accepted"):
                return service_err(ErrorCodes.INVALID_ORDER_STATE, "Only submitted lists can be paid for")

            with transaction.atomic():
                quote_result = self.discount_service.quote_for_payment(user, shopping_list, discount_code)
                if not quote_result.ok:
                    return quote_result
                quote = quote_result.value

                shopping_list.payment_status = "completed"
                shopping_list.payment_id = payment_id or ""
                shopping_list.payment_processed_at = timezone.now()
                if shopping_list.status == "pending":
                    shopping_list.status = "accepted"
                shopping_list.save()

                order_result = self.order_service.create_order(
                    shopping_list.id,
                    user,
                    delivery_address=delivery_address or {},
                    customer_notes=customer_notes,
                    payment_id=payment_id,
                    discount_campaign=quote["campaign"] if quote else None,
                    discount_amount=quote["discount_amount"] if quote else None,
                )
                if not order_result.ok:
                    transaction.set_rollback(True)
                    return order_result
                order = order_result.value
                if quote:
                    self.discount_service.redeem(quote, user, shopping_list, order)
            add_span_attributes(span, order__number=order.order_number, order__discount=order.discount_amount)

            if shopping_list.agent_id:
                assigned = self.order_service.assign_order_to_agent(order.id, shopping_list.agent)
                if assigned.ok:
                    order = assigned.value
                else:
                    self.logger.warning(
                        f"List agent {shopping_list.agent_id} could not take order {order.id}: {assigned.error_detail}"
                    )
                    self.order_service.queue_agent_assignment(order)
            else:
                self.order_service.queue_agent_assignment(order)

        self.dispatcher.dispatch(
            user=user,
            title="PAYMENT_SUCCESSFUL",
            heading="Payment received",
            message=f"Payment for order {order.order_number} was successful.",
            resource=str(order.id),
            priority="high",
            requires_email=True,
        )
        return service_ok({"shopping_list": self._load(shopping_list.id).value, "order": order})

    # ===== Suggested lists =====

    def list_suggested(self, category: Optional[str] = None, page: int = 1, size: int = 10):
        queryset = ShoppingList.objects.filter(list_type="suggested", is_active=True).prefetch_related("items")
        if category:
            queryset = queryset.filter(category__iexact=category)
        return service_ok(paginate(queryset.order_by("-is_popular", "sort_order", "-created_at"), page, size))

    @transaction.atomic
    def create_suggested(self, admin, data: Dict) -> ServiceResult[ShoppingList]:
        if not is_admin(admin):
            return service_err(ErrorCodes.PERMISSION_DENIED, "Only admins can create suggested lists")
        result = self.create_list(admin, data)
        if not result.ok:
            return result
        shopping_list = result.value
        shopping_list.list_type = "suggested"
        shopping_list.is_read_only = data.get("is_read_only", True)
        for key in ("category", "is_popular", "sort_order"):
            if key in data:
                setattr(shopping_list, key, data[key])
        shopping_list.save()
        return self._load(shopping_list.id)

    @BaseService.log_performance
    @transaction.atomic
    def copy_suggested(self, list_id, user) -> ServiceResult[ShoppingList]:
        source = ShoppingList.objects.filter(pk=list_id, list_type="suggested", is_active=True).first()
        if source is None:
            return service_err(ErrorCodes.LIST_NOT_FOUND, "Suggested list not found")

        copy = ShoppingList.objects.create(
            name=source.name,
            notes=source.notes,
            customer=user,
            market=source.market,
            source_suggested_list=source,
        )
        ShoppingListItem.objects.bulk_create(
            [
                ShoppingListItem(
                    shopping_list=copy,
                    product=item.product,
                    name=item.name,
                    quantity=item.quantity,
                    unit=item.unit,
                    notes=item.notes,
                    estimated_price=item.estimated_price,
                    user_provided_price=item.user_provided_price,
                )
                for item in source.items.all()
            ]
        )
        self._refresh_total(copy)
        return self._load(copy.id)

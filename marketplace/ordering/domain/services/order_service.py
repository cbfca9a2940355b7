"""
OrderService - Order Lifecycle Management

Handles order creation from paid shopping lists, agent assignment and
rejection, the agent fulfilment flow, notes, payment records and the audit
trail. Every state change writes an OrderTrail entry and the customer is
notified through the smart notification dispatcher.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from marketplace.infra.observability.metrics import (
    agent_assignments_total,
    order_status_transitions_total,
    order_value,
    orders_created_total,
)
from marketplace.infra.observability.tracing import add_span_attributes, tracer
from marketplace.ordering.domain import workflow
from marketplace.ordering.domain.models import Order, ShoppingList
from marketplace.ordering.domain.order_number import generate_order_number
from marketplace.ordering.domain.services.trail_service import OrderTrailService
from utils.pagination import paginate
from utils.rbac import is_admin
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

User = get_user_model()
logger = logging.getLogger(__name__)

PAYMENT_STATUSES = [choice for choice, _ in Order.PAYMENT_STATUS_CHOICES]


def _parse_date(value) -> Optional[datetime]:
    if not value or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


class OrderService(BaseService):
    """
    Service for managing order lifecycle.
    """

    def __init__(self, trail_service: OrderTrailService = None, agent_service=None, dispatcher=None):
        """
        Initialize OrderService.

        Args:
            trail_service: Audit trail writer (injected)
            agent_service: Agent eligibility and availability (injected)
            dispatcher: Smart notification dispatcher (injected)
        """
        super().__init__()
        self.trail = trail_service or OrderTrailService()
        self._agent_service = agent_service
        self._dispatcher = dispatcher

    @property
    def agent_service(self):
        if self._agent_service is None:
            from infrastructure.container import container

            self._agent_service = container.agent_service()
        return self._agent_service

    @property
    def dispatcher(self):
        if self._dispatcher is None:
            from infrastructure.container import container

            self._dispatcher = container.notification_dispatcher()
        return self._dispatcher

    # ===== Helpers =====

    def _load(self, order_id, lock: bool = False) -> ServiceResult[Order]:
        queryset = Order.objects.select_related("customer", "agent", "shopping_list", "shopping_list__market")
        if lock:
            queryset = queryset.select_for_update(of=("self",))
        try:
            return service_ok(queryset.get(pk=order_id))
        except (Order.DoesNotExist, ValueError):
            return service_err(ErrorCodes.ORDER_NOT_FOUND, f"Order {order_id} not found")

    def _notify_customer(self, order: Order, title: str, heading: str, message: str, actor=None, priority="normal"):
        self.dispatcher.dispatch(
            user=order.customer,
            actor=actor,
            title=title,
            heading=heading,
            message=message,
            resource=str(order.id),
            priority=priority,
        )

    @staticmethod
    def _stamp(order: Order, status: str):
        field = workflow.STATUS_TIMESTAMPS.get(status)
        if field:
            setattr(order, field, timezone.now())

    def calculate_totals(self, shopping_list: ShoppingList, discount_amount: Optional[Decimal] = None) -> Dict:
        return workflow.calculate_totals(shopping_list.items.all(), discount=discount_amount)

    def queue_agent_assignment(self, order: Order):
        """Schedule agent assignment once the current transaction commits."""
        from marketplace.tasks import assign_agent_to_order

        order_id = str(order.id)
        transaction.on_commit(lambda: assign_agent_to_order.delay(order_id))
        self.logger.info(f"Queued agent assignment for order {order_id}")

    # ===== Creation =====

    @BaseService.log_performance
    @transaction.atomic
    def create_order(
        self,
        shopping_list_id,
        user,
        delivery_address: Optional[Dict] = None,
        customer_notes: str = "",
        payment_id: str = "",
        discount_campaign=None,
        discount_amount: Optional[Decimal] = None,
        request=None,
    ) -> ServiceResult[Order]:
        """
        Create a pending order from an accepted shopping list.

        The list moves to processing in the same transaction. A discount, when
        given, has already been validated against the list by DiscountService.
        """
        with tracer.start_as_current_span("order_create_transaction") as span:
            add_span_attributes(span, user__id=user.id, shopping_list__id=shopping_list_id)
            shopping_list = ShoppingList.objects.select_for_update().filter(pk=shopping_list_id).first()
            if shopping_list is None:
                return service_err(ErrorCodes.LIST_NOT_FOUND, "Shopping list not found")
            if shopping_list.customer_id != user.id:
                return service_err(ErrorCodes.NOT_OWNER, "You do not own this shopping list")
            if shopping_list.status != "accepted":
                return service_err(ErrorCodes.INVALID_ORDER_STATE, "Orders can only be created from accepted lists")

            with tracer.start_as_current_span("calculate_totals") as totals_span:
                totals = self.calculate_totals(shopping_list, discount_amount=discount_amount)
                add_span_attributes(
                    totals_span, order__subtotal=totals["subtotal"], order__total=totals["total_amount"]
                )

            with tracer.start_as_current_span("save_order"):
                order = Order.objects.create(
                    order_number=generate_order_number(
                        lambda candidate: Order.objects.filter(order_number=candidate).exists()
                    ),
                    customer=user,
                    shopping_list=shopping_list,
                    total_amount=totals["total_amount"],
                    service_fee=totals["service_fee"],
                    delivery_fee=totals["delivery_fee"],
                    discount_amount=totals["discount_amount"],
                    discount_campaign=discount_campaign,
                    delivery_address=delivery_address or {},
                    customer_notes=customer_notes or "",
                    payment_id=payment_id or "",
                    payment_status=shopping_list.payment_status or "pending",
                    payment_processed_at=shopping_list.payment_processed_at,
                )

                shopping_list.status = "processing"
                shopping_list.save(update_fields=["status", "updated_at"])

                self.trail.log_creation(order, user, request=request)
            span.set_attribute("order.number", order.order_number)

        orders_created_total.inc()
        order_value.observe(float(order.total_amount))
        self.logger.info(f"Created order {order.order_number} for user {user.id}: total={order.total_amount}")
        return service_ok(order)

    # ===== Queries =====

    def get_order(self, order_id, user) -> ServiceResult[Order]:
        result = self._load(order_id)
        if not result.ok:
            return result
        order = result.value
        if user.id not in (order.customer_id, order.agent_id) and not is_admin(user):
            return service_err(ErrorCodes.PERMISSION_DENIED, "You do not have access to this order")
        return result

    def _list(self, queryset, status=None, start_date=None, end_date=None, page=1, size=10):
        if status:
            queryset = queryset.filter(status=status)
        start = _parse_date(start_date)
        end = _parse_date(end_date)
        if (start_date and start is None) or (end_date and end is None):
            return service_err(ErrorCodes.VALIDATION_ERROR, "Dates must be ISO formatted")
        if start:
            queryset = queryset.filter(created_at__gte=start)
        if end:
            queryset = queryset.filter(created_at__lte=end)
        return service_ok(paginate(queryset.select_related("shopping_list", "shopping_list__market"), page, size))

    def list_customer_orders(self, user, **filters) -> ServiceResult[Dict]:
        return self._list(Order.objects.filter(customer=user), **filters)

    def list_agent_orders(self, agent, **filters) -> ServiceResult[Dict]:
        return self._list(Order.objects.filter(agent=agent), **filters)

    def get_trail(self, order_id, user) -> ServiceResult[List]:
        result = self.get_order(order_id, user)
        if not result.ok:
            return result
        return service_ok(self.trail.get_trail(result.value))

    # ===== Status =====

    def _finish_list(self, order: Order, status: str):
        shopping_list = order.shopping_list
        if shopping_list.status != status:
            shopping_list.status = status
            shopping_list.save(update_fields=["status", "updated_at"])

    @BaseService.log_performance
    def update_status(self, order_id, user, new_status: str, reason: str = "", request=None) -> ServiceResult[Order]:
        """
        Generic status change by the assigned agent or the customer.

        Agents may accept, start and complete; customers may only cancel.
        """
        with transaction.atomic():
            result = self._load(order_id, lock=True)
            if not result.ok:
                return result
            order = result.value
            previous = order.status

            if order.agent_id is not None and order.agent_id == user.id:
                if new_status not in workflow.ORDER_AGENT_STATUSES:
                    return service_err(ErrorCodes.PERMISSION_DENIED, "Agents cannot set this status")
            elif order.customer_id == user.id:
                if new_status not in workflow.ORDER_CUSTOMER_STATUSES:
                    return service_err(ErrorCodes.PERMISSION_DENIED, "Customers can only cancel orders")
                if previous == "completed":
                    return service_err(ErrorCodes.INVALID_ORDER_STATE, "Completed orders cannot be cancelled")
            else:
                return service_err(ErrorCodes.PERMISSION_DENIED, "You are not allowed to update this order")

            if not workflow.is_valid_order_transition(previous, new_status):
                return service_err(
                    ErrorCodes.INVALID_TRANSITION, f"Cannot change order status from {previous} to {new_status}"
                )

            order.status = new_status
            self._stamp(order, new_status)
            order.save()

            if new_status == "completed":
                self._finish_list(order, "completed")
                self.trail.log_completion(order, user, request=request)
            elif new_status == "cancelled":
                self._finish_list(order, "cancelled")
                self.trail.log_cancellation(order, user, previous, reason, request=request)
            else:
                self.trail.log_status_change(order, user, previous, new_status, request=request)

        order_status_transitions_total.labels(status=new_status).inc()
        if new_status in ("completed", "cancelled") and order.agent_id:
            self.agent_service.mark_available(order.agent)

        if new_status == "cancelled":
            self._notify_customer(
                order,
                "ORDER_CANCELLED",
                "Order cancelled",
                f"Order {order.order_number} has been cancelled.",
                actor=user,
                priority="high",
            )
        else:
            self._notify_customer(
                order,
                "ORDER_STATUS_UPDATED",
                "Order updated",
                f"Order {order.order_number} is now {order.get_status_display().lower()}.",
                actor=user,
                priority="high" if new_status == "completed" else "normal",
            )
        return self._load(order.id)

    @BaseService.log_performance
    def agent_update_status(self, order_id, agent, new_status: str, request=None) -> ServiceResult[Order]:
        """Move an order forward through the agent fulfilment flow."""
        with transaction.atomic():
            result = self._load(order_id, lock=True)
            if not result.ok:
                return result
            order = result.value
            if order.agent_id != agent.id:
                return service_err(ErrorCodes.PERMISSION_DENIED, "You are not assigned to this order")

            previous = order.status
            if not workflow.is_forward_agent_step(previous, new_status):
                return service_err(
                    ErrorCodes.INVALID_TRANSITION, f"Cannot move order from {previous} to {new_status}"
                )

            order.status = new_status
            self._stamp(order, new_status)
            order.save()
            self.trail.log_status_change(order, agent, previous, new_status, request=request)
            if new_status == "completed":
                self._finish_list(order, "completed")

        order_status_transitions_total.labels(status=new_status).inc()
        if new_status == "completed":
            self.agent_service.mark_available(agent)

        self._notify_customer(
            order,
            "ORDER_STATUS_UPDATED",
            "Order updated",
            f"Order {order.order_number} is now {order.get_status_display().lower()}.",
            actor=agent,
            priority="high" if new_status == "completed" else "normal",
        )
        return self._load(order.id)

    # ===== Assignment =====

    @BaseService.log_performance
    def assign_order_to_agent(self, order_id, agent, assigned_by=None, request=None) -> ServiceResult[Order]:
        """
        Hand a pending order to an agent.

        The agent must be eligible and must not have turned this order down
        before. The shopping list follows the order to the same agent.
        """
        with tracer.start_as_current_span("order_assign_agent") as span:
            add_span_attributes(
                span, order__id=order_id, agent__id=agent.id, assigned_by=getattr(assigned_by, "id", None)
            )
            eligible = self.agent_service.is_eligible(agent)
            if not eligible.ok:
                agent_assignments_total.labels(outcome="ineligible").inc()
                return eligible

            with transaction.atomic():
                result = self._load(order_id, lock=True)
                if not result.ok:
                    return result
                order = result.value
                if order.status != "pending":
                    return service_err(ErrorCodes.INVALID_ORDER_STATE, "Only pending orders can be accepted")
                if str(agent.id) in order.rejected_agent_ids():
                    agent_assignments_total.labels(outcome="rejected_before").inc()
                    return service_err(ErrorCodes.AGENT_NOT_ELIGIBLE, "Agent has already rejected this order")

                order.agent = agent
                order.status = "accepted"
                order.accepted_at = timezone.now()
                order.save(update_fields=["agent", "status", "accepted_at", "updated_at"])

                shopping_list = order.shopping_list
                shopping_list.agent = agent
                shopping_list.save(update_fields=["agent", "updated_at"])

                self.agent_service.mark_busy(agent)
                self.trail.log_agent_assignment(order, agent, assigned_by=assigned_by, request=request)

            agent_assignments_total.labels(outcome="assigned").inc()
            order_status_transitions_total.labels(status="accepted").inc()
            self.logger.info(f"Order {order.order_number} assigned to agent {agent.id}")

            self._notify_customer(
                order,
                "ORDER_STATUS_UPDATED",
                "Agent assigned",
                f"{agent.full_name} is handling your order {order.order_number}.",
                actor=agent,
                priority="high",
            )
            return self._load(order.id)

    @BaseService.log_performance
    def reject_order(self, order_id, agent, reason: str = "", request=None) -> ServiceResult[Order]:
        """Record that an agent turned the order down and look for the next one."""
        if not agent.is_agent:
            return service_err(ErrorCodes.NOT_AGENT, "Only agents can reject orders")

        with transaction.atomic():
            result = self._load(order_id, lock=True)
            if not result.ok:
                return result
            order = result.value
            if order.status != "pending":
                return service_err(ErrorCodes.INVALID_ORDER_STATE, "Only pending orders can be rejected")
            if str(agent.id) in order.rejected_agent_ids():
                return service_err(ErrorCodes.CONFLICT, "You have already rejected this order")

            order.rejected_agents = list(order.rejected_agents or []) + [
                {"agent_id": str(agent.id), "reason": reason or "", "rejected_at": timezone.now().isoformat()}
            ]
            order.save(update_fields=["rejected_agents", "updated_at"])
            self.trail.log_agent_rejection(order, agent, reason, request=request)
            self.queue_agent_assignment(order)

        agent_assignments_total.labels(outcome="rejected").inc()
        return service_ok(order)

    # ===== Completion and notes =====

    @BaseService.log_performance
    def complete_order(self, order_id, agent, actual_prices: List[Dict], request=None) -> ServiceResult[Order]:
        """Complete an order with the prices actually paid and recalculate its totals."""
        with transaction.atomic():
            result = self._load(order_id, lock=True)
            if not result.ok:
                return result
            order = result.value
            if order.agent_id != agent.id:
                return service_err(ErrorCodes.PERMISSION_DENIED, "You are not assigned to this order")
            if order.status in workflow.TERMINAL_ORDER_STATUSES or order.status == "pending":
                return service_err(ErrorCodes.INVALID_ORDER_STATE, f"Cannot complete an order that is {order.status}")

            items = {str(item.id): item for item in order.shopping_list.items.all()}
            for entry in actual_prices or []:
                item = items.get(str(entry.get("item_id")))
                if item is None:
                    return service_err(ErrorCodes.LIST_ITEM_NOT_FOUND, f"Item {entry.get('item_id')} not found")
                item.actual_price = entry.get("actual_price")
                item.save(update_fields=["actual_price", "updated_at"])

            # A discount redeemed at payment carries over to the final price
            totals = workflow.calculate_totals(items.values(), discount=order.discount_amount)
            order.total_amount = totals["total_amount"]
            order.service_fee = totals["service_fee"]
            order.delivery_fee = totals["delivery_fee"]
            order.discount_amount = totals["discount_amount"]
            order.status = "completed"
            order.completed_at = timezone.now()
            order.save()
            self._finish_list(order, "completed")
            self.trail.log_completion(order, agent, request=request)

        order_status_transitions_total.labels(status="completed").inc()
        self.agent_service.mark_available(agent)
        self._notify_customer(
            order,
            "ORDER_STATUS_UPDATED",
            "Order completed",
            f"Order {order.order_number} is complete. Total: {order.total_amount}",
            actor=agent,
            priority="high",
        )
        return self._load(order.id)

    def add_agent_notes(self, order_id, agent, notes: str, request=None) -> ServiceResult[Order]:
        result = self._load(order_id)
        if not result.ok:
            return result
        order = result.value
        if order.agent_id != agent.id:
            return service_err(ErrorCodes.PERMISSION_DENIED, "You are not assigned to this order")
        order.agent_notes = notes or ""
        order.save(update_fields=["agent_notes", "updated_at"])
        self.trail.log_notes_added(order, agent, "agent", request=request)
        return service_ok(order)

    def add_customer_notes(self, order_id, user, notes: str, request=None) -> ServiceResult[Order]:
        result = self._load(order_id)
        if not result.ok:
            return result
        order = result.value
        if order.customer_id != user.id:
            return service_err(ErrorCodes.NOT_OWNER, "You do not own this order")
        order.customer_notes = notes or ""
        order.save(update_fields=["customer_notes", "updated_at"])
        self.trail.log_notes_added(order, user, "customer", request=request)
        return service_ok(order)

    def record_payment(
        self, order_id, admin, payment_status: str, payment_id: str = "", request=None
    ) -> ServiceResult[Order]:
        if not is_admin(admin):
            return service_err(ErrorCodes.PERMISSION_DENIED, "Only admins can record order payments")
        if payment_status not in PAYMENT_STATUSES:
            return service_err(
                ErrorCodes.VALIDATION_ERROR, f"Payment status must be one of {', '.join(PAYMENT_STATUSES)}"
            )
        result = self._load(order_id)
        if not result.ok:
            return result
        order = result.value
        order.payment_status = payment_status
        if payment_id:
            order.payment_id = payment_id
        order.payment_processed_at = timezone.now()
        order.save(update_fields=["payment_status", "payment_id", "payment_processed_at", "updated_at"])
        self.trail.log_payment_processed(order, admin, payment_status, order.payment_id, request=request)
        self.logger.info(f"Payment for order {order.order_number} marked {payment_status}")
        return service_ok(order)

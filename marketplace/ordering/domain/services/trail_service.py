"""
OrderTrailService - audit log writer for orders.

Each helper records one kind of lifecycle event. Request metadata (client IP
and user agent) is captured when a request is passed through from the view.
"""

from typing import Any, Dict, Optional

from marketplace.ordering.domain.models import Order, OrderTrail
from utils.service_base import BaseService


def client_ip(request) -> Optional[str]:
    if request is None:
        return None
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR")


class OrderTrailService(BaseService):
    def log(
        self,
        order: Order,
        action: str,
        description: str,
        user=None,
        previous_value: Any = None,
        new_value: Any = None,
        metadata: Optional[Dict] = None,
        request=None,
    ) -> OrderTrail:
        entry = OrderTrail.objects.create(
            order=order,
            user=user,
            action=action,
            description=description,
            previous_value=previous_value,
            new_value=new_value,
            metadata=metadata or {},
            ip_address=client_ip(request),
            user_agent=request.META.get("HTTP_USER_AGENT", "") if request is not None else "",
        )
        self.logger.debug(f"Trail {action} recorded for order {order.id}")
        return entry

    def log_creation(self, order: Order, user, request=None):
        return self.log(
            order,
            "order_created",
            f"Order {order.order_number} created",
            user=user,
            new_value={"status": order.status, "total_amount": str(order.total_amount)},
            request=request,
        )

    def log_status_change(self, order: Order, user, previous: str, new: str, request=None):
        return self.log(
            order,
            "status_changed",
            f"Status changed from {previous} to {new}",
            user=user,
            previous_value={"status": previous},
            new_value={"status": new},
            request=request,
        )

    def log_agent_assignment(self, order: Order, agent, assigned_by=None, request=None):
        return self.log(
            order,
            "agent_assigned",
            f"Agent {agent.full_name} assigned",
            user=assigned_by or agent,
            new_value={"agent_id": str(agent.id)},
            request=request,
        )

    def log_payment_processed(self, order: Order, user, payment_status: str, payment_id: str = "", request=None):
        return self.log(
            order,
            "payment_processed",
            f"Payment marked as {payment_status}",
            user=user,
            new_value={"payment_status": payment_status, "payment_id": payment_id},
            request=request,
        )

    def log_notes_added(self, order: Order, user, note_type: str, request=None):
        return self.log(
            order, "notes_added", f"{note_type.capitalize()} notes updated", user=user, metadata={"type": note_type},
            request=request,
        )

    def log_cancellation(self, order: Order, user, previous: str, reason: str = "", request=None):
        return self.log(
            order,
            "order_cancelled",
            "Order cancelled" + (f": {reason}" if reason else ""),
            user=user,
            previous_value={"status": previous},
            new_value={"status": "cancelled"},
            request=request,
        )

    def log_agent_rejection(self, order: Order, agent, reason: str = "", request=None):
        return self.log(
            order,
            "order_rejected",
            f"Order rejected by agent {agent.full_name}",
            user=agent,
            metadata={"agent_id": str(agent.id), "reason": reason or ""},
            request=request,
        )

    def log_completion(self, order: Order, agent, request=None):
        return self.log(
            order,
            "order_completed",
            "Order completed",
            user=agent,
            new_value={"status": "completed", "total_amount": str(order.total_amount)},
            request=request,
        )

    def get_trail(self, order: Order):
        return list(order.trail.select_related("user").order_by("timestamp"))

"""
Status rules for shopping lists and orders, and order pricing.

These are plain tables and functions with no database access so both the
services and the unit tests can use them directly.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, Optional

# ===== Shopping lists =====

LIST_TRANSITIONS: Dict[str, tuple] = {
    "draft": ("pending", "cancelled"),
    "pending": ("accepted", "draft", "cancelled"),
    "accepted": ("processing", "cancelled"),
    "processing": ("completed", "cancelled"),
    "completed": (),
    "cancelled": ("draft",),
}

LIST_AGENT_STATUSES = ("processing", "completed")
LIST_OWNER_STATUSES = ("cancelled", "draft")
# Once an agent has committed, the owner cannot pull the list back to draft
LIST_NO_REVERT_STATUSES = ("accepted", "processing", "completed")

# ===== Orders =====

ORDER_TRANSITIONS: Dict[str, tuple] = {
    "pending": ("accepted", "cancelled"),
    "accepted": ("in_progress", "cancelled"),
    "in_progress": ("completed", "cancelled"),
    "completed": (),
    "cancelled": (),
}

ORDER_AGENT_STATUSES = ("accepted", "in_progress", "completed")
ORDER_CUSTOMER_STATUSES = ("cancelled",)

# Statuses an assigned agent walks through while fulfilling an order, in order
AGENT_FLOW = ("accepted", "in_progress", "shopping", "shopping_completed", "delivery", "completed")

ACTIVE_ORDER_STATUSES = ("accepted", "in_progress", "shopping", "shopping_completed", "delivery")
TERMINAL_ORDER_STATUSES = ("completed", "cancelled")

# Timestamp stamped when an order enters a status
STATUS_TIMESTAMPS = {
    "accepted": "accepted_at",
    "shopping": "shopping_started_at",
    "shopping_completed": "shopping_completed_at",
    "delivery": "delivery_started_at",
    "completed": "completed_at",
    "cancelled": "cancelled_at",
}

# ===== Pricing =====

SERVICE_FEE_RATE = Decimal("0.05")
DELIVERY_FEE = Decimal("5.00")
TWO_PLACES = Decimal("0.01")


def is_valid_list_transition(current: str, new: str) -> bool:
    return new in LIST_TRANSITIONS.get(current, ())


def is_valid_order_transition(current: str, new: str) -> bool:
    return new in ORDER_TRANSITIONS.get(current, ())


def is_forward_agent_step(current: str, new: str) -> bool:
    """True when new comes strictly after current in the agent fulfilment flow."""
    if current not in AGENT_FLOW or new not in AGENT_FLOW:
        return False
    return AGENT_FLOW.index(new) > AGENT_FLOW.index(current)


def _as_decimal(value) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    return Decimal(str(value))


def calculate_totals(items: Iterable, discount: Optional[Decimal] = None) -> Dict[str, Decimal]:
    """
    Price a list of items.

    Each item contributes (actual_price or estimated_price or 0) x quantity.
    Service fee is 5% of the subtotal rounded to cents; delivery is a flat fee.
    A discount comes off the grand total, which never drops below zero.
    """
    subtotal = Decimal("0")
    for item in items:
        price = item.actual_price if item.actual_price is not None else item.estimated_price
        subtotal += _as_decimal(price) * (item.quantity or 1)

    service_fee = (subtotal * SERVICE_FEE_RATE).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    delivery_fee = DELIVERY_FEE
    gross = subtotal + service_fee + delivery_fee
    discount_amount = min(max(_as_decimal(discount), Decimal("0")), gross).quantize(TWO_PLACES)
    return {
        "subtotal": subtotal.quantize(TWO_PLACES),
        "service_fee": service_fee,
        "delivery_fee": delivery_fee,
        "discount_amount": discount_amount,
        "total_amount": (gross - discount_amount).quantize(TWO_PLACES),
    }

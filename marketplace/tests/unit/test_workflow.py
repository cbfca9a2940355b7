from decimal import Decimal
from types import SimpleNamespace

import pytest

from marketplace.ordering.domain import workflow


def item(quantity=1, estimated=None, actual=None):
    return SimpleNamespace(quantity=quantity, estimated_price=estimated, actual_price=actual)


@pytest.mark.unit
class TestListTransitions:
    @pytest.mark.parametrize(
        "current,new",
        [
            ("draft", "pending"),
            ("pending", "accepted"),
            ("pending", "draft"),
            ("accepted", "processing"),
            ("processing", "completed"),
            ("cancelled", "draft"),
        ],
    )
    def test_allowed(self, current, new):
        assert workflow.is_valid_list_transition(current, new)

    @pytest.mark.parametrize(
        "current,new",
        [("draft", "accepted"), ("completed", "draft"), ("completed", "cancelled"), ("accepted", "pending")],
    )
    def test_rejected(self, current, new):
        assert not workflow.is_valid_list_transition(current, new)


@pytest.mark.unit
class TestOrderTransitions:
    def test_generic_transitions(self):
        assert workflow.is_valid_order_transition("pending", "accepted")
        assert workflow.is_valid_order_transition("in_progress", "cancelled")
        assert not workflow.is_valid_order_transition("completed", "cancelled")
        assert not workflow.is_valid_order_transition("pending", "completed")

    def test_agent_flow_only_moves_forward(self):
        assert workflow.is_forward_agent_step("accepted", "shopping")
        assert workflow.is_forward_agent_step("shopping_completed", "delivery")
        assert not workflow.is_forward_agent_step("delivery", "shopping")
        assert not workflow.is_forward_agent_step("shopping", "shopping")
        assert not workflow.is_forward_agent_step("pending", "accepted")
        assert not workflow.is_forward_agent_step("accepted", "cancelled")


@pytest.mark.unit
class TestCalculateTotals:
    def test_actual_price_overrides_estimate(self):
        totals = workflow.calculate_totals(
            [item(quantity=2, estimated=Decimal("10.00"), actual=Decimal("12.00")), item(estimated=Decimal("5.00"))]
        )
        # 24 + 5 = 29, fee 1.45, delivery 5
        assert totals["subtotal"] == Decimal("29.00")
        assert totals["service_fee"] == Decimal("1.45")
        assert totals["delivery_fee"] == Decimal("5.00")
        assert totals["total_amount"] == Decimal("35.45")

    def test_unpriced_items_count_as_zero(self):
        totals = workflow.calculate_totals([item(quantity=3)])
        assert totals["subtotal"] == Decimal("0.00")
        assert totals["total_amount"] == Decimal("5.00")

    def test_service_fee_rounds_half_up(self):
        # 0.05 * 0.10 = 0.005 -> 0.01
        totals = workflow.calculate_totals([item(estimated=Decimal("0.10"))])
        assert totals["service_fee"] == Decimal("0.01")

    def test_empty_list(self):
        assert workflow.calculate_totals([])["total_amount"] == workflow.DELIVERY_FEE

    def test_discount_comes_off_the_total(self):
        totals = workflow.calculate_totals([item(quantity=2, estimated=Decimal("10.00"))], discount=Decimal("3.00"))
        # 20 + 1.00 fee + 5 delivery - 3
        assert totals["discount_amount"] == Decimal("3.00")
        assert totals["total_amount"] == Decimal("23.00")

    def test_discount_never_makes_total_negative(self):
        totals = workflow.calculate_totals([item(estimated=Decimal("1.00"))], discount=Decimal("50"))
        assert totals["discount_amount"] == Decimal("6.05")
        assert totals["total_amount"] == Decimal("0.00")

from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from marketplace.models import Order
from marketplace.tests.factories import (
    AdminFactory,
    AgentFactory,
    OrderFactory,
    ShoppingListItemFactory,
    UserFactory,
)
from utils.service_base import ErrorCodes


def order_url(name, order):
    return reverse(f"marketplace:order-{name}", args=[order.id])


class CustomerOrderIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.customer = UserFactory()
        self.client.force_authenticate(user=self.customer)

    def test_list_only_own_orders(self):
        OrderFactory.create_batch(2, customer=self.customer)
        OrderFactory(customer=self.customer, status="cancelled")
        OrderFactory()

        response = self.client.get(reverse("marketplace:order-list"))
        self.assertEqual(response.data["count"], 3)

        filtered = self.client.get(reverse("marketplace:order-list"), {"status": "cancelled"})
        self.assertEqual(filtered.data["count"], 1)

    def test_bad_date_filter(self):
        response = self.client.get(reverse("marketplace:order-list"), {"start_date": "last tuesday"})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_retrieve_someone_elses_order(self):
        response = self.client.get(order_url("detail", OrderFactory()))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_cancel_pending_order(self):
        order = OrderFactory(customer=self.customer)

        response = self.client.patch(
            order_url("update-status", order), {"status": "cancelled", "reason": "Changed my mind"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "cancelled")
        self.assertIsNotNone(response.data["cancelled_at"])
        self.assertEqual(response.data["shopping_list"]["status"], "cancelled")
        self.assertTrue(self.customer.notifications.filter(title="ORDER_CANCELLED").exists())

        trail = self.client.get(order_url("trail", order))
        self.assertEqual(trail.data[-1]["action"], "order_cancelled")
        self.assertIn("Changed my mind", trail.data[-1]["description"])

    def test_customer_cannot_complete(self):
        order = OrderFactory(customer=self.customer, status="accepted", agent=AgentFactory())

        response = self.client.patch(order_url("update-status", order), {"status": "completed"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_completed_order_cannot_be_cancelled(self):
        order = OrderFactory(customer=self.customer, status="completed")

        response = self.client.patch(order_url("update-status", order), {"status": "cancelled"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], ErrorCodes.INVALID_ORDER_STATE)

    def test_customer_notes(self):
        order = OrderFactory(customer=self.customer)

        response = self.client.patch(order_url("customer-notes", order), {"notes": "Ring twice"}, format="json")

        self.assertEqual(response.data["customer_notes"], "Ring twice")

    def test_agent_actions_need_agent_role(self):
        order = OrderFactory(customer=self.customer)

        self.assertEqual(self.client.post(order_url("accept", order)).status_code, status.HTTP_403_FORBIDDEN)


class AgentOrderIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.agent = AgentFactory()
        self.client.force_authenticate(user=self.agent)
        self.order = OrderFactory()

    def test_accept_pending_order(self):
        response = self.client.post(order_url("accept", self.order))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "accepted")
        self.assertEqual(response.data["agent"]["id"], str(self.agent.id))
        self.assertEqual(response.data["shopping_list"]["agent"]["id"], str(self.agent.id))
        self.assertEqual(self.agent.get_settings().agent_status, "busy")

        assigned = self.client.get(reverse("marketplace:order-assigned"))
        self.assertEqual(assigned.data["count"], 1)

    def test_accept_taken_order(self):
        self.order.status = "accepted"
        self.order.agent = AgentFactory()
        self.order.save()

        response = self.client.post(order_url("accept", self.order))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unverified_agent_cannot_accept(self):
        self.client.force_authenticate(user=AgentFactory(agent_status__kyc=False))

        response = self.client.post(order_url("accept", self.order))

        self.assertEqual(response.data["code"], ErrorCodes.AGENT_NOT_ELIGIBLE)

    def test_reject_then_cannot_accept(self):
        rejected = self.client.post(order_url("reject", self.order), {"reason": "Too far"}, format="json")
        self.assertEqual(rejected.status_code, status.HTTP_200_OK)
        self.assertEqual(rejected.data["rejected_agents"][0]["agent_id"], str(self.agent.id))

        again = self.client.post(order_url("reject", self.order), {}, format="json")
        self.assertEqual(again.status_code, status.HTTP_409_CONFLICT)

        accept = self.client.post(order_url("accept", self.order))
        self.assertEqual(accept.data["code"], ErrorCodes.AGENT_NOT_ELIGIBLE)

    def test_agent_flow_moves_forward_only(self):
        self.order.status = "accepted"
        self.order.agent = self.agent
        self.order.save()

        shopping = self.client.patch(order_url("agent-status", self.order), {"status": "shopping"}, format="json")
        self.assertEqual(shopping.data["status"], "shopping")
        self.assertIsNotNone(shopping.data["shopping_started_at"])

        back = self.client.patch(order_url("agent-status", self.order), {"status": "accepted"}, format="json")
        self.assertEqual(back.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(back.data["code"], ErrorCodes.INVALID_TRANSITION)

    def test_unassigned_agent_cannot_move_order(self):
        self.order.status = "accepted"
        self.order.agent = AgentFactory()
        self.order.save()

        response = self.client.patch(order_url("agent-status", self.order), {"status": "shopping"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_complete_with_actual_prices(self):
        item = ShoppingListItemFactory(shopping_list=self.order.shopping_list, quantity=2)
        self.order.status = "delivery"
        self.order.agent = self.agent
        self.order.save()

        response = self.client.post(
            order_url("complete", self.order),
            {"actual_prices": [{"item_id": str(item.id), "actual_price": "12.00"}]},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "completed")
        # 24.00 + 1.20 service + 5.00 delivery
        self.assertEqual(Decimal(response.data["total_amount"]), Decimal("30.20"))
        self.assertEqual(response.data["shopping_list"]["status"], "completed")
        self.assertEqual(self.agent.get_settings().agent_status, "available")

    def test_pending_order_cannot_be_completed(self):
        self.order.agent = self.agent
        self.order.save()

        response = self.client.post(order_url("complete", self.order), {}, format="json")

        self.assertEqual(response.data["code"], ErrorCodes.INVALID_ORDER_STATE)

    def test_agent_notes(self):
        self.order.agent = self.agent
        self.order.status = "accepted"
        self.order.save()

        response = self.client.patch(order_url("agent-notes", self.order), {"notes": "No plantain today"}, format="json")

        self.assertEqual(response.data["agent_notes"], "No plantain today")

    def _assign(self, order_status="accepted"):
        self.order.agent = self.agent
        self.order.status = order_status
        self.order.save()
        user_settings = self.agent.get_settings()
        user_settings.set_agent_status("busy")
        user_settings.save()

    def test_generic_status_walks_accepted_to_completed(self):
        self._assign()

        started = self.client.patch(order_url("update-status", self.order), {"status": "in_progress"}, format="json")
        self.assertEqual(started.status_code, status.HTTP_200_OK)
        self.assertEqual(started.data["status"], "in_progress")

        completed = self.client.patch(order_url("update-status", self.order), {"status": "completed"}, format="json")
        self.assertEqual(completed.status_code, status.HTTP_200_OK)

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "completed")
        self.assertIsNotNone(self.order.completed_at)
        self.assertEqual(self.order.shopping_list.status, "completed")
        self.assertTrue(self.order.trail.filter(action="order_completed").exists())
        self.assertEqual(self.agent.get_settings().agent_status, "available")

    def test_generic_status_cannot_skip_in_progress(self):
        self._assign()

        response = self.client.patch(order_url("update-status", self.order), {"status": "completed"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], ErrorCodes.INVALID_TRANSITION)

    def test_agent_cannot_cancel_through_generic_status(self):
        self._assign("in_progress")

        response = self.client.patch(order_url("update-status", self.order), {"status": "cancelled"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "in_progress")

    def test_unassigned_agent_cannot_change_status(self):
        self._assign()
        self.client.force_authenticate(user=AgentFactory())

        response = self.client.patch(order_url("update-status", self.order), {"status": "in_progress"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class AdminOrderIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = AdminFactory()
        self.client.force_authenticate(user=self.admin)
        self.order = OrderFactory()

    def test_assign_agent(self):
        agent = AgentFactory()

        response = self.client.post(order_url("assign", self.order), {"agent_id": str(agent.id)}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["agent"]["id"], str(agent.id))
        trail = self.client.get(order_url("trail", self.order))
        self.assertEqual(trail.data[-1]["action"], "agent_assigned")
        self.assertEqual(trail.data[-1]["user"]["id"], str(self.admin.id))

    def test_assign_unknown_agent(self):
        response = self.client.post(order_url("assign", self.order), {"agent_id": str(UserFactory().id)}, format="json")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_record_payment(self):
        response = self.client.post(
            order_url("payment", self.order), {"payment_status": "completed", "payment_id": "txn_1"}, format="json"
        )

        self.assertEqual(response.data["payment_status"], "completed")
        order = Order.objects.get(pk=self.order.pk)
        self.assertEqual(order.payment_id, "txn_1")
        self.assertEqual(order.trail.get().action, "payment_processed")

    def test_payment_requires_admin(self):
        self.client.force_authenticate(user=self.order.customer)

        response = self.client.post(order_url("payment", self.order), {"payment_status": "completed"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

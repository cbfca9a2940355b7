from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from authentication.tests.factories import AdminFactory, UserFactory
from infrastructure.container import container
from support.domain.models import SupportTicket
from support.tests.factories import SupportTicketFactory
from utils.service_base import ErrorCodes


def ticket_url(name, ticket):
    return reverse(f"support:support-ticket-{name}", args=[ticket.id])


class TicketCreationIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.url = reverse("support:support-ticket-list")
        self.outbox = container.email().sent_messages

    def test_guest_opens_ticket(self):
        response = self.client.post(
            self.url,
            {"name": "Ada", "email": "ada@example.com", "subject": "Refund", "message": "Where is my refund?"},
            format="json",
            HTTP_USER_AGENT="pytest-browser",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data["user"])
        self.assertEqual(response.data["state"], "pending")
        self.assertEqual(response.data["priority"], "medium")
        self.assertEqual(SupportTicket.objects.get().user_agent, "pytest-browser")
        self.assertEqual(self.outbox[-1].to, ["ada@example.com"])

    def test_guest_must_leave_contact_details(self):
        response = self.client.post(self.url, {"subject": "Hi", "message": "Hello"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], ErrorCodes.VALIDATION_ERROR)

    def test_signed_in_user_details_are_filled_in(self):
        user = UserFactory()
        self.client.force_authenticate(user=user)

        response = self.client.post(
            self.url, {"subject": "App crash", "message": "It crashes", "category": "technical"}, format="json"
        )

        self.assertEqual(response.data["user"]["id"], str(user.id))
        self.assertEqual(response.data["email"], user.email)
        self.assertEqual(response.data["category"], "technical")


class TicketOwnerIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = UserFactory()
        self.client.force_authenticate(user=self.user)
        self.ticket = SupportTicketFactory(user=self.user)

    def test_mine_and_retrieve(self):
        SupportTicketFactory()

        mine = self.client.get(reverse("support:support-ticket-mine"))
        self.assertEqual(mine.data["count"], 1)

        self.assertEqual(self.client.get(ticket_url("detail", self.ticket)).status_code, status.HTTP_200_OK)
        other = SupportTicketFactory()
        self.assertEqual(self.client.get(ticket_url("detail", other)).status_code, status.HTTP_403_FORBIDDEN)

    def test_reply_emails_assigned_admin(self):
        admin = AdminFactory()
        self.ticket.assigned_admin = admin
        self.ticket.save()

        response = self.client.post(ticket_url("responses", self.ticket), {"message": "Any update?"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["responses"][0]["responder_type"], "user")
        self.assertEqual(container.email().get_last_message().to, [admin.email])

    def test_closed_ticket_rejects_replies(self):
        self.ticket.state = "closed"
        self.ticket.save()

        response = self.client.post(ticket_url("responses", self.ticket), {"message": "Hello?"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], ErrorCodes.TICKET_CLOSED)

    def test_admin_endpoints_are_closed(self):
        self.assertEqual(
            self.client.get(reverse("support:support-ticket-list")).status_code, status.HTTP_403_FORBIDDEN
        )
        self.assertEqual(
            self.client.patch(ticket_url("update-status", self.ticket), {"state": "closed"}, format="json").status_code,
            status.HTTP_403_FORBIDDEN,
        )


class TicketAdminIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = AdminFactory()
        self.client.force_authenticate(user=self.admin)
        self.owner = UserFactory()
        self.ticket = SupportTicketFactory(user=self.owner)

    def test_list_orders_by_priority(self):
        SupportTicketFactory(priority="low")
        urgent = SupportTicketFactory(priority="urgent")

        response = self.client.get(reverse("support:support-ticket-list"))

        self.assertEqual(response.data["count"], 3)
        self.assertEqual(response.data["results"][0]["id"], str(urgent.id))

    def test_list_filters(self):
        SupportTicketFactory(category="payment", subject="Card declined")

        by_category = self.client.get(reverse("support:support-ticket-list"), {"category": "payment"})
        self.assertEqual(by_category.data["count"], 1)

        by_search = self.client.get(reverse("support:support-ticket-list"), {"search": "declined"})
        self.assertEqual(by_search.data["results"][0]["subject"], "Card declined")

    def test_assign_moves_ticket_along_and_emails_admin(self):
        assignee = AdminFactory()

        response = self.client.post(ticket_url("assign", self.ticket), {"admin_id": str(assignee.id)}, format="json")

        self.assertEqual(response.data["state"], "in_progress")
        self.assertEqual(response.data["assigned_admin"]["id"], str(assignee.id))
        self.assertEqual(container.email().get_last_message().to, [assignee.email])
        self.assertTrue(self.owner.notifications.filter(title="SUPPORT_TICKET_UPDATED").exists())

    def test_assign_to_non_admin(self):
        response = self.client.post(ticket_url("assign", self.ticket), {"admin_id": str(self.owner.id)}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_resolve(self):
        response = self.client.patch(ticket_url("update-status", self.ticket), {"state": "resolved"}, format="json")

        self.assertEqual(response.data["state"], "resolved")
        self.assertEqual(response.data["resolved_by"]["id"], str(self.admin.id))
        self.assertIsNotNone(response.data["resolved_at"])
        self.assertEqual(container.email().get_last_message().to, [self.ticket.email])

    def test_admin_reply_starts_work(self):
        response = self.client.post(ticket_url("responses", self.ticket), {"message": "Looking into it"}, format="json")

        self.assertEqual(response.data["state"], "in_progress")
        self.assertEqual(response.data["responses"][0]["responder_type"], "admin")

    def test_priority(self):
        response = self.client.patch(ticket_url("update-priority", self.ticket), {"priority": "high"}, format="json")

        self.assertEqual(response.data["priority"], "high")

    def test_stats(self):
        SupportTicketFactory(state="resolved", assigned_admin=self.admin)

        response = self.client.get(reverse("support:support-ticket-stats"))

        self.assertEqual(response.data["total"], 2)
        self.assertEqual(response.data["by_state"]["pending"], 1)
        self.assertEqual(response.data["by_state"]["resolved"], 1)
        self.assertEqual(response.data["unassigned"], 1)

    def test_unknown_ticket(self):
        response = self.client.get(
            reverse("support:support-ticket-detail", args=["00000000-0000-0000-0000-000000000000"])
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

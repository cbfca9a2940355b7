from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from authentication.models import UserAddress
from authentication.tests.factories import AdminFactory, AgentFactory, User, UserAddressFactory, UserFactory


class AddressViewIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = UserFactory()
        self.client.force_authenticate(user=self.user)
        self.list_url = reverse("authentication:address-list")

    def _create(self, **overrides):
        payload = {"title": "Home", "full_address": "12 Allen Avenue, Ikeja", "city": "Lagos", "state": "Lagos"}
        payload.update(overrides)
        return self.client.post(self.list_url, payload, format="json")

    def test_first_address_becomes_default(self):
        response = self._create()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data["is_default"])

    def test_new_default_replaces_old(self):
        first = self._create().data
        second = self._create(title="Office", type="work", is_default=True).data

        self.assertTrue(second["is_default"])
        self.assertFalse(UserAddress.objects.get(pk=first["id"]).is_default)
        self.assertEqual(self.client.get(reverse("authentication:address-default")).data["id"], second["id"])

    def test_set_default(self):
        first = self._create().data
        second = self._create(title="Office").data

        response = self.client.post(reverse("authentication:address-set-default", args=[second["id"]]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(UserAddress.objects.filter(user=self.user, is_default=True).count(), 1)
        self.assertFalse(UserAddress.objects.get(pk=first["id"]).is_default)

    def test_delete_is_soft_and_promotes_successor(self):
        first = self._create().data
        second = self._create(title="Office").data

        response = self.client.delete(reverse("authentication:address-detail", args=[first["id"]]))

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(UserAddress.objects.get(pk=first["id"]).is_active)
        self.assertTrue(UserAddress.objects.get(pk=second["id"]).is_default)
        self.assertEqual(len(self.client.get(self.list_url).data), 1)

    def test_cannot_see_other_users_address(self):
        other = UserAddressFactory()

        response = self.client.get(reverse("authentication:address-detail", args=[other.id]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_mark_used(self):
        address = self._create().data

        response = self.client.post(reverse("authentication:address-mark-used", args=[address["id"]]))

        self.assertIsNotNone(response.data["last_used_at"])


class AdminUserViewIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = AdminFactory()
        self.user = UserFactory(first_name="Ngozi")
        self.client.force_authenticate(user=self.admin)

    def test_list_users_filters_by_role(self):
        AgentFactory()

        response = self.client.get(reverse("authentication:admin-user-list"), {"role": "agent"})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["results"][0]["role"], "agent")

    def test_block_and_unblock_keep_history(self):
        url = reverse("authentication:admin-user-block", args=[self.user.id])

        response = self.client.post(url, {"reason": "spam"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["user"]["settings"]["is_blocked"])

        again = self.client.post(url, {"reason": "spam"}, format="json")
        self.assertEqual(again.status_code, status.HTTP_400_BAD_REQUEST)

        self.client.post(reverse("authentication:admin-user-unblock", args=[self.user.id]), {}, format="json")
        meta = self.user.get_settings().block_meta
        self.assertEqual(meta["block_history"][0]["reason"], "spam")
        self.assertEqual(len(meta["unblock_history"]), 1)

    def test_blocked_user_loses_api_access(self):
        self.client.post(reverse("authentication:admin-user-block", args=[self.user.id]), {}, format="json")

        self.client.force_authenticate(user=User.objects.get(pk=self.user.pk))
        response = self.client.get(reverse("authentication:address-list"))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_cannot_block_self(self):
        response = self.client.post(reverse("authentication:admin-user-block", args=[self.admin.id]), {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_deactivate(self):
        response = self.client.post(reverse("authentication:admin-user-deactivate", args=[self.user.id]))

        self.assertTrue(response.data["user"]["settings"]["is_deactivated"])

    def test_approve_kyc(self):
        agent = AgentFactory(agent_status__kyc=False)
        user_settings = agent.get_settings()
        user_settings.agent_meta = {**user_settings.agent_meta, "nin": "12345678901", "images": ["https://x/id.jpg"]}
        user_settings.save()

        response = self.client.post(reverse("authentication:admin-user-approve-kyc", args=[agent.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["is_kyc_verified"])

    def test_non_admin_is_forbidden(self):
        self.client.force_authenticate(user=self.user)

        response = self.client.get(reverse("authentication:admin-user-list"))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

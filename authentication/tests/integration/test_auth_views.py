from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from authentication.tests.factories import AgentFactory, User, UserFactory
from utils.service_base import ErrorCodes


class AuthViewIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.register_url = reverse("authentication:register")
        self.login_url = reverse("authentication:login")
        self.me_url = reverse("authentication:me")

    def test_register_returns_tokens(self):
        response = self.client.post(
            self.register_url,
            {"email": "Ada@Example.com", "password": "s3cure-pass-99", "first_name": "Ada"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn("access", response.data)
        self.assertIn("refresh", response.data)
        self.assertEqual(response.data["user"]["email"], "ada@example.com")
        self.assertEqual(response.data["user"]["role"], "customer")

    def test_register_as_vendor(self):
        response = self.client.post(
            self.register_url,
            {"email": "shop@example.com", "password": "s3cure-pass-99", "role": "vendor"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(User.objects.get(email="shop@example.com").is_agent)

    def test_register_cannot_claim_admin(self):
        response = self.client.post(
            self.register_url,
            {"email": "boss@example.com", "password": "s3cure-pass-99", "role": "admin"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], ErrorCodes.VALIDATION_ERROR)

    def test_register_duplicate_email(self):
        UserFactory(email="taken@example.com")

        response = self.client.post(
            self.register_url, {"email": "TAKEN@example.com", "password": "s3cure-pass-99"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_login_and_use_access_token(self):
        UserFactory(email="login@example.com")

        response = self.client.post(
            self.login_url, {"email": "login@example.com", "password": "defaultpassword"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
        me = self.client.get(self.me_url)
        self.assertEqual(me.status_code, status.HTTP_200_OK)
        self.assertEqual(me.data["email"], "login@example.com")

    def test_login_wrong_password(self):
        UserFactory(email="login@example.com")

        response = self.client.post(self.login_url, {"email": "login@example.com", "password": "nope"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data["code"], ErrorCodes.INVALID_CREDENTIALS)

    def test_blocked_account_cannot_login(self):
        user = UserFactory(email="blocked@example.com")
        user_settings = user.get_settings()
        user_settings.is_blocked = True
        user_settings.save()

        response = self.client.post(
            self.login_url, {"email": "blocked@example.com", "password": "defaultpassword"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_me_requires_authentication(self):
        self.assertEqual(self.client.get(self.me_url).status_code, status.HTTP_401_UNAUTHORIZED)

    def test_update_profile(self):
        user = UserFactory()
        self.client.force_authenticate(user=user)

        response = self.client.patch(
            self.me_url,
            {"first_name": "Chidi", "location": {"latitude": 6.5, "longitude": 3.4, "city": "Lagos"}},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        user.refresh_from_db()
        self.assertEqual(user.first_name, "Chidi")
        self.assertEqual(user.location["city"], "Lagos")


class KycViewIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.agent = AgentFactory(agent_status__kyc=False)
        self.client.force_authenticate(user=self.agent)

    def test_full_kyc_flow(self):
        response = self.client.post(reverse("authentication:kyc-nin"), {"nin": "12345678901"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["nin_provided"])

        response = self.client.post(
            reverse("authentication:kyc-images"), {"images": ["https://cdn.example.com/id.jpg"]}, format="json"
        )
        self.assertTrue(response.data["images_provided"])

        response = self.client.post(reverse("authentication:kyc-submit"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["is_kyc_verified"])

        self.agent.settings.refresh_from_db()
        self.assertTrue(self.agent.settings.is_kyc_verified)
        self.assertTrue(self.agent.notifications.filter(title="KYC_VERIFIED").exists())

    def test_invalid_nin(self):
        response = self.client.post(reverse("authentication:kyc-nin"), {"nin": "12345"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_submit_without_documents(self):
        response = self.client.post(reverse("authentication:kyc-submit"))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], ErrorCodes.KYC_INCOMPLETE)

    def test_unverified_email_is_refused(self):
        self.agent.is_email_verified = False
        self.agent.save()

        response = self.client.get(reverse("authentication:kyc-kyc-status"))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_customers_cannot_use_kyc(self):
        self.client.force_authenticate(user=UserFactory())

        response = self.client.post(reverse("authentication:kyc-nin"), {"nin": "12345678901"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

"""
Service Container Tests
========================

Unit tests for the dependency injection container.
"""

from django.test import TestCase

from infrastructure.container import ServiceContainer, container, get_email, get_push
from infrastructure.email import EmailServiceInterface, MockEmailService, SMTPEmailService
from infrastructure.push import MockPushProvider, PushProviderInterface


class ServiceContainerTest(TestCase):
    """Test ServiceContainer implementation."""

    def setUp(self):
        self.fake_redis = object()
        container.configure_for_testing(redis_client=self.fake_redis)

    def test_container_is_singleton(self):
        self.assertIs(ServiceContainer(), ServiceContainer())
        self.assertIs(ServiceContainer(), container)

    def test_get_email_service(self):
        """Email backend is created once and cached."""
        email = container.email()

        self.assertIsInstance(email, EmailServiceInterface)
        self.assertIsInstance(email, MockEmailService)
        self.assertIs(email, container.email())
        self.assertIs(email, get_email())

    def test_get_push_provider(self):
        push = container.push()

        self.assertIsInstance(push, PushProviderInterface)
        self.assertIsInstance(push, MockPushProvider)
        self.assertIs(push, get_push())

    def test_email_with_explicit_backend_replaces_cached(self):
        mock_email = container.email()

        smtp_email = container.email("smtp")

        self.assertIsInstance(smtp_email, SMTPEmailService)
        self.assertIsNot(smtp_email, mock_email)
        self.assertIs(container.email(), smtp_email)

    def test_injected_redis_is_shared(self):
        """Presence and the dispatcher both use the injected Redis client."""
        self.assertIs(container.redis(), self.fake_redis)
        self.assertIs(container.presence_service().client, self.fake_redis)

    def test_dispatcher_shares_collaborators(self):
        dispatcher = container.notification_dispatcher()

        self.assertIs(dispatcher, container.notification_dispatcher())
        self.assertIs(container.order_service().dispatcher, dispatcher)
        self.assertIs(container.shopping_list_service().order_service, container.order_service())

    def test_reset_drops_cached_instances(self):
        email = container.email()

        container.reset()
        container.configure_for_testing(redis_client=self.fake_redis)

        self.assertIsNot(container.email(), email)

"""
Email Infrastructure Tests
===========================

Unit tests for the email service abstraction layer.
"""

from unittest.mock import MagicMock, patch

from django.test import TestCase, override_settings

from infrastructure.email import (
    EmailException,
    EmailFactory,
    EmailMessage,
    EmailServiceInterface,
    MockEmailService,
    SMTPEmailService,
)


class EmailInterfaceTest(TestCase):
    """Test EmailServiceInterface contract."""

    def test_interface_is_abstract(self):
        """EmailServiceInterface should not be instantiable."""
        with self.assertRaises(TypeError):
            EmailServiceInterface()


class MockEmailServiceTest(TestCase):
    """Test MockEmailService implementation."""

    def setUp(self):
        self.email_service = MockEmailService()

    def test_send_email(self):
        """Test sending a single email."""
        message = EmailMessage(
            subject="Your order has been created - Busy2Shop",
            body="Order ORD-ABC123 was created.",
            to=["customer@example.com"],
            tags=["ORDER_CREATED", "customer"],
        )

        result = self.email_service.send(message)

        self.assertTrue(result)
        self.assertEqual(self.email_service.get_sent_count(), 1)
        self.assertEqual(self.email_service.get_last_message(), message)

    def test_send_bulk_emails(self):
        """send_bulk falls back to one send per message."""
        messages = [EmailMessage(subject=f"Test {i}", body=f"Body {i}", to=[f"user{i}@example.com"]) for i in range(4)]

        count = self.email_service.send_bulk(messages)

        self.assertEqual(count, 4)
        self.assertEqual(self.email_service.get_sent_count(), 4)

    def test_clear_sent_messages(self):
        self.email_service.send(EmailMessage(subject="Test", body="Body", to=["test@example.com"]))
        self.email_service.clear_sent_messages()

        self.assertEqual(self.email_service.get_sent_count(), 0)
        self.assertIsNone(self.email_service.get_last_message())


@override_settings(
    EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend",
    DEFAULT_FROM_EMAIL="noreply@test.com",
)
class SMTPEmailServiceTest(TestCase):
    """Test SMTPEmailService implementation."""

    def setUp(self):
        self.email_service = SMTPEmailService()

    def test_default_from_email(self):
        """Default sender comes from settings."""
        self.assertEqual(self.email_service.default_from, "noreply@test.com")

    def test_send_through_django_backend(self):
        """Messages reach Django's outbox with the HTML alternative attached."""
        from django.core import mail

        result = self.email_service.send(
            EmailMessage(
                subject="Payment received - Busy2Shop",
                body="Thanks for your payment.",
                html_body="<p>Thanks for your payment.</p>",
                to=["customer@example.com"],
            )
        )

        self.assertTrue(result)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].from_email, "noreply@test.com")
        self.assertEqual(mail.outbox[0].alternatives[0][1], "text/html")

    @patch("infrastructure.email.smtp_service.EmailMultiAlternatives")
    def test_send_email_failure(self, mock_email_class):
        """Backend errors surface as EmailException."""
        mock_msg = MagicMock()
        mock_msg.send.side_effect = Exception("SMTP error")
        mock_email_class.return_value = mock_msg

        with self.assertRaises(EmailException):
            self.email_service.send(EmailMessage(subject="Test", body="Body", to=["test@example.com"]))


class EmailFactoryTest(TestCase):
    """Test EmailFactory."""

    @override_settings(INFRASTRUCTURE={"EMAIL_BACKEND_TYPE": "mock"})
    def test_create_mock_service(self):
        self.assertIsInstance(EmailFactory.create(), MockEmailService)

    @override_settings(INFRASTRUCTURE={"EMAIL_BACKEND_TYPE": "smtp"})
    def test_create_smtp_service(self):
        self.assertIsInstance(EmailFactory.create(), SMTPEmailService)

    def test_create_with_explicit_backend(self):
        self.assertIsInstance(EmailFactory.create("mock"), MockEmailService)

    def test_create_invalid_backend(self):
        with self.assertRaises(ValueError):
            EmailFactory.create("invalid")

    @override_settings(INFRASTRUCTURE={}, EMAIL_SERVICE_BACKEND=None, TESTING=True)
    def test_default_to_mock_in_testing(self):
        """Factory defaults to mock in testing mode."""
        self.assertIsInstance(EmailFactory.create(), MockEmailService)

    @override_settings(INFRASTRUCTURE={"EMAIL_BACKEND_TYPE": ""}, EMAIL_SERVICE_BACKEND="", TESTING=False)
    def test_blank_settings_fall_back_to_smtp(self):
        self.assertIsInstance(EmailFactory.create(), SMTPEmailService)

"""
Push Infrastructure Tests
==========================

Unit tests for the push provider abstraction layer.
"""

from unittest.mock import MagicMock, patch

import requests
from django.test import TestCase, override_settings

from infrastructure.push import (
    MockPushProvider,
    OneSignalPushProvider,
    PushException,
    PushFactory,
    PushProviderInterface,
)


class PushInterfaceTest(TestCase):
    def test_interface_is_abstract(self):
        with self.assertRaises(TypeError):
            PushProviderInterface()


class MockPushProviderTest(TestCase):
    def test_records_pushes(self):
        provider = MockPushProvider()

        self.assertTrue(provider.send(["u1"], "New message", "Hello", {"order_id": "o1"}))

        self.assertEqual(provider.get_last_push()["user_ids"], ["u1"])
        self.assertEqual(provider.get_last_push()["data"], {"order_id": "o1"})
        provider.clear()
        self.assertIsNone(provider.get_last_push())


@override_settings(
    ONESIGNAL_APP_ID="app-123",
    ONESIGNAL_API_KEY="key-abc",
    ONESIGNAL_API_URL="https://onesignal.test/notifications",
)
class OneSignalPushProviderTest(TestCase):
    """Test OneSignalPushProvider with a stubbed HTTP session."""

    def setUp(self):
        self.session = MagicMock()
        self.provider = OneSignalPushProvider(session=self.session)

    def _response(self, status_code=200, body=None):
        response = MagicMock()
        response.status_code = status_code
        response.json.return_value = body or {"id": "push-1"}
        response.text = str(body)
        return response

    def test_send_targets_external_ids(self):
        """Users are addressed by external id and the payload carries headings and data."""
        self.session.post.return_value = self._response()

        result = self.provider.send(["u1", "u2"], "Order update", "Your order is on the way", {"order_id": "o1"})

        self.assertTrue(result)
        url = self.session.post.call_args.args[0]
        payload = self.session.post.call_args.kwargs["json"]
        self.assertEqual(url, "https://onesignal.test/notifications")
        self.assertEqual(payload["app_id"], "app-123")
        self.assertEqual(payload["include_aliases"], {"external_id": ["u1", "u2"]})
        self.assertEqual(payload["headings"], {"en": "Order update"})
        self.assertEqual(payload["data"], {"order_id": "o1"})
        self.assertEqual(self.session.post.call_args.kwargs["headers"]["Authorization"], "Key key-abc")

    def test_rejected_request_raises(self):
        self.session.post.return_value = self._response(status_code=400, body={"errors": ["bad"]})

        with self.assertRaises(PushException):
            self.provider.send(["u1"], "Heading", "Body")

    @patch("time.sleep")
    def test_transport_error_raises_after_retries(self, _sleep):
        """Connection errors are retried, then reported as PushException."""
        self.session.post.side_effect = requests.ConnectionError("down")

        with self.assertRaises(PushException):
            self.provider.send(["u1"], "Heading", "Body")
        self.assertEqual(self.session.post.call_count, 3)

    def test_no_recipients_skips_request(self):
        self.assertFalse(self.provider.send([], "Heading", "Body"))
        self.session.post.assert_not_called()

    @override_settings(ONESIGNAL_APP_ID="", ONESIGNAL_API_KEY="")
    def test_unconfigured_provider_is_disabled(self):
        provider = OneSignalPushProvider(session=self.session)

        self.assertFalse(provider.enabled)
        self.assertFalse(provider.send(["u1"], "Heading", "Body"))
        self.session.post.assert_not_called()


class PushFactoryTest(TestCase):
    @override_settings(INFRASTRUCTURE={"PUSH_BACKEND_TYPE": "mock"})
    def test_create_from_settings(self):
        self.assertIsInstance(PushFactory.create(), MockPushProvider)

    def test_create_onesignal_explicit(self):
        self.assertIsInstance(PushFactory.create("onesignal"), OneSignalPushProvider)

    def test_create_invalid_backend(self):
        with self.assertRaises(ValueError):
            PushFactory.create("carrier-pigeon")

    @override_settings(INFRASTRUCTURE={"PUSH_BACKEND_TYPE": None}, TESTING=True)
    def test_unset_backend_defaults_to_mock_in_testing(self):
        self.assertIsInstance(PushFactory.create(), MockPushProvider)

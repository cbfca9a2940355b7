"""
OneSignal Push Provider
========================

PushProviderInterface backed by the OneSignal REST API. Users are targeted by
external id, which the mobile and web clients set to our user id at login.
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from django.conf import settings
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .interface import PushException, PushProviderInterface

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 10


class OneSignalPushProvider(PushProviderInterface):
    """
    Configuration (in settings.py):
        ONESIGNAL_APP_ID: OneSignal application id
        ONESIGNAL_API_KEY: REST API key
        ONESIGNAL_API_URL: Notifications endpoint
    """

    def __init__(self, session: Optional[requests.Session] = None):
        self.app_id = getattr(settings, "ONESIGNAL_APP_ID", "")
        self.api_key = getattr(settings, "ONESIGNAL_API_KEY", "")
        self.api_url = getattr(settings, "ONESIGNAL_API_URL", "https://api.onesignal.com/notifications")
        self.session = session or requests.Session()

        if not self.app_id or not self.api_key:
            logger.warning("OneSignal credentials not configured; push notifications are disabled")

    @property
    def enabled(self) -> bool:
        return bool(self.app_id and self.api_key)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        reraise=True,
    )
    def _post(self, payload: Dict[str, Any]) -> requests.Response:
        return self.session.post(
            self.api_url,
            json=payload,
            headers={"Authorization": f"Key {self.api_key}", "Content-Type": "application/json"},
            timeout=REQUEST_TIMEOUT_SECONDS,
        )

    def send(
        self,
        user_ids: List[str],
        heading: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        if not self.enabled:
            logger.warning("OneSignal not configured. Skipping push notification.")
            return False
        if not user_ids:
            return False

        payload = {
            "app_id": self.app_id,
            "include_aliases": {"external_id": [str(user_id) for user_id in user_ids]},
            "target_channel": "push",
            "headings": {"en": heading},
            "contents": {"en": message},
        }
        if data:
            payload["data"] = data

        try:
            response = self._post(payload)
        except requests.RequestException as e:
            logger.error(f"OneSignal request failed for {user_ids}: {e}")
            raise PushException(f"Push send failed: {e}") from e

        if response.status_code >= 400:
            logger.error(f"OneSignal rejected push ({response.status_code}): {response.text[:200]}")
            raise PushException(f"OneSignal returned {response.status_code}")

        logger.info(f"Push sent to {len(user_ids)} user(s): {response.json().get('id')}")
        return True

"""
Push Provider Factory
======================

Selects the push backend from settings.INFRASTRUCTURE["PUSH_BACKEND_TYPE"].
"""

import logging
from typing import Literal

from django.conf import settings

from .interface import PushProviderInterface
from .mock_provider import MockPushProvider
from .onesignal_provider import OneSignalPushProvider

logger = logging.getLogger(__name__)

PushBackend = Literal["onesignal", "mock"]


class PushFactory:
    @staticmethod
    def create(backend: PushBackend | None = None) -> PushProviderInterface:
        """
        Args:
            backend: 'onesignal' or 'mock'; read from settings when None

        Raises:
            ValueError: If the backend type is unknown
        """
        default_backend = "mock" if getattr(settings, "TESTING", False) else "onesignal"
        backend_type = backend or getattr(settings, "INFRASTRUCTURE", {}).get("PUSH_BACKEND_TYPE") or default_backend

        logger.info(f"Creating push provider: {backend_type}")

        if backend_type == "onesignal":
            return OneSignalPushProvider()
        elif backend_type == "mock":
            return MockPushProvider()
        else:
            raise ValueError(f"Invalid push backend: {backend_type}. Must be 'onesignal' or 'mock'")

"""
Push Notification Abstraction Layer
====================================

One interface for push delivery with a OneSignal backend and an in-memory
backend for tests.
"""

from .factory import PushFactory
from .interface import PushException, PushProviderInterface
from .mock_provider import MockPushProvider
from .onesignal_provider import OneSignalPushProvider

__all__ = [
    "PushProviderInterface",
    "PushException",
    "MockPushProvider",
    "OneSignalPushProvider",
    "PushFactory",
]

"""
Push Provider Interface
========================

Contract for sending mobile/web push notifications to users.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class PushProviderInterface(ABC):
    """
    Abstract interface for push delivery.

    Concrete implementations:
        - OneSignalPushProvider: OneSignal REST API, users targeted by external id
        - MockPushProvider: records pushes in memory
    """

    @abstractmethod
    def send(
        self,
        user_ids: List[str],
        heading: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Push a message to the given users.

        Args:
            user_ids: Our user ids (used as OneSignal external ids)
            heading: Notification heading
            message: Notification body
            data: Extra payload for client-side navigation

        Returns:
            True when the provider accepted the push

        Raises:
            PushException: If the provider rejects the request
        """


class PushException(Exception):
    """Raised when a push provider cannot deliver a notification."""

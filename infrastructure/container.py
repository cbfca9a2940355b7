"""
Dependency Injection Container
================================

Service locator for infrastructure backends and domain services. Services
are created lazily on first use and cached, so collaborators that need each
other (orders, agents, the notification dispatcher) share one instance.

Usage:
    from infrastructure.container import container

    email = container.email()
    dispatcher = container.notification_dispatcher()
"""

import logging
from typing import Optional

import redis
from django.conf import settings

from .email import EmailFactory, EmailServiceInterface
from .push import PushFactory, PushProviderInterface

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Service container for infrastructure dependencies and domain services.

    Implements lazy initialization and caching of service instances.
    Singleton: every ServiceContainer() is the same object.
    """

    _instance: Optional["ServiceContainer"] = None
    _initialized: bool = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self._services = {}
            self._initialized = True
            logger.info("Service container initialized")

    def _get(self, name: str, factory):
        if name not in self._services:
            self._services[name] = factory()
            logger.debug(f"Created {name}: {type(self._services[name]).__name__}")
        return self._services[name]

    # ===== Infrastructure =====

    def email(self, backend: Optional[str] = None) -> EmailServiceInterface:
        """
        Args:
            backend: 'smtp' or 'mock'; replaces the cached instance when given
        """
        if backend is not None:
            self._services["email"] = EmailFactory.create(backend)
        return self._get("email", EmailFactory.create)

    def push(self, backend: Optional[str] = None) -> PushProviderInterface:
        """
        Args:
            backend: 'onesignal' or 'mock'; replaces the cached instance when given
        """
        if backend is not None:
            self._services["push"] = PushFactory.create(backend)
        return self._get("push", PushFactory.create)

    def redis(self):
        """Shared Redis client for presence and the email job index."""
        return self._get("redis", lambda: redis.from_url(settings.REDIS_URL, decode_responses=True))

    # ===== Accounts =====

    def auth_service(self):
        from authentication.domain.services import AuthService

        return self._get("auth_service", AuthService)

    def kyc_service(self):
        from authentication.domain.services import KycService

        return self._get("kyc_service", lambda: KycService(dispatcher=self.notification_dispatcher()))

    def address_service(self):
        from authentication.domain.services import AddressService

        return self._get("address_service", AddressService)

    def admin_service(self):
        from authentication.domain.services import AdminService

        return self._get("admin_service", AdminService)

    # ===== Marketplace =====

    def catalog_service(self):
        from marketplace.catalog.domain.services import CatalogService

        return self._get("catalog_service", CatalogService)

    def review_service(self):
        from marketplace.catalog.domain.services import ReviewService

        return self._get("review_service", ReviewService)

    def agent_service(self):
        from marketplace.agents.domain.services import AgentService

        return self._get("agent_service", AgentService)

    def trail_service(self):
        from marketplace.ordering.domain.services.trail_service import OrderTrailService

        return self._get("trail_service", OrderTrailService)

    def order_service(self):
        from marketplace.ordering.domain.services.order_service import OrderService

        return self._get(
            "order_service",
            lambda: OrderService(
                trail_service=self.trail_service(),
                agent_service=self.agent_service(),
                dispatcher=self.notification_dispatcher(),
            ),
        )

    def shopping_list_service(self):
        from marketplace.ordering.domain.services.shopping_list_service import ShoppingListService

        return self._get(
            "shopping_list_service",
            lambda: ShoppingListService(
                agent_service=self.agent_service(),
                order_service=self.order_service(),
                dispatcher=self.notification_dispatcher(),
                discount_service=self.discount_service(),
            ),
        )

    def discount_service(self):
        from marketplace.promotions.domain.services import DiscountService

        return self._get("discount_service", DiscountService)

    def meal_service(self):
        from marketplace.meals.domain.services import MealService

        return self._get("meal_service", lambda: MealService(shopping_list_service=self.shopping_list_service()))

    # ===== Notifications =====

    def notification_service(self):
        from notifications.domain.services import NotificationService

        return self._get("notification_service", NotificationService)

    def presence_service(self):
        from notifications.domain.services import UserPresenceService

        return self._get("presence_service", lambda: UserPresenceService(client=self.redis()))

    def notification_dispatcher(self):
        from notifications.domain.services import SmartNotificationDispatcher

        return self._get(
            "notification_dispatcher",
            lambda: SmartNotificationDispatcher(
                notification_service=self.notification_service(),
                presence_service=self.presence_service(),
                push_provider=self.push(),
                redis_client=self.redis(),
            ),
        )

    # ===== Chat and support =====

    def chat_service(self):
        from chat.domain.services import ChatService

        return self._get(
            "chat_service",
            lambda: ChatService(dispatcher=self.notification_dispatcher(), presence_service=self.presence_service()),
        )

    def support_service(self):
        from support.domain.services import SupportTicketService

        return self._get("support_service", lambda: SupportTicketService(dispatcher=self.notification_dispatcher()))

    # ===== Lifecycle =====

    def reset(self):
        """Drop every cached instance. Useful between tests."""
        self._services = {}
        logger.info("Service container reset")

    def configure_for_testing(self, redis_client=None):
        """
        Start from a clean container with in-memory email and push backends.

        Args:
            redis_client: Stand-in Redis client shared by presence and the
                email job index
        """
        self.reset()
        self._services["email"] = EmailFactory.create("mock")
        self._services["push"] = PushFactory.create("mock")
        if redis_client is not None:
            self._services["redis"] = redis_client
        logger.info("Service container configured for testing")


# Global singleton instance
container = ServiceContainer()


def get_email() -> EmailServiceInterface:
    return container.email()


def get_push() -> PushProviderInterface:
    return container.push()

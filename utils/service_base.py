"""
Service-layer foundation shared by every app.

Services return a ServiceResult instead of raising for expected failures
(missing rows, forbidden transitions, bad input). Views turn failed results
into typed HTTP errors through utils.exceptions.raise_for_result, so the error
vocabulary below is the contract between the two layers.
"""

import logging
import time
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Outcome of a service operation.

    Attributes:
        ok: True if operation succeeded, False otherwise
        value: The success value (present if ok=True)
        error: Error code from ErrorCodes (present if ok=False)
        error_detail: Human-readable error message (present if ok=False)

    Examples:
        >>> result = service_ok(order)
        >>> result = service_err(ErrorCodes.ORDER_NOT_FOUND, "Order not found")
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_detail: Optional[str] = None

    def to_dict(self) -> dict:
        if self.ok:
            return {"success": True, "data": self.value}
        return {
            "success": False,
            "error": {"code": self.error, "message": self.error_detail},
        }


def service_ok(value: T = None) -> ServiceResult[T]:
    """Create a successful ServiceResult."""
    return ServiceResult(ok=True, value=value)


def service_err(error: str, error_detail: str = "") -> ServiceResult:
    """
    Create a failed ServiceResult.

    Args:
        error: Error code (e.g., "order_not_found", "invalid_transition")
        error_detail: Human-readable error message, defaults to the code
    """
    return ServiceResult(ok=False, error=error, error_detail=error_detail or error)


class BaseService:
    """
    Base class for all services.

    Provides a logger named after the concrete service class and a timing
    decorator that also reports ServiceResult failures.

    Usage:
        class OrderService(BaseService):
            @BaseService.log_performance
            def get_order(self, order_id, user):
                self.logger.info(f"Fetching order {order_id}")
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)

    @staticmethod
    def log_performance(func: Callable) -> Callable:
        """Log execution time of a service method and the outcome of its ServiceResult."""

        @wraps(func)
        def wrapper(self, *args, **kwargs):
            start_time = time.time()
            method_name = f"{self.__class__.__name__}.{func.__name__}"

            try:
                self.logger.debug(f"{method_name} started")
                result = func(self, *args, **kwargs)
                elapsed_time = (time.time() - start_time) * 1000

                if isinstance(result, ServiceResult):
                    if result.ok:
                        self.logger.info(f"{method_name} completed successfully in {elapsed_time:.2f}ms")
                    else:
                        self.logger.warning(
                            f"{method_name} failed with error '{result.error}' in {elapsed_time:.2f}ms"
                        )
                else:
                    self.logger.info(f"{method_name} completed in {elapsed_time:.2f}ms")

                return result

            except Exception as e:
                elapsed_time = (time.time() - start_time) * 1000
                self.logger.error(
                    f"{method_name} raised exception after {elapsed_time:.2f}ms: {str(e)}",
                    exc_info=True,
                )
                raise

        return wrapper


class ErrorCodes:
    """Standard error codes used across services."""

    # Generic
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    INVALID_INPUT = "invalid_input"
    CONFLICT = "conflict"
    INTERNAL_ERROR = "internal_error"

    # Auth / accounts
    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_BLOCKED = "account_blocked"
    ACCOUNT_DEACTIVATED = "account_deactivated"
    EMAIL_NOT_VERIFIED = "email_not_verified"
    EMAIL_TAKEN = "email_taken"
    USER_NOT_FOUND = "user_not_found"
    KYC_INCOMPLETE = "kyc_incomplete"

    # Permission
    PERMISSION_DENIED = "permission_denied"
    NOT_AGENT = "not_agent"
    NOT_OWNER = "not_owner"

    # Catalogue
    MARKET_NOT_FOUND = "market_not_found"
    PRODUCT_NOT_FOUND = "product_not_found"
    CATEGORY_NOT_FOUND = "category_not_found"
    REVIEW_NOT_FOUND = "review_not_found"
    DUPLICATE_REVIEW = "duplicate_review"

    # Shopping lists
    LIST_NOT_FOUND = "shopping_list_not_found"
    LIST_ITEM_NOT_FOUND = "shopping_list_item_not_found"
    LIST_READ_ONLY = "shopping_list_read_only"

    # Orders
    ORDER_NOT_FOUND = "order_not_found"
    INVALID_ORDER_STATE = "invalid_order_state"
    INVALID_TRANSITION = "invalid_transition"
    AGENT_NOT_ELIGIBLE = "agent_not_eligible"
    NO_AGENT_AVAILABLE = "no_agent_available"

    # Promotions and meals
    DISCOUNT_NOT_FOUND = "discount_not_found"
    INVALID_DISCOUNT = "invalid_discount"
    MEAL_NOT_FOUND = "meal_not_found"

    # Notifications / support / chat
    NOTIFICATION_NOT_FOUND = "notification_not_found"
    TICKET_NOT_FOUND = "ticket_not_found"
    TICKET_CLOSED = "ticket_closed"
    CHAT_INACTIVE = "chat_inactive"
    ADDRESS_NOT_FOUND = "address_not_found"
    LOCATION_NOT_FOUND = "location_not_found"

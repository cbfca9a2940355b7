from .discount_service import DiscountService

__all__ = ["DiscountService"]

from .meal_service import MealService

__all__ = ["MealService"]

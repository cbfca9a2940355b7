from .meal import Meal, MealIngredient

__all__ = ["Meal", "MealIngredient"]

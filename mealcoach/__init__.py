"""MealCoach - meal and activity logging through a coaching chat."""

__version__ = "1.0.0"

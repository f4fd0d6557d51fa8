"""
Library Models - saved meals, favorite foods and manually logged exercise.
"""

import datetime
import math
import uuid
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field


class ExerciseType(BaseModel):
    name: str
    emoji: str
    calories_per_minute: float


EXERCISE_TYPES = [
    ExerciseType(name="Running", emoji="🏃", calories_per_minute=10),
    ExerciseType(name="Walking", emoji="🚶", calories_per_minute=4),
    ExerciseType(name="Cycling", emoji="🚴", calories_per_minute=8),
    ExerciseType(name="Swimming", emoji="🏊", calories_per_minute=11),
    ExerciseType(name="Gym/Weights", emoji="🏋️", calories_per_minute=6),
    ExerciseType(name="Yoga", emoji="🧘", calories_per_minute=3),
    ExerciseType(name="Sports", emoji="⚽", calories_per_minute=7),
    ExerciseType(name="Dancing", emoji="💃", calories_per_minute=5),
]

DEFAULT_CALORIES_PER_MINUTE = 5.0


def estimate_calories_burned(exercise_type: str, duration_minutes: float) -> float:
    """Table estimate; unknown types burn DEFAULT_CALORIES_PER_MINUTE."""
    rate = next(
        (t.calories_per_minute for t in EXERCISE_TYPES if t.name == exercise_type),
        DEFAULT_CALORIES_PER_MINUTE,
    )
    return rate * duration_minutes


class SavedMeal(BaseModel):
    """A named message the user can send again with one tap."""
    name: str = Field(..., min_length=1, max_length=100)
    content: str = Field(..., min_length=1, max_length=4000)


class FavoriteFood(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    content: str = Field(..., min_length=1, max_length=4000)
    use_count: int = 0
    last_used: Optional[datetime.datetime] = None

    def matches(self, query: str) -> bool:
        query = query.strip().lower()
        return query in self.name.lower() or query in self.content.lower()


class Exercise(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: str
    duration_minutes: float = Field(..., gt=0)
    calories_burned: float = 0.0
    notes: str = ""
    timestamp: datetime.datetime


class ExerciseLog(BaseModel):
    """Exercises logged on one calendar day."""
    date: datetime.date
    exercises: List[Exercise] = Field(default_factory=list)

    @computed_field
    @property
    def total_calories_burned(self) -> float:
        return math.fsum(e.calories_burned for e in self.exercises)

"""
Profile Models - targets and health conditions that shape the coach's
system instruction and the daily goal checks.
"""

from typing import List, Literal, Optional
from pydantic import BaseModel, Field


class DailyTargets(BaseModel):
    """Daily nutritional targets."""
    calories: float = Field(2000, ge=0)
    protein: float = Field(150, ge=0)  # grams
    fat: float = Field(65, ge=0)  # grams
    is_custom: bool = False


class UserProfile(BaseModel):
    """The single user's profile."""
    name: Optional[str] = None
    age: Optional[int] = Field(None, ge=0, le=130)
    gender: Optional[str] = None
    weight_kg: Optional[float] = Field(None, gt=0)
    height_cm: Optional[float] = Field(None, gt=0)
    activity_level: Optional[str] = None  # sedentary, light, moderate, active
    goal: Literal["lose_weight", "maintain", "gain_muscle"] = "maintain"
    daily_targets: DailyTargets = Field(default_factory=DailyTargets)
    health_conditions: List[str] = Field(default_factory=list)

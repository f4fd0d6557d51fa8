"""
Daily Summary Models - per-date totals and goal flags.
"""

import datetime
from pydantic import BaseModel, Field

from .profile import DailyTargets


class DailyTotals(BaseModel):
    calories_in: float = 0.0
    protein: float = 0.0
    fat: float = 0.0
    calories_burned: float = 0.0
    minutes_active: float = 0.0


class GoalsMet(BaseModel):
    calories: bool = False
    protein: bool = False
    fat: bool = False

    @property
    def count(self) -> int:
        return sum((self.calories, self.protein, self.fat))


class DailySummary(BaseModel):
    """
    Summary of one calendar day, always recomputed in full from the log.

    ``targets_snapshot`` is a copy of the targets at aggregation time, so
    editing the profile later never changes a stored summary.
    """
    date: datetime.date
    totals: DailyTotals = Field(default_factory=DailyTotals)
    targets_snapshot: DailyTargets = Field(default_factory=DailyTargets)
    entries_logged: int = 0
    goals_met: GoalsMet = Field(default_factory=GoalsMet)

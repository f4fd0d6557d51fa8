"""Models module."""

from .entries import (
    EntryRole, ConversationEntry, NutritionRecord, ActivityRecord,
    NutritionRecords, ActivityRecords, StructuredPayload, Attachment,
    DEFAULT_ACTIVITY_EMOJI,
)
from .profile import DailyTargets, UserProfile
from .summary import DailySummary, DailyTotals, GoalsMet
from .library import (
    SavedMeal, FavoriteFood, Exercise, ExerciseLog, ExerciseType,
    EXERCISE_TYPES, estimate_calories_burned,
)

__all__ = [
    'EntryRole', 'ConversationEntry', 'NutritionRecord', 'ActivityRecord',
    'NutritionRecords', 'ActivityRecords', 'StructuredPayload', 'Attachment',
    'DEFAULT_ACTIVITY_EMOJI',
    'DailyTargets', 'UserProfile',
    'DailySummary', 'DailyTotals', 'GoalsMet',
    'SavedMeal', 'FavoriteFood', 'Exercise', 'ExerciseLog', 'ExerciseType',
    'EXERCISE_TYPES', 'estimate_calories_burned',
]

"""
Tracker Storage - the profile, the daily summaries and the user's library
(saved meals, favorite foods, exercise logs), each stored as one JSON blob
under a fixed key of a KeyValueStore.
"""

import json
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..models.library import Exercise, ExerciseLog, FavoriteFood, SavedMeal
from ..models.profile import UserProfile
from ..models.summary import DailySummary
from .interface import KeyValueStore
from .local_storage import LocalKeyValueStore
from .memory_storage import InMemoryKeyValueStore

logger = logging.getLogger(__name__)

PROFILE_KEY = "user-profile"
SUMMARIES_KEY = "daily-summaries"
SAVED_MEALS_KEY = "saved-meals"
FAVORITE_FOODS_KEY = "favorite-foods"
EXERCISE_LOGS_KEY = "exercise-logs"

PERIOD_DAYS = {"7days": 7, "30days": 30, "all": None}

M = TypeVar("M", bound=BaseModel)


class TrackerStorage:
    """
    Persists the profile, the date-keyed summary map and the library lists.
    """

    def __init__(self, store: KeyValueStore):
        """
        Args:
            store: KeyValueStore implementation
        """
        self.store = store

    async def load_profile(self) -> UserProfile:
        """Load the profile, falling back to defaults if none is stored."""
        content = await self.store.get(PROFILE_KEY)
        if content is None:
            return UserProfile()
        try:
            return UserProfile.model_validate_json(content)
        except ValidationError as e:
            logger.error(f"Stored profile is unreadable, using defaults: {e}")
            return UserProfile()

    async def save_profile(self, profile: UserProfile) -> None:
        await self.store.set(PROFILE_KEY, profile.model_dump_json())

    async def load_summaries(self) -> Dict[date, DailySummary]:
        """Load all summaries keyed by date, in date order."""
        content = await self.store.get(SUMMARIES_KEY)
        if content is None:
            return {}
        try:
            raw = json.loads(content)
            summaries = [DailySummary.model_validate(item) for item in raw]
        except (json.JSONDecodeError, TypeError, ValidationError) as e:
            logger.error(f"Stored summaries are unreadable, starting empty: {e}")
            return {}
        return {s.date: s for s in sorted(summaries, key=lambda s: s.date)}

    async def _save_summaries(self, summaries: Dict[date, DailySummary]) -> None:
        ordered = [summaries[d].model_dump(mode="json") for d in sorted(summaries)]
        await self.store.set(SUMMARIES_KEY, json.dumps(ordered, ensure_ascii=False))

    async def upsert_summary(self, summary: DailySummary) -> None:
        """Insert or overwrite the summary for its date. Never merges."""
        summaries = await self.load_summaries()
        summaries[summary.date] = summary
        await self._save_summaries(summaries)
        logger.debug(f"Summary upserted for {summary.date.isoformat()}")

    async def get_summary(self, day: date) -> Optional[DailySummary]:
        return (await self.load_summaries()).get(day)

    async def list_summaries(self, period: str = "7days",
                             today: Optional[date] = None) -> List[DailySummary]:
        """
        Summaries within a period, newest first.

        Args:
            period: "7days", "30days" or "all"
            today: End of the period, defaults to the current UTC date
        """
        if period not in PERIOD_DAYS:
            raise ValueError(f"Unsupported period: {period}")
        today = today or datetime.now(timezone.utc).date()
        days = PERIOD_DAYS[period]
        start = today - timedelta(days=days) if days is not None else date.min

        summaries = await self.load_summaries()
        selected = [s for d, s in summaries.items() if start <= d <= today]
        return sorted(selected, key=lambda s: s.date, reverse=True)

    # ---------------------------------------------------------------- library

    async def _load_list(self, key: str, model: Type[M]) -> List[M]:
        content = await self.store.get(key)
        if content is None:
            return []
        try:
            return [model.model_validate(item) for item in json.loads(content)]
        except (json.JSONDecodeError, TypeError, ValidationError) as e:
            logger.error(f"Stored {key} are unreadable, starting empty: {e}")
            return []

    async def _save_list(self, key: str, items: List[BaseModel]) -> None:
        payload = [item.model_dump(mode="json") for item in items]
        await self.store.set(key, json.dumps(payload, ensure_ascii=False))

    async def list_saved_meals(self) -> List[SavedMeal]:
        return await self._load_list(SAVED_MEALS_KEY, SavedMeal)

    async def save_meal(self, meal: SavedMeal) -> SavedMeal:
        """Save a meal. A meal with the same name, ignoring case, is replaced in place."""
        meal = meal.model_copy(update={"name": meal.name.strip()})
        if not meal.name:
            raise ValueError("Meal name cannot be empty")
        meals = await self.list_saved_meals()
        for i, existing in enumerate(meals):
            if existing.name.lower() == meal.name.lower():
                meals[i] = meal
                break
        else:
            meals.append(meal)
        await self._save_list(SAVED_MEALS_KEY, meals)
        return meal

    async def get_saved_meal(self, name: str) -> Optional[SavedMeal]:
        return next((m for m in await self.list_saved_meals() if m.name == name), None)

    async def delete_saved_meal(self, name: str) -> bool:
        meals = await self.list_saved_meals()
        kept = [m for m in meals if m.name != name]
        if len(kept) == len(meals):
            return False
        await self._save_list(SAVED_MEALS_KEY, kept)
        return True

    async def list_favorites(self, query: str = "") -> List[FavoriteFood]:
        """Favorites, most used first, optionally filtered by name or content."""
        favorites = await self._load_list(FAVORITE_FOODS_KEY, FavoriteFood)
        if query.strip():
            favorites = [f for f in favorites if f.matches(query)]
        return sorted(favorites, key=lambda f: f.use_count, reverse=True)

    async def add_favorite(self, food: FavoriteFood) -> FavoriteFood:
        """Add a favorite, or replace the content of one with the same name."""
        food = food.model_copy(update={"name": food.name.strip()})
        favorites = await self._load_list(FAVORITE_FOODS_KEY, FavoriteFood)
        for i, existing in enumerate(favorites):
            if existing.name.lower() == food.name.lower():
                food = existing.model_copy(update={"name": food.name, "content": food.content})
                favorites[i] = food
                break
        else:
            favorites.append(food)
        await self._save_list(FAVORITE_FOODS_KEY, favorites)
        return food

    async def use_favorite(self, name: str, now: datetime) -> Optional[FavoriteFood]:
        """Count one use of a favorite and return it, or None if unknown."""
        favorites = await self._load_list(FAVORITE_FOODS_KEY, FavoriteFood)
        for i, existing in enumerate(favorites):
            if existing.name == name:
                favorites[i] = existing.model_copy(
                    update={"use_count": existing.use_count + 1, "last_used": now}
                )
                await self._save_list(FAVORITE_FOODS_KEY, favorites)
                return favorites[i]
        return None

    async def delete_favorite(self, name: str) -> bool:
        favorites = await self._load_list(FAVORITE_FOODS_KEY, FavoriteFood)
        kept = [f for f in favorites if f.name != name]
        if len(kept) == len(favorites):
            return False
        await self._save_list(FAVORITE_FOODS_KEY, kept)
        return True

    async def list_exercise_logs(self) -> List[ExerciseLog]:
        """Exercise logs, newest day first."""
        logs = await self._load_list(EXERCISE_LOGS_KEY, ExerciseLog)
        return sorted(logs, key=lambda log: log.date, reverse=True)

    async def get_exercise_log(self, day: date) -> ExerciseLog:
        logs = await self._load_list(EXERCISE_LOGS_KEY, ExerciseLog)
        return next((log for log in logs if log.date == day), ExerciseLog(date=day))

    async def add_exercise(self, exercise: Exercise, day: date) -> ExerciseLog:
        """Append an exercise to the day's log and return the updated log."""
        logs = await self._load_list(EXERCISE_LOGS_KEY, ExerciseLog)
        log = next((log for log in logs if log.date == day), None)
        if log is None:
            log = ExerciseLog(date=day)
            logs.append(log)
        log.exercises.append(exercise)
        await self._save_list(EXERCISE_LOGS_KEY, sorted(logs, key=lambda log: log.date))
        logger.debug(f"Exercise logged for {day.isoformat()}: {exercise.type}")
        return log

    async def delete_exercise(self, exercise_id: str) -> bool:
        """Remove an exercise by id. A day left without exercises is dropped."""
        logs = await self._load_list(EXERCISE_LOGS_KEY, ExerciseLog)
        found = False
        for log in logs:
            kept = [e for e in log.exercises if e.id != exercise_id]
            if len(kept) != len(log.exercises):
                log.exercises = kept
                found = True
        if not found:
            return False
        await self._save_list(EXERCISE_LOGS_KEY, [log for log in logs if log.exercises])
        return True


def create_key_value_store(storage_type: str, local_path: str, quota_bytes: int) -> KeyValueStore:
    """Create the configured KeyValueStore."""
    if storage_type == "local":
        return LocalKeyValueStore(local_path, quota_bytes=quota_bytes)
    if storage_type == "memory":
        return InMemoryKeyValueStore(quota_bytes=quota_bytes)
    raise ValueError(f"Unsupported storage type: {storage_type}")

"""
Tests for the key-value stores and tracker storage.
"""

import errno
from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from mealcoach.core.errors import StorageQuotaExceeded
from mealcoach.models.library import Exercise, FavoriteFood, SavedMeal, estimate_calories_burned
from mealcoach.models.profile import DailyTargets, UserProfile
from mealcoach.models.summary import DailySummary, DailyTotals
from mealcoach.storage.local_storage import LocalKeyValueStore
from mealcoach.storage.memory_storage import InMemoryKeyValueStore
from mealcoach.storage.tracker_storage import (
    PROFILE_KEY,
    SAVED_MEALS_KEY,
    SUMMARIES_KEY,
    TrackerStorage,
    create_key_value_store,
)

TODAY = date(2026, 10, 19)


def summary_for(day, calories=0.0):
    return DailySummary(date=day, totals=DailyTotals(calories_in=calories))


class TestLocalKeyValueStore:
    """Tests for LocalKeyValueStore."""

    @pytest.mark.asyncio
    async def test_set_and_get(self, tmp_path):
        store = LocalKeyValueStore(str(tmp_path))
        await store.set("user-profile", '{"name": "Sam"}')

        assert await store.get("user-profile") == '{"name": "Sam"}'
        assert (tmp_path / "user-profile.json").exists()

    @pytest.mark.asyncio
    async def test_get_missing(self, tmp_path):
        store = LocalKeyValueStore(str(tmp_path))
        assert await store.get("nothing-here") is None

    @pytest.mark.asyncio
    async def test_delete(self, tmp_path):
        store = LocalKeyValueStore(str(tmp_path))
        await store.set("k", "v")

        assert await store.delete("k") is True
        assert await store.delete("k") is False
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_invalid_key(self, tmp_path):
        store = LocalKeyValueStore(str(tmp_path))
        with pytest.raises(ValueError):
            await store.set("../escape", "v")

    @pytest.mark.asyncio
    async def test_quota(self, tmp_path):
        store = LocalKeyValueStore(str(tmp_path), quota_bytes=20)
        await store.set("a", "x" * 15)

        with pytest.raises(StorageQuotaExceeded):
            await store.set("b", "x" * 10)

        # Overwriting counts the replaced value as freed
        await store.set("a", "y" * 20)
        assert await store.size_bytes() == 20
        assert await store.get("b") is None

    @pytest.mark.asyncio
    async def test_failed_write_keeps_previous_value(self, tmp_path):
        store = LocalKeyValueStore(str(tmp_path))
        await store.set("daily-summaries", '[{"date": "2026-10-19"}]')

        handle = MagicMock()
        handle.write = AsyncMock(side_effect=OSError(errno.ENOSPC, "No space left on device"))
        opened = MagicMock()
        opened.__aenter__ = AsyncMock(return_value=handle)
        opened.__aexit__ = AsyncMock(return_value=False)

        with patch("mealcoach.storage.local_storage.aiofiles.open", return_value=opened):
            with pytest.raises(StorageQuotaExceeded):
                await store.set("daily-summaries", "[]")

        assert await store.get("daily-summaries") == '[{"date": "2026-10-19"}]'
        assert [p.name for p in tmp_path.iterdir()] == ["daily-summaries.json"]

    @pytest.mark.asyncio
    async def test_overwrite_replaces_value(self, tmp_path):
        store = LocalKeyValueStore(str(tmp_path))
        await store.set("user-profile", '{"name": "Sam"}')
        await store.set("user-profile", '{"name": "Alex"}')

        assert await store.get("user-profile") == '{"name": "Alex"}'
        assert [p.name for p in tmp_path.iterdir()] == ["user-profile.json"]


class TestInMemoryKeyValueStore:
    """Tests for InMemoryKeyValueStore."""

    @pytest.mark.asyncio
    async def test_roundtrip_and_quota(self):
        store = InMemoryKeyValueStore(quota_bytes=10)
        await store.set("k", "12345")
        assert await store.get("k") == "12345"

        with pytest.raises(StorageQuotaExceeded):
            await store.set("other", "123456")
        assert await store.size_bytes() == 5

    def test_factory(self, tmp_path):
        assert isinstance(create_key_value_store("memory", "", 100), InMemoryKeyValueStore)
        assert isinstance(create_key_value_store("local", str(tmp_path), 100), LocalKeyValueStore)
        with pytest.raises(ValueError):
            create_key_value_store("s3", "", 100)


class TestTrackerStorage:
    """Tests for TrackerStorage."""

    @pytest.mark.asyncio
    async def test_default_profile(self, tracker):
        profile = await tracker.load_profile()
        assert profile.daily_targets.calories == 2000
        assert profile.goal == "maintain"

    @pytest.mark.asyncio
    async def test_profile_roundtrip(self, tracker):
        profile = UserProfile(name="Sam", goal="lose_weight",
                              daily_targets=DailyTargets(calories=1600, is_custom=True),
                              health_conditions=["insulin resistance"])
        await tracker.save_profile(profile)
        assert await tracker.load_profile() == profile

    @pytest.mark.asyncio
    async def test_unreadable_profile(self, store, tracker):
        await store.set(PROFILE_KEY, "not json")
        assert await tracker.load_profile() == UserProfile()

    @pytest.mark.asyncio
    async def test_upsert_overwrites(self, tracker):
        await tracker.upsert_summary(summary_for(TODAY, 500))
        await tracker.upsert_summary(summary_for(TODAY, 300))

        summaries = await tracker.load_summaries()
        assert len(summaries) == 1
        assert summaries[TODAY].totals.calories_in == 300

    @pytest.mark.asyncio
    async def test_summaries_kept_in_date_order(self, store, tracker):
        await tracker.upsert_summary(summary_for(TODAY))
        await tracker.upsert_summary(summary_for(TODAY - timedelta(days=3)))

        assert list(await tracker.load_summaries()) == [TODAY - timedelta(days=3), TODAY]
        raw = await store.get(SUMMARIES_KEY)
        assert raw.index("2026-10-16") < raw.index("2026-10-19")

    @pytest.mark.asyncio
    async def test_unreadable_summaries(self, store, tracker):
        await store.set(SUMMARIES_KEY, '{"not": "a list"}')
        assert await tracker.load_summaries() == {}

    @pytest.mark.asyncio
    async def test_get_summary_missing(self, tracker):
        assert await tracker.get_summary(TODAY) is None

    @pytest.mark.asyncio
    async def test_list_periods(self, tracker):
        for days_ago in (0, 3, 7, 8, 29, 31):
            await tracker.upsert_summary(summary_for(TODAY - timedelta(days=days_ago)))

        week = await tracker.list_summaries("7days", today=TODAY)
        month = await tracker.list_summaries("30days", today=TODAY)
        everything = await tracker.list_summaries("all", today=TODAY)

        assert [s.date for s in week] == [TODAY - timedelta(days=d) for d in (0, 3, 7)]
        assert len(month) == 5
        assert len(everything) == 6
        assert everything[0].date == TODAY

    @pytest.mark.asyncio
    async def test_list_bad_period(self, tracker):
        with pytest.raises(ValueError):
            await tracker.list_summaries("1year")

    @pytest.mark.asyncio
    async def test_quota_propagates(self):
        tracker = TrackerStorage(InMemoryKeyValueStore(quota_bytes=10))
        with pytest.raises(StorageQuotaExceeded):
            await tracker.upsert_summary(summary_for(TODAY))


class TestLibraryStorage:
    """Tests for saved meals, favorites and exercise logs."""

    @pytest.mark.asyncio
    async def test_save_meal_replaces_same_name_ignoring_case(self, tracker):
        await tracker.save_meal(SavedMeal(name="Breakfast", content="2 eggs and toast"))
        await tracker.save_meal(SavedMeal(name="Lunch", content="chicken salad"))
        await tracker.save_meal(SavedMeal(name="  breakfast ", content="oatmeal"))

        meals = await tracker.list_saved_meals()
        assert [(m.name, m.content) for m in meals] == [
            ("breakfast", "oatmeal"),
            ("Lunch", "chicken salad"),
        ]

    @pytest.mark.asyncio
    async def test_save_meal_blank_name(self, tracker):
        with pytest.raises(ValueError):
            await tracker.save_meal(SavedMeal(name="   ", content="oatmeal"))

    @pytest.mark.asyncio
    async def test_delete_saved_meal_by_exact_name(self, tracker):
        await tracker.save_meal(SavedMeal(name="Lunch", content="chicken salad"))

        assert await tracker.delete_saved_meal("lunch") is False
        assert await tracker.delete_saved_meal("Lunch") is True
        assert await tracker.list_saved_meals() == []

    @pytest.mark.asyncio
    async def test_unreadable_saved_meals(self, store, tracker):
        await store.set(SAVED_MEALS_KEY, "{broken")
        assert await tracker.list_saved_meals() == []

    @pytest.mark.asyncio
    async def test_favorites_sorted_by_use(self, tracker):
        now = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
        await tracker.add_favorite(FavoriteFood(name="Greek yogurt", content="200g greek yogurt"))
        await tracker.add_favorite(FavoriteFood(name="Banana", content="one banana"))

        used = await tracker.use_favorite("Banana", now=now)
        await tracker.use_favorite("Banana", now=now)

        assert used.use_count == 1
        assert used.last_used == now
        favorites = await tracker.list_favorites()
        assert [(f.name, f.use_count) for f in favorites] == [("Banana", 2), ("Greek yogurt", 0)]

    @pytest.mark.asyncio
    async def test_favorite_search_and_delete(self, tracker):
        await tracker.add_favorite(FavoriteFood(name="Greek yogurt", content="200g greek yogurt"))
        await tracker.add_favorite(FavoriteFood(name="Snack", content="one BANANA"))

        assert [f.name for f in await tracker.list_favorites("banana")] == ["Snack"]
        assert [f.name for f in await tracker.list_favorites("GREEK")] == ["Greek yogurt"]
        assert await tracker.use_favorite("Nothing", now=datetime.now(timezone.utc)) is None

        assert await tracker.delete_favorite("Snack") is True
        assert await tracker.delete_favorite("Snack") is False

    @pytest.mark.asyncio
    async def test_readding_favorite_keeps_use_count(self, tracker):
        await tracker.add_favorite(FavoriteFood(name="Banana", content="one banana"))
        await tracker.use_favorite("Banana", now=datetime.now(timezone.utc))

        food = await tracker.add_favorite(FavoriteFood(name="banana", content="two bananas"))

        assert food.use_count == 1
        assert food.content == "two bananas"
        assert len(await tracker.list_favorites()) == 1

    @pytest.mark.asyncio
    async def test_exercise_log_totals(self, tracker):
        now = datetime(2026, 10, 19, 7, 30, tzinfo=timezone.utc)
        run = Exercise(type="Running", duration_minutes=30, calories_burned=300, timestamp=now)
        yoga = Exercise(type="Yoga", duration_minutes=20, calories_burned=60, timestamp=now)

        await tracker.add_exercise(run, day=TODAY)
        log = await tracker.add_exercise(yoga, day=TODAY)

        assert log.total_calories_burned == 360
        stored = await tracker.get_exercise_log(TODAY)
        assert [e.type for e in stored.exercises] == ["Running", "Yoga"]
        assert stored.model_dump()["total_calories_burned"] == 360

    @pytest.mark.asyncio
    async def test_delete_last_exercise_drops_day(self, tracker):
        now = datetime(2026, 10, 19, 7, 30, tzinfo=timezone.utc)
        run = Exercise(type="Running", duration_minutes=30, calories_burned=300, timestamp=now)
        walk = Exercise(type="Walking", duration_minutes=40, calories_burned=160, timestamp=now)
        await tracker.add_exercise(run, day=TODAY - timedelta(days=1))
        await tracker.add_exercise(walk, day=TODAY)

        assert await tracker.delete_exercise(walk.id) is True
        assert await tracker.delete_exercise(walk.id) is False

        assert [log.date for log in await tracker.list_exercise_logs()] == [TODAY - timedelta(days=1)]
        assert (await tracker.get_exercise_log(TODAY)).exercises == []

    def test_estimate_calories_burned(self):
        assert estimate_calories_burned("Swimming", 10) == 110
        assert estimate_calories_burned("Rowing", 10) == 50

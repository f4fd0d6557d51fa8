"""
Library API endpoints - saved meals, favorite foods and the exercise log.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from ..core.errors import StorageQuotaExceeded
from ..models.library import (
    EXERCISE_TYPES,
    Exercise,
    ExerciseLog,
    ExerciseType,
    FavoriteFood,
    SavedMeal,
    estimate_calories_burned,
)
from ..pipeline.controller import ConversationPipeline
from ..pipeline.factory import get_pipeline
from .chat import dispatch
from .errors import to_http_exception

router = APIRouter(prefix="/library", tags=["library"])


class FavoriteRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    content: str = Field(..., min_length=1, max_length=4000)


class ExerciseRequest(BaseModel):
    type: str = Field(..., min_length=1, max_length=50)
    duration_minutes: float = Field(..., gt=0, le=24 * 60)
    notes: str = Field("", max_length=500)
    calories_burned: Optional[float] = Field(None, ge=0)


def _not_found(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"kind": "not_found", "message": message},
    )


# ------------------------------------------------------------------ saved meals

@router.get("/saved-meals", response_model=List[SavedMeal])
async def list_saved_meals(pipeline: ConversationPipeline = Depends(get_pipeline)):
    return await pipeline.storage.list_saved_meals()


@router.put("/saved-meals", response_model=SavedMeal)
async def save_meal(meal: SavedMeal, pipeline: ConversationPipeline = Depends(get_pipeline)):
    """Save a meal; an existing meal with the same name (any case) is replaced."""
    try:
        return await pipeline.storage.save_meal(meal)
    except (StorageQuotaExceeded, ValueError) as e:
        raise to_http_exception(e) from e


@router.delete("/saved-meals/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_saved_meal(name: str, pipeline: ConversationPipeline = Depends(get_pipeline)):
    if not await pipeline.storage.delete_saved_meal(name):
        raise _not_found(f"No saved meal named {name}")


@router.post("/saved-meals/{name}/send")
async def send_saved_meal(
    name: str,
    stream: bool = Query(False, description="Enable streaming output"),
    pipeline: ConversationPipeline = Depends(get_pipeline),
):
    """Submit a saved meal's content as a new chat message."""
    meal = await pipeline.storage.get_saved_meal(name)
    if meal is None:
        raise _not_found(f"No saved meal named {name}")

    async def operation(on_partial):
        return await pipeline.submit(meal.content, on_partial=on_partial)

    return await dispatch(pipeline, operation, stream)


# ------------------------------------------------------------------- favorites

@router.get("/favorites", response_model=List[FavoriteFood])
async def list_favorites(
    q: str = Query("", max_length=100, description="Match against name or content"),
    pipeline: ConversationPipeline = Depends(get_pipeline),
):
    """Favorite foods, most used first."""
    return await pipeline.storage.list_favorites(q)


@router.post("/favorites", response_model=FavoriteFood)
async def add_favorite(request: FavoriteRequest, pipeline: ConversationPipeline = Depends(get_pipeline)):
    try:
        return await pipeline.storage.add_favorite(
            FavoriteFood(name=request.name, content=request.content)
        )
    except StorageQuotaExceeded as e:
        raise to_http_exception(e) from e


@router.post("/favorites/{name}/use", response_model=FavoriteFood)
async def use_favorite(name: str, pipeline: ConversationPipeline = Depends(get_pipeline)):
    """Count a use of a favorite and return it so its content can be sent."""
    try:
        food = await pipeline.storage.use_favorite(name, now=pipeline.clock())
    except StorageQuotaExceeded as e:
        raise to_http_exception(e) from e
    if food is None:
        raise _not_found(f"No favorite named {name}")
    return food


@router.delete("/favorites/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_favorite(name: str, pipeline: ConversationPipeline = Depends(get_pipeline)):
    if not await pipeline.storage.delete_favorite(name):
        raise _not_found(f"No favorite named {name}")


# -------------------------------------------------------------------- exercise

@router.get("/exercises/types", response_model=List[ExerciseType])
async def list_exercise_types():
    return EXERCISE_TYPES


@router.get("/exercises", response_model=ExerciseLog)
async def get_exercise_log(
    day: Optional[date] = Query(None, description="Defaults to today"),
    pipeline: ConversationPipeline = Depends(get_pipeline),
):
    return await pipeline.storage.get_exercise_log(day or pipeline.today())


@router.post("/exercises", response_model=ExerciseLog)
async def add_exercise(request: ExerciseRequest, pipeline: ConversationPipeline = Depends(get_pipeline)):
    """
    Log an exercise for today. Without an explicit calorie figure the burn
    is estimated from the exercise type.
    """
    calories = request.calories_burned
    if calories is None:
        calories = estimate_calories_burned(request.type, request.duration_minutes)
    exercise = Exercise(
        type=request.type,
        duration_minutes=request.duration_minutes,
        calories_burned=calories,
        notes=request.notes,
        timestamp=pipeline.clock(),
    )
    try:
        return await pipeline.storage.add_exercise(exercise, day=pipeline.today())
    except StorageQuotaExceeded as e:
        raise to_http_exception(e) from e


@router.delete("/exercises/{exercise_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_exercise(exercise_id: str, pipeline: ConversationPipeline = Depends(get_pipeline)):
    if not await pipeline.storage.delete_exercise(exercise_id):
        raise _not_found(f"No exercise with id {exercise_id}")

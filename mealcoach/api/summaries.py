"""
Summary API endpoints - daily totals and goal history.
"""

from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..models.summary import DailySummary
from ..pipeline.controller import ConversationPipeline
from ..pipeline.factory import get_pipeline

router = APIRouter(prefix="/summaries", tags=["summaries"])


@router.get("", response_model=List[DailySummary])
async def list_summaries(
    period: str = Query("7days", pattern="^(7days|30days|all)$"),
    pipeline: ConversationPipeline = Depends(get_pipeline),
):
    """Stored summaries for a period, newest first."""
    return await pipeline.history(period)


@router.get("/today", response_model=DailySummary)
async def today_summary(pipeline: ConversationPipeline = Depends(get_pipeline)):
    """Today's summary computed from the live log."""
    return pipeline.summary_for(pipeline.today())


@router.get("/{day}", response_model=DailySummary)
async def get_summary(day: date, pipeline: ConversationPipeline = Depends(get_pipeline)):
    """The stored summary for one date."""
    summary = await pipeline.storage.get_summary(day)
    if summary is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"kind": "not_found", "message": f"No summary for {day.isoformat()}"},
        )
    return summary

"""
Profile API endpoints.
"""

from fastapi import APIRouter, Depends

from ..core.errors import StorageQuotaExceeded
from ..models.profile import UserProfile
from ..pipeline.controller import ConversationPipeline
from ..pipeline.factory import get_pipeline
from .errors import to_http_exception

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=UserProfile)
async def get_profile(pipeline: ConversationPipeline = Depends(get_pipeline)):
    return pipeline.profile


@router.put("", response_model=UserProfile)
async def update_profile(
    profile: UserProfile,
    pipeline: ConversationPipeline = Depends(get_pipeline),
):
    """
    Replace the profile. New targets and health conditions apply to future
    replies and summaries; stored summaries keep their original targets.
    """
    try:
        return await pipeline.update_profile(profile)
    except StorageQuotaExceeded as e:
        raise to_http_exception(e) from e

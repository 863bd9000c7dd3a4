"""Leaderboard endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from campus.api.deps import get_current_user_id, get_leaderboard_service, get_settings
from campus.config import Settings
from campus.votes.leaderboard import Leaderboard, LeaderboardService, TimeRange

router = APIRouter(prefix="/api/leaderboard", tags=["leaderboard"])


@router.get("", response_model=Leaderboard)
async def get_leaderboard(
    time_range: TimeRange = Query(TimeRange.ALL, description="all or month"),
    department: Optional[str] = Query(None, description="Department filter; all means everyone"),
    limit: Optional[int] = Query(None, ge=1, le=200),
    user_id: str = Depends(get_current_user_id),
    service: LeaderboardService = Depends(get_leaderboard_service),
    settings: Settings = Depends(get_settings),
) -> Leaderboard:
    """Users ranked by upvotes received on their posts and comments."""
    return service.build(
        time_range=time_range,
        department=department,
        limit=limit or settings.leaderboard.default_limit,
        current_user_id=user_id,
    )

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from errors import StoreError
from services.common import utc_today
from services.leaderboard_service import LeaderboardService, window_bounds
from store import get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/leaderboard", tags=["Leaderboard"])


@router.get("/weekly")
def weekly_leaderboard(end_date: Optional[date] = None, store=Depends(get_store)):
    """Top users by check-in points over the 7 days ending today (UTC)."""
    window_end = end_date or utc_today()
    start, end = window_bounds(window_end)
    try:
        checkins = store.list_checkins_between(start, end)
        if not checkins:
            return []
        user_ids = sorted({c["user_id"] for c in checkins})
        users = store.get_users(user_ids)
    except StoreError as e:
        logger.error(f"Error building weekly leaderboard: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    emails = {u["id"]: u.get("email") or "" for u in users}
    return LeaderboardService.weekly(checkins, window_end, emails)

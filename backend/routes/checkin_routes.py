import datetime
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from auth import get_current_user
from errors import StoreError, ValidationError
from services.checkin_service import CheckinService
from services.common import utc_today
from services.streak_service import StreakService
from store import get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/checkin", tags=["Check-ins"])


class CheckinCreate(BaseModel):
    user_id: Optional[str] = None
    achieved_points: Optional[float] = None
    date: Optional[datetime.date] = None
    completed_goals: Optional[dict[str, bool]] = None


class TodayCheckin(BaseModel):
    completed_goals: dict[str, bool] = {}


def refresh_streaks(store, user_id: str, today: datetime.date) -> dict | None:
    """Recompute the user's streak columns; failures are logged, not raised."""
    try:
        checkins = store.list_user_checkins(user_id)
        streaks = {
            "current_streak": StreakService.current_streak(checkins, today),
            "longest_streak": StreakService.longest_streak(checkins),
        }
        store.update_user(user_id, streaks)
        return streaks
    except StoreError as e:
        logger.error(f"Could not refresh streaks for {user_id}: {e}")
        return None


@router.post("")
def create_checkin(body: CheckinCreate, store=Depends(get_store)):
    """Save the day's check-in; a second post for the same day overwrites it."""
    if not body.user_id or body.achieved_points is None:
        raise HTTPException(
            status_code=400,
            detail="Missing required fields: user_id and achieved_points are required",
        )
    try:
        points = CheckinService.validate_points(body.achieved_points)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    today = utc_today()
    try:
        checkin = store.upsert_checkin(body.user_id, body.date or today, points, body.completed_goals)
    except StoreError as e:
        logger.error(f"Error saving checkin for {body.user_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    refresh_streaks(store, body.user_id, today)
    return {"status": "ok", "checkin": checkin}


@router.get("/today")
def get_today(user_id: str = Depends(get_current_user), store=Depends(get_store)):
    """Goals plus today's completion map (all unchecked when there is no check-in yet)."""
    today = utc_today()
    try:
        goals = store.get_goals(user_id)
        checkin = store.get_checkin(user_id, today)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))

    completed = (checkin or {}).get("completed_goals") or {g["name"]: False for g in goals}
    return {"date": today.isoformat(), "goals": goals, "completed_goals": completed, "checkin": checkin}


@router.post("/today")
def save_today(body: TodayCheckin, user_id: str = Depends(get_current_user), store=Depends(get_store)):
    today = utc_today()
    try:
        goals = store.get_goals(user_id)
        points = CheckinService.points_for(goals, body.completed_goals)
        checkin = store.upsert_checkin(user_id, today, points, body.completed_goals)
    except StoreError as e:
        logger.error(f"Error saving today's checkin for {user_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    streaks = refresh_streaks(store, user_id, today)
    return {
        "status": "ok",
        "checkin": checkin,
        "streak": streaks["current_streak"] if streaks else None,
    }

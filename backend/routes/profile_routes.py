from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from auth import get_current_user
from config import PUBLIC_GOALS_LIMIT
from errors import StoreError, ValidationError
from services.checkin_service import CheckinService
from services.common import utc_today
from services.goal_service import GoalService
from services.streak_service import StreakService
from store import get_store

router = APIRouter(prefix="/api", tags=["Profile"])

PROFILE_FIELDS = ("goal_2026", "goal_public", "current_streak", "longest_streak")


class ProfileUpdate(BaseModel):
    goal_2026: Optional[str] = None
    goal_public: Optional[bool] = None


@router.get("/profile")
def get_profile(user_id: str = Depends(get_current_user), store=Depends(get_store)):
    try:
        user = store.get_user(user_id)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {k: user.get(k) for k in PROFILE_FIELDS}


@router.put("/profile")
def update_profile(body: ProfileUpdate, user_id: str = Depends(get_current_user), store=Depends(get_store)):
    data = body.model_dump(exclude_unset=True)
    if "goal_2026" in data:
        try:
            data["goal_2026"] = GoalService.validate_public_goal(data["goal_2026"])
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
    if not data:
        raise HTTPException(status_code=400, detail="Nothing to update")

    try:
        user = store.update_user(user_id, data)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {"status": "success", "data": {k: user.get(k) for k in PROFILE_FIELDS}}


@router.get("/public-goals")
def public_goals(store=Depends(get_store)):
    """Public 2026 goals; only the part of the email before '@' is shown."""
    try:
        rows = store.list_public_goals(PUBLIC_GOALS_LIMIT)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return [
        {
            "id": r["id"],
            "display_label": (r.get("email") or "").split("@")[0],
            "primary_focus": r.get("primary_focus"),
            "goal_2026": r.get("goal_2026"),
            "current_streak": r.get("current_streak") or 0,
            "longest_streak": r.get("longest_streak") or 0,
            "created_at": r.get("created_at"),
        }
        for r in rows
    ]


@router.get("/dashboard")
def dashboard(user_id: str = Depends(get_current_user), store=Depends(get_store)):
    """Check-in stats, streaks and goals for the signed-in user."""
    try:
        checkins = store.list_user_checkins(user_id)
        goals = store.get_goals(user_id)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return {
        **CheckinService.summarize(checkins),
        "current_streak": StreakService.current_streak(checkins, utc_today()),
        "longest_streak": StreakService.longest_streak(checkins),
        "goals": goals,
    }

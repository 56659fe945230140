from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from auth import get_current_user
from errors import StoreError, ValidationError
from services.goal_service import GoalService
from store import get_store

router = APIRouter(prefix="/api/goals", tags=["Goals"])


class GoalItem(BaseModel):
    name: str = ""
    target: Optional[float] = None
    unit: Optional[str] = None


class GoalListUpdate(BaseModel):
    goals: list[GoalItem]


@router.get("")
def list_goals(user_id: str = Depends(get_current_user), store=Depends(get_store)):
    try:
        return store.get_goals(user_id)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.put("")
def save_goals(body: GoalListUpdate, user_id: str = Depends(get_current_user), store=Depends(get_store)):
    """Replace the user's whole goal list."""
    try:
        goals = GoalService.clean([g.model_dump() for g in body.goals])
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    try:
        saved = store.save_goals(user_id, goals)
        return {"status": "success", "data": saved}
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))

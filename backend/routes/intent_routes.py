import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from config import REGISTRATION_LAST_DAY_ONLY
from errors import StoreError
from services.common import utc_today
from services.partner_matcher import PartnerMatcher, is_last_day_of_month, month_string
from store import get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Partners"])


class RegisterIntent(BaseModel):
    user_id: Optional[str] = None
    primary_focus: Optional[str] = None


@router.post("/register-intent")
def register_intent(body: RegisterIntent, store=Depends(get_store)):
    """Record the user's focus for the month, then try to find them a partner."""
    if not body.user_id or not body.primary_focus:
        raise HTTPException(
            status_code=400,
            detail="Missing required fields: user_id and primary_focus are required",
        )

    today = utc_today()
    if REGISTRATION_LAST_DAY_ONLY and not is_last_day_of_month(today):
        raise HTTPException(status_code=403, detail="Registration only allowed on last day of month.")

    try:
        user = store.update_user(body.user_id, {
            "primary_focus": body.primary_focus,
            "joined_month": month_string(today),
            "is_new_user": False,
        })
    except StoreError as e:
        logger.error(f"Error updating user {body.user_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    # Matching is best effort: the registration stands even if it fails.
    partner = None
    try:
        partner = PartnerMatcher.match(store, body.user_id, body.primary_focus)
    except StoreError as e:
        logger.error(f"Error finding partner for {body.user_id}: {e}")

    response = {"status": "ok", "partnerMatched": partner is not None}
    if partner is not None:
        response["partner"] = {
            "id": partner["id"],
            "primary_focus": partner.get("primary_focus"),
            "joined_month": partner.get("joined_month"),
        }
    return response

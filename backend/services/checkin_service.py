"""
checkin_service.py — Rules for daily check-ins.
Points are the share of the day's goals completed, scaled to 0-100.
"""

from errors import ValidationError
from services.common import as_date, round_half_up


class CheckinService:
    @staticmethod
    def validate_points(value) -> int:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError("achieved_points must be a number")
        if value != int(value) or not 0 <= value <= 100:
            raise ValidationError("achieved_points must be a whole number between 0 and 100")
        return int(value)

    @staticmethod
    def points_for(goals: list[dict], completed: dict) -> int:
        """round(done / total * 100); 0 when there are no goals."""
        if not goals:
            return 0
        done = sum(1 for g in goals if completed.get(g.get("name")))
        return round_half_up(done / len(goals) * 100)

    @staticmethod
    def summarize(checkins: list[dict]) -> dict:
        """Dashboard stats: count, average completion and the latest day's points."""
        if not checkins:
            return {"total_checkins": 0, "average_completion": 0, "latest_points": None}

        ordered = sorted(checkins, key=lambda c: as_date(c["date"]), reverse=True)
        total = sum(c.get("achieved_points") or 0 for c in ordered)
        return {
            "total_checkins": len(ordered),
            "average_completion": round_half_up(total / len(ordered)),
            "latest_points": ordered[0].get("achieved_points"),
        }

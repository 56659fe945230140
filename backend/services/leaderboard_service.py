"""
leaderboard_service.py — Weekly leaderboard over daily check-ins.
Scores are per-user averages (or sums) of achieved_points inside a trailing
window; labels are masked emails, never the address itself.
"""

from datetime import date, timedelta

from config import LEADERBOARD_SCORING, LEADERBOARD_SIZE, LEADERBOARD_WINDOW_DAYS
from services.common import as_date, round_half_up


def window_bounds(window_end: date, days: int = LEADERBOARD_WINDOW_DAYS) -> tuple[date, date]:
    """Inclusive (start, end) of the trailing window ending on window_end."""
    return window_end - timedelta(days=days - 1), window_end


def mask_email(email: str | None) -> str:
    if not email:
        return "Anonymous"
    return f"{email[:3]}***"


class LeaderboardService:
    @staticmethod
    def weekly(checkins: list[dict], window_end: date, emails: dict = None,
               scoring: str = LEADERBOARD_SCORING, limit: int = LEADERBOARD_SIZE) -> list[dict]:
        if scoring not in ("average", "sum"):
            raise ValueError(f"Unsupported leaderboard scoring: {scoring}")

        start, end = window_bounds(window_end)
        totals = {}
        for c in checkins:
            if c.get("user_id") is None or c.get("date") is None:
                continue
            if not start <= as_date(c["date"]) <= end:
                continue
            stats = totals.setdefault(c["user_id"], {"total": 0, "count": 0})
            stats["total"] += c.get("achieved_points") or 0
            stats["count"] += 1

        emails = emails or {}
        entries = []
        for user_id, stats in totals.items():
            if scoring == "average":
                score = round_half_up(stats["total"] / stats["count"])
            else:
                score = stats["total"]
            entries.append({
                "user_id": user_id,
                "display_label": mask_email(emails.get(user_id)),
                "score": score,
            })

        entries.sort(key=lambda e: (-e["score"], str(e["user_id"])))
        return entries[:limit]

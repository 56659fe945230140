"""
streak_service.py — Consecutive-day streaks from daily check-ins.
A day qualifies when its check-in has achieved_points > 0.
"""

from datetime import date, timedelta

from config import STREAK_LOOKBACK_DAYS
from services.common import as_date


def points_by_day(checkins: list[dict]) -> dict:
    days = {}
    for c in checkins:
        if c.get("date") is None:
            continue
        days[as_date(c["date"])] = c.get("achieved_points") or 0
    return days


class StreakService:
    @staticmethod
    def current_streak(checkins: list[dict], today: date, lookback: int = STREAK_LOOKBACK_DAYS) -> int:
        """
        Walk backward from today. Days without a check-in are skipped until
        counting starts; a zero-point check-in, or any gap once counting has
        started, ends the streak.
        """
        days = points_by_day(checkins)
        if not days:
            return 0

        streak = 0
        curr_date = today
        for _ in range(lookback):
            points = days.get(curr_date)
            if points is not None and points > 0:
                streak += 1
            elif streak > 0 or points is not None:
                break
            curr_date -= timedelta(days=1)
        return streak

    @staticmethod
    def longest_streak(checkins: list[dict]) -> int:
        qualifying = sorted(d for d, pts in points_by_day(checkins).items() if pts > 0)
        longest = run = 0
        prev = None
        for d in qualifying:
            run = run + 1 if prev is not None and d - prev == timedelta(days=1) else 1
            longest = max(longest, run)
            prev = d
        return longest

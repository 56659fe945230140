"""
goal_service.py — Yearly goal lists and the public 2026 goal.
"""

from config import GOAL_UNITS, PUBLIC_GOAL_MAX_LENGTH
from errors import ValidationError


class GoalService:
    @staticmethod
    def clean(goals: list[dict]) -> list[dict]:
        """Drop blank or non-positive entries; reject units outside GOAL_UNITS."""
        cleaned = []
        for g in goals:
            name = (g.get("name") or "").strip()
            try:
                target = float(g.get("target") or 0)
            except (TypeError, ValueError):
                raise ValidationError(f"Goal '{name}' has a non-numeric target")
            if not name or target <= 0:
                continue
            unit = g.get("unit")
            if unit not in GOAL_UNITS:
                raise ValidationError(f"Goal '{name}' has unknown unit '{unit}'")
            cleaned.append({
                "name": name,
                "target": int(target) if target.is_integer() else target,
                "unit": unit,
            })
        return cleaned

    @staticmethod
    def validate_public_goal(text: str | None) -> str:
        text = (text or "").strip()
        if len(text) > PUBLIC_GOAL_MAX_LENGTH:
            raise ValidationError(f"goal_2026 must be at most {PUBLIC_GOAL_MAX_LENGTH} characters")
        return text

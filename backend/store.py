"""
store.py — Data access for users, goals and check-ins.

Two interchangeable stores expose the same methods and return plain dicts:
  - SupabaseStore: hosted PostgREST tables through SupabaseRest.
  - SqlStore: SQLAlchemy models, used for local development and tests.

Routes receive a store per request through the ``get_store`` dependency, so
services never reach for a global client.
"""

import logging
from contextlib import contextmanager, nullcontext

from sqlalchemy.exc import SQLAlchemyError

from config import STORE_BACKEND
from errors import StoreError
from models.user import User
from models.goal import GoalList
from models.checkin import Checkin
from supabase_rest import SupabaseRest, eq, neq, gte, lte, in_, is_null

logger = logging.getLogger(__name__)

USER_COLUMNS = ("id,email,primary_focus,partner_id,joined_month,is_new_user,"
                "goal_2026,goal_public,current_streak,longest_streak,created_at")
PUBLIC_GOAL_COLUMNS = "id,email,primary_focus,goal_2026,current_streak,longest_streak,created_at"
PAGE_SIZE = 1000


class SupabaseStore:
    def __init__(self, rest: SupabaseRest):
        self.rest = rest

    def unit_of_work(self):
        # PostgREST has no multi-request transactions; callers compensate instead.
        return nullcontext()

    # --- users ---
    def get_user(self, user_id: str) -> dict | None:
        rows = self.rest.select("users", USER_COLUMNS, [eq("id", user_id)], limit=1)
        return rows[0] if rows else None

    def update_user(self, user_id: str, fields: dict) -> dict | None:
        rows = self.rest.update("users", [eq("id", user_id)], fields)
        return rows[0] if rows else None

    def get_users(self, user_ids: list) -> list[dict]:
        if not user_ids:
            return []
        return self.rest.select("users", "id,email", [in_("id", user_ids)])

    def find_unmatched_partner(self, focus: str, exclude_user_id: str) -> dict | None:
        rows = self.rest.select(
            "users",
            "id,email,primary_focus,joined_month,is_new_user,created_at",
            [eq("primary_focus", focus), is_null("partner_id"), neq("id", exclude_user_id)],
            order="created_at.asc,id.asc",
            limit=1,
        )
        return rows[0] if rows else None

    def set_partner(self, user_id: str, partner_id: str | None, only_if_unmatched: bool = False,
                    only_if_partner: str = None) -> bool:
        """Write partner_id; the only_if_* guards make it a no-op (False) when the row changed."""
        filters = [eq("id", user_id)]
        if only_if_unmatched:
            filters.append(is_null("partner_id"))
        if only_if_partner is not None:
            filters.append(eq("partner_id", only_if_partner))
        rows = self.rest.update("users", filters, {"partner_id": partner_id})
        return bool(rows)

    def list_public_goals(self, limit: int) -> list[dict]:
        return self.rest.select("public_goals", PUBLIC_GOAL_COLUMNS, order="created_at.desc", limit=limit)

    # --- check-ins ---
    def list_checkins_between(self, start, end) -> list[dict]:
        # PostgREST caps a response at max-rows (1000 on hosted projects), so page through.
        rows, offset = [], 0
        while True:
            page = self.rest.select(
                "checkins", "user_id,achieved_points,date",
                [gte("date", start), lte("date", end)],
                order="date.asc,user_id.asc", limit=PAGE_SIZE, offset=offset,
            )
            rows.extend(page)
            if len(page) < PAGE_SIZE:
                return rows
            offset += PAGE_SIZE

    def list_user_checkins(self, user_id: str) -> list[dict]:
        return self.rest.select("checkins", "date,achieved_points", [eq("user_id", user_id)], order="date.desc")

    def get_checkin(self, user_id: str, day) -> dict | None:
        rows = self.rest.select("checkins", "*", [eq("user_id", user_id), eq("date", day)], limit=1)
        return rows[0] if rows else None

    def upsert_checkin(self, user_id: str, day, achieved_points: int, completed_goals: dict = None) -> dict:
        data = {"user_id": user_id, "date": day.isoformat(), "achieved_points": achieved_points}
        if completed_goals is not None:
            data["completed_goals"] = completed_goals
        return self.rest.upsert("checkins", data, on_conflict="user_id,date")

    # --- goals ---
    def get_goals(self, user_id: str) -> list[dict]:
        rows = self.rest.select("goals", "goals", [eq("user_id", user_id)], limit=1)
        return (rows[0].get("goals") or []) if rows else []

    def save_goals(self, user_id: str, goals: list[dict]) -> list[dict]:
        row = self.rest.upsert("goals", {"user_id": user_id, "goals": goals}, on_conflict="user_id")
        return row.get("goals", goals)


def _row(obj) -> dict:
    return {c.name: getattr(obj, c.name) for c in obj.__table__.columns}


class SqlStore:
    """
    SQLAlchemy-backed store. Each call runs in its own session unless a
    unit_of_work() is open, in which case calls share one transaction.
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory
        self._active = None

    @contextmanager
    def _session(self):
        if self._active is not None:
            try:
                yield self._active
            except SQLAlchemyError as e:
                raise StoreError(str(e)) from e
            return

        db = self.session_factory()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database error: {e}")
            raise StoreError(str(e)) from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @contextmanager
    def unit_of_work(self):
        if self._active is not None:
            yield
            return
        db = self.session_factory()
        self._active = db
        try:
            yield
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreError(str(e)) from e
        except Exception:
            db.rollback()
            raise
        finally:
            self._active = None
            db.close()

    # --- users ---
    def get_user(self, user_id: str) -> dict | None:
        with self._session() as db:
            query = db.query(User).filter_by(id=user_id)
            if self._active is not None:
                # Serializes concurrent matches for the same requester.
                query = query.with_for_update()
            user = query.first()
            return _row(user) if user else None

    def update_user(self, user_id: str, fields: dict) -> dict | None:
        with self._session() as db:
            user = db.query(User).filter_by(id=user_id).first()
            if not user:
                return None
            for k, v in fields.items():
                if hasattr(user, k):
                    setattr(user, k, v)
            db.flush()
            return _row(user)

    def get_users(self, user_ids: list) -> list[dict]:
        if not user_ids:
            return []
        with self._session() as db:
            users = db.query(User).filter(User.id.in_(list(user_ids))).all()
            return [{"id": u.id, "email": u.email} for u in users]

    def find_unmatched_partner(self, focus: str, exclude_user_id: str) -> dict | None:
        with self._session() as db:
            query = db.query(User).filter(
                User.primary_focus == focus,
                User.partner_id.is_(None),
                User.id != exclude_user_id,
            ).order_by(User.created_at.asc(), User.id.asc())
            if self._active is not None:
                query = query.with_for_update()
            user = query.first()
            return _row(user) if user else None

    def set_partner(self, user_id: str, partner_id: str | None, only_if_unmatched: bool = False,
                    only_if_partner: str = None) -> bool:
        with self._session() as db:
            query = db.query(User).filter(User.id == user_id)
            if only_if_unmatched:
                query = query.filter(User.partner_id.is_(None))
            if only_if_partner is not None:
                query = query.filter(User.partner_id == only_if_partner)
            return query.update({"partner_id": partner_id}, synchronize_session=False) > 0

    def list_public_goals(self, limit: int) -> list[dict]:
        with self._session() as db:
            users = db.query(User).filter(
                User.goal_public.is_(True),
                User.goal_2026.isnot(None),
                User.goal_2026 != "",
            ).order_by(User.created_at.desc()).limit(limit).all()
            return [{k: getattr(u, k) for k in PUBLIC_GOAL_COLUMNS.split(",")} for u in users]

    # --- check-ins ---
    def list_checkins_between(self, start, end) -> list[dict]:
        with self._session() as db:
            rows = db.query(Checkin).filter(Checkin.date >= start, Checkin.date <= end).all()
            return [{"user_id": c.user_id, "achieved_points": c.achieved_points, "date": c.date} for c in rows]

    def list_user_checkins(self, user_id: str) -> list[dict]:
        with self._session() as db:
            rows = db.query(Checkin).filter_by(user_id=user_id).order_by(Checkin.date.desc()).all()
            return [{"date": c.date, "achieved_points": c.achieved_points} for c in rows]

    def get_checkin(self, user_id: str, day) -> dict | None:
        with self._session() as db:
            c = db.query(Checkin).filter_by(user_id=user_id, date=day).first()
            return _row(c) if c else None

    def upsert_checkin(self, user_id: str, day, achieved_points: int, completed_goals: dict = None) -> dict:
        with self._session() as db:
            c = db.query(Checkin).filter_by(user_id=user_id, date=day).first()
            if c:
                c.achieved_points = achieved_points
                if completed_goals is not None:
                    c.completed_goals = completed_goals
            else:
                c = Checkin(user_id=user_id, date=day, achieved_points=achieved_points,
                            completed_goals=completed_goals)
                db.add(c)
            db.flush()
            return _row(c)

    # --- goals ---
    def get_goals(self, user_id: str) -> list[dict]:
        with self._session() as db:
            row = db.query(GoalList).filter_by(user_id=user_id).first()
            return list(row.goals or []) if row else []

    def save_goals(self, user_id: str, goals: list[dict]) -> list[dict]:
        with self._session() as db:
            row = db.query(GoalList).filter_by(user_id=user_id).first()
            if row:
                row.goals = goals
            else:
                row = GoalList(user_id=user_id, goals=goals)
                db.add(row)
            db.flush()
            return list(row.goals)


def get_store():
    """FastAPI dependency — builds the configured store for one request."""
    if STORE_BACKEND == "sql":
        from database import SessionLocal
        return SqlStore(SessionLocal)
    return SupabaseStore(SupabaseRest())

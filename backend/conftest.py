import os
import sys
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import auth
from database import Base
from models import User, Checkin
from store import SqlStore, get_store

TEST_JWT_SECRET = "test-jwt-secret"


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return SqlStore(session_factory)


@pytest.fixture
def add_user(session_factory):
    """Insert a user row; created_at increases with each call so ordering is stable."""
    counter = {"n": 0}

    def _add(user_id, email=None, **fields):
        counter["n"] += 1
        db = session_factory()
        db.add(User(
            id=user_id,
            email=email if email is not None else f"{user_id}@example.com",
            created_at=datetime(2025, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=counter["n"]),
            **fields,
        ))
        db.commit()
        db.close()

    return _add


@pytest.fixture
def add_checkin(session_factory):
    def _add(user_id, day, points, completed_goals=None):
        db = session_factory()
        db.add(Checkin(user_id=user_id, date=day, achieved_points=points, completed_goals=completed_goals))
        db.commit()
        db.close()

    return _add


@pytest.fixture
def client(session_factory, monkeypatch):
    from main import app

    monkeypatch.setattr(auth, "SUPABASE_JWT_SECRET", TEST_JWT_SECRET)
    app.dependency_overrides[get_store] = lambda: SqlStore(session_factory)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user_id):
        token = jwt.encode(
            {
                "sub": user_id,
                "aud": "authenticated",
                "exp": datetime.now(timezone.utc) + timedelta(hours=1),
            },
            TEST_JWT_SECRET,
            algorithm="HS256",
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers

# Import all models so they register with SQLAlchemy Base.metadata
# This ensures Base.metadata.create_all() creates all tables

from models.user import User
from models.goal import GoalList
from models.checkin import Checkin

__all__ = [
    "User",
    "GoalList",
    "Checkin",
]

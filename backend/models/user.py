import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), nullable=True)
    primary_focus = Column(String(50), nullable=True)  # quit_porn/business/fitness/mindset
    partner_id = Column(String(36), ForeignKey("users.id"), nullable=True)  # symmetric link
    joined_month = Column(String(7), nullable=True)  # YYYY-MM
    is_new_user = Column(Boolean, default=True)
    goal_2026 = Column(String(200), nullable=True)
    goal_public = Column(Boolean, default=False)
    current_streak = Column(Integer, default=0)
    longest_streak = Column(Integer, default=0)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

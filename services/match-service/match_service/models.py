import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, String, UniqueConstraint
from .db import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=_uuid)
    email = Column(String, nullable=True)
    display_name = Column(String, nullable=False)
    avatar_url = Column(String, nullable=True)
    home_address = Column(String, nullable=True)
    home_lat = Column(Float, nullable=True)
    home_lng = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)


class CommutePreference(Base):
    __tablename__ = "commute_preferences"
    __table_args__ = (
        UniqueConstraint("user_id", "direction", name="uq_commute_preferences_user_direction"),
    )

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    direction = Column(String, nullable=False)  # TO_WORK/FROM_WORK
    earliest_time = Column(String, nullable=False)  # HH:MM
    latest_time = Column(String, nullable=False)  # HH:MM
    days_of_week = Column(String, nullable=False, default="[]")  # JSON list, 0=Mon .. 4=Fri
    role = Column(String, nullable=False)  # DRIVER/RIDER/EITHER


class MatchResult(Base):
    __tablename__ = "match_results"
    __table_args__ = (
        Index("ix_match_results_user_a_id", "user_a_id"),
        Index("ix_match_results_user_b_id", "user_b_id"),
    )

    id = Column(String, primary_key=True, default=_uuid)
    user_a_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)  # requester
    user_b_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    direction = Column(String, nullable=False)
    detour_minutes = Column(Float, nullable=False)
    time_overlap_minutes = Column(Float, nullable=False)
    rank_score = Column(Float, nullable=False)
    computed_at = Column(DateTime(timezone=True), nullable=False, default=_now)

"""Database models."""
from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from vocabplan.models.base import Base, TimestampMixin


class UserBlob(Base, TimestampMixin):
    """JSON document persisted for one identity under one key."""

    __tablename__ = "user_blobs"
    __table_args__ = (UniqueConstraint("user_id", "key", name="uq_user_blobs_user_key"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    key = Column(String, nullable=False)  # plan, plan_state, progress, test_history
    value = Column(Text, nullable=False)  # JSON
    version = Column(Integer, nullable=False, default=1)


class RankingEntry(Base):
    """One identity's row in the shared ranking."""

    __tablename__ = "ranking_entries"

    id = Column(String, primary_key=True)
    username = Column(String, nullable=False)
    avatar_id = Column(String, nullable=True)
    avatar_color = Column(String, nullable=True)
    score = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=False)

import uuid
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from .database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class UserAccount(Base):
    __tablename__ = "user_account"

    id = Column(String(36), primary_key=True, default=_uuid)
    display_name = Column(String, nullable=False, default="")
    is_verified = Column(Boolean, nullable=False, default=False)
    rating = Column(Numeric(3, 2), nullable=False, default=0)
    total_sessions = Column(Integer, nullable=False, default=0)
    location = Column(String, nullable=True)
    last_active_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class UserPreferences(Base):
    __tablename__ = "user_preferences"

    user_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), primary_key=True)
    match_suggestions = Column(Boolean, nullable=False, default=True)


class Skill(Base):
    __tablename__ = "skill"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String, nullable=False, unique=True)
    category = Column(String, nullable=False, default="other")


class UserSkill(Base):
    __tablename__ = "user_skill"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False)
    skill_id = Column(String(36), ForeignKey("skill.id", ondelete="CASCADE"), nullable=False)
    proficiency_level = Column(Integer, nullable=False, default=0)
    can_teach = Column(Boolean, nullable=False, default=False)
    wants_to_learn = Column(Boolean, nullable=False, default=False)
    is_verified = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("user_id", "skill_id", name="uq_user_skill"),
        CheckConstraint("proficiency_level BETWEEN 0 AND 100", name="ck_user_skill_proficiency"),
        Index("idx_user_skill_user_id", "user_id"),
    )


class Availability(Base):
    __tablename__ = "availability"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    timezone = Column(String, nullable=False, default="UTC")
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_availability_day"),
        Index("idx_availability_user_id", "user_id"),
    )


class MatchInteraction(Base):
    __tablename__ = "match_interaction"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False)
    target_user_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False)
    type = Column(String, nullable=False)
    match_score = Column(Float, nullable=True)
    explanation = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    decided_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "target_user_id", name="uq_match_interaction_pair"),
        Index("idx_match_interaction_user_type", "user_id", "type"),
        Index("idx_match_interaction_decided_at", "decided_at"),
    )


class MatchGenerationStats(Base):
    __tablename__ = "match_generation_stats"

    id = Column(String(36), primary_key=True, default=_uuid)
    run_date = Column(Date, nullable=False)
    total_matches = Column(Integer, nullable=False, default=0)
    users_with_matches = Column(Integer, nullable=False, default=0)
    total_active_users = Column(Integer, nullable=False, default=0)
    failed_users = Column(Integer, nullable=False, default=0)
    average_matches_per_user = Column(Float, nullable=False, default=0)
    match_generation_rate = Column(Float, nullable=False, default=0)
    payload = Column(JSONB, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class NotificationOutbox(Base):
    __tablename__ = "notification_outbox"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    kind = Column(String, nullable=False)
    payload = Column(JSONB, nullable=False, default=dict)
    status = Column(String, nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

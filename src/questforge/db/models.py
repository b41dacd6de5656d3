"""ORM models for the progression schema.

One canonical name per concept: ``total_xp`` for the cached XP total,
``path`` for the progression track.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from questforge.db.base import Base, UTCDateTime

JSONType = JSON().with_variant(JSONB(), "postgresql")

PATH_HEAVENLY_DEMON = "HEAVENLY_DEMON"
PATH_HUNTER = "HUNTER"
PATHS = frozenset({PATH_HEAVENLY_DEMON, PATH_HUNTER})

STATUS_ACTIVE = "active"
STATUS_COMPLETED = "completed"
STATUS_ABANDONED = "abandoned"
STATUSES = frozenset({STATUS_ACTIVE, STATUS_COMPLETED, STATUS_ABANDONED})

SOURCE_QUEST_COMPLETION = "quest_completion"
SOURCE_WORKOUT_LOG = "workout_log"

ROLE_OWNER = "owner"
ROLE_MEMBER = "member"


def _uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


class Profile(Base):
    """Per-user progression row. XP and streak columns are engine-owned."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True)
    username: Mapped[str | None] = mapped_column(String(64), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    path: Mapped[str | None] = mapped_column(String(32), nullable=True)
    total_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_workout_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)


# ---------------------------------------------------------------------------
# Static catalog: quests and workout plans
# ---------------------------------------------------------------------------


class QuestDefinition(Base):
    """Quest catalog row: read-only to the engine."""

    __tablename__ = "quests"
    __table_args__ = (
        UniqueConstraint("path", "title", name="quests_path_title_key"),
    )

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    path: Mapped[str] = mapped_column(String(32), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, server_default="general")
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False, server_default="easy")
    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, server_default="50")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    flavor_text: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    created_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)


class WorkoutPlan(Base):
    """Workout plan catalog row. A null path is usable by every path."""

    __tablename__ = "workout_plans"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    path: Mapped[str | None] = mapped_column(String(32), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    days: Mapped[list[WorkoutPlanDay]] = relationship(
        "WorkoutPlanDay", back_populates="plan", order_by="WorkoutPlanDay.day_number", lazy="selectin"
    )


class WorkoutPlanDay(Base):
    """One scheduled day of a workout plan."""

    __tablename__ = "workout_plan_days"
    __table_args__ = (
        UniqueConstraint("plan_id", "day_number", name="workout_plan_days_plan_day_key"),
    )

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    plan_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("workout_plans.id", ondelete="CASCADE"), nullable=False
    )
    day_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    template: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    plan: Mapped[WorkoutPlan] = relationship("WorkoutPlan", back_populates="days")


class SelectedWorkoutPlan(Base):
    """The single plan a user currently follows."""

    __tablename__ = "user_workout_plans"

    user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    plan_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("workout_plans.id", ondelete="CASCADE"), nullable=False
    )
    selected_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)


# ---------------------------------------------------------------------------
# Quest assignment state machine
# ---------------------------------------------------------------------------


class QuestAssignment(Base):
    """User <-> quest lifecycle row: active -> completed.

    At most one *active* row per (user, quest), enforced by a partial
    unique index.
    """

    __tablename__ = "quest_assignments"
    __table_args__ = (
        Index(
            "uq_quest_assignments_active",
            "user_id",
            "quest_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        Index("idx_quest_assignments_user_status", "user_id", "status"),
    )

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    quest_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("quests.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default=STATUS_ACTIVE)
    selected_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    quest: Mapped[QuestDefinition] = relationship("QuestDefinition", lazy="joined")


class QuestCompletion(Base):
    """Completion record: UNIQUE(assignment_id) makes completion idempotent."""

    __tablename__ = "quest_completions"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    assignment_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("quest_assignments.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)


# ---------------------------------------------------------------------------
# Workout logs
# ---------------------------------------------------------------------------


class WorkoutLog(Base):
    """One row per (user, calendar date); re-logging overwrites in place."""

    __tablename__ = "workout_logs"
    __table_args__ = (
        UniqueConstraint("user_id", "log_date", name="workout_logs_user_date_key"),
    )

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    log_date: Mapped[date] = mapped_column(Date, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    payload: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    created_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)


# ---------------------------------------------------------------------------
# XP ledger
# ---------------------------------------------------------------------------


class XPEvent(Base):
    """Append-only XP ledger: UNIQUE(user_id, source_type, source_id)."""

    __tablename__ = "xp_events"
    __table_args__ = (
        UniqueConstraint("user_id", "source_type", "source_id", name="xp_events_source_key"),
        Index("idx_xp_events_user_created", "user_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    source_type: Mapped[str] = mapped_column(String(32), nullable=False)
    source_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)


# ---------------------------------------------------------------------------
# Guilds
# ---------------------------------------------------------------------------


class Group(Base):
    """Guild: named group sharing a leaderboard and an invite code."""

    __tablename__ = "groups"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    owner_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    invite_code: Mapped[str] = mapped_column(String(8), unique=True, nullable=False)
    created_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    members: Mapped[list[GroupMembership]] = relationship(
        "GroupMembership", back_populates="group", cascade="all, delete-orphan"
    )


class GroupMembership(Base):
    """Guild membership: UNIQUE(group_id, user_id) makes joins idempotent."""

    __tablename__ = "group_members"
    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="group_members_group_user_key"),
    )

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    group_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("groups.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(String(16), nullable=False, server_default=ROLE_MEMBER)
    joined_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    group: Mapped[Group] = relationship("Group", back_populates="members")


class Challenge(Base):
    """Group-scoped goal with a title and date range. Grants no XP."""

    __tablename__ = "challenges"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    group_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("groups.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    starts_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    ends_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    created_by: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

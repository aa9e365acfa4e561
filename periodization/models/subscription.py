"""Enrollment models: subscriptions, exercise selections and the active pointer."""
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from periodization.db.database import Base
from periodization.models.enums import ActiveKind, SessionStatus, SubscriptionStatus


class ProgramSubscription(Base):
    """One athlete's enrollment in a template. Archived, never deleted."""
    __tablename__ = "program_subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    program_id = Column(Integer, ForeignKey("program_templates.id"), nullable=False)
    status = Column(
        SAEnum(SubscriptionStatus, name="subscription_status"),
        nullable=False,
        default=SubscriptionStatus.ACTIVE,
    )

    current_week = Column(Integer, nullable=False, default=1)
    current_day = Column(Integer, nullable=False, default=1)
    current_phase_id = Column(Integer, ForeignKey("program_phases.id"), nullable=True)
    current_week_in_phase = Column(Integer, nullable=False, default=1)
    phase_started_at = Column(DateTime, nullable=True)
    start_date = Column(Date, nullable=False)

    # Mirror of ActiveSessionPointer, written in the same transaction
    is_currently_active = Column(Boolean, nullable=False, default=False)

    workouts_completed = Column(Integer, nullable=False, default=0)
    adherence_rate = Column(Float, nullable=False, default=1.0)
    last_workout_completed_at = Column(DateTime, nullable=True)

    assigned_by = Column(Integer, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    archived_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    program = relationship("ProgramTemplate")
    current_phase = relationship("ProgramPhase")
    selections = relationship(
        "UserExerciseSelection",
        back_populates="subscription",
        order_by="UserExerciseSelection.slot_id",
    )

    __table_args__ = (
        CheckConstraint("adherence_rate >= 0 AND adherence_rate <= 1", name="ck_subscription_adherence_range"),
        CheckConstraint("current_day between 1 and 7", name="ck_subscription_day_range"),
        Index("ix_program_subscriptions_user_program", "user_id", "program_id"),
    )

    @property
    def is_active(self) -> bool:
        """Enrolled and not yet archived or completed."""
        return not SubscriptionStatus(self.status).is_terminal

    def __repr__(self):
        return (
            f"<ProgramSubscription(id={self.id}, user_id={self.user_id}, "
            f"status={self.status}, week={self.current_week}, day={self.current_day})>"
        )


class UserExerciseSelection(Base):
    """An athlete's concrete exercise for one slot.

    Rows with a NULL subscription_id are staged: chosen before the athlete has
    joined, and re-bound when the subscription is created.
    """
    __tablename__ = "user_exercise_selections"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False)
    program_id = Column(Integer, ForeignKey("program_templates.id"), nullable=False)
    subscription_id = Column(
        Integer,
        ForeignKey("program_subscriptions.id", ondelete="CASCADE"),
        nullable=True,
    )
    slot_id = Column(Integer, ForeignKey("exercise_slots.id"), nullable=False)
    exercise_id = Column(Integer, ForeignKey("exercises.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    subscription = relationship("ProgramSubscription", back_populates="selections")
    slot = relationship("ExerciseSlot")
    exercise = relationship("Exercise")

    __table_args__ = (
        UniqueConstraint("subscription_id", "slot_id", name="uq_selection_subscription_slot"),
        # One staged exercise per slot while unbound
        Index(
            "uq_selection_staged_slot",
            "user_id",
            "program_id",
            "slot_id",
            unique=True,
            postgresql_where=text("subscription_id IS NULL"),
            sqlite_where=text("subscription_id IS NULL"),
        ),
    )


class WorkoutSession(Base):
    """Ad-hoc custom session outside any program.

    Only relevant to the engine through the currently-active exclusivity rule.
    """
    __tablename__ = "workout_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    status = Column(SAEnum(SessionStatus, name="session_status"), nullable=False, default=SessionStatus.ACTIVE)
    is_currently_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class ActiveSessionPointer(Base):
    """The one thing a user is following right now.

    One row per user; the kind column tags which reference is live. Locking
    this row serializes every activation for the user.
    """
    __tablename__ = "active_session_pointers"

    user_id = Column(Integer, primary_key=True, autoincrement=False)
    kind = Column(SAEnum(ActiveKind, name="active_kind"), nullable=False, default=ActiveKind.NONE)
    subscription_id = Column(Integer, ForeignKey("program_subscriptions.id"), nullable=True)
    session_id = Column(Integer, ForeignKey("workout_sessions.id"), nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "(kind = 'PROGRAM' AND subscription_id IS NOT NULL AND session_id IS NULL)"
            " OR (kind = 'CUSTOM' AND session_id IS NOT NULL AND subscription_id IS NULL)"
            " OR (kind = 'NONE' AND subscription_id IS NULL AND session_id IS NULL)",
            name="ck_active_pointer_tagged",
        ),
    )

    def point_to_program(self, subscription_id: int) -> None:
        self.kind = ActiveKind.PROGRAM
        self.subscription_id = subscription_id
        self.session_id = None

    def point_to_session(self, session_id: int) -> None:
        self.kind = ActiveKind.CUSTOM
        self.session_id = session_id
        self.subscription_id = None

    def clear(self) -> None:
        self.kind = ActiveKind.NONE
        self.subscription_id = None
        self.session_id = None

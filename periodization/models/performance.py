from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import relationship

from periodization.db.database import Base


class WorkoutPerformance(Base):
    """A logged attempt at a scheduled workout, written by the workout log."""
    __tablename__ = "workout_performances"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subscription_id = Column(
        Integer,
        ForeignKey("program_subscriptions.id", ondelete="CASCADE"),
        nullable=False,
    )
    workout_id = Column(Integer, ForeignKey("program_workouts.id"), nullable=True)
    week_number = Column(Integer, nullable=False)
    day_number = Column(Integer, nullable=False)
    completed = Column(Boolean, nullable=False, default=True)
    rpe = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)
    performed_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    subscription = relationship("ProgramSubscription")

    __table_args__ = (
        Index("ix_workout_performances_subscription_week", "subscription_id", "week_number"),
    )

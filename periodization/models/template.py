"""Program template catalog models.

A ProgramTemplate is split into ordered ProgramPhases, each phase into weekly
Microcycles, each microcycle into daily Workouts made of WorkoutExercises.
WorkoutExercises point either at a fixed exercise or at one of the template's
ExerciseSlots, which the athlete resolves when joining.
"""
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from periodization.db.database import Base
from periodization.models.enums import (
    Difficulty,
    MovementPattern,
    PhaseType,
    ProgressionStrategy,
    VolumeLevel,
    WorkoutType,
)


class Exercise(Base):
    """Exercise reference data. Authored and moderated outside the engine."""
    __tablename__ = "exercises"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    movement_pattern = Column(SAEnum(MovementPattern, name="movement_pattern"), nullable=True)
    muscle_targets = Column(JSON, nullable=False, default=list)
    equipment = Column(JSON, nullable=False, default=list)

    def __repr__(self):
        return f"<Exercise(id={self.id}, name={self.name!r})>"


class ProgramTemplate(Base):
    __tablename__ = "program_templates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    created_by = Column(Integer, nullable=True, index=True)
    duration_weeks = Column(Integer, nullable=False)
    difficulty = Column(SAEnum(Difficulty, name="difficulty"), nullable=False, default=Difficulty.INTERMEDIATE)
    category = Column(String(60), nullable=True, index=True)
    is_public = Column(Boolean, nullable=False, default=True)
    has_exercise_slots = Column(Boolean, nullable=False, default=False)
    progression_strategy = Column(
        SAEnum(ProgressionStrategy, name="progression_strategy"),
        nullable=False,
        default=ProgressionStrategy.LINEAR,
    )
    auto_regulation = Column(Boolean, nullable=False, default=False)

    # Raw legacy blob; lifted into phases/microcycles by LegacyTemplateAdapter
    template_data = Column(JSON, nullable=True)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    phases = relationship(
        "ProgramPhase",
        back_populates="program",
        order_by="ProgramPhase.phase_number",
        cascade="all, delete-orphan",
    )
    slots = relationship(
        "ExerciseSlot",
        back_populates="program",
        order_by="ExerciseSlot.slot_number",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("duration_weeks > 0", name="ck_program_templates_duration_positive"),
    )

    @property
    def is_legacy(self) -> bool:
        return self.template_data is not None

    def __repr__(self):
        return f"<ProgramTemplate(id={self.id}, name={self.name!r}, weeks={self.duration_weeks})>"


class ProgramPhase(Base):
    __tablename__ = "program_phases"

    id = Column(Integer, primary_key=True, autoincrement=True)
    program_id = Column(Integer, ForeignKey("program_templates.id", ondelete="CASCADE"), nullable=False)
    phase_number = Column(Integer, nullable=False)
    phase_name = Column(String(120), nullable=False)
    phase_type = Column(SAEnum(PhaseType, name="phase_type"), nullable=False)
    description = Column(Text, nullable=True)
    start_week = Column(Integer, nullable=False)
    end_week = Column(Integer, nullable=False)

    # Base prescription; microcycle modifiers scale these
    target_intensity_low = Column(Float, nullable=True)  # % of 1RM
    target_intensity_high = Column(Float, nullable=True)
    target_volume = Column(SAEnum(VolumeLevel, name="volume_level"), nullable=True)
    rep_range_low = Column(Integer, nullable=True)
    rep_range_high = Column(Integer, nullable=True)
    sets_per_exercise = Column(Integer, nullable=True)
    rest_seconds_min = Column(Integer, nullable=True)
    rest_seconds_max = Column(Integer, nullable=True)

    program = relationship("ProgramTemplate", back_populates="phases")
    microcycles = relationship(
        "Microcycle",
        back_populates="phase",
        order_by="Microcycle.week_number",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("program_id", "phase_number", name="uq_program_phase_number"),
        CheckConstraint("start_week <= end_week", name="ck_program_phases_week_order"),
        Index("ix_program_phases_program_id", "program_id"),
    )

    @property
    def week_count(self) -> int:
        return self.end_week - self.start_week + 1

    def contains_week(self, week: int) -> bool:
        return self.start_week <= week <= self.end_week

    def __repr__(self):
        return f"<ProgramPhase(id={self.id}, number={self.phase_number}, weeks={self.start_week}-{self.end_week})>"


class Microcycle(Base):
    __tablename__ = "program_microcycles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    phase_id = Column(Integer, ForeignKey("program_phases.id", ondelete="CASCADE"), nullable=False)
    week_number = Column(Integer, nullable=False)
    week_in_phase = Column(Integer, nullable=False)
    title = Column(String(120), nullable=True)
    description = Column(Text, nullable=True)
    volume_modifier = Column(Integer, nullable=False, default=100)
    intensity_modifier = Column(Integer, nullable=False, default=100)

    phase = relationship("ProgramPhase", back_populates="microcycles")
    workouts = relationship(
        "Workout",
        back_populates="microcycle",
        order_by="Workout.day_number",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("phase_id", "week_number", name="uq_microcycle_phase_week"),
        Index("ix_program_microcycles_phase_id", "phase_id"),
    )


class Workout(Base):
    __tablename__ = "program_workouts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    microcycle_id = Column(Integer, ForeignKey("program_microcycles.id", ondelete="CASCADE"), nullable=False)
    day_number = Column(Integer, nullable=False)
    day_label = Column(String(120), nullable=True)
    workout_type = Column(SAEnum(WorkoutType, name="workout_type"), nullable=False, default=WorkoutType.STRENGTH)
    description = Column(Text, nullable=True)
    estimated_duration = Column(Integer, nullable=True)  # minutes

    microcycle = relationship("Microcycle", back_populates="workouts")
    exercises = relationship(
        "WorkoutExercise",
        back_populates="workout",
        order_by="WorkoutExercise.exercise_order",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("microcycle_id", "day_number", name="uq_workout_microcycle_day"),
        CheckConstraint("day_number between 1 and 7", name="ck_program_workouts_day_range"),
    )


class WorkoutExercise(Base):
    __tablename__ = "program_workout_exercises"

    id = Column(Integer, primary_key=True, autoincrement=True)
    workout_id = Column(Integer, ForeignKey("program_workouts.id", ondelete="CASCADE"), nullable=False)
    fixed_exercise_id = Column(Integer, ForeignKey("exercises.id"), nullable=True)
    slot_id = Column(Integer, ForeignKey("exercise_slots.id"), nullable=True)
    exercise_order = Column(Integer, nullable=False)
    sets = Column(Integer, nullable=True)
    reps_min = Column(Integer, nullable=True)
    reps_max = Column(Integer, nullable=True)
    target_rpe = Column(Float, nullable=True)
    target_intensity = Column(Float, nullable=True)  # % of 1RM
    rest_seconds = Column(Integer, nullable=True)
    tempo = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)

    workout = relationship("Workout", back_populates="exercises")
    slot = relationship("ExerciseSlot")

    __table_args__ = (
        CheckConstraint(
            "(fixed_exercise_id IS NULL) <> (slot_id IS NULL)",
            name="ck_workout_exercise_fixed_xor_slot",
        ),
        Index("ix_program_workout_exercises_workout_id", "workout_id"),
    )

    @property
    def is_slot(self) -> bool:
        return self.slot_id is not None


class ExerciseSlot(Base):
    """Placeholder for an exercise the athlete picks when joining."""
    __tablename__ = "exercise_slots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    program_id = Column(Integer, ForeignKey("program_templates.id", ondelete="CASCADE"), nullable=False)
    slot_number = Column(Integer, nullable=False)
    slot_label = Column(String(120), nullable=False)
    movement_pattern = Column(SAEnum(MovementPattern, name="movement_pattern"), nullable=True)
    muscle_targets = Column(JSON, nullable=False, default=list)
    equipment_options = Column(JSON, nullable=False, default=list)
    suggested_exercise_ids = Column(JSON, nullable=False, default=list)
    description = Column(Text, nullable=True)
    is_required = Column(Boolean, nullable=False, default=True)

    program = relationship("ProgramTemplate", back_populates="slots")

    __table_args__ = (
        UniqueConstraint("program_id", "slot_number", name="uq_exercise_slot_number"),
        Index("ix_exercise_slots_program_id", "program_id"),
    )

    def __repr__(self):
        return f"<ExerciseSlot(id={self.id}, label={self.slot_label!r}, required={self.is_required})>"

"""Template authoring payloads and catalog responses.

Authoring payloads only check field types here; structural rules (phase
contiguity, day ranges, slot references) are enforced by the catalog so they
surface as a single MalformedTemplate error listing every violation.
"""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from periodization.models.enums import (
    Difficulty,
    MovementPattern,
    PhaseType,
    ProgressionStrategy,
    VolumeLevel,
    WorkoutType,
)


class WorkoutExerciseCreate(BaseModel):
    """One exercise line. Set exactly one of fixed_exercise_id / slot_number."""
    fixed_exercise_id: int | None = None
    slot_number: int | None = None
    exercise_order: int
    sets: int | None = None
    reps_min: int | None = None
    reps_max: int | None = None
    target_rpe: float | None = None
    target_intensity: float | None = None
    rest_seconds: int | None = None
    tempo: str | None = None
    notes: str | None = None


class WorkoutCreate(BaseModel):
    day_number: int
    day_label: str | None = None
    workout_type: WorkoutType = WorkoutType.STRENGTH
    description: str | None = None
    estimated_duration: int | None = None
    exercises: list[WorkoutExerciseCreate] = Field(default_factory=list)


class MicrocycleCreate(BaseModel):
    week_number: int
    week_in_phase: int | None = Field(None, description="Derived from week_number when omitted")
    title: str | None = None
    description: str | None = None
    volume_modifier: int = 100
    intensity_modifier: int = 100
    workouts: list[WorkoutCreate] = Field(default_factory=list)


class PhaseCreate(BaseModel):
    phase_number: int
    phase_name: str
    phase_type: PhaseType
    description: str | None = None
    start_week: int
    end_week: int
    target_intensity_low: float | None = None
    target_intensity_high: float | None = None
    target_volume: VolumeLevel | None = None
    rep_range_low: int | None = None
    rep_range_high: int | None = None
    sets_per_exercise: int | None = None
    rest_seconds_min: int | None = None
    rest_seconds_max: int | None = None
    microcycles: list[MicrocycleCreate] = Field(default_factory=list)


class SlotCreate(BaseModel):
    slot_number: int
    slot_label: str
    movement_pattern: MovementPattern | None = None
    muscle_targets: list[str] = Field(default_factory=list)
    equipment_options: list[str] = Field(default_factory=list)
    suggested_exercise_ids: list[int] = Field(default_factory=list)
    description: str | None = None
    is_required: bool = True


class TemplateHeader(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    difficulty: Difficulty = Difficulty.INTERMEDIATE
    category: str | None = None
    is_public: bool = True
    progression_strategy: ProgressionStrategy = ProgressionStrategy.LINEAR
    auto_regulation: bool = False


class NormalizedTemplate(TemplateHeader):
    """Template authored as phases, microcycles and workouts."""
    duration_weeks: int
    has_exercise_slots: bool = False
    slots: list[SlotCreate] = Field(default_factory=list)
    phases: list[PhaseCreate] = Field(default_factory=list)


class LegacyJsonTemplate(TemplateHeader):
    """Template authored as a free-form JSON blob (older programs).

    Recognised keys: ``duration_weeks`` or ``duration`` ("8 weeks"), ``phases``
    (``name``, ``weeks`` "1-4", ``type``, ``rep_range`` "8-12", ``sets``) and
    ``weekly_schedule`` (``day``, ``focus``, ``muscle_groups``, ``exercises``).
    """
    template_data: dict[str, Any]


# Responses

class SlotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    slot_number: int
    slot_label: str
    movement_pattern: MovementPattern | None = None
    muscle_targets: list[str]
    equipment_options: list[str]
    suggested_exercise_ids: list[int]
    description: str | None = None
    is_required: bool


class WorkoutExerciseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    fixed_exercise_id: int | None = None
    slot_id: int | None = None
    exercise_order: int
    sets: int | None = None
    reps_min: int | None = None
    reps_max: int | None = None
    target_rpe: float | None = None
    target_intensity: float | None = None
    rest_seconds: int | None = None
    tempo: str | None = None
    notes: str | None = None


class WorkoutResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    day_number: int
    day_label: str | None = None
    workout_type: WorkoutType
    estimated_duration: int | None = None
    exercises: list[WorkoutExerciseResponse] = Field(default_factory=list)


class MicrocycleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    week_number: int
    week_in_phase: int
    title: str | None = None
    volume_modifier: int
    intensity_modifier: int
    workouts: list[WorkoutResponse] = Field(default_factory=list)


class PhaseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    phase_number: int
    phase_name: str
    phase_type: PhaseType
    start_week: int
    end_week: int
    target_intensity_low: float | None = None
    target_intensity_high: float | None = None
    target_volume: VolumeLevel | None = None
    rep_range_low: int | None = None
    rep_range_high: int | None = None
    sets_per_exercise: int | None = None
    microcycles: list[MicrocycleResponse] = Field(default_factory=list)


class TemplateSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    duration_weeks: int
    difficulty: Difficulty
    category: str | None = None
    is_public: bool
    has_exercise_slots: bool
    progression_strategy: ProgressionStrategy
    auto_regulation: bool
    created_at: datetime


class TemplateDetail(TemplateSummary):
    phases: list[PhaseResponse] = Field(default_factory=list)
    slots: list[SlotResponse] = Field(default_factory=list)


class TemplateFilter(BaseModel):
    category: str | None = None
    difficulty: Difficulty | None = None
    has_exercise_slots: bool | None = None
    is_public: bool | None = None
    created_by: int | None = None
    search: str | None = None

    def to_filter(self) -> dict:
        return self.model_dump(exclude_none=True)

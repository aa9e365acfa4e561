from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from periodization.models.enums import PhaseType, SubscriptionStatus, WorkoutType


class JoinRequest(BaseModel):
    program_id: int
    # slot id -> exercise id; omit to use previously staged selections
    exercise_selections: dict[int, int] | None = None
    activate: bool = False


class AssignRequest(BaseModel):
    athlete_id: int
    program_id: int
    exercise_selections: dict[int, int] | None = None


class SelectionRequest(BaseModel):
    program_id: int
    exercise_selections: dict[int, int] = Field(default_factory=dict)


class StatusUpdate(BaseModel):
    status: SubscriptionStatus


class SkipToDayRequest(BaseModel):
    target_day: int = Field(..., ge=1, le=7)


class AdherenceSample(BaseModel):
    completed: bool
    workout_id: int | None = None
    rpe: float | None = Field(None, ge=0, le=10)
    notes: str | None = None
    log_performance: bool = True


class SelectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    slot_id: int
    exercise_id: int
    subscription_id: int | None = None


class ValidatedSelectionsResponse(BaseModel):
    program_id: int
    selections: dict[int, int]
    warnings: list[str] = Field(default_factory=list)


class SubscriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    program_id: int
    status: SubscriptionStatus
    current_week: int
    current_day: int
    current_phase_id: int | None = None
    current_week_in_phase: int
    start_date: date
    is_currently_active: bool
    workouts_completed: int
    adherence_rate: float
    last_workout_completed_at: datetime | None = None
    assigned_by: int | None = None
    completed_at: datetime | None = None
    archived_at: datetime | None = None
    updated_at: datetime


class PrescribedExercise(BaseModel):
    exercise_id: int | None = None
    slot_id: int | None = None
    slot_label: str | None = None
    exercise_order: int
    sets: int | None = None
    reps_min: int | None = None
    reps_max: int | None = None
    target_rpe: float | None = None
    target_intensity: float | None = None
    rest_seconds: int | None = None
    tempo: str | None = None
    notes: str | None = None


class TodaysWorkout(BaseModel):
    workout_id: int
    week_number: int
    day_number: int
    day_label: str | None = None
    workout_type: WorkoutType
    phase_name: str
    volume_modifier: int
    intensity_modifier: int
    exercises: list[PrescribedExercise]


class ProgressSummary(BaseModel):
    subscription_id: int
    program_id: int
    program_name: str
    status: SubscriptionStatus
    progress_percentage: float
    current_week: int
    current_day: int
    total_weeks: int
    phase_name: str | None = None
    phase_type: PhaseType | None = None
    current_week_in_phase: int
    workouts_completed: int
    scheduled_to_date: int
    logged_completions: int
    adherence_rate: float
    last_workout_completed_at: datetime | None = None
    is_currently_active: bool

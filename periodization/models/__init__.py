"""ORM models."""
from periodization.models.coaching import TrainerClient
from periodization.models.enums import (
    ActiveKind,
    Difficulty,
    MovementPattern,
    PhaseType,
    ProgressionStrategy,
    RelationshipStatus,
    SessionStatus,
    SubscriptionStatus,
    UserRole,
    VolumeLevel,
    WorkoutType,
)
from periodization.models.performance import WorkoutPerformance
from periodization.models.subscription import (
    ActiveSessionPointer,
    ProgramSubscription,
    UserExerciseSelection,
    WorkoutSession,
)
from periodization.models.template import (
    Exercise,
    ExerciseSlot,
    Microcycle,
    ProgramPhase,
    ProgramTemplate,
    Workout,
    WorkoutExercise,
)

__all__ = [
    "ActiveKind",
    "ActiveSessionPointer",
    "Difficulty",
    "Exercise",
    "ExerciseSlot",
    "Microcycle",
    "MovementPattern",
    "PhaseType",
    "ProgramPhase",
    "ProgramSubscription",
    "ProgramTemplate",
    "ProgressionStrategy",
    "RelationshipStatus",
    "SessionStatus",
    "SubscriptionStatus",
    "TrainerClient",
    "UserExerciseSelection",
    "UserRole",
    "VolumeLevel",
    "Workout",
    "WorkoutExercise",
    "WorkoutPerformance",
    "WorkoutSession",
]

"""Enumerations shared by the catalog and lifecycle models."""
from enum import Enum


class Difficulty(str, Enum):
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"
    EXPERT = "EXPERT"


class ProgressionStrategy(str, Enum):
    LINEAR = "LINEAR"
    AUTO_REGULATED = "AUTO_REGULATED"
    CUSTOM = "CUSTOM"


class PhaseType(str, Enum):
    ACCUMULATION = "ACCUMULATION"
    INTENSIFICATION = "INTENSIFICATION"
    REALIZATION = "REALIZATION"
    DELOAD = "DELOAD"
    HYPERTROPHY = "HYPERTROPHY"
    STRENGTH = "STRENGTH"
    POWER = "POWER"
    ENDURANCE = "ENDURANCE"
    PEAKING = "PEAKING"
    TRANSITION = "TRANSITION"


class VolumeLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class WorkoutType(str, Enum):
    STRENGTH = "STRENGTH"
    HYPERTROPHY = "HYPERTROPHY"
    POWER = "POWER"
    CONDITIONING = "CONDITIONING"
    MOBILITY = "MOBILITY"
    RECOVERY = "RECOVERY"


class MovementPattern(str, Enum):
    SQUAT = "SQUAT"
    HINGE = "HINGE"
    LUNGE = "LUNGE"
    HORIZONTAL_PUSH = "HORIZONTAL_PUSH"
    HORIZONTAL_PULL = "HORIZONTAL_PULL"
    VERTICAL_PUSH = "VERTICAL_PUSH"
    VERTICAL_PULL = "VERTICAL_PULL"
    CARRY = "CARRY"
    CORE = "CORE"
    ISOLATION = "ISOLATION"


class SubscriptionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    ARCHIVED = "ARCHIVED"
    COMPLETED = "COMPLETED"

    @property
    def is_terminal(self) -> bool:
        return self in (SubscriptionStatus.ARCHIVED, SubscriptionStatus.COMPLETED)


class SessionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    ARCHIVED = "ARCHIVED"
    COMPLETED = "COMPLETED"


class ActiveKind(str, Enum):
    """Which kind of session a user's active pointer refers to."""
    PROGRAM = "PROGRAM"
    CUSTOM = "CUSTOM"
    NONE = "NONE"


class RelationshipStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"


class UserRole(str, Enum):
    ATHLETE = "ATHLETE"
    TRAINER = "TRAINER"
    ADMIN = "ADMIN"

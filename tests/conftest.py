"""Shared fixtures: an in-memory SQLite database per test and template builders."""
import asyncio
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from periodization.config.settings import Settings
from periodization.db.database import get_db, init_db
from periodization.models import Exercise, TrainerClient
from periodization.models.enums import MovementPattern, PhaseType, RelationshipStatus
from periodization.schemas.template import (
    MicrocycleCreate,
    NormalizedTemplate,
    PhaseCreate,
    SlotCreate,
    WorkoutCreate,
    WorkoutExerciseCreate,
)
from periodization.services.notifications import NotificationRequest
from periodization.services.subscription_lifecycle import SubscriptionService
from periodization.services.template_catalog import TemplateCatalogService


class RecordingDispatcher:
    """Collects notification requests instead of delivering them."""

    def __init__(self):
        self.sent: list[NotificationRequest] = []

    async def send(self, request: NotificationRequest) -> None:
        self.sent.append(request)

    def keys(self) -> list[str]:
        return [r.template_key for r in self.sent]


async def drain_notifications() -> None:
    """Let fire-and-forget dispatch tasks run."""
    for _ in range(3):
        await asyncio.sleep(0)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def async_db_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite+aiosqlite://",
        adherence_smoothing=0.2,
        adherence_count_misses_on_rollover=True,
        slot_constraints_enforced=False,
    )


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def subscription_service(async_db_session, settings, dispatcher):
    return SubscriptionService(async_db_session, settings=settings, dispatcher=dispatcher)


@pytest.fixture
def catalog(async_db_session):
    return TemplateCatalogService(async_db_session)


@pytest_asyncio.fixture
async def exercises(async_db_session) -> dict[str, Exercise]:
    """Exercise reference rows keyed by a short name."""
    rows = {
        "back_squat": Exercise(
            name="Back Squat",
            movement_pattern=MovementPattern.SQUAT,
            muscle_targets=["quads", "glutes"],
            equipment=["barbell"],
        ),
        "front_squat": Exercise(
            name="Front Squat",
            movement_pattern=MovementPattern.SQUAT,
            muscle_targets=["quads"],
            equipment=["barbell"],
        ),
        "deadlift": Exercise(
            name="Deadlift",
            movement_pattern=MovementPattern.HINGE,
            muscle_targets=["hamstrings", "glutes"],
            equipment=["barbell"],
        ),
        "bench_press": Exercise(
            name="Bench Press",
            movement_pattern=MovementPattern.HORIZONTAL_PUSH,
            muscle_targets=["chest", "triceps"],
            equipment=["barbell", "bench"],
        ),
        "pull_up": Exercise(
            name="Pull-Up",
            movement_pattern=MovementPattern.VERTICAL_PULL,
            muscle_targets=["lats"],
            equipment=["pull-up bar"],
        ),
    }
    async_db_session.add_all(rows.values())
    await async_db_session.commit()
    return rows


def build_template(
    name: str = "Strength Block",
    phases: list[tuple[int, int]] = ((1, 6), (7, 12)),
    days: tuple[int, ...] = (1, 3, 5),
    fixed_exercise_id: int | None = None,
    slots: list[SlotCreate] | None = None,
    volume_modifier: int = 100,
    intensity_modifier: int = 100,
) -> NormalizedTemplate:
    """A template with one microcycle per week and the same workout days every week.

    Each workout prescribes the fixed exercise (when given) followed by one line
    per slot.
    """
    slots = list(slots or [])
    phase_types = [PhaseType.ACCUMULATION, PhaseType.INTENSIFICATION, PhaseType.REALIZATION, PhaseType.DELOAD]

    def exercise_lines():
        lines = []
        if fixed_exercise_id is not None:
            lines.append(WorkoutExerciseCreate(fixed_exercise_id=fixed_exercise_id, exercise_order=1, sets=4, reps_min=5, reps_max=5))
        for offset, slot in enumerate(slots, start=len(lines) + 1):
            lines.append(WorkoutExerciseCreate(slot_number=slot.slot_number, exercise_order=offset, sets=3))
        return lines

    phase_payloads = []
    for number, (start, end) in enumerate(phases, start=1):
        phase_payloads.append(
            PhaseCreate(
                phase_number=number,
                phase_name=f"Phase {number}",
                phase_type=phase_types[(number - 1) % len(phase_types)],
                start_week=start,
                end_week=end,
                target_intensity_low=70.0,
                target_intensity_high=80.0,
                rep_range_low=6,
                rep_range_high=10,
                sets_per_exercise=3,
                rest_seconds_min=90,
                microcycles=[
                    MicrocycleCreate(
                        week_number=week,
                        volume_modifier=volume_modifier,
                        intensity_modifier=intensity_modifier,
                        workouts=[
                            WorkoutCreate(day_number=day, day_label=f"Day {day}", exercises=exercise_lines())
                            for day in days
                        ],
                    )
                    for week in range(start, end + 1)
                ],
            )
        )

    return NormalizedTemplate(
        name=name,
        duration_weeks=phases[-1][1],
        has_exercise_slots=bool(slots),
        slots=slots,
        phases=phase_payloads,
    )


def squat_slot(number: int = 1, required: bool = True) -> SlotCreate:
    return SlotCreate(
        slot_number=number,
        slot_label="Main Squat",
        movement_pattern=MovementPattern.SQUAT,
        muscle_targets=["quads"],
        equipment_options=["barbell"],
        is_required=required,
    )


@pytest_asyncio.fixture
async def twelve_week_template(catalog, exercises):
    """12 weeks split into two 6-week phases, training days 1, 3 and 5."""
    return await catalog.register_template(
        build_template(fixed_exercise_id=exercises["back_squat"].id)
    )


@pytest_asyncio.fixture
async def slotted_template(catalog, exercises):
    """4-week single-phase template with one required squat slot."""
    return await catalog.register_template(
        build_template(
            name="Squat Specialization",
            phases=[(1, 4)],
            fixed_exercise_id=exercises["deadlift"].id,
            slots=[squat_slot()],
        )
    )


async def add_relationship(session, trainer_id: int, client_id: int, status=RelationshipStatus.ACTIVE):
    session.add(TrainerClient(trainer_id=trainer_id, client_id=client_id, status=status))
    await session.commit()


@pytest_asyncio.fixture
async def api_client(session_maker):
    """HTTP client against the app with get_db bound to the test database."""
    from periodization.main import create_app

    app = create_app()

    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                if session.in_transaction():
                    await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

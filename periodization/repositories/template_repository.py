from __future__ import annotations
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func
from sqlalchemy.orm import selectinload
from periodization.core.pagination import decode_cursor, encode_cursor
from periodization.models.subscription import ProgramSubscription
from periodization.models.template import (
    Exercise,
    ExerciseSlot,
    Microcycle,
    ProgramPhase,
    ProgramTemplate,
    Workout,
)
from periodization.repositories.base import Repository
from periodization.schemas.pagination import PaginationParams, PaginatedResult


def _full_tree():
    return (
        selectinload(ProgramTemplate.phases)
        .selectinload(ProgramPhase.microcycles)
        .selectinload(Microcycle.workouts)
        .selectinload(Workout.exercises),
        selectinload(ProgramTemplate.slots),
    )


class TemplateRepository(Repository[ProgramTemplate, int]):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, id: int) -> ProgramTemplate | None:
        result = await self._session.execute(
            select(ProgramTemplate)
            .options(*_full_tree())
            .where(ProgramTemplate.id == id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list(self, filter: dict, pagination: PaginationParams) -> PaginatedResult[ProgramTemplate]:
        query = select(ProgramTemplate)

        if 'category' in filter:
            query = query.where(ProgramTemplate.category == filter['category'])
        if 'difficulty' in filter:
            query = query.where(ProgramTemplate.difficulty == filter['difficulty'])
        if 'has_exercise_slots' in filter:
            query = query.where(ProgramTemplate.has_exercise_slots == filter['has_exercise_slots'])
        if 'is_public' in filter:
            query = query.where(ProgramTemplate.is_public == filter['is_public'])
        if 'created_by' in filter:
            query = query.where(ProgramTemplate.created_by == filter['created_by'])
        if 'search' in filter:
            query = query.where(ProgramTemplate.name.ilike(f"%{filter['search']}%"))

        query = query.order_by(ProgramTemplate.id.desc())

        if pagination.cursor:
            _, value = decode_cursor(pagination.cursor)
            if pagination.direction == "next":
                query = query.where(ProgramTemplate.id < int(value))
            else:
                query = query.where(ProgramTemplate.id > int(value))

        query = query.limit(pagination.limit + 1)
        result = await self._session.execute(query)
        items = list(result.scalars().all())

        has_more = len(items) > pagination.limit
        items = items[:pagination.limit]

        next_cursor = None
        if items and has_more:
            next_cursor = encode_cursor(items[-1].id, "id")

        return PaginatedResult(items=items, next_cursor=next_cursor, has_more=has_more)

    async def create(self, entity: ProgramTemplate) -> ProgramTemplate:
        self._session.add(entity)
        await self._session.flush()
        return entity

    async def count_subscriptions(self, program_id: int) -> int:
        result = await self._session.execute(
            select(func.count(ProgramSubscription.id)).where(ProgramSubscription.program_id == program_id)
        )
        return result.scalar_one()

    async def get_phase(self, phase_id: int) -> ProgramPhase | None:
        return await self._session.get(ProgramPhase, phase_id)

    async def get_next_phase(self, program_id: int, phase_number: int) -> ProgramPhase | None:
        result = await self._session.execute(
            select(ProgramPhase)
            .where(
                and_(
                    ProgramPhase.program_id == program_id,
                    ProgramPhase.phase_number > phase_number,
                )
            )
            .order_by(ProgramPhase.phase_number.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_microcycle_for_week(self, phase_id: int, week_number: int) -> Microcycle | None:
        result = await self._session.execute(
            select(Microcycle)
            .options(selectinload(Microcycle.workouts).selectinload(Workout.exercises))
            .where(
                and_(
                    Microcycle.phase_id == phase_id,
                    Microcycle.week_number == week_number,
                )
            )
        )
        return result.scalar_one_or_none()

    async def list_slots(self, program_id: int) -> list[ExerciseSlot]:
        result = await self._session.execute(
            select(ExerciseSlot)
            .where(ExerciseSlot.program_id == program_id)
            .order_by(ExerciseSlot.slot_number)
        )
        return list(result.scalars().all())

    async def get_exercises(self, exercise_ids: list[int]) -> dict[int, Exercise]:
        if not exercise_ids:
            return {}
        result = await self._session.execute(
            select(Exercise).where(Exercise.id.in_(exercise_ids))
        )
        return {exercise.id: exercise for exercise in result.scalars().all()}

    async def delete_structure(self, template: ProgramTemplate) -> None:
        """Drop phases and slots so a new structure can be attached."""
        template.phases.clear()
        template.slots.clear()
        await self._session.flush()

    async def flush(self) -> None:
        await self._session.flush()

    async def count_workouts_before(self, program_id: int, week_number: int, day_number: int) -> int:
        """Scheduled workouts strictly before (week_number, day_number)."""
        result = await self._session.execute(
            select(func.count(Workout.id))
            .join(Microcycle, Workout.microcycle_id == Microcycle.id)
            .join(ProgramPhase, Microcycle.phase_id == ProgramPhase.id)
            .where(
                and_(
                    ProgramPhase.program_id == program_id,
                    or_(
                        Microcycle.week_number < week_number,
                        and_(
                            Microcycle.week_number == week_number,
                            Workout.day_number < day_number,
                        ),
                    ),
                )
            )
        )
        return result.scalar_one()

from __future__ import annotations
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func
from periodization.models.performance import WorkoutPerformance


class PerformanceRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, entity: WorkoutPerformance) -> WorkoutPerformance:
        self._session.add(entity)
        await self._session.flush()
        return entity

    async def count_completed(self, subscription_id: int) -> int:
        result = await self._session.execute(
            select(func.count(WorkoutPerformance.id)).where(
                and_(
                    WorkoutPerformance.subscription_id == subscription_id,
                    WorkoutPerformance.completed == True,
                )
            )
        )
        return result.scalar_one()

    async def completed_days(self, subscription_id: int, week_number: int) -> set[int]:
        """Days of a week that have at least one completed performance logged."""
        result = await self._session.execute(
            select(WorkoutPerformance.day_number)
            .where(
                and_(
                    WorkoutPerformance.subscription_id == subscription_id,
                    WorkoutPerformance.week_number == week_number,
                    WorkoutPerformance.completed == True,
                )
            )
            .distinct()
        )
        return set(result.scalars().all())

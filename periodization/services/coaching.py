from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from periodization.repositories.coaching_repository import CoachingRepository


class CoachingDirectory(Protocol):
    """Answers whether a trainer currently coaches an athlete."""

    async def has_active_relationship(self, trainer_id: int, athlete_id: int) -> bool:
        ...


class SqlCoachingDirectory:
    def __init__(self, session: AsyncSession):
        self._repo = CoachingRepository(session)

    async def has_active_relationship(self, trainer_id: int, athlete_id: int) -> bool:
        if trainer_id == athlete_id:
            return False
        return await self._repo.has_active_relationship(trainer_id, athlete_id)

from __future__ import annotations
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, exists
from periodization.models.coaching import TrainerClient
from periodization.models.enums import RelationshipStatus


class CoachingRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def has_active_relationship(self, trainer_id: int, client_id: int) -> bool:
        result = await self._session.execute(
            select(
                exists().where(
                    and_(
                        TrainerClient.trainer_id == trainer_id,
                        TrainerClient.client_id == client_id,
                        TrainerClient.status == RelationshipStatus.ACTIVE,
                    )
                )
            )
        )
        return bool(result.scalar())

from __future__ import annotations
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, delete, update
from sqlalchemy.exc import IntegrityError
from periodization.core.exceptions import ConflictError
from periodization.models.subscription import UserExerciseSelection


class SelectionRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_for_subscription(self, subscription_id: int) -> list[UserExerciseSelection]:
        result = await self._session.execute(
            select(UserExerciseSelection)
            .where(UserExerciseSelection.subscription_id == subscription_id)
            .order_by(UserExerciseSelection.slot_id)
        )
        return list(result.scalars().all())

    async def list_staged(self, user_id: int, program_id: int) -> list[UserExerciseSelection]:
        result = await self._session.execute(
            select(UserExerciseSelection)
            .where(
                and_(
                    UserExerciseSelection.user_id == user_id,
                    UserExerciseSelection.program_id == program_id,
                    UserExerciseSelection.subscription_id.is_(None),
                )
            )
            .order_by(UserExerciseSelection.slot_id)
        )
        return list(result.scalars().all())

    async def delete_staged(self, user_id: int, program_id: int) -> None:
        await self._session.execute(
            delete(UserExerciseSelection)
            .where(
                and_(
                    UserExerciseSelection.user_id == user_id,
                    UserExerciseSelection.program_id == program_id,
                    UserExerciseSelection.subscription_id.is_(None),
                )
            )
            .execution_options(synchronize_session="fetch")
        )

    async def bind_staged(self, user_id: int, program_id: int, subscription_id: int) -> None:
        await self._session.execute(
            update(UserExerciseSelection)
            .where(
                and_(
                    UserExerciseSelection.user_id == user_id,
                    UserExerciseSelection.program_id == program_id,
                    UserExerciseSelection.subscription_id.is_(None),
                )
            )
            .values(subscription_id=subscription_id)
            .execution_options(synchronize_session="fetch")
        )

    async def add_many(self, selections: list[UserExerciseSelection]) -> list[UserExerciseSelection]:
        self._session.add_all(selections)
        await self._session.flush()
        return selections

    async def add_staged(self, user_id: int, program_id: int, selections: list[UserExerciseSelection]) -> None:
        """Insert a staged set.

        Two stagings racing for the same slot collide on uq_selection_staged_slot;
        the loser gets a ConflictError and can retry.
        """
        self._session.add_all(selections)
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise ConflictError(
                "Another selection for this program is being staged",
                code="CF_STAGING_RACE",
                details={"user_id": user_id, "program_id": program_id},
            ) from e

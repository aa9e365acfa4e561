from __future__ import annotations
from datetime import datetime
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, update
from periodization.core.exceptions import ConflictError
from periodization.core.pagination import decode_cursor, encode_cursor
from periodization.models.enums import SubscriptionStatus
from periodization.models.subscription import (
    ActiveSessionPointer,
    ProgramSubscription,
    WorkoutSession,
)
from periodization.repositories.base import Repository
from periodization.schemas.pagination import PaginationParams, PaginatedResult

NON_TERMINAL = (SubscriptionStatus.ACTIVE, SubscriptionStatus.PAUSED)


class SubscriptionRepository(Repository[ProgramSubscription, int]):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, id: int) -> ProgramSubscription | None:
        return await self._session.get(ProgramSubscription, id)

    async def get_for_update(self, id: int) -> ProgramSubscription | None:
        result = await self._session.execute(
            select(ProgramSubscription)
            .where(ProgramSubscription.id == id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_owned(self, id: int, user_id: int) -> ProgramSubscription | None:
        result = await self._session.execute(
            select(ProgramSubscription).where(
                and_(
                    ProgramSubscription.id == id,
                    ProgramSubscription.user_id == user_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def find_enrolled(self, user_id: int, program_id: int) -> ProgramSubscription | None:
        """The user's non-terminal subscription to a template, if any."""
        result = await self._session.execute(
            select(ProgramSubscription)
            .where(
                and_(
                    ProgramSubscription.user_id == user_id,
                    ProgramSubscription.program_id == program_id,
                    ProgramSubscription.status.in_(NON_TERMINAL),
                )
            )
            .order_by(ProgramSubscription.id.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list(self, filter: dict, pagination: PaginationParams) -> PaginatedResult[ProgramSubscription]:
        query = select(ProgramSubscription)

        if 'user_id' in filter:
            query = query.where(ProgramSubscription.user_id == filter['user_id'])
        if 'program_id' in filter:
            query = query.where(ProgramSubscription.program_id == filter['program_id'])
        if 'statuses' in filter:
            query = query.where(ProgramSubscription.status.in_(filter['statuses']))

        query = query.order_by(ProgramSubscription.id.desc())

        if pagination.cursor:
            _, value = decode_cursor(pagination.cursor)
            if pagination.direction == "next":
                query = query.where(ProgramSubscription.id < int(value))
            else:
                query = query.where(ProgramSubscription.id > int(value))

        query = query.limit(pagination.limit + 1)
        result = await self._session.execute(query)
        items = list(result.scalars().all())

        has_more = len(items) > pagination.limit
        items = items[:pagination.limit]

        next_cursor = None
        if items and has_more:
            next_cursor = encode_cursor(items[-1].id, "id")

        return PaginatedResult(items=items, next_cursor=next_cursor, has_more=has_more)

    async def list_by_user(self, user_id: int, statuses: list[SubscriptionStatus] | None = None) -> list[ProgramSubscription]:
        query = select(ProgramSubscription).where(ProgramSubscription.user_id == user_id)
        if statuses:
            query = query.where(ProgramSubscription.status.in_(statuses))
        result = await self._session.execute(query.order_by(ProgramSubscription.id.asc()))
        return list(result.scalars().all())

    async def create(self, entity: ProgramSubscription) -> ProgramSubscription:
        self._session.add(entity)
        await self._session.flush()
        return entity

    async def clear_currently_active(self, user_id: int, exclude_subscription_id: int | None = None) -> None:
        conditions = [
            ProgramSubscription.user_id == user_id,
            ProgramSubscription.is_currently_active == True,
        ]
        if exclude_subscription_id is not None:
            conditions.append(ProgramSubscription.id != exclude_subscription_id)
        await self._session.execute(
            update(ProgramSubscription)
            .where(and_(*conditions))
            .values(is_currently_active=False, updated_at=datetime.utcnow())
            .execution_options(synchronize_session="fetch")
        )

    async def clear_sessions_active(self, user_id: int, exclude_session_id: int | None = None) -> None:
        conditions = [
            WorkoutSession.user_id == user_id,
            WorkoutSession.is_currently_active == True,
        ]
        if exclude_session_id is not None:
            conditions.append(WorkoutSession.id != exclude_session_id)
        await self._session.execute(
            update(WorkoutSession)
            .where(and_(*conditions))
            .values(is_currently_active=False, updated_at=datetime.utcnow())
            .execution_options(synchronize_session="fetch")
        )

    async def get_session_owned(self, session_id: int, user_id: int) -> WorkoutSession | None:
        result = await self._session.execute(
            select(WorkoutSession).where(
                and_(
                    WorkoutSession.id == session_id,
                    WorkoutSession.user_id == user_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def get_pointer(self, user_id: int) -> ActiveSessionPointer | None:
        return await self._session.get(ActiveSessionPointer, user_id)

    async def lock_pointer(self, user_id: int) -> ActiveSessionPointer:
        """Fetch the user's pointer row with a row lock, creating it if missing.

        Two first-time activations racing on the insert collide on the primary
        key; the loser gets a ConflictError and can retry.
        """
        result = await self._session.execute(
            select(ActiveSessionPointer)
            .where(ActiveSessionPointer.user_id == user_id)
            .with_for_update()
        )
        pointer = result.scalar_one_or_none()
        if pointer is not None:
            return pointer

        pointer = ActiveSessionPointer(user_id=user_id)
        pointer.clear()
        self._session.add(pointer)
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise ConflictError(
                "Another activation for this user is in progress",
                code="CF_ACTIVATION_RACE",
                details={"user_id": user_id},
            ) from e
        return pointer

    async def flush(self) -> None:
        await self._session.flush()

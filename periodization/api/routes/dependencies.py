"""Shared dependencies for API routes.

Identity is resolved upstream by the gateway and forwarded as headers; the
engine trusts ``X-User-Id`` and ``X-User-Role`` as given.
"""
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from periodization.core.exceptions import AuthenticationError, AuthorizationError
from periodization.db.database import get_db
from periodization.models.enums import UserRole
from periodization.schemas.base import APIResponse, ResponseMeta
from periodization.services.progress import ProgressService
from periodization.services.slot_resolution import SlotResolutionService
from periodization.services.subscription_lifecycle import SubscriptionService
from periodization.services.template_catalog import TemplateCatalogService


async def get_current_user_id(
    x_user_id: int | None = Header(None, alias="X-User-Id"),
) -> int:
    """Get the calling user's id.

    Raises:
        AuthenticationError: If the gateway did not forward an identity
    """
    if x_user_id is None:
        raise AuthenticationError("Missing X-User-Id header")
    return x_user_id


async def get_current_role(
    x_user_role: str | None = Header(None, alias="X-User-Role"),
) -> UserRole:
    if not x_user_role:
        return UserRole.ATHLETE
    try:
        return UserRole(x_user_role.upper())
    except ValueError:
        raise AuthenticationError(f"Unknown role {x_user_role!r}", details={"role": x_user_role})


async def require_trainer(role: UserRole = Depends(get_current_role)) -> UserRole:
    if role not in (UserRole.TRAINER, UserRole.ADMIN):
        raise AuthorizationError(
            "Trainer access required",
            details={"required_roles": [UserRole.TRAINER.value, UserRole.ADMIN.value], "user_role": role.value},
        )
    return role


def get_catalog_service(db: AsyncSession = Depends(get_db)) -> TemplateCatalogService:
    return TemplateCatalogService(db)


def get_slot_service(db: AsyncSession = Depends(get_db)) -> SlotResolutionService:
    return SlotResolutionService(db)


def get_subscription_service(db: AsyncSession = Depends(get_db)) -> SubscriptionService:
    return SubscriptionService(db)


def get_progress_service(db: AsyncSession = Depends(get_db)) -> ProgressService:
    return ProgressService(db)


def respond(
    request: Request,
    data,
    warnings: list[str] | None = None,
    next_cursor: str | None = None,
    has_more: bool | None = None,
) -> APIResponse:
    """Wrap a payload in the standard response envelope."""
    return APIResponse(
        data=data,
        meta=ResponseMeta(
            request_id=getattr(request.state, "request_id", None),
            warnings=warnings or [],
            next_cursor=next_cursor,
            has_more=has_more,
        ),
    )

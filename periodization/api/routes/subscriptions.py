"""API routes for joining programs and moving through them."""
from fastapi import APIRouter, Depends, Query, Request, Response, status

from periodization.api.routes.dependencies import (
    get_current_user_id,
    get_slot_service,
    get_subscription_service,
    respond,
)
from periodization.config.settings import get_settings
from periodization.core.exceptions import AlreadyEnrolledError
from periodization.core.logging import get_logger
from periodization.models.enums import SubscriptionStatus
from periodization.models.performance import WorkoutPerformance
from periodization.schemas.base import APIResponse
from periodization.schemas.pagination import PaginationParams
from periodization.schemas.subscription import (
    AdherenceSample,
    JoinRequest,
    SelectionRequest,
    SkipToDayRequest,
    StatusUpdate,
    SubscriptionResponse,
    ValidatedSelectionsResponse,
)
from periodization.services.slot_resolution import SlotResolutionService
from periodization.services.subscription_lifecycle import SubscriptionService

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])
settings = get_settings()
logger = get_logger(__name__)


@router.post("/join", response_model=APIResponse[SubscriptionResponse], status_code=status.HTTP_201_CREATED)
async def join_program(
    request: Request,
    response: Response,
    payload: JoinRequest,
    user_id: int = Depends(get_current_user_id),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Join a program.

    Joining a program the user already follows is not an error for the
    client: the existing subscription comes back with status 200.
    """
    try:
        enrollment = await service.join(
            user_id,
            payload.program_id,
            selections=payload.exercise_selections,
            activate=payload.activate,
        )
    except AlreadyEnrolledError as e:
        existing = await service.get_subscription(e.subscription_id, user_id)
        response.status_code = status.HTTP_200_OK
        return respond(request, SubscriptionResponse.model_validate(existing), warnings=[e.message])

    return respond(
        request,
        SubscriptionResponse.model_validate(enrollment.subscription),
        warnings=enrollment.warnings,
    )


@router.post("/selections/validate", response_model=APIResponse[ValidatedSelectionsResponse])
async def validate_selections(
    request: Request,
    payload: SelectionRequest,
    service: SlotResolutionService = Depends(get_slot_service),
):
    """Check a selection set against a template without saving it."""
    validated = await service.resolve_selections(payload.program_id, payload.exercise_selections)
    return respond(
        request,
        ValidatedSelectionsResponse(
            program_id=validated.program_id,
            selections=validated.selections,
            warnings=validated.warnings,
        ),
        warnings=validated.warnings,
    )


@router.put("/selections/staged", response_model=APIResponse[ValidatedSelectionsResponse])
async def stage_selections(
    request: Request,
    payload: SelectionRequest,
    user_id: int = Depends(get_current_user_id),
    service: SlotResolutionService = Depends(get_slot_service),
):
    """Save selections ahead of joining; used by the next join for that program."""
    validated = await service.stage_selections(user_id, payload.program_id, payload.exercise_selections)
    return respond(
        request,
        ValidatedSelectionsResponse(
            program_id=validated.program_id,
            selections=validated.selections,
            warnings=validated.warnings,
        ),
        warnings=validated.warnings,
    )


@router.get("", response_model=APIResponse[list[SubscriptionResponse]])
async def list_subscriptions(
    request: Request,
    status_filter: SubscriptionStatus | None = Query(None, alias="status"),
    cursor: str | None = None,
    limit: int = Query(settings.default_page_size, ge=1, le=100),
    user_id: int = Depends(get_current_user_id),
    service: SubscriptionService = Depends(get_subscription_service),
):
    page = await service.list_subscriptions(
        user_id,
        status=status_filter,
        pagination=PaginationParams(cursor=cursor, limit=limit),
    )
    return respond(
        request,
        [SubscriptionResponse.model_validate(s) for s in page.items],
        next_cursor=page.next_cursor,
        has_more=page.has_more,
    )


@router.get("/active", response_model=APIResponse[SubscriptionResponse | None])
async def get_active_subscription(
    request: Request,
    user_id: int = Depends(get_current_user_id),
    service: SubscriptionService = Depends(get_subscription_service),
):
    subscription = await service.get_active(user_id)
    data = SubscriptionResponse.model_validate(subscription) if subscription else None
    return respond(request, data)


@router.post("/sessions/{session_id}/activate")
async def activate_session(
    request: Request,
    session_id: int,
    user_id: int = Depends(get_current_user_id),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Make an ad-hoc workout session the user's currently active one."""
    workout_session = await service.set_active_session(session_id, user_id)
    return respond(
        request,
        {"session_id": workout_session.id, "is_currently_active": workout_session.is_currently_active},
    )


@router.get("/{subscription_id}", response_model=APIResponse[SubscriptionResponse])
async def get_subscription(
    request: Request,
    subscription_id: int,
    user_id: int = Depends(get_current_user_id),
    service: SubscriptionService = Depends(get_subscription_service),
):
    subscription = await service.get_subscription(subscription_id, user_id)
    return respond(request, SubscriptionResponse.model_validate(subscription))


@router.get("/{subscription_id}/selections", response_model=APIResponse[dict[int, int]])
async def get_selections(
    request: Request,
    subscription_id: int,
    user_id: int = Depends(get_current_user_id),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
    slots: SlotResolutionService = Depends(get_slot_service),
):
    await subscriptions.get_subscription(subscription_id, user_id)
    return respond(request, await slots.selections_for(subscription_id))


@router.post("/{subscription_id}/activate", response_model=APIResponse[SubscriptionResponse])
async def activate_subscription(
    request: Request,
    subscription_id: int,
    user_id: int = Depends(get_current_user_id),
    service: SubscriptionService = Depends(get_subscription_service),
):
    subscription = await service.set_active(subscription_id, user_id)
    return respond(request, SubscriptionResponse.model_validate(subscription))


@router.patch("/{subscription_id}/status", response_model=APIResponse[SubscriptionResponse])
async def update_status(
    request: Request,
    subscription_id: int,
    payload: StatusUpdate,
    user_id: int = Depends(get_current_user_id),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Pause, resume or archive. The caller is the owner or their trainer."""
    subscription = await service.set_status(subscription_id, user_id, payload.status)
    return respond(request, SubscriptionResponse.model_validate(subscription))


@router.post("/{subscription_id}/advance", response_model=APIResponse[SubscriptionResponse])
async def advance_subscription(
    request: Request,
    subscription_id: int,
    user_id: int = Depends(get_current_user_id),
    service: SubscriptionService = Depends(get_subscription_service),
):
    await service.get_subscription(subscription_id, user_id)
    subscription = await service.advance(subscription_id)
    return respond(request, SubscriptionResponse.model_validate(subscription))


@router.patch("/{subscription_id}/day", response_model=APIResponse[SubscriptionResponse])
async def skip_to_day(
    request: Request,
    subscription_id: int,
    payload: SkipToDayRequest,
    user_id: int = Depends(get_current_user_id),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Jump to a day of the current week, e.g. to skip a rest day."""
    subscription = await service.skip_to_day(subscription_id, user_id, payload.target_day)
    return respond(request, SubscriptionResponse.model_validate(subscription))


@router.post("/{subscription_id}/adherence", response_model=APIResponse[SubscriptionResponse])
async def record_adherence(
    request: Request,
    subscription_id: int,
    payload: AdherenceSample,
    user_id: int = Depends(get_current_user_id),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Record the outcome of a scheduled workout."""
    await service.get_subscription(subscription_id, user_id)
    performance = None
    if payload.log_performance:
        performance = WorkoutPerformance(
            workout_id=payload.workout_id,
            rpe=payload.rpe,
            notes=payload.notes,
        )
    subscription = await service.record_adherence_sample(subscription_id, payload.completed, performance)
    return respond(request, SubscriptionResponse.model_validate(subscription))

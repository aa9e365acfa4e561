"""API routes for progress reads."""
from fastapi import APIRouter, Depends, Request

from periodization.api.routes.dependencies import (
    get_current_user_id,
    get_progress_service,
    get_subscription_service,
    respond,
)
from periodization.schemas.base import APIResponse
from periodization.schemas.subscription import ProgressSummary, TodaysWorkout
from periodization.services.progress import ProgressService
from periodization.services.subscription_lifecycle import SubscriptionService

router = APIRouter(prefix="/subscriptions", tags=["progress"])


@router.get("/{subscription_id}/progress", response_model=APIResponse[ProgressSummary])
async def get_progress(
    request: Request,
    subscription_id: int,
    user_id: int = Depends(get_current_user_id),
    service: ProgressService = Depends(get_progress_service),
):
    return respond(request, await service.summary(subscription_id, user_id=user_id))


@router.get("/{subscription_id}/today", response_model=APIResponse[TodaysWorkout | None])
async def get_todays_workout(
    request: Request,
    subscription_id: int,
    user_id: int = Depends(get_current_user_id),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
    service: ProgressService = Depends(get_progress_service),
):
    """Today's prescription with slots resolved; data is null on a rest day."""
    subscription = await subscriptions.get_subscription(subscription_id, user_id)
    return respond(request, await service.todays_workout(subscription))

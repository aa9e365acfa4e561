"""API routes for trainers managing their athletes' programs."""
from fastapi import APIRouter, Depends, Request, status

from periodization.api.routes.dependencies import (
    get_current_user_id,
    get_progress_service,
    get_subscription_service,
    require_trainer,
    respond,
)
from periodization.schemas.base import APIResponse
from periodization.schemas.subscription import AssignRequest, ProgressSummary, SubscriptionResponse
from periodization.services.progress import ProgressService
from periodization.services.subscription_lifecycle import SubscriptionService

router = APIRouter(prefix="/coaching", tags=["coaching"])


@router.post("/assignments", response_model=APIResponse[SubscriptionResponse], status_code=status.HTTP_201_CREATED)
async def assign_program(
    request: Request,
    payload: AssignRequest,
    trainer_id: int = Depends(get_current_user_id),
    _role=Depends(require_trainer),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Enroll a coached athlete in a program and notify them."""
    enrollment = await service.assign(
        trainer_id,
        payload.athlete_id,
        payload.program_id,
        selections=payload.exercise_selections,
    )
    return respond(
        request,
        SubscriptionResponse.model_validate(enrollment.subscription),
        warnings=enrollment.warnings,
    )


@router.get("/clients/{athlete_id}/progress", response_model=APIResponse[list[ProgressSummary]])
async def client_progress(
    request: Request,
    athlete_id: int,
    trainer_id: int = Depends(get_current_user_id),
    _role=Depends(require_trainer),
    service: ProgressService = Depends(get_progress_service),
):
    return respond(request, await service.client_progress(trainer_id, athlete_id))

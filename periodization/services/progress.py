"""Read-only progress metrics derived from subscriptions and logged workouts."""
from sqlalchemy.ext.asyncio import AsyncSession

from periodization.core.exceptions import DataIntegrityError, NoActiveRelationshipError, NotFoundError
from periodization.core.logging import get_logger
from periodization.models.enums import SubscriptionStatus
from periodization.models.subscription import ProgramSubscription
from periodization.models.template import (
    ExerciseSlot,
    Microcycle,
    ProgramPhase,
    ProgramTemplate,
    WorkoutExercise,
)
from periodization.repositories.performance_repository import PerformanceRepository
from periodization.repositories.selection_repository import SelectionRepository
from periodization.repositories.subscription_repository import SubscriptionRepository
from periodization.repositories.template_repository import TemplateRepository
from periodization.schemas.subscription import PrescribedExercise, ProgressSummary, TodaysWorkout
from periodization.services.base import BaseService
from periodization.services.coaching import CoachingDirectory, SqlCoachingDirectory

logger = get_logger(__name__)


def progress_percentage(subscription, template) -> float:
    """Share of the template's weeks reached, as a percentage with one decimal."""
    if not template.duration_weeks or template.duration_weeks <= 0:
        return 0.0
    ratio = subscription.current_week / template.duration_weeks
    return round(min(1.0, max(0.0, ratio)) * 100, 1)


def _scaled(value: float | int | None, modifier: int) -> float | None:
    if value is None:
        return None
    return value * modifier / 100


def _phase_intensity(phase: ProgramPhase) -> float | None:
    low, high = phase.target_intensity_low, phase.target_intensity_high
    if low is not None and high is not None:
        return (low + high) / 2
    return low if low is not None else high


class ProgressService(BaseService):
    def __init__(self, session: AsyncSession, coaching: CoachingDirectory | None = None):
        super().__init__(session)
        self._template_repo = TemplateRepository(session)
        self._subscription_repo = SubscriptionRepository(session)
        self._selection_repo = SelectionRepository(session)
        self._performance_repo = PerformanceRepository(session)
        self._coaching = coaching or SqlCoachingDirectory(session)

    async def current_phase(self, subscription: ProgramSubscription) -> ProgramPhase:
        phase = None
        if subscription.current_phase_id is not None:
            phase = await self._template_repo.get_phase(subscription.current_phase_id)
        if phase is None or phase.program_id != subscription.program_id:
            logger.error(
                "subscription_phase_unresolvable",
                subscription_id=subscription.id,
                program_id=subscription.program_id,
                phase_id=subscription.current_phase_id,
            )
            raise DataIntegrityError(
                f"Subscription {subscription.id} points at a missing phase",
                {"subscription_id": subscription.id, "phase_id": subscription.current_phase_id},
            )
        return phase

    async def current_microcycle(self, subscription: ProgramSubscription) -> Microcycle | None:
        phase = await self.current_phase(subscription)
        return await self._template_repo.get_microcycle_for_week(phase.id, subscription.current_week)

    async def todays_workout(self, subscription: ProgramSubscription) -> TodaysWorkout | None:
        """The prescription for the subscription's current day, or None on a rest day."""
        phase = await self.current_phase(subscription)
        microcycle = await self._template_repo.get_microcycle_for_week(phase.id, subscription.current_week)
        if microcycle is None:
            return None
        workout = next((w for w in microcycle.workouts if w.day_number == subscription.current_day), None)
        if workout is None:
            return None

        selections = {
            row.slot_id: row.exercise_id
            for row in await self._selection_repo.list_for_subscription(subscription.id)
        }
        slots = {slot.id: slot for slot in await self._template_repo.list_slots(subscription.program_id)}

        return TodaysWorkout(
            workout_id=workout.id,
            week_number=subscription.current_week,
            day_number=workout.day_number,
            day_label=workout.day_label,
            workout_type=workout.workout_type,
            phase_name=phase.phase_name,
            volume_modifier=microcycle.volume_modifier,
            intensity_modifier=microcycle.intensity_modifier,
            exercises=[
                self._prescribe(exercise, phase, microcycle, selections, slots)
                for exercise in workout.exercises
            ],
        )

    def _prescribe(
        self,
        exercise: WorkoutExercise,
        phase: ProgramPhase,
        microcycle: Microcycle,
        selections: dict[int, int],
        slots: dict[int, ExerciseSlot],
    ) -> PrescribedExercise:
        base_sets = exercise.sets if exercise.sets is not None else phase.sets_per_exercise
        sets = None
        if base_sets is not None:
            sets = max(1, round(_scaled(base_sets, microcycle.volume_modifier)))

        base_intensity = exercise.target_intensity
        if base_intensity is None:
            base_intensity = _phase_intensity(phase)
        intensity = _scaled(base_intensity, microcycle.intensity_modifier)

        slot = slots.get(exercise.slot_id) if exercise.is_slot else None
        return PrescribedExercise(
            exercise_id=exercise.fixed_exercise_id if not exercise.is_slot else selections.get(exercise.slot_id),
            slot_id=exercise.slot_id,
            slot_label=slot.slot_label if slot else None,
            exercise_order=exercise.exercise_order,
            sets=sets,
            reps_min=exercise.reps_min if exercise.reps_min is not None else phase.rep_range_low,
            reps_max=exercise.reps_max if exercise.reps_max is not None else phase.rep_range_high,
            target_rpe=exercise.target_rpe,
            target_intensity=round(intensity, 1) if intensity is not None else None,
            rest_seconds=exercise.rest_seconds if exercise.rest_seconds is not None else phase.rest_seconds_min,
            tempo=exercise.tempo,
            notes=exercise.notes,
        )

    async def summary(self, subscription_id: int, user_id: int | None = None) -> ProgressSummary:
        """Progress snapshot for one subscription; restricted to its owner when user_id is given."""
        if user_id is None:
            subscription = await self._subscription_repo.get(subscription_id)
        else:
            subscription = await self._subscription_repo.get_owned(subscription_id, user_id)
        if subscription is None:
            raise NotFoundError("subscription", f"Subscription {subscription_id} not found", {"subscription_id": subscription_id})
        return await self._summarize(subscription)

    async def client_progress(self, trainer_id: int, athlete_id: int) -> list[ProgressSummary]:
        if not await self._coaching.has_active_relationship(trainer_id, athlete_id):
            raise NoActiveRelationshipError(trainer_id, athlete_id)
        subscriptions = await self._subscription_repo.list_by_user(
            athlete_id,
            statuses=[SubscriptionStatus.ACTIVE, SubscriptionStatus.PAUSED, SubscriptionStatus.COMPLETED],
        )
        return [await self._summarize(subscription) for subscription in subscriptions]

    async def _summarize(self, subscription: ProgramSubscription) -> ProgressSummary:
        template = await self._session.get(ProgramTemplate, subscription.program_id)
        if template is None:
            logger.error("subscription_template_missing", subscription_id=subscription.id, program_id=subscription.program_id)
            raise DataIntegrityError(
                f"Subscription {subscription.id} references a missing template",
                {"subscription_id": subscription.id, "program_id": subscription.program_id},
            )
        phase = await self.current_phase(subscription)

        return ProgressSummary(
            subscription_id=subscription.id,
            program_id=template.id,
            program_name=template.name,
            status=subscription.status,
            progress_percentage=progress_percentage(subscription, template),
            current_week=subscription.current_week,
            current_day=subscription.current_day,
            total_weeks=template.duration_weeks,
            phase_name=phase.phase_name,
            phase_type=phase.phase_type,
            current_week_in_phase=subscription.current_week_in_phase,
            workouts_completed=subscription.workouts_completed,
            scheduled_to_date=await self._template_repo.count_workouts_before(
                template.id, subscription.current_week, subscription.current_day
            ),
            logged_completions=await self._performance_repo.count_completed(subscription.id),
            adherence_rate=round(subscription.adherence_rate, 4),
            last_workout_completed_at=subscription.last_workout_completed_at,
            is_currently_active=subscription.is_currently_active,
        )

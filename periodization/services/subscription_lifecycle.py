"""
SubscriptionService - enrollment and progression of athletes through templates.

Responsible for:
- Joining a template (directly or assigned by a trainer) with slot selections
- The ACTIVE / PAUSED / ARCHIVED / COMPLETED state machine
- Advancing day -> week -> phase and completing the program
- Keeping exactly one currently-active program or custom session per user
- Folding completed and missed workouts into the adherence rate

Notifications raised while advancing or assigning are queued on an outbox and
only dispatched after the unit of work commits.
"""
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from periodization.config.settings import Settings, get_settings
from periodization.core.exceptions import (
    AlreadyEnrolledError,
    AuthorizationError,
    BusinessRuleError,
    CannotActivateTerminalSubscriptionError,
    DataIntegrityError,
    InvalidTransitionError,
    NoActiveRelationshipError,
    NotFoundError,
    ValidationError,
)
from periodization.core.logging import get_logger
from periodization.core.transactions import transactional
from periodization.models.enums import ActiveKind, SessionStatus, SubscriptionStatus
from periodization.models.performance import WorkoutPerformance
from periodization.models.subscription import ProgramSubscription, WorkoutSession
from periodization.models.template import ProgramPhase, ProgramTemplate
from periodization.repositories.performance_repository import PerformanceRepository
from periodization.repositories.subscription_repository import SubscriptionRepository
from periodization.repositories.template_repository import TemplateRepository
from periodization.schemas.pagination import PaginatedResult, PaginationParams
from periodization.services.base import BaseService
from periodization.services.coaching import CoachingDirectory, SqlCoachingDirectory
from periodization.services.notifications import (
    PHASE_STARTED,
    PROGRAM_ASSIGNED,
    PROGRAM_COMPLETED,
    NotificationDispatcher,
    NotificationOutbox,
    NotificationRequest,
    get_notification_dispatcher,
)
from periodization.services.progress import ProgressService
from periodization.services.slot_resolution import SlotResolutionService
from periodization.services.template_catalog import TemplateCatalogService

logger = get_logger(__name__)

DAYS_PER_WEEK = 7

# COMPLETED is only reachable through advance(); it is listed so the table
# documents every legal edge.
ALLOWED_TRANSITIONS: dict[SubscriptionStatus, set[SubscriptionStatus]] = {
    SubscriptionStatus.ACTIVE: {SubscriptionStatus.PAUSED, SubscriptionStatus.ARCHIVED, SubscriptionStatus.COMPLETED},
    SubscriptionStatus.PAUSED: {SubscriptionStatus.ACTIVE, SubscriptionStatus.ARCHIVED, SubscriptionStatus.COMPLETED},
}
USER_REQUESTABLE = {SubscriptionStatus.ACTIVE, SubscriptionStatus.PAUSED, SubscriptionStatus.ARCHIVED}


def smooth_adherence(rate: float, sample: float, alpha: float) -> float:
    """Exponential moving average of workout completion, clamped to [0, 1]."""
    updated = rate + alpha * (sample - rate)
    return min(1.0, max(0.0, updated))


def can_transition(current: SubscriptionStatus, requested: SubscriptionStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS.get(current, set())


@dataclass
class Enrollment:
    subscription: ProgramSubscription
    selections: dict[int, int] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


class SubscriptionService(BaseService):
    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        dispatcher: NotificationDispatcher | None = None,
        coaching: CoachingDirectory | None = None,
    ):
        super().__init__(session)
        self._settings = settings or get_settings()
        self._subscription_repo = SubscriptionRepository(session)
        self._template_repo = TemplateRepository(session)
        self._performance_repo = PerformanceRepository(session)
        self._catalog = TemplateCatalogService(session)
        self._slots = SlotResolutionService(session, self._settings)
        self._coaching = coaching or SqlCoachingDirectory(session)
        self._progress = ProgressService(session, self._coaching)
        self._outbox = NotificationOutbox(dispatcher or get_notification_dispatcher())

    async def _dispatching(self, work):
        """Await a unit of work and release its notifications once it commits."""
        try:
            result = await work
        except Exception:
            self._outbox.discard()
            raise
        self._outbox.release(self._session)
        return result

    # ------------------------------------------------------------------
    # Enrollment
    # ------------------------------------------------------------------

    @transactional()
    async def join(
        self,
        user_id: int,
        template_id: int,
        selections: dict[int, int] | None = None,
        activate: bool = False,
    ) -> Enrollment:
        """Subscribe a user to a template.

        Raises AlreadyEnrolledError, carrying the existing subscription, when the
        user already follows the template; nothing is written in that case.
        When ``selections`` is None any staged selection set is used.
        """
        return await self._enroll(user_id, template_id, selections, activate=activate)

    async def assign(
        self,
        trainer_id: int,
        athlete_id: int,
        template_id: int,
        selections: dict[int, int] | None = None,
    ) -> Enrollment:
        return await self._dispatching(self._assign(trainer_id, athlete_id, template_id, selections))

    @transactional()
    async def _assign(
        self,
        trainer_id: int,
        athlete_id: int,
        template_id: int,
        selections: dict[int, int] | None,
    ) -> Enrollment:
        if not await self._coaching.has_active_relationship(trainer_id, athlete_id):
            logger.warning("assign_refused", trainer_id=trainer_id, athlete_id=athlete_id)
            raise NoActiveRelationshipError(trainer_id, athlete_id)

        enrollment = await self._enroll(athlete_id, template_id, selections, assigned_by=trainer_id)
        self._outbox.enqueue(
            NotificationRequest(
                recipient_id=athlete_id,
                template_key=PROGRAM_ASSIGNED,
                payload={
                    "subscription_id": enrollment.subscription.id,
                    "program_id": template_id,
                    "program_name": enrollment.subscription.program.name,
                    "trainer_id": trainer_id,
                },
            )
        )
        return enrollment

    async def _enroll(
        self,
        user_id: int,
        template_id: int,
        selections: dict[int, int] | None,
        activate: bool = False,
        assigned_by: int | None = None,
    ) -> Enrollment:
        # Goes through the catalog so stored legacy blobs are normalized first
        template = await self._catalog.get_template(template_id)

        existing = await self._subscription_repo.find_enrolled(user_id, template_id)
        if existing is not None:
            logger.info("join_already_enrolled", user_id=user_id, template_id=template_id, subscription_id=existing.id)
            raise AlreadyEnrolledError(existing)

        first_phase = self._first_phase(template)

        from_staged = False
        if selections is None and template.has_exercise_slots:
            staged = await self._slots.staged_selections(user_id, template_id)
            if staged:
                selections, from_staged = staged, True
        validated = await self._slots.validate(template, selections)

        now = datetime.utcnow()
        subscription = ProgramSubscription(
            user_id=user_id,
            program_id=template.id,
            status=SubscriptionStatus.ACTIVE,
            current_week=1,
            current_day=1,
            current_phase_id=first_phase.id,
            current_week_in_phase=1,
            phase_started_at=now,
            start_date=now.date(),
            is_currently_active=False,
            workouts_completed=0,
            adherence_rate=1.0,
            assigned_by=assigned_by,
            created_at=now,
            updated_at=now,
        )
        subscription.program = template
        await self._subscription_repo.create(subscription)
        await self._slots.bind_selections(subscription, validated, from_staged=from_staged)

        if activate:
            await self._activate(subscription)

        logger.info(
            "subscription_created",
            subscription_id=subscription.id,
            user_id=user_id,
            template_id=template_id,
            assigned_by=assigned_by,
            selections=len(validated.selections),
            staged=from_staged,
        )
        return Enrollment(subscription, validated.selections, validated.warnings)

    def _first_phase(self, template: ProgramTemplate) -> ProgramPhase:
        if not template.phases:
            logger.error("template_without_phases", template_id=template.id)
            raise DataIntegrityError(
                f"Template {template.id} has no phases",
                {"template_id": template.id},
            )
        return min(template.phases, key=lambda p: p.phase_number)

    # ------------------------------------------------------------------
    # Currently-active exclusivity
    # ------------------------------------------------------------------

    @transactional()
    async def set_active(self, subscription_id: int, user_id: int) -> ProgramSubscription:
        """Make a subscription the user's single currently-active program."""
        subscription = await self._owned(subscription_id, user_id)
        if SubscriptionStatus(subscription.status).is_terminal:
            raise CannotActivateTerminalSubscriptionError(subscription.id, subscription.status.value)
        await self._activate(subscription)
        return subscription

    @transactional()
    async def set_active_session(self, session_id: int, user_id: int) -> WorkoutSession:
        workout_session = await self._subscription_repo.get_session_owned(session_id, user_id)
        if workout_session is None:
            raise NotFoundError("session", f"Session {session_id} not found", {"session_id": session_id})
        if workout_session.status in (SessionStatus.ARCHIVED, SessionStatus.COMPLETED):
            raise BusinessRuleError(
                f"Session is {workout_session.status.value.lower()} and cannot be made active",
                code="BR_SESSION_TERMINAL",
                details={"session_id": session_id, "status": workout_session.status.value},
            )

        pointer = await self._subscription_repo.lock_pointer(user_id)
        await self._subscription_repo.clear_currently_active(user_id)
        await self._subscription_repo.clear_sessions_active(user_id, exclude_session_id=workout_session.id)
        pointer.point_to_session(workout_session.id)
        workout_session.is_currently_active = True
        workout_session.updated_at = datetime.utcnow()
        await self._subscription_repo.flush()

        logger.info("session_activated", user_id=user_id, session_id=session_id)
        return workout_session

    async def _activate(self, subscription: ProgramSubscription) -> None:
        # The pointer row lock serializes concurrent activations for the user
        pointer = await self._subscription_repo.lock_pointer(subscription.user_id)
        await self._subscription_repo.clear_currently_active(
            subscription.user_id, exclude_subscription_id=subscription.id
        )
        await self._subscription_repo.clear_sessions_active(subscription.user_id)

        pointer.point_to_program(subscription.id)
        subscription.is_currently_active = True
        if subscription.status == SubscriptionStatus.PAUSED:
            subscription.status = SubscriptionStatus.ACTIVE
        subscription.updated_at = datetime.utcnow()
        await self._subscription_repo.flush()

        logger.info("subscription_activated", subscription_id=subscription.id, user_id=subscription.user_id)

    async def _deactivate(self, subscription: ProgramSubscription) -> None:
        pointer = await self._subscription_repo.lock_pointer(subscription.user_id)
        if pointer.kind == ActiveKind.PROGRAM and pointer.subscription_id == subscription.id:
            pointer.clear()
        subscription.is_currently_active = False

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    @transactional()
    async def set_status(
        self,
        subscription_id: int,
        actor_id: int,
        new_status: SubscriptionStatus,
    ) -> ProgramSubscription:
        subscription = await self._subscription_repo.get_for_update(subscription_id)
        if subscription is None:
            raise NotFoundError("subscription", f"Subscription {subscription_id} not found", {"subscription_id": subscription_id})

        if actor_id != subscription.user_id and not await self._coaching.has_active_relationship(
            actor_id, subscription.user_id
        ):
            raise AuthorizationError(
                "Not allowed to change this subscription",
                details={"subscription_id": subscription_id, "actor_id": actor_id},
            )

        current = SubscriptionStatus(subscription.status)
        requested = SubscriptionStatus(new_status)
        if requested not in USER_REQUESTABLE or not can_transition(current, requested):
            raise InvalidTransitionError(subscription.id, current.value, requested.value)

        now = datetime.utcnow()
        if requested == SubscriptionStatus.ARCHIVED:
            await self._deactivate(subscription)
            subscription.archived_at = now
        subscription.status = requested
        subscription.updated_at = now
        await self._subscription_repo.flush()

        logger.info(
            "subscription_status_changed",
            subscription_id=subscription.id,
            actor_id=actor_id,
            from_status=current.value,
            to_status=requested.value,
        )
        return subscription

    # ------------------------------------------------------------------
    # Progression
    # ------------------------------------------------------------------

    async def advance(self, subscription_id: int) -> ProgramSubscription:
        """Move to the next training day, rolling weeks and phases over as needed."""
        return await self._dispatching(self._advance(subscription_id))

    @transactional()
    async def _advance(self, subscription_id: int) -> ProgramSubscription:
        subscription = await self._subscription_repo.get_for_update(subscription_id)
        if subscription is None:
            raise NotFoundError("subscription", f"Subscription {subscription_id} not found", {"subscription_id": subscription_id})
        if SubscriptionStatus(subscription.status).is_terminal:
            raise InvalidTransitionError(subscription.id, subscription.status.value, "next day")

        phase = await self._progress.current_phase(subscription)
        now = datetime.utcnow()

        # Counters stay untouched until the miss queries have run; an autoflush
        # of day 8 would violate ck_subscription_day_range.
        next_day = subscription.current_day + 1
        if next_day <= DAYS_PER_WEEK:
            subscription.current_day = next_day
        else:
            if self._settings.adherence_count_misses_on_rollover:
                await self._count_missed_workouts(subscription, phase, subscription.current_week)

            subscription.current_day = 1
            subscription.current_week += 1
            subscription.current_week_in_phase += 1

            if subscription.current_week > phase.end_week:
                next_phase = await self._template_repo.get_next_phase(subscription.program_id, phase.phase_number)
                if next_phase is not None:
                    self._enter_phase(subscription, next_phase, now)
                else:
                    await self._complete(subscription, now)

        subscription.updated_at = now
        await self._subscription_repo.flush()

        logger.info(
            "subscription_advanced",
            subscription_id=subscription.id,
            week=subscription.current_week,
            day=subscription.current_day,
            week_in_phase=subscription.current_week_in_phase,
            status=subscription.status.value,
        )
        return subscription

    def _enter_phase(self, subscription: ProgramSubscription, phase: ProgramPhase, now: datetime) -> None:
        subscription.current_phase_id = phase.id
        subscription.current_week_in_phase = 1
        subscription.phase_started_at = now
        self._outbox.enqueue(
            NotificationRequest(
                recipient_id=subscription.user_id,
                template_key=PHASE_STARTED,
                payload={
                    "subscription_id": subscription.id,
                    "program_id": subscription.program_id,
                    "phase_number": phase.phase_number,
                    "phase_name": phase.phase_name,
                    "phase_type": phase.phase_type.value,
                },
            )
        )
        logger.info("phase_started", subscription_id=subscription.id, phase_id=phase.id, phase_number=phase.phase_number)

    async def _complete(self, subscription: ProgramSubscription, now: datetime) -> None:
        await self._deactivate(subscription)
        subscription.status = SubscriptionStatus.COMPLETED
        subscription.completed_at = now
        self._outbox.enqueue(
            NotificationRequest(
                recipient_id=subscription.user_id,
                template_key=PROGRAM_COMPLETED,
                payload={
                    "subscription_id": subscription.id,
                    "program_id": subscription.program_id,
                    "workouts_completed": subscription.workouts_completed,
                    "adherence_rate": subscription.adherence_rate,
                },
            )
        )
        logger.info("program_completed", subscription_id=subscription.id, user_id=subscription.user_id)

    async def _count_missed_workouts(
        self,
        subscription: ProgramSubscription,
        phase: ProgramPhase,
        week_number: int,
    ) -> None:
        microcycle = await self._template_repo.get_microcycle_for_week(phase.id, week_number)
        if microcycle is None:
            return
        scheduled = {workout.day_number for workout in microcycle.workouts}
        completed = await self._performance_repo.completed_days(subscription.id, week_number)
        missed = sorted(scheduled - completed)
        for _ in missed:
            subscription.adherence_rate = smooth_adherence(
                subscription.adherence_rate, 0.0, self._settings.adherence_smoothing
            )
        if missed:
            logger.info(
                "workouts_missed",
                subscription_id=subscription.id,
                week=week_number,
                days=missed,
                adherence_rate=round(subscription.adherence_rate, 4),
            )

    @transactional()
    async def skip_to_day(self, subscription_id: int, user_id: int, target_day: int) -> ProgramSubscription:
        """Jump to a day of the current week and make the subscription currently active."""
        if not 1 <= target_day <= DAYS_PER_WEEK:
            raise ValidationError("target_day", f"must be between 1 and {DAYS_PER_WEEK}", {"target_day": target_day})

        subscription = await self._owned(subscription_id, user_id)
        if SubscriptionStatus(subscription.status).is_terminal:
            raise CannotActivateTerminalSubscriptionError(subscription.id, subscription.status.value)

        previous_day = subscription.current_day
        subscription.current_day = target_day
        await self._activate(subscription)

        logger.info(
            "subscription_day_skipped",
            subscription_id=subscription.id,
            week=subscription.current_week,
            from_day=previous_day,
            to_day=target_day,
        )
        return subscription

    @transactional()
    async def record_adherence_sample(
        self,
        subscription_id: int,
        completed: bool,
        performance: WorkoutPerformance | None = None,
    ) -> ProgramSubscription:
        """Fold one workout outcome into the adherence rate.

        An optional WorkoutPerformance is stored in the same transaction; its
        week and day default to the subscription's current position.
        """
        subscription = await self._subscription_repo.get_for_update(subscription_id)
        if subscription is None:
            raise NotFoundError("subscription", f"Subscription {subscription_id} not found", {"subscription_id": subscription_id})
        if SubscriptionStatus(subscription.status).is_terminal:
            raise InvalidTransitionError(subscription.id, subscription.status.value, "log workout")

        now = datetime.utcnow()
        subscription.adherence_rate = smooth_adherence(
            subscription.adherence_rate,
            1.0 if completed else 0.0,
            self._settings.adherence_smoothing,
        )
        if completed:
            subscription.workouts_completed += 1
            subscription.last_workout_completed_at = now
        subscription.updated_at = now

        if performance is not None:
            performance.subscription_id = subscription.id
            performance.completed = completed
            if performance.week_number is None:
                performance.week_number = subscription.current_week
            if performance.day_number is None:
                performance.day_number = subscription.current_day
            performance.performed_at = performance.performed_at or now
            await self._performance_repo.create(performance)

        await self._subscription_repo.flush()
        logger.info(
            "adherence_sample_recorded",
            subscription_id=subscription.id,
            completed=completed,
            adherence_rate=round(subscription.adherence_rate, 4),
            workouts_completed=subscription.workouts_completed,
        )
        return subscription

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_subscription(self, subscription_id: int, user_id: int) -> ProgramSubscription:
        return await self._owned(subscription_id, user_id)

    async def list_subscriptions(
        self,
        user_id: int,
        status: SubscriptionStatus | None = None,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResult[ProgramSubscription]:
        filter = {"user_id": user_id}
        if status is not None:
            filter["statuses"] = [status]
        return await self._subscription_repo.list(filter, pagination or PaginationParams())

    async def get_active(self, user_id: int) -> ProgramSubscription | None:
        """The subscription the user's active pointer refers to, if it is a program."""
        pointer = await self._subscription_repo.get_pointer(user_id)
        if pointer is None or pointer.kind != ActiveKind.PROGRAM:
            return None
        return await self._subscription_repo.get(pointer.subscription_id)

    async def _owned(self, subscription_id: int, user_id: int) -> ProgramSubscription:
        subscription = await self._subscription_repo.get_owned(subscription_id, user_id)
        if subscription is None:
            raise NotFoundError("subscription", f"Subscription {subscription_id} not found", {"subscription_id": subscription_id})
        return subscription

"""Tests for ProgressService and the progress percentage."""
from types import SimpleNamespace

import pytest
from conftest import add_relationship, build_template

from periodization.core.exceptions import DataIntegrityError, NoActiveRelationshipError, NotFoundError
from periodization.models import WorkoutPerformance
from periodization.models.enums import PhaseType, SubscriptionStatus
from periodization.services.progress import ProgressService, progress_percentage


@pytest.fixture
def progress(async_db_session):
    return ProgressService(async_db_session)


def at_week(week):
    return SimpleNamespace(current_week=week)


def lasting(weeks):
    return SimpleNamespace(duration_weeks=weeks)


class TestProgressPercentage:
    def test_first_week(self):
        assert progress_percentage(at_week(1), lasting(12)) == 8.3

    def test_halfway(self):
        assert progress_percentage(at_week(6), lasting(12)) == 50.0

    def test_past_the_end_is_clamped(self):
        assert progress_percentage(at_week(13), lasting(12)) == 100.0

    def test_zero_duration(self):
        assert progress_percentage(at_week(1), lasting(0)) == 0.0


class TestTodaysWorkout:
    """Test ProgressService.todays_workout."""

    @pytest.mark.asyncio
    async def test_fixed_exercise_prescription(self, progress, subscription_service, twelve_week_template, exercises):
        enrollment = await subscription_service.join(1, twelve_week_template.id)

        today = await progress.todays_workout(enrollment.subscription)

        assert (today.week_number, today.day_number) == (1, 1)
        assert today.phase_name == "Phase 1"
        assert today.day_label == "Day 1"
        line = today.exercises[0]
        assert line.exercise_id == exercises["back_squat"].id
        assert line.slot_id is None
        assert line.sets == 4
        assert (line.reps_min, line.reps_max) == (5, 5)
        assert line.target_intensity == 75.0
        assert line.rest_seconds == 90

    @pytest.mark.asyncio
    async def test_rest_day(self, progress, subscription_service, twelve_week_template):
        enrollment = await subscription_service.join(1, twelve_week_template.id)
        subscription = await subscription_service.advance(enrollment.subscription.id)

        assert await progress.todays_workout(subscription) is None

    @pytest.mark.asyncio
    async def test_microcycle_modifiers_scale_the_prescription(self, progress, catalog, subscription_service, exercises):
        template = await catalog.register_template(
            build_template(
                name="Overreach",
                phases=[(1, 2)],
                fixed_exercise_id=exercises["back_squat"].id,
                volume_modifier=80,
                intensity_modifier=110,
            )
        )
        enrollment = await subscription_service.join(1, template.id)

        today = await progress.todays_workout(enrollment.subscription)

        assert (today.volume_modifier, today.intensity_modifier) == (80, 110)
        assert today.exercises[0].sets == 3
        assert today.exercises[0].target_intensity == 82.5

    @pytest.mark.asyncio
    async def test_tiny_volume_keeps_one_set(self, progress, catalog, subscription_service, exercises):
        template = await catalog.register_template(
            build_template(name="Taper", phases=[(1, 1)], fixed_exercise_id=exercises["deadlift"].id, volume_modifier=10)
        )
        enrollment = await subscription_service.join(1, template.id)

        today = await progress.todays_workout(enrollment.subscription)

        assert today.exercises[0].sets == 1

    @pytest.mark.asyncio
    async def test_slot_resolves_to_selection(self, progress, subscription_service, slotted_template, exercises):
        slot_id = slotted_template.slots[0].id
        enrollment = await subscription_service.join(
            1, slotted_template.id, selections={slot_id: exercises["front_squat"].id}
        )

        today = await progress.todays_workout(enrollment.subscription)

        fixed, slotted = today.exercises
        assert fixed.exercise_id == exercises["deadlift"].id
        assert slotted.exercise_id == exercises["front_squat"].id
        assert slotted.slot_id == slot_id
        assert slotted.slot_label == "Main Squat"
        assert slotted.sets == 3
        # Phase rep range fills in where the line has none
        assert (slotted.reps_min, slotted.reps_max) == (6, 10)

    @pytest.mark.asyncio
    async def test_phase_from_another_template_is_an_integrity_error(
        self, progress, subscription_service, twelve_week_template, slotted_template
    ):
        foreign_phase_id = slotted_template.phases[0].id
        enrollment = await subscription_service.join(1, twelve_week_template.id)
        enrollment.subscription.current_phase_id = foreign_phase_id

        with pytest.raises(DataIntegrityError):
            await progress.todays_workout(enrollment.subscription)


class TestSummary:
    """Test ProgressService.summary."""

    @pytest.mark.asyncio
    async def test_summary_after_first_week(self, progress, subscription_service, twelve_week_template):
        enrollment = await subscription_service.join(1, twelve_week_template.id)
        subscription_id = enrollment.subscription.id
        await subscription_service.record_adherence_sample(subscription_id, True, WorkoutPerformance())
        for _ in range(7):
            await subscription_service.advance(subscription_id)

        summary = await progress.summary(subscription_id, user_id=1)

        assert summary.program_name == "Strength Block"
        assert summary.status == SubscriptionStatus.ACTIVE
        assert (summary.current_week, summary.current_day) == (2, 1)
        assert summary.total_weeks == 12
        assert summary.progress_percentage == 16.7
        assert summary.phase_name == "Phase 1"
        assert summary.phase_type == PhaseType.ACCUMULATION
        assert summary.current_week_in_phase == 2
        assert summary.scheduled_to_date == 3
        assert summary.logged_completions == 1
        assert summary.workouts_completed == 1
        # One completed sample, then days 3 and 5 missed at rollover
        assert summary.adherence_rate == pytest.approx(0.64, abs=1e-4)

    @pytest.mark.asyncio
    async def test_summary_is_owner_scoped(self, progress, subscription_service, twelve_week_template):
        enrollment = await subscription_service.join(1, twelve_week_template.id)

        with pytest.raises(NotFoundError):
            await progress.summary(enrollment.subscription.id, user_id=2)

    @pytest.mark.asyncio
    async def test_completed_program_reads_full(self, progress, subscription_service, twelve_week_template):
        enrollment = await subscription_service.join(1, twelve_week_template.id)
        subscription_id = enrollment.subscription.id
        for _ in range(84):
            await subscription_service.advance(subscription_id)

        summary = await progress.summary(subscription_id)

        assert summary.status == SubscriptionStatus.COMPLETED
        assert summary.progress_percentage == 100.0
        assert summary.phase_name == "Phase 2"


class TestClientProgress:
    """Test ProgressService.client_progress."""

    @pytest.mark.asyncio
    async def test_trainer_sees_client_programs(
        self, progress, subscription_service, async_db_session, twelve_week_template, slotted_template, exercises
    ):
        selections = {slotted_template.slots[0].id: exercises["front_squat"].id}
        strength_id = twelve_week_template.id
        squat_id = slotted_template.id
        await add_relationship(async_db_session, trainer_id=100, client_id=1)
        kept = await subscription_service.join(1, strength_id)
        dropped = await subscription_service.join(1, squat_id, selections=selections)
        await subscription_service.set_status(dropped.subscription.id, 1, SubscriptionStatus.ARCHIVED)

        summaries = await progress.client_progress(100, 1)

        assert [s.subscription_id for s in summaries] == [kept.subscription.id]
        assert summaries[0].progress_percentage == 8.3

    @pytest.mark.asyncio
    async def test_requires_active_relationship(self, progress):
        with pytest.raises(NoActiveRelationshipError):
            await progress.client_progress(100, 1)

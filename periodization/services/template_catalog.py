"""
TemplateCatalogService - authoring and read access for program templates.

Responsible for:
- Validating template structure at authoring time (MalformedTemplate)
- Persisting normalized phase / microcycle / workout / slot rows
- Lifting legacy JSON templates into the same normalized shape
- Refusing structural edits once athletes are subscribed
"""
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from periodization.core.exceptions import (
    DataIntegrityError,
    MalformedTemplateError,
    NotFoundError,
    TemplateLockedError,
)
from periodization.core.logging import get_logger
from periodization.core.transactions import transactional
from periodization.models.template import (
    ExerciseSlot,
    Microcycle,
    ProgramPhase,
    ProgramTemplate,
    Workout,
    WorkoutExercise,
)
from periodization.repositories.template_repository import TemplateRepository
from periodization.schemas.pagination import PaginatedResult, PaginationParams
from periodization.schemas.template import LegacyJsonTemplate, NormalizedTemplate
from periodization.services.base import BaseService
from periodization.services.legacy_template import legacy_template_adapter
from periodization.services.template_validation import validate_template

logger = get_logger(__name__)


class TemplateCatalogService(BaseService):
    """Read-mostly catalog of program templates.

    Templates only become visible to slot resolution and the subscription
    lifecycle after passing structural validation.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self._template_repo = TemplateRepository(session)

    @transactional()
    async def get_template(self, template_id: int) -> ProgramTemplate:
        """Load a template with its phases, microcycles, workouts and slots.

        A legacy template stored only as a JSON blob is normalized on first read.
        """
        template = await self._template_repo.get(template_id)
        if template is None:
            raise NotFoundError("template", f"Template {template_id} not found", {"template_id": template_id})

        if template.is_legacy and not template.phases:
            try:
                await self._materialize_legacy(template)
            except MalformedTemplateError as e:
                logger.error("legacy_template_unreadable", template_id=template_id, violations=e.violations)
                raise DataIntegrityError(
                    f"Stored legacy template {template_id} cannot be normalized",
                    {"template_id": template_id, "violations": e.violations},
                ) from e
            template = await self._template_repo.get(template_id)
        return template

    async def list_templates(
        self,
        filter: dict | None = None,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResult[ProgramTemplate]:
        return await self._template_repo.list(filter or {}, pagination or PaginationParams())

    @transactional()
    async def register_template(
        self,
        payload: NormalizedTemplate | LegacyJsonTemplate,
        author_id: int | None = None,
    ) -> ProgramTemplate:
        template_data = None
        if isinstance(payload, LegacyJsonTemplate):
            template_data = payload.template_data
            payload = legacy_template_adapter.lift(payload)

        await self._validate(payload)

        template = ProgramTemplate(
            name=payload.name,
            description=payload.description,
            created_by=author_id,
            duration_weeks=payload.duration_weeks,
            difficulty=payload.difficulty,
            category=payload.category,
            is_public=payload.is_public,
            has_exercise_slots=payload.has_exercise_slots,
            progression_strategy=payload.progression_strategy,
            auto_regulation=payload.auto_regulation,
            template_data=template_data,
        )
        self._attach_structure(template, payload)
        await self._template_repo.create(template)

        logger.info(
            "template_registered",
            template_id=template.id,
            phases=len(payload.phases),
            slots=len(payload.slots),
            legacy=template_data is not None,
        )
        return await self._template_repo.get(template.id)

    @transactional()
    async def replace_structure(self, template_id: int, payload: NormalizedTemplate) -> ProgramTemplate:
        """Re-author a template's structure. Only allowed while nobody is subscribed."""
        template = await self._template_repo.get(template_id)
        if template is None:
            raise NotFoundError("template", f"Template {template_id} not found", {"template_id": template_id})

        subscription_count = await self._template_repo.count_subscriptions(template_id)
        if subscription_count:
            logger.warning("template_edit_refused", template_id=template_id, subscriptions=subscription_count)
            raise TemplateLockedError(template_id, subscription_count)

        await self._validate(payload)

        await self._template_repo.delete_structure(template)
        template.name = payload.name
        template.description = payload.description
        template.duration_weeks = payload.duration_weeks
        template.difficulty = payload.difficulty
        template.category = payload.category
        template.is_public = payload.is_public
        template.has_exercise_slots = payload.has_exercise_slots
        template.progression_strategy = payload.progression_strategy
        template.auto_regulation = payload.auto_regulation
        template.template_data = None
        template.version = (template.version or 1) + 1
        template.updated_at = datetime.utcnow()
        self._attach_structure(template, payload)
        await self._template_repo.flush()

        logger.info("template_structure_replaced", template_id=template_id, version=template.version)
        return await self._template_repo.get(template_id)

    async def _validate(self, payload: NormalizedTemplate) -> None:
        violations = validate_template(payload)

        fixed_ids = {
            exercise.fixed_exercise_id
            for phase in payload.phases
            for microcycle in phase.microcycles
            for workout in microcycle.workouts
            for exercise in workout.exercises
            if exercise.fixed_exercise_id is not None
        }
        suggested_ids = {i for slot in payload.slots for i in slot.suggested_exercise_ids}
        referenced = fixed_ids | suggested_ids
        known = await self._template_repo.get_exercises(sorted(referenced))
        missing = sorted(referenced - known.keys())
        if missing:
            violations.append(f"unknown exercise ids: {missing}")

        if violations:
            logger.warning("template_rejected", name=payload.name, violations=violations)
            raise MalformedTemplateError(violations)

    def _attach_structure(self, template: ProgramTemplate, payload: NormalizedTemplate) -> None:
        slots_by_number = {}
        for slot in payload.slots:
            slot_row = ExerciseSlot(
                slot_number=slot.slot_number,
                slot_label=slot.slot_label,
                movement_pattern=slot.movement_pattern,
                muscle_targets=list(slot.muscle_targets),
                equipment_options=list(slot.equipment_options),
                suggested_exercise_ids=list(slot.suggested_exercise_ids),
                description=slot.description,
                is_required=slot.is_required,
            )
            slots_by_number[slot.slot_number] = slot_row
            template.slots.append(slot_row)

        for phase in sorted(payload.phases, key=lambda p: p.phase_number):
            phase_row = ProgramPhase(
                phase_number=phase.phase_number,
                phase_name=phase.phase_name,
                phase_type=phase.phase_type,
                description=phase.description,
                start_week=phase.start_week,
                end_week=phase.end_week,
                target_intensity_low=phase.target_intensity_low,
                target_intensity_high=phase.target_intensity_high,
                target_volume=phase.target_volume,
                rep_range_low=phase.rep_range_low,
                rep_range_high=phase.rep_range_high,
                sets_per_exercise=phase.sets_per_exercise,
                rest_seconds_min=phase.rest_seconds_min,
                rest_seconds_max=phase.rest_seconds_max,
            )
            for microcycle in sorted(phase.microcycles, key=lambda m: m.week_number):
                microcycle_row = Microcycle(
                    week_number=microcycle.week_number,
                    week_in_phase=microcycle.week_in_phase or microcycle.week_number - phase.start_week + 1,
                    title=microcycle.title,
                    description=microcycle.description,
                    volume_modifier=microcycle.volume_modifier,
                    intensity_modifier=microcycle.intensity_modifier,
                )
                for workout in sorted(microcycle.workouts, key=lambda w: w.day_number):
                    workout_row = Workout(
                        day_number=workout.day_number,
                        day_label=workout.day_label,
                        workout_type=workout.workout_type,
                        description=workout.description,
                        estimated_duration=workout.estimated_duration,
                    )
                    for exercise in sorted(workout.exercises, key=lambda e: e.exercise_order):
                        workout_row.exercises.append(
                            WorkoutExercise(
                                fixed_exercise_id=exercise.fixed_exercise_id,
                                slot=slots_by_number.get(exercise.slot_number),
                                exercise_order=exercise.exercise_order,
                                sets=exercise.sets,
                                reps_min=exercise.reps_min,
                                reps_max=exercise.reps_max,
                                target_rpe=exercise.target_rpe,
                                target_intensity=exercise.target_intensity,
                                rest_seconds=exercise.rest_seconds,
                                tempo=exercise.tempo,
                                notes=exercise.notes,
                            )
                        )
                    microcycle_row.workouts.append(workout_row)
                phase_row.microcycles.append(microcycle_row)
            template.phases.append(phase_row)

    async def _materialize_legacy(self, template: ProgramTemplate) -> None:
        payload = legacy_template_adapter.lift_blob(
            template.template_data,
            name=template.name,
            description=template.description,
            difficulty=template.difficulty,
            category=template.category,
            is_public=template.is_public,
            progression_strategy=template.progression_strategy,
            auto_regulation=template.auto_regulation,
        )
        await self._validate(payload)
        template.duration_weeks = payload.duration_weeks
        self._attach_structure(template, payload)
        await self._template_repo.flush()
        logger.info("legacy_template_materialized", template_id=template.id, phases=len(payload.phases))

"""
SlotResolutionService - maps an athlete's exercise choices onto template slots.

Structural problems (unknown slot, missing required slot, selections on a
template without slots) are errors. Whether the chosen exercise actually fits
the slot's movement pattern, muscles and equipment is advisory: mismatches are
returned as warnings unless SLOT_CONSTRAINTS_ENFORCED is set.
"""
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from periodization.config.settings import Settings, get_settings
from periodization.core.exceptions import (
    MissingRequiredSlotError,
    SlotConstraintViolationError,
    UnexpectedSelectionsError,
    UnknownExerciseError,
    UnknownSlotError,
)
from periodization.core.logging import get_logger
from periodization.core.transactions import transactional
from periodization.models.subscription import ProgramSubscription, UserExerciseSelection
from periodization.models.template import Exercise, ExerciseSlot, ProgramTemplate
from periodization.repositories.selection_repository import SelectionRepository
from periodization.repositories.template_repository import TemplateRepository
from periodization.services.base import BaseService
from periodization.services.template_catalog import TemplateCatalogService

logger = get_logger(__name__)


@dataclass
class ValidatedSelections:
    program_id: int
    selections: dict[int, int] = field(default_factory=dict)  # slot id -> exercise id
    warnings: list[str] = field(default_factory=list)


def _normalized(values) -> set[str]:
    return {str(v).strip().lower() for v in values or []}


def slot_fit_warnings(slot: ExerciseSlot, exercise: Exercise) -> list[str]:
    """Describe how an exercise deviates from a slot's declared constraints."""
    warnings = []
    if (
        slot.movement_pattern is not None
        and exercise.movement_pattern is not None
        and slot.movement_pattern != exercise.movement_pattern
    ):
        warnings.append(
            f"{exercise.name} is a {exercise.movement_pattern.value} movement; "
            f"{slot.slot_label} expects {slot.movement_pattern.value}"
        )

    slot_muscles = _normalized(slot.muscle_targets)
    exercise_muscles = _normalized(exercise.muscle_targets)
    if slot_muscles and exercise_muscles and not slot_muscles & exercise_muscles:
        warnings.append(
            f"{exercise.name} does not train any of {sorted(slot_muscles)} for {slot.slot_label}"
        )

    slot_equipment = _normalized(slot.equipment_options)
    exercise_equipment = _normalized(exercise.equipment)
    if slot_equipment and exercise_equipment and not slot_equipment & exercise_equipment:
        warnings.append(
            f"{exercise.name} needs {sorted(exercise_equipment)}; {slot.slot_label} allows {sorted(slot_equipment)}"
        )
    return warnings


class SlotResolutionService(BaseService):
    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        super().__init__(session)
        self._settings = settings or get_settings()
        self._template_repo = TemplateRepository(session)
        self._catalog = TemplateCatalogService(session)
        self._selection_repo = SelectionRepository(session)

    async def resolve_selections(self, template_id: int, selections: dict[int, int] | None) -> ValidatedSelections:
        template = await self._catalog.get_template(template_id)
        return await self.validate(template, selections)

    async def validate(self, template: ProgramTemplate, selections: dict[int, int] | None) -> ValidatedSelections:
        selections = {int(slot_id): int(exercise_id) for slot_id, exercise_id in (selections or {}).items()}

        if not template.has_exercise_slots:
            if selections:
                raise UnexpectedSelectionsError(template.id)
            return ValidatedSelections(program_id=template.id)

        slots = {slot.id: slot for slot in template.slots}
        unknown = sorted(set(selections) - slots.keys())
        if unknown:
            raise UnknownSlotError(unknown, template.id)

        for slot in sorted(slots.values(), key=lambda s: s.slot_number):
            if slot.is_required and slot.id not in selections:
                raise MissingRequiredSlotError(slot.id, slot.slot_label)

        exercises = await self._template_repo.get_exercises(sorted(set(selections.values())))
        missing = sorted(set(selections.values()) - exercises.keys())
        if missing:
            raise UnknownExerciseError(missing)

        warnings = [
            warning
            for slot_id, exercise_id in sorted(selections.items())
            for warning in slot_fit_warnings(slots[slot_id], exercises[exercise_id])
        ]
        if warnings:
            if self._settings.slot_constraints_enforced:
                raise SlotConstraintViolationError(warnings)
            logger.info("slot_selection_mismatch", template_id=template.id, warnings=warnings)

        return ValidatedSelections(program_id=template.id, selections=selections, warnings=warnings)

    @transactional()
    async def stage_selections(self, user_id: int, template_id: int, selections: dict[int, int]) -> ValidatedSelections:
        """Persist a selection set before the athlete joins; replaces any earlier staged set."""
        validated = await self.resolve_selections(template_id, selections)
        await self._selection_repo.delete_staged(user_id, template_id)
        await self._selection_repo.add_staged(user_id, template_id, [
            UserExerciseSelection(
                user_id=user_id,
                program_id=template_id,
                slot_id=slot_id,
                exercise_id=exercise_id,
            )
            for slot_id, exercise_id in validated.selections.items()
        ])
        logger.info("selections_staged", user_id=user_id, template_id=template_id, count=len(validated.selections))
        return validated

    async def staged_selections(self, user_id: int, template_id: int) -> dict[int, int]:
        staged = await self._selection_repo.list_staged(user_id, template_id)
        return {s.slot_id: s.exercise_id for s in staged}

    async def bind_selections(
        self,
        subscription: ProgramSubscription,
        validated: ValidatedSelections,
        from_staged: bool = False,
    ) -> list[UserExerciseSelection]:
        """Attach selections to a newly created subscription, one row per slot."""
        if from_staged:
            await self._selection_repo.bind_staged(subscription.user_id, subscription.program_id, subscription.id)
            return await self._selection_repo.list_for_subscription(subscription.id)

        # An explicit map supersedes anything staged for this template
        await self._selection_repo.delete_staged(subscription.user_id, subscription.program_id)
        return await self._selection_repo.add_many([
            UserExerciseSelection(
                user_id=subscription.user_id,
                program_id=subscription.program_id,
                subscription_id=subscription.id,
                slot_id=slot_id,
                exercise_id=exercise_id,
            )
            for slot_id, exercise_id in validated.selections.items()
        ])

    async def selections_for(self, subscription_id: int) -> dict[int, int]:
        rows = await self._selection_repo.list_for_subscription(subscription_id)
        return {row.slot_id: row.exercise_id for row in rows}

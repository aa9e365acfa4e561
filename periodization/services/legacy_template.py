"""Adapter from legacy JSON template blobs to the normalized template shape.

Older programs were stored as a single JSON document instead of phase,
microcycle and workout rows. The adapter lifts such a blob into a
NormalizedTemplate so the catalog can validate and persist it like any other
template.
"""
import re
from typing import Any

from periodization.core.exceptions import MalformedTemplateError
from periodization.core.logging import get_logger
from periodization.models.enums import PhaseType
from periodization.schemas.template import (
    LegacyJsonTemplate,
    MicrocycleCreate,
    NormalizedTemplate,
    PhaseCreate,
    WorkoutCreate,
    WorkoutExerciseCreate,
)

logger = get_logger(__name__)

_RANGE = re.compile(r"^\s*(\d+)\s*(?:-|–|to)\s*(\d+)\s*$")
_FIRST_INT = re.compile(r"(\d+)")


def _parse_range(value: Any) -> tuple[int, int] | None:
    if value is None:
        return None
    if isinstance(value, int):
        return value, value
    match = _RANGE.match(str(value))
    if match:
        return int(match.group(1)), int(match.group(2))
    single = _FIRST_INT.search(str(value))
    if single:
        number = int(single.group(1))
        return number, number
    return None


def _parse_phase_type(value: Any) -> PhaseType:
    try:
        return PhaseType(str(value).upper())
    except ValueError:
        return PhaseType.ACCUMULATION


class LegacyTemplateAdapter:
    def duration_weeks(self, blob: dict[str, Any]) -> int | None:
        if isinstance(blob.get("duration_weeks"), int):
            return blob["duration_weeks"]
        match = _FIRST_INT.search(str(blob.get("duration", "")))
        return int(match.group(1)) if match else None

    def lift(self, payload: LegacyJsonTemplate) -> NormalizedTemplate:
        header = payload.model_dump(exclude={"template_data"})
        return self.lift_blob(payload.template_data, **header)

    def lift_blob(self, blob: dict[str, Any], **header: Any) -> NormalizedTemplate:
        duration = self.duration_weeks(blob)
        if duration is None:
            raise MalformedTemplateError(["legacy template has no duration"])

        workouts = self._weekly_workouts(blob.get("weekly_schedule") or [])
        phases = []
        for number, raw in enumerate(self._raw_phases(blob, duration), start=1):
            weeks = _parse_range(raw.get("weeks"))
            start, end = weeks if weeks else (raw.get("start_week", 1), raw.get("end_week", duration))
            reps = _parse_range(raw.get("rep_range"))
            phases.append(
                PhaseCreate(
                    phase_number=raw.get("phase_number", number),
                    phase_name=raw.get("name") or f"Phase {number}",
                    phase_type=_parse_phase_type(raw.get("type")),
                    description=raw.get("description"),
                    start_week=start,
                    end_week=end,
                    rep_range_low=reps[0] if reps else None,
                    rep_range_high=reps[1] if reps else None,
                    sets_per_exercise=raw.get("sets"),
                    microcycles=[
                        MicrocycleCreate(
                            week_number=week,
                            week_in_phase=week - start + 1,
                            title=f"Week {week - start + 1}",
                            workouts=[w.model_copy(deep=True) for w in workouts],
                        )
                        for week in range(start, end + 1)
                    ],
                )
            )

        return NormalizedTemplate(
            duration_weeks=duration,
            has_exercise_slots=False,
            phases=phases,
            **header,
        )

    def _raw_phases(self, blob: dict[str, Any], duration: int) -> list[dict[str, Any]]:
        raw = blob.get("phases")
        if isinstance(raw, list) and raw:
            return raw
        return [{"name": blob.get("name") or "Program", "weeks": f"1-{duration}"}]

    def _weekly_workouts(self, schedule: list[dict[str, Any]]) -> list[WorkoutCreate]:
        workouts = []
        for entry in schedule:
            day = entry.get("day")
            focus = str(entry.get("focus") or "")
            if focus.upper() == "REST":
                continue
            if not isinstance(day, int) or not 1 <= day <= 7:
                logger.warning("legacy_schedule_day_skipped", day=day, focus=focus)
                continue

            exercises = []
            for order, raw in enumerate(entry.get("exercises") or [], start=1):
                if raw.get("exercise_id") is None:
                    continue
                reps = _parse_range(raw.get("reps"))
                exercises.append(
                    WorkoutExerciseCreate(
                        fixed_exercise_id=raw["exercise_id"],
                        exercise_order=order,
                        sets=raw.get("sets"),
                        reps_min=reps[0] if reps else None,
                        reps_max=reps[1] if reps else None,
                        target_rpe=raw.get("rpe"),
                        rest_seconds=raw.get("rest_seconds"),
                        notes=raw.get("notes"),
                    )
                )

            muscle_groups = entry.get("muscle_groups") or []
            workouts.append(
                WorkoutCreate(
                    day_number=day,
                    day_label=f"Day {day}: {focus}" if focus else f"Day {day}",
                    description=f"Focus: {', '.join(muscle_groups)}" if muscle_groups else None,
                    exercises=exercises,
                )
            )
        return workouts


legacy_template_adapter = LegacyTemplateAdapter()

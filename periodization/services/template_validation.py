"""Structural validation of program templates at authoring time.

Every check appends a human readable violation instead of failing fast, so an
author sees the whole list at once.
"""
from collections import Counter
from typing import Iterable, Protocol

from periodization.schemas.template import NormalizedTemplate


class PhaseLike(Protocol):
    phase_number: int
    start_week: int
    end_week: int


def check_phase_contiguity(phases: Iterable[PhaseLike], duration_weeks: int) -> list[str]:
    """Phases sorted by number must tile weeks 1..duration_weeks exactly."""
    ordered = sorted(phases, key=lambda p: p.phase_number)
    if not ordered:
        return ["template has no phases"]

    violations = []
    numbers = Counter(p.phase_number for p in ordered)
    for number, count in sorted(numbers.items()):
        if count > 1:
            violations.append(f"phase number {number} is used {count} times")

    for phase in ordered:
        if phase.start_week > phase.end_week:
            violations.append(
                f"phase {phase.phase_number} starts in week {phase.start_week} after it ends in week {phase.end_week}"
            )

    if ordered[0].start_week != 1:
        violations.append(f"first phase starts in week {ordered[0].start_week}, expected 1")

    for previous, current in zip(ordered, ordered[1:]):
        expected = previous.end_week + 1
        if current.start_week > expected:
            violations.append(
                f"gap between phase {previous.phase_number} and {current.phase_number}: "
                f"weeks {expected}-{current.start_week - 1} are not covered"
            )
        elif current.start_week < expected:
            violations.append(
                f"phase {current.phase_number} overlaps phase {previous.phase_number} "
                f"(starts in week {current.start_week}, previous ends in week {previous.end_week})"
            )

    if ordered[-1].end_week != duration_weeks:
        violations.append(
            f"last phase ends in week {ordered[-1].end_week}, template lasts {duration_weeks} weeks"
        )
    return violations


def validate_template(payload: NormalizedTemplate) -> list[str]:
    violations = []

    if payload.duration_weeks < 1:
        violations.append("duration_weeks must be at least 1")

    violations.extend(check_phase_contiguity(payload.phases, payload.duration_weeks))
    violations.extend(_check_slots(payload))

    slot_numbers = {slot.slot_number for slot in payload.slots}
    for phase in payload.phases:
        violations.extend(_check_phase_targets(phase))
        week_numbers = Counter(m.week_number for m in phase.microcycles)
        for week, count in sorted(week_numbers.items()):
            if count > 1:
                violations.append(f"phase {phase.phase_number}: week {week} has {count} microcycles")

        for microcycle in phase.microcycles:
            where = f"phase {phase.phase_number} week {microcycle.week_number}"
            if not phase.start_week <= microcycle.week_number <= phase.end_week:
                violations.append(
                    f"{where}: outside the phase (weeks {phase.start_week}-{phase.end_week})"
                )
            expected_in_phase = microcycle.week_number - phase.start_week + 1
            if microcycle.week_in_phase is not None and microcycle.week_in_phase != expected_in_phase:
                violations.append(
                    f"{where}: week_in_phase is {microcycle.week_in_phase}, expected {expected_in_phase}"
                )
            if microcycle.volume_modifier <= 0 or microcycle.intensity_modifier <= 0:
                violations.append(f"{where}: modifiers must be positive percentages")

            days = Counter(w.day_number for w in microcycle.workouts)
            for day, count in sorted(days.items()):
                if not 1 <= day <= 7:
                    violations.append(f"{where}: day {day} is outside 1-7")
                if count > 1:
                    violations.append(f"{where}: day {day} has {count} workouts")

            for workout in microcycle.workouts:
                violations.extend(
                    _check_exercises(f"{where} day {workout.day_number}", workout.exercises, slot_numbers)
                )

    return violations


def _check_slots(payload: NormalizedTemplate) -> list[str]:
    violations = []
    if payload.slots and not payload.has_exercise_slots:
        violations.append("slots declared on a template without has_exercise_slots")
    numbers = Counter(slot.slot_number for slot in payload.slots)
    for number, count in sorted(numbers.items()):
        if count > 1:
            violations.append(f"slot number {number} is used {count} times")
    return violations


def _check_phase_targets(phase) -> list[str]:
    violations = []
    if (
        phase.rep_range_low is not None
        and phase.rep_range_high is not None
        and phase.rep_range_low > phase.rep_range_high
    ):
        violations.append(f"phase {phase.phase_number}: rep range {phase.rep_range_low}-{phase.rep_range_high} is inverted")
    if (
        phase.target_intensity_low is not None
        and phase.target_intensity_high is not None
        and phase.target_intensity_low > phase.target_intensity_high
    ):
        violations.append(f"phase {phase.phase_number}: intensity band is inverted")
    return violations


def _check_exercises(where: str, exercises, slot_numbers: set[int]) -> list[str]:
    violations = []
    for exercise in exercises:
        line = f"{where} exercise {exercise.exercise_order}"
        has_fixed = exercise.fixed_exercise_id is not None
        has_slot = exercise.slot_number is not None
        if has_fixed == has_slot:
            violations.append(f"{line}: set exactly one of fixed_exercise_id or slot_number")
        elif has_slot and exercise.slot_number not in slot_numbers:
            violations.append(f"{line}: references undeclared slot {exercise.slot_number}")
        if (
            exercise.reps_min is not None
            and exercise.reps_max is not None
            and exercise.reps_min > exercise.reps_max
        ):
            violations.append(f"{line}: reps_min is greater than reps_max")
    return violations

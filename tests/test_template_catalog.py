"""Tests for TemplateCatalogService: authoring, legacy templates and locking."""
import pytest
from conftest import build_template, squat_slot

from periodization.core.exceptions import (
    DataIntegrityError,
    MalformedTemplateError,
    NotFoundError,
    TemplateLockedError,
)
from periodization.models import ProgramTemplate
from periodization.schemas.pagination import PaginationParams
from periodization.schemas.template import LegacyJsonTemplate


class TestRegisterTemplate:
    """Test TemplateCatalogService.register_template."""

    @pytest.mark.asyncio
    async def test_persists_full_structure(self, catalog, exercises):
        template = await catalog.register_template(
            build_template(fixed_exercise_id=exercises["back_squat"].id),
            author_id=77,
        )

        assert template.id is not None
        assert template.created_by == 77
        assert template.duration_weeks == 12
        assert template.version == 1
        assert template.is_legacy is False
        assert [(p.start_week, p.end_week) for p in template.phases] == [(1, 6), (7, 12)]
        assert [m.week_number for m in template.phases[1].microcycles] == [7, 8, 9, 10, 11, 12]
        assert [m.week_in_phase for m in template.phases[1].microcycles] == [1, 2, 3, 4, 5, 6]

        workouts = template.phases[0].microcycles[0].workouts
        assert [w.day_number for w in workouts] == [1, 3, 5]
        assert workouts[0].exercises[0].fixed_exercise_id == exercises["back_squat"].id

    @pytest.mark.asyncio
    async def test_slot_lines_point_at_slots(self, slotted_template):
        slot = slotted_template.slots[0]
        lines = slotted_template.phases[0].microcycles[0].workouts[0].exercises

        assert slotted_template.has_exercise_slots is True
        assert slot.slot_label == "Main Squat"
        assert [line.is_slot for line in lines] == [False, True]
        assert lines[1].slot_id == slot.id

    @pytest.mark.asyncio
    async def test_gap_between_phases_is_rejected(self, catalog, async_db_session, exercises):
        payload = build_template(phases=[(1, 5), (7, 12)], fixed_exercise_id=exercises["back_squat"].id)

        with pytest.raises(MalformedTemplateError) as exc:
            await catalog.register_template(payload)

        assert any("weeks 6-6 are not covered" in v for v in exc.value.violations)
        page = await catalog.list_templates()
        assert page.items == []

    @pytest.mark.asyncio
    async def test_unknown_exercise_is_rejected(self, catalog, exercises):
        payload = build_template(phases=[(1, 2)], fixed_exercise_id=9999)

        with pytest.raises(MalformedTemplateError) as exc:
            await catalog.register_template(payload)

        assert "unknown exercise ids: [9999]" in exc.value.violations

    @pytest.mark.asyncio
    async def test_unknown_suggested_exercise_is_rejected(self, catalog, exercises):
        slot = squat_slot()
        slot.suggested_exercise_ids = [exercises["front_squat"].id, 4242]

        with pytest.raises(MalformedTemplateError) as exc:
            await catalog.register_template(build_template(phases=[(1, 2)], slots=[slot]))

        assert "unknown exercise ids: [4242]" in exc.value.violations

    @pytest.mark.asyncio
    async def test_legacy_payload_is_normalized_and_kept(self, catalog, exercises):
        payload = LegacyJsonTemplate(
            name="Legacy Push Pull",
            template_data={
                "duration_weeks": 4,
                "phases": [{"name": "Build", "weeks": "1-4", "rep_range": "8-10"}],
                "weekly_schedule": [
                    {"day": 2, "focus": "Push", "exercises": [{"exercise_id": exercises["bench_press"].id, "sets": 3}]},
                ],
            },
        )

        template = await catalog.register_template(payload)

        assert template.is_legacy is True
        assert template.template_data["duration_weeks"] == 4
        assert len(template.phases) == 1
        assert [m.week_number for m in template.phases[0].microcycles] == [1, 2, 3, 4]
        assert template.phases[0].microcycles[0].workouts[0].day_number == 2


class TestGetTemplate:
    """Test TemplateCatalogService.get_template."""

    @pytest.mark.asyncio
    async def test_not_found(self, catalog):
        with pytest.raises(NotFoundError) as exc:
            await catalog.get_template(404)

        assert exc.value.code == "NF_TEMPLATE_001"

    @pytest.mark.asyncio
    async def test_stored_legacy_blob_is_materialized_on_read(self, catalog, async_db_session, exercises):
        stored = ProgramTemplate(
            name="Imported Strength",
            duration_weeks=6,
            template_data={
                "duration_weeks": 6,
                "phases": [
                    {"name": "Volume", "weeks": "1-3", "type": "accumulation"},
                    {"name": "Intensity", "weeks": "4-6", "type": "intensification"},
                ],
                "weekly_schedule": [
                    {"day": 1, "focus": "Squat", "exercises": [{"exercise_id": exercises["back_squat"].id, "sets": 5, "reps": "5"}]},
                    {"day": 4, "focus": "Hinge", "exercises": [{"exercise_id": exercises["deadlift"].id, "sets": 3, "reps": "3"}]},
                ],
            },
        )
        async_db_session.add(stored)
        await async_db_session.commit()

        template = await catalog.get_template(stored.id)

        assert [p.phase_name for p in template.phases] == ["Volume", "Intensity"]
        assert [w.day_number for w in template.phases[1].microcycles[0].workouts] == [1, 4]

        again = await catalog.get_template(stored.id)
        assert [p.id for p in again.phases] == [p.id for p in template.phases]

    @pytest.mark.asyncio
    async def test_unreadable_legacy_blob_is_an_integrity_error(self, catalog, async_db_session):
        stored = ProgramTemplate(name="Broken Import", duration_weeks=4, template_data={"notes": "no structure"})
        async_db_session.add(stored)
        await async_db_session.commit()
        template_id = stored.id

        with pytest.raises(DataIntegrityError) as exc:
            await catalog.get_template(template_id)

        assert exc.value.details["template_id"] == template_id


class TestListTemplates:
    @pytest.mark.asyncio
    async def test_cursor_pagination_newest_first(self, catalog, exercises):
        ids = []
        for name in ("A", "B", "C"):
            template = await catalog.register_template(
                build_template(name=name, phases=[(1, 1)], fixed_exercise_id=exercises["deadlift"].id)
            )
            ids.append(template.id)

        first = await catalog.list_templates(pagination=PaginationParams(limit=2))
        assert [t.id for t in first.items] == [ids[2], ids[1]]
        assert first.has_more is True
        assert first.next_cursor is not None

        second = await catalog.list_templates(pagination=PaginationParams(limit=2, cursor=first.next_cursor))
        assert [t.id for t in second.items] == [ids[0]]
        assert second.has_more is False

    @pytest.mark.asyncio
    async def test_filters(self, catalog, twelve_week_template, slotted_template):
        slotted = await catalog.list_templates({"has_exercise_slots": True})
        assert [t.id for t in slotted.items] == [slotted_template.id]

        searched = await catalog.list_templates({"search": "strength"})
        assert [t.id for t in searched.items] == [twelve_week_template.id]


class TestReplaceStructure:
    """Test TemplateCatalogService.replace_structure."""

    @pytest.mark.asyncio
    async def test_replaces_and_bumps_version(self, catalog, twelve_week_template, exercises):
        template = await catalog.replace_structure(
            twelve_week_template.id,
            build_template(name="Short Block", phases=[(1, 4), (5, 8)], fixed_exercise_id=exercises["deadlift"].id),
        )

        assert template.version == 2
        assert template.name == "Short Block"
        assert template.duration_weeks == 8
        assert [(p.start_week, p.end_week) for p in template.phases] == [(1, 4), (5, 8)]

    @pytest.mark.asyncio
    async def test_refused_once_someone_subscribed(self, catalog, subscription_service, twelve_week_template, exercises):
        template_id = twelve_week_template.id
        exercise_id = exercises["deadlift"].id
        await subscription_service.join(user_id=1, template_id=template_id)

        with pytest.raises(TemplateLockedError) as exc:
            await catalog.replace_structure(template_id, build_template(phases=[(1, 4)], fixed_exercise_id=exercise_id))

        assert exc.value.details == {"template_id": template_id, "subscriptions": 1}
        unchanged = await catalog.get_template(template_id)
        assert unchanged.version == 1
        assert unchanged.duration_weeks == 12

    @pytest.mark.asyncio
    async def test_invalid_replacement_is_rejected(self, catalog, twelve_week_template, exercises):
        template_id = twelve_week_template.id
        exercise_id = exercises["deadlift"].id

        with pytest.raises(MalformedTemplateError):
            await catalog.replace_structure(template_id, build_template(phases=[(2, 4)], fixed_exercise_id=exercise_id))

        unchanged = await catalog.get_template(template_id)
        assert len(unchanged.phases) == 2

"""HTTP tests: envelopes, status codes and header identity."""
import pytest
from conftest import add_relationship, build_template

ATHLETE = {"X-User-Id": "1"}
OTHER_ATHLETE = {"X-User-Id": "2"}
TRAINER = {"X-User-Id": "100", "X-User-Role": "trainer"}


def template_json(**kwargs) -> dict:
    return build_template(**kwargs).model_dump(mode="json")


class TestHealth:
    @pytest.mark.asyncio
    async def test_liveness(self, api_client):
        response = await api_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestIdentity:
    @pytest.mark.asyncio
    async def test_missing_user_header(self, api_client):
        response = await api_client.get("/subscriptions")

        assert response.status_code == 401
        assert response.json()["errors"][0]["code"] == "AUTH_001"

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, api_client):
        response = await api_client.get("/subscriptions", headers={**ATHLETE, "X-Request-ID": "req-abc"})

        assert response.status_code == 200
        assert response.json()["meta"]["request_id"] == "req-abc"


class TestTemplateRoutes:
    @pytest.mark.asyncio
    async def test_trainer_registers_template(self, api_client, exercises):
        payload = template_json(phases=[(1, 4)], fixed_exercise_id=exercises["back_squat"].id)

        response = await api_client.post("/templates", json=payload, headers=TRAINER)

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["duration_weeks"] == 4
        assert len(data["phases"][0]["microcycles"]) == 4

        listed = await api_client.get("/templates")
        assert [t["id"] for t in listed.json()["data"]] == [data["id"]]

        fetched = await api_client.get(f"/templates/{data['id']}")
        assert fetched.json()["data"]["phases"][0]["phase_name"] == "Phase 1"

    @pytest.mark.asyncio
    async def test_athlete_cannot_register(self, api_client, exercises):
        payload = template_json(phases=[(1, 4)], fixed_exercise_id=exercises["back_squat"].id)

        response = await api_client.post("/templates", json=payload, headers=ATHLETE)

        assert response.status_code == 403
        assert response.json()["errors"][0]["code"] == "AUTH_006"

    @pytest.mark.asyncio
    async def test_malformed_template(self, api_client, exercises):
        payload = template_json(phases=[(1, 4), (6, 8)], fixed_exercise_id=exercises["back_squat"].id)

        response = await api_client.post("/templates", json=payload, headers=TRAINER)

        assert response.status_code == 400
        error = response.json()["errors"][0]
        assert error["code"] == "VAL_TEMPLATE_001"
        assert any("not covered" in v for v in error["details"]["violations"])

    @pytest.mark.asyncio
    async def test_unknown_template(self, api_client):
        response = await api_client.get("/templates/999")

        assert response.status_code == 404
        assert response.json()["errors"][0]["code"] == "NF_TEMPLATE_001"

    @pytest.mark.asyncio
    async def test_locked_template(self, api_client, twelve_week_template, exercises):
        template_id = twelve_week_template.id
        await api_client.post("/subscriptions/join", json={"program_id": template_id}, headers=ATHLETE)

        response = await api_client.put(
            f"/templates/{template_id}/structure",
            json=template_json(phases=[(1, 4)], fixed_exercise_id=exercises["deadlift"].id),
            headers=TRAINER,
        )

        assert response.status_code == 422
        assert response.json()["errors"][0]["code"] == "BR_TEMPLATE_LOCKED"


class TestSubscriptionRoutes:
    @pytest.mark.asyncio
    async def test_join_twice(self, api_client, twelve_week_template):
        body = {"program_id": twelve_week_template.id}

        created = await api_client.post("/subscriptions/join", json=body, headers=ATHLETE)
        again = await api_client.post("/subscriptions/join", json=body, headers=ATHLETE)

        assert created.status_code == 201
        assert again.status_code == 200
        assert again.json()["data"]["id"] == created.json()["data"]["id"]
        assert again.json()["meta"]["warnings"] == ["Already subscribed to this program"]

        listed = await api_client.get("/subscriptions", headers=ATHLETE)
        assert len(listed.json()["data"]) == 1

    @pytest.mark.asyncio
    async def test_join_requires_slot_selection(self, api_client, slotted_template):
        response = await api_client.post(
            "/subscriptions/join", json={"program_id": slotted_template.id}, headers=ATHLETE
        )

        assert response.status_code == 400
        error = response.json()["errors"][0]
        assert error["code"] == "VAL_SLOT_REQUIRED"
        assert error["details"]["slot_label"] == "Main Squat"

    @pytest.mark.asyncio
    async def test_join_with_poor_fit_warns(self, api_client, slotted_template, exercises):
        slot_id = slotted_template.slots[0].id
        body = {
            "program_id": slotted_template.id,
            "exercise_selections": {str(slot_id): exercises["pull_up"].id},
        }

        response = await api_client.post("/subscriptions/join", json=body, headers=ATHLETE)

        assert response.status_code == 201
        assert len(response.json()["meta"]["warnings"]) == 3

        subscription_id = response.json()["data"]["id"]
        selections = await api_client.get(f"/subscriptions/{subscription_id}/selections", headers=ATHLETE)
        assert selections.json()["data"] == {str(slot_id): exercises["pull_up"].id}

    @pytest.mark.asyncio
    async def test_stage_then_join(self, api_client, slotted_template, exercises):
        slot_id = slotted_template.slots[0].id
        staged = await api_client.put(
            "/subscriptions/selections/staged",
            json={"program_id": slotted_template.id, "exercise_selections": {str(slot_id): exercises["front_squat"].id}},
            headers=ATHLETE,
        )
        assert staged.status_code == 200

        joined = await api_client.post(
            "/subscriptions/join", json={"program_id": slotted_template.id}, headers=ATHLETE
        )

        assert joined.status_code == 201

    @pytest.mark.asyncio
    async def test_progression_flow(self, api_client, twelve_week_template):
        joined = await api_client.post(
            "/subscriptions/join", json={"program_id": twelve_week_template.id, "activate": True}, headers=ATHLETE
        )
        subscription_id = joined.json()["data"]["id"]

        advanced = await api_client.post(f"/subscriptions/{subscription_id}/advance", headers=ATHLETE)
        assert advanced.json()["data"]["current_day"] == 2

        skipped = await api_client.patch(
            f"/subscriptions/{subscription_id}/day", json={"target_day": 5}, headers=ATHLETE
        )
        assert skipped.json()["data"]["current_day"] == 5

        logged = await api_client.post(
            f"/subscriptions/{subscription_id}/adherence", json={"completed": True, "rpe": 8}, headers=ATHLETE
        )
        assert logged.json()["data"]["workouts_completed"] == 1

        active = await api_client.get("/subscriptions/active", headers=ATHLETE)
        assert active.json()["data"]["id"] == subscription_id

        progress = await api_client.get(f"/subscriptions/{subscription_id}/progress", headers=ATHLETE)
        assert progress.json()["data"]["progress_percentage"] == 8.3
        assert progress.json()["data"]["logged_completions"] == 1

        today = await api_client.get(f"/subscriptions/{subscription_id}/today", headers=ATHLETE)
        assert today.json()["data"]["day_number"] == 5

    @pytest.mark.asyncio
    async def test_day_outside_week_is_rejected(self, api_client, twelve_week_template):
        joined = await api_client.post(
            "/subscriptions/join", json={"program_id": twelve_week_template.id}, headers=ATHLETE
        )
        subscription_id = joined.json()["data"]["id"]

        response = await api_client.patch(
            f"/subscriptions/{subscription_id}/day", json={"target_day": 9}, headers=ATHLETE
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_archived_subscription_cannot_advance(self, api_client, twelve_week_template):
        joined = await api_client.post(
            "/subscriptions/join", json={"program_id": twelve_week_template.id}, headers=ATHLETE
        )
        subscription_id = joined.json()["data"]["id"]

        archived = await api_client.patch(
            f"/subscriptions/{subscription_id}/status", json={"status": "ARCHIVED"}, headers=ATHLETE
        )
        assert archived.json()["data"]["status"] == "ARCHIVED"

        response = await api_client.post(f"/subscriptions/{subscription_id}/advance", headers=ATHLETE)
        assert response.status_code == 422
        assert response.json()["errors"][0]["code"] == "BR_INVALID_TRANSITION"

        activated = await api_client.post(f"/subscriptions/{subscription_id}/activate", headers=ATHLETE)
        assert activated.json()["errors"][0]["code"] == "BR_SUBSCRIPTION_TERMINAL"

    @pytest.mark.asyncio
    async def test_other_users_subscription_is_hidden(self, api_client, twelve_week_template):
        joined = await api_client.post(
            "/subscriptions/join", json={"program_id": twelve_week_template.id}, headers=ATHLETE
        )
        subscription_id = joined.json()["data"]["id"]

        response = await api_client.get(f"/subscriptions/{subscription_id}", headers=OTHER_ATHLETE)
        progress = await api_client.get(f"/subscriptions/{subscription_id}/progress", headers=OTHER_ATHLETE)

        assert response.status_code == 404
        assert progress.status_code == 404


class TestCoachingRoutes:
    @pytest.mark.asyncio
    async def test_assign_and_review(self, api_client, async_db_session, twelve_week_template):
        template_id = twelve_week_template.id
        await add_relationship(async_db_session, trainer_id=100, client_id=1)

        assigned = await api_client.post(
            "/coaching/assignments", json={"athlete_id": 1, "program_id": template_id}, headers=TRAINER
        )
        assert assigned.status_code == 201
        assert assigned.json()["data"]["assigned_by"] == 100

        review = await api_client.get("/coaching/clients/1/progress", headers=TRAINER)
        assert review.status_code == 200
        assert [s["program_id"] for s in review.json()["data"]] == [template_id]

    @pytest.mark.asyncio
    async def test_assign_without_relationship(self, api_client, twelve_week_template):
        response = await api_client.post(
            "/coaching/assignments",
            json={"athlete_id": 1, "program_id": twelve_week_template.id},
            headers=TRAINER,
        )

        assert response.status_code == 403
        assert response.json()["errors"][0]["code"] == "AUTH_NO_RELATIONSHIP"

    @pytest.mark.asyncio
    async def test_athlete_cannot_assign(self, api_client, twelve_week_template):
        response = await api_client.post(
            "/coaching/assignments",
            json={"athlete_id": 2, "program_id": twelve_week_template.id},
            headers=ATHLETE,
        )

        assert response.status_code == 403

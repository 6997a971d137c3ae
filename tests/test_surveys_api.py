"""
Survey submission endpoint tests

Covers the draft → submitted → reviewed lifecycle, response validation,
task escalation on submit, and public guest submissions.
"""
import logging

import pytest
from sqlalchemy import select, func

from app.models.survey import SurveyTemplate
from app.models.task import Task, TaskStatus
from app.services import submission_service
from tests.factories import create_template, question_ids


def responses_for(template, scores, issues=None):
    """Responses for the first len(scores) questions of a template"""
    issues = issues or {}
    return [
        {"question_id": qid, "score": score, "issue_description": issues.get(i)}
        for i, (qid, score) in enumerate(zip(question_ids(template), scores))
    ]


def survey_payload(template, prop, scores, issues=None, status="submitted", visit_date="2026-03-14"):
    return {
        "template_id": template.id,
        "property_id": prop.id,
        "visit_date": visit_date,
        "status": status,
        "responses": responses_for(template, scores, issues),
    }


async def all_tasks(db_session):
    result = await db_session.execute(
        select(Task).order_by(Task.id).execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
class TestDraftLifecycle:

    async def test_create_draft(self, client, db_session, staff_headers, internal_template, property_a):
        response = await client.post(
            "/api/v1/surveys/",
            json=survey_payload(internal_template, property_a, [10, 1], status="draft"),
            headers=staff_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "draft"
        assert data["submitted_at"] is None
        assert len(data["responses"]) == 2
        assert data["template_name"] == "Villa Inspection"
        assert data["property_name"] == "Villa Amara"
        assert data["submitter_name"] == "Sam Staff"
        assert await all_tasks(db_session) == []

    async def test_update_then_submit_draft(self, client, db_session, staff_headers, internal_template, property_a):
        created = await client.post(
            "/api/v1/surveys/",
            json=survey_payload(internal_template, property_a, [10], status="draft"),
            headers=staff_headers,
        )
        survey_id = created.json()["id"]

        updated = await client.patch(
            f"/api/v1/surveys/{survey_id}",
            json={
                "notes": "Evening visit",
                "responses": responses_for(internal_template, [10, 1, 5], {1: "Dust under the bed"}),
            },
            headers=staff_headers,
        )
        assert updated.status_code == 200
        assert updated.json()["notes"] == "Evening visit"
        assert len(updated.json()["responses"]) == 3

        submitted = await client.post(f"/api/v1/surveys/{survey_id}/submit", headers=staff_headers)

        assert submitted.status_code == 200
        data = submitted.json()
        assert data["status"] == "submitted"
        assert data["submitted_at"] is not None
        # Housekeeping (10 + 0) / 2 = 5, Front Desk 10 → (5*2 + 10*1) / 3
        assert data["score"]["overall_score"] == 6.7
        assert [c["average"] for c in data["score"]["categories"]] == [5.0, 10.0]

        tasks = await all_tasks(db_session)
        assert len(tasks) == 1
        assert tasks[0].description == "Dust under the bed"

    async def test_visit_date_cannot_be_cleared(self, client, staff_headers, internal_template, property_a):
        created = await client.post(
            "/api/v1/surveys/",
            json=survey_payload(internal_template, property_a, [10], status="draft"),
            headers=staff_headers,
        )
        survey_id = created.json()["id"]

        response = await client.patch(
            f"/api/v1/surveys/{survey_id}", json={"visit_date": None}, headers=staff_headers
        )

        assert response.status_code == 400
        assert response.json()["field"] == "visit_date"
        assert response.json()["constraint"] == "required"

        detail = await client.get(f"/api/v1/surveys/{survey_id}", headers=staff_headers)
        assert detail.json()["visit_date"] == "2026-03-14"

    async def test_submit_requires_required_questions(self, client, staff_headers, internal_template, property_a):
        response = await client.post(
            "/api/v1/surveys/",
            json=survey_payload(internal_template, property_a, [10, 9]),
            headers=staff_headers,
        )

        assert response.status_code == 400
        assert response.json()["field"] == "responses"
        assert response.json()["constraint"] == "required_answered"

    async def test_submitted_survey_is_immutable(self, client, staff_headers, internal_template, property_a):
        created = await client.post(
            "/api/v1/surveys/",
            json=survey_payload(internal_template, property_a, [10, 9, 5]),
            headers=staff_headers,
        )
        survey_id = created.json()["id"]

        response = await client.patch(
            f"/api/v1/surveys/{survey_id}", json={"notes": "late edit"}, headers=staff_headers
        )
        assert response.status_code == 400

        again = await client.post(f"/api/v1/surveys/{survey_id}/submit", headers=staff_headers)
        assert again.status_code == 400

    async def test_drafts_are_private(self, client, staff_headers, manager_headers, internal_template, property_a):
        created = await client.post(
            "/api/v1/surveys/",
            json=survey_payload(internal_template, property_a, [10], status="draft"),
            headers=staff_headers,
        )
        survey_id = created.json()["id"]

        detail = await client.get(f"/api/v1/surveys/{survey_id}", headers=manager_headers)
        assert detail.status_code == 404

        edit = await client.patch(f"/api/v1/surveys/{survey_id}", json={"notes": "x"}, headers=manager_headers)
        assert edit.status_code == 404

        listing = await client.get("/api/v1/surveys/", headers=manager_headers)
        assert listing.json()["total"] == 0

    async def test_review(self, client, staff_headers, manager_headers, internal_template, property_a):
        created = await client.post(
            "/api/v1/surveys/",
            json=survey_payload(internal_template, property_a, [10, 9, 5]),
            headers=staff_headers,
        )
        survey_id = created.json()["id"]

        forbidden = await client.post(f"/api/v1/surveys/{survey_id}/review", headers=staff_headers)
        assert forbidden.status_code == 403

        reviewed = await client.post(f"/api/v1/surveys/{survey_id}/review", headers=manager_headers)
        assert reviewed.status_code == 200
        assert reviewed.json()["status"] == "reviewed"


@pytest.mark.asyncio
class TestResponseValidation:

    async def test_score_outside_scale(self, client, staff_headers, internal_template, property_a):
        # third question is on a 1-5 scale
        response = await client.post(
            "/api/v1/surveys/",
            json=survey_payload(internal_template, property_a, [10, 9, 6]),
            headers=staff_headers,
        )

        assert response.status_code == 400
        assert response.json()["constraint"] == "within_scale"

    async def test_question_from_another_template(
        self, client, db_session, staff_headers, organization, admin_user, internal_template, property_a
    ):
        other = await create_template(db_session, organization, admin_user, name="Spa Check")
        payload = survey_payload(internal_template, property_a, [10], status="draft")
        payload["responses"][0]["question_id"] = question_ids(other)[0]

        response = await client.post("/api/v1/surveys/", json=payload, headers=staff_headers)
        assert response.status_code == 404

    async def test_duplicate_question(self, client, staff_headers, internal_template, property_a):
        payload = survey_payload(internal_template, property_a, [10], status="draft")
        payload["responses"].append(dict(payload["responses"][0]))

        response = await client.post("/api/v1/surveys/", json=payload, headers=staff_headers)
        assert response.status_code == 400
        assert response.json()["constraint"] == "unique_question"

    async def test_guest_template_not_allowed_internally(self, client, staff_headers, guest_template, property_a):
        response = await client.post(
            "/api/v1/surveys/",
            json=survey_payload(guest_template, property_a, [10, 9, 5]),
            headers=staff_headers,
        )
        assert response.status_code == 400

    async def test_unassigned_property(self, client, staff_headers, internal_template, property_b):
        response = await client.post(
            "/api/v1/surveys/",
            json=survey_payload(internal_template, property_b, [10, 9, 5]),
            headers=staff_headers,
        )
        assert response.status_code == 403

    async def test_empty_responses_rejected(self, client, staff_headers, internal_template, property_a):
        payload = survey_payload(internal_template, property_a, [], status="draft")
        response = await client.post("/api/v1/surveys/", json=payload, headers=staff_headers)
        assert response.status_code == 422


@pytest.mark.asyncio
class TestEscalationOnSubmit:

    async def test_low_score_with_issue_creates_task(
        self, client, db_session, staff_headers, internal_template, property_a, manager_user
    ):
        manager_id = manager_user.id
        response = await client.post(
            "/api/v1/surveys/",
            json=survey_payload(
                internal_template, property_a, [3, 9, 5], {0: "  Stained pillow cases  "}
            ),
            headers=staff_headers,
        )
        assert response.status_code == 201

        tasks = await all_tasks(db_session)
        assert len(tasks) == 1
        task = tasks[0]
        assert task.title == "Bed linen is clean"
        assert task.description == "Stained pillow cases"
        assert task.status == TaskStatus.OPEN
        assert task.assigned_to == manager_id
        assert task.is_repeat_issue is False
        assert task.submission_id == response.json()["id"]

    async def test_threshold_and_description_rules(
        self, client, db_session, staff_headers, internal_template, property_a
    ):
        await client.post(
            "/api/v1/surveys/",
            json=survey_payload(
                internal_template,
                property_a,
                [6, 7, 1],
                {0: "At threshold", 1: "Above threshold", 2: "   "},
            ),
            headers=staff_headers,
        )

        tasks = await all_tasks(db_session)
        assert [t.description for t in tasks] == ["At threshold"]

    async def test_repeat_issue_flag(self, client, db_session, staff_headers, internal_template, property_a):
        payload = survey_payload(internal_template, property_a, [2, 9, 5], {0: "Stains again"})

        await client.post("/api/v1/surveys/", json=payload, headers=staff_headers)
        await client.post("/api/v1/surveys/", json=payload, headers=staff_headers)

        tasks = await all_tasks(db_session)
        assert [t.is_repeat_issue for t in tasks] == [False, True]

    async def test_draft_raises_no_tasks(self, client, db_session, staff_headers, internal_template, property_a):
        await client.post(
            "/api/v1/surveys/",
            json=survey_payload(internal_template, property_a, [1, 1, 1], {0: "a", 1: "b"}, status="draft"),
            headers=staff_headers,
        )
        assert await all_tasks(db_session) == []

    async def test_escalation_failure_does_not_fail_submission(
        self, client, db_session, staff_headers, internal_template, property_a, monkeypatch, caplog
    ):
        async def broken(*args, **kwargs):
            raise RuntimeError("task store unavailable")

        monkeypatch.setattr(submission_service, "create_tasks_from_submission", broken)

        with caplog.at_level(logging.ERROR, logger="app.services.submission_service"):
            response = await client.post(
                "/api/v1/surveys/",
                json=survey_payload(internal_template, property_a, [1, 9, 5], {0: "Broken lamp"}),
                headers=staff_headers,
            )

        assert response.status_code == 201
        assert response.json()["status"] == "submitted"
        assert "Task escalation failed" in caplog.text

        count = await db_session.execute(select(func.count(Task.id)))
        assert count.scalar() == 0


@pytest.mark.asyncio
class TestGuestSubmission:

    def guest_payload(self, template, token="guest-token-amara", scores=(1, 2, 1)):
        return {
            "token": token,
            "guest_name": "Grace Guest",
            "guest_email": "grace@example.com",
            "responses": [
                {"question_id": qid, "score": score}
                for qid, score in zip(question_ids(template), scores)
            ],
        }

    async def test_guest_submits_without_auth(self, client, db_session, guest_template, guest_link):
        response = await client.post("/api/v1/surveys/guest", json=self.guest_payload(guest_template))

        assert response.status_code == 201
        assert "id" in response.json()
        # Guest surveys never escalate, whatever the scores
        assert await all_tasks(db_session) == []

    async def test_unknown_token(self, client, guest_template, guest_link):
        response = await client.post(
            "/api/v1/surveys/guest", json=self.guest_payload(guest_template, token="nope")
        )
        assert response.status_code == 404

    async def test_disabled_link_is_gone(self, client, db_session, guest_template, guest_link):
        guest_link.is_active = False
        await db_session.commit()

        response = await client.post("/api/v1/surveys/guest", json=self.guest_payload(guest_template))
        assert response.status_code == 410

    async def test_inactive_template_is_gone(self, client, db_session, guest_template, guest_link):
        guest_template.is_active = False
        await db_session.commit()

        response = await client.post("/api/v1/surveys/guest", json=self.guest_payload(guest_template))
        assert response.status_code == 410

    async def test_missing_required_answer(self, client, guest_template, guest_link):
        response = await client.post(
            "/api/v1/surveys/guest", json=self.guest_payload(guest_template, scores=(5, 5))
        )
        assert response.status_code == 400

    async def test_blank_email_accepted(self, client, guest_template, guest_link):
        payload = self.guest_payload(guest_template)
        payload["guest_email"] = "  "

        response = await client.post("/api/v1/surveys/guest", json=payload)
        assert response.status_code == 201

    async def test_guest_survey_listed_for_manager(
        self, client, manager_headers, guest_template, guest_link
    ):
        await client.post("/api/v1/surveys/guest", json=self.guest_payload(guest_template))

        response = await client.get("/api/v1/surveys/?survey_type=guest", headers=manager_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        item = data["submissions"][0]
        assert item["guest_name"] == "Grace Guest"
        assert item["submitted_by"] is None
        # q0=1 → 0, q1=2 → 1.11, q2=1 → 0: (0.556*2 + 0) / 3
        assert item["overall_score"] == 0.4

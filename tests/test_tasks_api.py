"""
Task endpoint tests - listing scope and the status state machine
"""
import pytest
import pytest_asyncio

from tests.factories import question_ids


async def raise_task(client, headers, template, prop, issue="Stained pillow cases"):
    """Submit an internal survey that escalates its first question"""
    qids = question_ids(template)
    response = await client.post(
        "/api/v1/surveys/",
        json={
            "template_id": template.id,
            "property_id": prop.id,
            "visit_date": "2026-04-02",
            "status": "submitted",
            "responses": [
                {"question_id": qids[0], "score": 2, "issue_description": issue},
                {"question_id": qids[1], "score": 9},
                {"question_id": qids[2], "score": 4},
            ],
        },
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["id"]


@pytest_asyncio.fixture
async def task_id(client, staff_headers, manager_headers, internal_template, property_a):
    await raise_task(client, staff_headers, internal_template, property_a)
    listing = await client.get("/api/v1/tasks/", headers=manager_headers)
    return listing.json()[0]["id"]


@pytest.mark.asyncio
class TestTaskAccess:

    async def test_manager_sees_task_with_names(self, client, manager_headers, task_id):
        response = await client.get(f"/api/v1/tasks/{task_id}", headers=manager_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "open"
        assert data["property_name"] == "Villa Amara"
        assert data["question_text"] == "Bed linen is clean"
        assert data["response_score"] == 2
        assert data["assignee_name"] == "Max Manager"
        assert data["raised_by_name"] == "Sam Staff"

    async def test_staff_has_no_access(self, client, staff_headers, task_id):
        listing = await client.get("/api/v1/tasks/", headers=staff_headers)
        assert listing.status_code == 403

        detail = await client.get(f"/api/v1/tasks/{task_id}", headers=staff_headers)
        assert detail.status_code == 403

    async def test_unassigned_manager(self, client, other_manager_headers, task_id):
        listing = await client.get("/api/v1/tasks/", headers=other_manager_headers)
        assert listing.status_code == 200
        assert listing.json() == []

        detail = await client.get(f"/api/v1/tasks/{task_id}", headers=other_manager_headers)
        assert detail.status_code == 403

        update = await client.patch(
            f"/api/v1/tasks/{task_id}", json={"status": "investigating"}, headers=other_manager_headers
        )
        assert update.status_code == 403

    async def test_other_organization(self, client, other_org_headers, task_id):
        response = await client.get(f"/api/v1/tasks/{task_id}", headers=other_org_headers)
        assert response.status_code == 404

    async def test_admin_filters(self, client, admin_headers, staff_headers, internal_template, property_a, task_id):
        await raise_task(client, staff_headers, internal_template, property_a, issue="Stains again")

        repeats = await client.get("/api/v1/tasks/?is_repeat_issue=true", headers=admin_headers)
        assert [t["description"] for t in repeats.json()] == ["Stains again"]

        open_tasks = await client.get("/api/v1/tasks/?status=open", headers=admin_headers)
        assert len(open_tasks.json()) == 2


@pytest.mark.asyncio
class TestTaskTransitions:

    async def test_open_investigating_closed(self, client, manager_headers, manager_user, task_id):
        manager_id = manager_user.id
        investigating = await client.patch(
            f"/api/v1/tasks/{task_id}", json={"status": "investigating"}, headers=manager_headers
        )
        assert investigating.status_code == 200
        assert investigating.json()["status"] == "investigating"

        closed = await client.patch(
            f"/api/v1/tasks/{task_id}",
            json={"status": "closed", "closing_notes": "  Linen replaced  "},
            headers=manager_headers,
        )
        assert closed.status_code == 200
        data = closed.json()
        assert data["status"] == "closed"
        assert data["closing_notes"] == "Linen replaced"
        assert data["closed_by"] == manager_id
        assert data["closer_name"] == "Max Manager"
        assert data["closed_at"] is not None

    async def test_close_directly_from_open(self, client, admin_headers, task_id):
        response = await client.patch(
            f"/api/v1/tasks/{task_id}",
            json={"status": "closed", "closing_notes": "False alarm"},
            headers=admin_headers,
        )
        assert response.status_code == 200

    async def test_closing_requires_notes(self, client, manager_headers, task_id):
        response = await client.patch(
            f"/api/v1/tasks/{task_id}",
            json={"status": "closed", "closing_notes": "   "},
            headers=manager_headers,
        )

        assert response.status_code == 400
        assert response.json()["field"] == "closing_notes"

    async def test_closed_is_terminal(self, client, manager_headers, task_id):
        await client.patch(
            f"/api/v1/tasks/{task_id}",
            json={"status": "closed", "closing_notes": "Done"},
            headers=manager_headers,
        )

        response = await client.patch(
            f"/api/v1/tasks/{task_id}", json={"status": "open"}, headers=manager_headers
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid transition: closed -> open"
        assert response.json()["field"] == "status"

    async def test_no_step_back(self, client, manager_headers, task_id):
        await client.patch(f"/api/v1/tasks/{task_id}", json={"status": "investigating"}, headers=manager_headers)

        response = await client.patch(f"/api/v1/tasks/{task_id}", json={"status": "open"}, headers=manager_headers)
        assert response.status_code == 400

    async def test_unknown_status(self, client, manager_headers, task_id):
        response = await client.patch(
            f"/api/v1/tasks/{task_id}", json={"status": "archived"}, headers=manager_headers
        )
        assert response.status_code == 422

    async def test_missing_task(self, client, manager_headers, task_id):
        response = await client.patch(
            "/api/v1/tasks/9999", json={"status": "investigating"}, headers=manager_headers
        )
        assert response.status_code == 404

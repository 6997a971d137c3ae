"""
Property, assignment, user and guest-link administration tests
"""
import pytest


@pytest.mark.asyncio
class TestProperties:

    async def test_create_property(self, client, admin_headers, manager_user):
        response = await client.post(
            "/api/v1/properties/",
            json={
                "name": "Villa Cielo",
                "slug": "villa-cielo",
                "code": "cie",
                "location": "Uluwatu",
                "primary_pm_id": manager_user.id,
            },
            headers=admin_headers,
        )

        assert response.status_code == 201
        assert response.json()["code"] == "CIE"
        assert response.json()["is_active"] is True

    async def test_duplicate_code(self, client, admin_headers, property_a):
        response = await client.post(
            "/api/v1/properties/",
            json={"name": "Another Amara", "slug": "another-amara", "code": "AMA"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["field"] == "code"

    async def test_staff_cannot_be_primary_pm(self, client, admin_headers, staff_user):
        response = await client.post(
            "/api/v1/properties/",
            json={"name": "Villa Cielo", "slug": "villa-cielo", "code": "CIE", "primary_pm_id": staff_user.id},
            headers=admin_headers,
        )
        assert response.status_code == 400

    async def test_invalid_slug(self, client, admin_headers):
        response = await client.post(
            "/api/v1/properties/",
            json={"name": "Villa Cielo", "slug": "Villa Cielo", "code": "CIE"},
            headers=admin_headers,
        )
        assert response.status_code == 422

    async def test_listing_is_scoped(self, client, admin_headers, staff_headers, property_a, property_b):
        admin_list = await client.get("/api/v1/properties/", headers=admin_headers)
        assert {p["code"] for p in admin_list.json()} == {"AMA", "BOR"}

        staff_list = await client.get("/api/v1/properties/", headers=staff_headers)
        assert [p["code"] for p in staff_list.json()] == ["AMA"]

        forbidden = await client.get(f"/api/v1/properties/{property_b.id}", headers=staff_headers)
        assert forbidden.status_code == 403

    async def test_deactivate(self, client, admin_headers, property_b):
        response = await client.delete(f"/api/v1/properties/{property_b.id}", headers=admin_headers)
        assert response.status_code == 204

        listed = await client.get("/api/v1/properties/", headers=admin_headers)
        assert property_b.id not in [p["id"] for p in listed.json()]


@pytest.mark.asyncio
class TestAssignments:

    async def test_replace_assignments(
        self, client, admin_headers, staff_headers, staff_user, other_manager, property_a, property_b
    ):
        staff_id, other_id = staff_user.id, other_manager.id
        response = await client.put(
            f"/api/v1/properties/{property_b.id}/assignments",
            json={"user_ids": [staff_id, other_id]},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["user_ids"] == sorted([staff_id, other_id])

        # staff now sees both properties
        listed = await client.get("/api/v1/properties/", headers=staff_headers)
        assert {p["code"] for p in listed.json()} == {"AMA", "BOR"}

    async def test_admin_cannot_be_assigned(self, client, admin_headers, admin_user, property_b):
        response = await client.put(
            f"/api/v1/properties/{property_b.id}/assignments",
            json={"user_ids": [admin_user.id]},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["field"] == "user_ids"

    async def test_manager_cannot_manage_assignments(self, client, manager_headers, property_a):
        response = await client.get(f"/api/v1/properties/{property_a.id}/assignments", headers=manager_headers)
        assert response.status_code == 403


@pytest.mark.asyncio
class TestUsers:

    async def test_me_includes_property_scope(self, client, staff_headers, property_a):
        response = await client.get("/api/v1/users/me", headers=staff_headers)

        assert response.status_code == 200
        assert response.json()["role"] == "staff"
        assert response.json()["property_ids"] == [property_a.id]

    async def test_me_admin_has_no_property_list(self, client, admin_headers):
        response = await client.get("/api/v1/users/me", headers=admin_headers)
        assert response.json()["property_ids"] is None

    async def test_create_user(self, client, admin_headers):
        payload = {"email": "new.staff@example.com", "full_name": "Nina New"}

        created = await client.post("/api/v1/users/", json=payload, headers=admin_headers)
        assert created.status_code == 201
        assert created.json()["role"] == "staff"

        duplicate = await client.post("/api/v1/users/", json=payload, headers=admin_headers)
        assert duplicate.status_code == 400

    async def test_staff_cannot_list_users(self, client, staff_headers):
        response = await client.get("/api/v1/users/", headers=staff_headers)
        assert response.status_code == 403

    async def test_admin_cannot_demote_self(self, client, admin_headers, admin_user):
        response = await client.patch(
            f"/api/v1/users/{admin_user.id}", json={"role": "staff"}, headers=admin_headers
        )
        assert response.status_code == 400

    async def test_deactivated_user_is_locked_out(self, client, admin_headers, staff_headers, staff_user):
        response = await client.patch(
            f"/api/v1/users/{staff_user.id}", json={"is_active": False}, headers=admin_headers
        )
        assert response.status_code == 200

        me = await client.get("/api/v1/users/me", headers=staff_headers)
        assert me.status_code == 403


@pytest.mark.asyncio
class TestGuestLinks:

    async def test_disable_link(self, client, admin_headers, guest_link, guest_template):
        listed = await client.get("/api/v1/admin/guest-links", headers=admin_headers)
        assert [link["token"] for link in listed.json()] == ["guest-token-amara"]

        response = await client.patch(
            f"/api/v1/admin/guest-links/{guest_link.id}", json={"is_active": False}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["is_active"] is False

    async def test_manager_forbidden(self, client, manager_headers, guest_link):
        response = await client.get("/api/v1/admin/guest-links", headers=manager_headers)
        assert response.status_code == 403

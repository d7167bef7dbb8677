"""Tests for user management routes."""

from sqlalchemy import select

from studygroup.db.models import User


class TestUserNames:
    async def test_any_user_sees_names(self, client, alice, bob, admin, alice_headers):
        response = await client.get("/api/users/names", headers=alice_headers)

        assert response.status_code == 200
        assert response.json() == [
            {"id": admin.id, "name": "Admin User"},
            {"id": alice.id, "name": "Alice Johnson"},
            {"id": bob.id, "name": "Bob Smith"},
        ]


class TestListUsers:
    async def test_admin_lists(self, client, alice, admin_headers):
        response = await client.get("/api/users", headers=admin_headers)

        assert response.status_code == 200
        emails = {u["email"] for u in response.json()}
        assert emails == {"alice@learning.com", "admin@learning.com"}
        assert all("passwordHash" not in u for u in response.json())


class TestCreateUser:
    async def test_admin_creates_with_temporary_password(self, client, admin_headers):
        response = await client.post(
            "/api/users",
            json={"name": "Carol Diaz", "email": "Carol@Learning.com"},
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "carol@learning.com"
        assert data["role"] == "user"
        assert len(data["temporaryPassword"]) >= 8

        login = await client.post(
            "/api/auth/login",
            json={"email": "carol@learning.com", "password": data["temporaryPassword"]},
        )
        assert login.status_code == 200

    async def test_duplicate_email_is_400(self, client, alice, admin_headers):
        response = await client.post(
            "/api/users",
            json={"name": "Alice Again", "email": "alice@learning.com"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "User already exists"

    async def test_non_admin_is_403(self, client, alice_headers):
        response = await client.post(
            "/api/users",
            json={"name": "Mallory", "email": "mallory@learning.com"},
            headers=alice_headers,
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Admin access required"


class TestUpdateUser:
    async def test_user_updates_self(self, client, alice, alice_headers):
        response = await client.put(
            f"/api/users/{alice.id}", json={"name": "Alice J."}, headers=alice_headers
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Alice J."

    async def test_user_cannot_update_others(self, client, bob, alice_headers):
        response = await client.put(f"/api/users/{bob.id}", json={"name": "Bobby"}, headers=alice_headers)

        assert response.status_code == 403

    async def test_non_admin_cannot_change_role(self, client, db, alice, alice_headers):
        response = await client.put(
            f"/api/users/{alice.id}", json={"role": "admin", "name": "Sneaky"}, headers=alice_headers
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Only admins can change roles"
        user = await db.scalar(select(User).where(User.id == alice.id))
        assert user.name == "Alice Johnson"

    async def test_admin_changes_role(self, client, alice, admin_headers):
        response = await client.put(f"/api/users/{alice.id}", json={"role": "admin"}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["role"] == "admin"

    async def test_email_in_use_is_400(self, client, alice, bob, alice_headers):
        response = await client.put(
            f"/api/users/{alice.id}", json={"email": "bob@learning.com"}, headers=alice_headers
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Email already in use"


class TestDeleteUser:
    async def test_admin_deletes(self, client, make_user, admin_headers):
        carol = await make_user("Carol Diaz", "carol@learning.com")

        response = await client.delete(f"/api/users/{carol.id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"message": "User deleted successfully"}

    async def test_cannot_delete_self(self, client, admin, admin_headers):
        response = await client.delete(f"/api/users/{admin.id}", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Cannot delete your own account"

    async def test_content_owner_is_refused(self, client, alice, topic, admin_headers):
        response = await client.delete(f"/api/users/{alice.id}", headers=admin_headers)

        assert response.status_code == 400
        assert response.json() == {
            "error": "Cannot delete user with existing content",
            "details": {"topics": 1, "sessions": 0, "interactions": 0},
        }

    async def test_membership_removed_with_user(self, client, make_user, auth_headers_for, topic, admin_headers):
        carol = await make_user("Carol Diaz", "carol@learning.com")
        await client.post(f"/api/topics/{topic['id']}/join", headers=auth_headers_for(carol))

        response = await client.delete(f"/api/users/{carol.id}", headers=admin_headers)

        assert response.status_code == 200
        refreshed = await client.get(f"/api/topics/{topic['id']}", headers=admin_headers)
        assert carol.id not in refreshed.json()["attendees"]

    async def test_non_admin_cannot_delete(self, client, bob, alice_headers):
        response = await client.delete(f"/api/users/{bob.id}", headers=alice_headers)

        assert response.status_code == 403

    async def test_missing_user_is_404(self, client, admin_headers):
        response = await client.delete("/api/users/9999", headers=admin_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "User not found"}

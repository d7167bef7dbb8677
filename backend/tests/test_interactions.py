"""Tests for interaction routes."""

import pytest


@pytest.fixture
async def question(client, session, alice_headers) -> dict:
    response = await client.post(
        "/api/interactions",
        json={"type": "question", "sessionId": session["id"], "content": "How are terms chosen?"},
        headers=alice_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestCreateInteraction:
    async def test_question(self, client, alice, session, question):
        assert question["type"] == "question"
        assert question["content"] == "How are terms chosen?"
        assert question["authorId"] == alice.id
        assert question["sessionId"] == session["id"]
        assert "label" not in question

    async def test_note_link(self, client, session, bob_headers):
        response = await client.post(
            "/api/interactions",
            json={
                "type": "noteLink",
                "sessionId": session["id"],
                "label": "My notes",
                "description": "Summary of the session",
                "url": "https://notes.example.org/s1",
            },
            headers=bob_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["url"] == "https://notes.example.org/s1"
        assert "content" not in data

    async def test_reference(self, client, session, bob_headers):
        response = await client.post(
            "/api/interactions",
            json={
                "type": "reference",
                "sessionId": session["id"],
                "label": "DDIA",
                "description": "Designing Data-Intensive Applications",
                "url": "https://dataintensive.net",
                "category": "book",
            },
            headers=bob_headers,
        )

        assert response.status_code == 201
        assert response.json()["category"] == "book"

    async def test_note_link_missing_fields_are_named(self, client, session, bob_headers):
        response = await client.post(
            "/api/interactions",
            json={"type": "noteLink", "sessionId": session["id"], "label": "Notes"},
            headers=bob_headers,
        )

        assert response.status_code == 400
        message = response.json()["error"]
        assert "description" in message
        assert "url" in message

    async def test_empty_content_is_400(self, client, session, bob_headers):
        response = await client.post(
            "/api/interactions",
            json={"type": "speakerFeedback", "sessionId": session["id"], "content": ""},
            headers=bob_headers,
        )

        assert response.status_code == 400

    async def test_unknown_type_is_400(self, client, session, bob_headers):
        response = await client.post(
            "/api/interactions",
            json={"type": "poll", "sessionId": session["id"], "content": "?"},
            headers=bob_headers,
        )

        assert response.status_code == 400

    async def test_missing_session_is_404(self, client, bob_headers):
        response = await client.post(
            "/api/interactions",
            json={"type": "question", "sessionId": 5150, "content": "Anyone?"},
            headers=bob_headers,
        )

        assert response.status_code == 404
        assert response.json() == {"error": "Session not found"}


class TestListInteractions:
    async def test_filter_by_session(self, client, topic, bob, session, question, admin_headers, alice_headers):
        other_session = await client.post(
            "/api/sessions",
            json={
                "topicId": topic["id"],
                "presenterId": bob.id,
                "startDateTime": "2026-01-19 18:30",
                "scope": "Paxos",
            },
            headers=admin_headers,
        )
        await client.post(
            "/api/interactions",
            json={"type": "question", "sessionId": other_session.json()["id"], "content": "Multi-Paxos?"},
            headers=alice_headers,
        )

        everything = await client.get("/api/interactions", headers=alice_headers)
        filtered = await client.get(
            "/api/interactions", params={"sessionId": session["id"]}, headers=alice_headers
        )

        assert len(everything.json()) == 2
        assert [i["id"] for i in filtered.json()] == [question["id"]]


class TestUpdateInteraction:
    async def test_author_edits(self, client, question, alice_headers):
        response = await client.put(
            f"/api/interactions/{question['id']}",
            json={"content": "How are election timeouts chosen?"},
            headers=alice_headers,
        )

        assert response.status_code == 200
        assert response.json()["content"] == "How are election timeouts chosen?"

    async def test_other_user_cannot_edit(self, client, question, bob_headers):
        response = await client.put(
            f"/api/interactions/{question['id']}", json={"content": "Mine"}, headers=bob_headers
        )

        assert response.status_code == 403

    async def test_admin_edits(self, client, question, admin_headers):
        response = await client.put(
            f"/api/interactions/{question['id']}", json={"content": "Moderated"}, headers=admin_headers
        )

        assert response.status_code == 200

    async def test_type_change_requires_new_fields(self, client, question, alice_headers):
        response = await client.put(
            f"/api/interactions/{question['id']}", json={"type": "noteLink"}, headers=alice_headers
        )

        assert response.status_code == 400
        assert "url" in response.json()["error"]

    async def test_type_change_with_fields(self, client, question, alice_headers):
        response = await client.put(
            f"/api/interactions/{question['id']}",
            json={
                "type": "noteLink",
                "label": "Notes",
                "description": "Cleaned-up notes",
                "url": "https://notes.example.org/q",
            },
            headers=alice_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["type"] == "noteLink"
        assert "content" not in data


class TestDeleteInteraction:
    async def test_author_cannot_delete(self, client, question, alice_headers):
        response = await client.delete(f"/api/interactions/{question['id']}", headers=alice_headers)

        assert response.status_code == 403

    async def test_admin_deletes(self, client, question, admin_headers, alice_headers):
        response = await client.delete(f"/api/interactions/{question['id']}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"message": "Interaction deleted successfully"}
        gone = await client.get(f"/api/interactions/{question['id']}", headers=alice_headers)
        assert gone.status_code == 404

import pytest
import uuid
from fastapi import status

from focusshield.models.models import FocusSession, MeetingBlock


def create_test_session(session_id: str | None = None, title: str = "Write docs"):
    """Helper function to create a session payload as the client sends it"""
    return {
        "id": session_id or str(uuid.uuid4()),
        "started_at": "2024-05-15T14:00:00Z",
        "duration_sec": 1500,
        "task_title": title,
        "interrupted": False,
        "created_at": "2024-05-15T14:00:00Z",
    }


class TestUpsertRecords:
    """Tests for PUT /api/records/{kind}"""

    def test_upsert_sessions(self, client, test_user, db):
        payload = [create_test_session("s1"), create_test_session("s2")]

        response = client.put("/api/records/sessions", headers=test_user["headers"], json=payload)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"upserted": 2, "ids": ["s1", "s2"]}
        assert db.query(FocusSession).filter_by(user_id=test_user["user"].id).count() == 2

    def test_upsert_is_idempotent(self, client, test_user, db):
        payload = [create_test_session("s1")]

        client.put("/api/records/sessions", headers=test_user["headers"], json=payload)
        client.put("/api/records/sessions", headers=test_user["headers"], json=payload)

        assert db.query(FocusSession).count() == 1

    def test_user_id_comes_from_token(self, client, test_user, db):
        payload = [{**create_test_session("s1"), "user_id": "someone-else"}]

        client.put("/api/records/sessions", headers=test_user["headers"], json=payload)

        assert db.get(FocusSession, "s1").user_id == test_user["user"].id

    def test_local_sync_flag_is_ignored(self, client, test_user):
        payload = [{**create_test_session("s1"), "synced": False}]

        response = client.put("/api/records/sessions", headers=test_user["headers"], json=payload)

        assert response.status_code == status.HTTP_200_OK

    def test_invalid_record(self, client, test_user):
        payload = [{"id": "s1", "task_title": "missing fields"}]

        response = client.put("/api/records/sessions", headers=test_user["headers"], json=payload)

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_unknown_kind(self, client, test_user):
        response = client.put("/api/records/tasks", headers=test_user["headers"], json=[])

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_other_users_id_conflicts(self, client, test_user, test_user2, db):
        client.put("/api/records/sessions", headers=test_user["headers"], json=[create_test_session("s1", "mine")])

        response = client.put(
            "/api/records/sessions", headers=test_user2["headers"], json=[create_test_session("s1", "theirs")]
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert db.get(FocusSession, "s1").task_title == "mine"

    def test_requires_authentication(self, client):
        response = client.put("/api/records/sessions", json=[create_test_session()])

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestListRecords:
    """Tests for GET /api/records/{kind}"""

    def test_lists_only_own_records(self, client, test_user, test_user2):
        client.put("/api/records/sessions", headers=test_user["headers"], json=[create_test_session("mine")])
        client.put("/api/records/sessions", headers=test_user2["headers"], json=[create_test_session("theirs")])

        response = client.get("/api/records/sessions", headers=test_user["headers"])

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert [r["id"] for r in data] == ["mine"]
        assert data[0]["user_id"] == test_user["user"].id
        assert "synced" not in data[0]

    def test_ship_notes_and_meeting_blocks(self, client, test_user):
        headers = test_user["headers"]
        client.put("/api/records/sessions", headers=headers, json=[create_test_session("s1")])
        client.put("/api/records/ship_notes", headers=headers, json=[
            {"id": "n1", "session_id": "s1", "note": "Shipped the docs page"},
        ])
        client.put("/api/records/meeting_blocks", headers=headers, json=[
            {"id": "m1", "start_at": "2024-05-15T09:00:00Z", "end_at": "2024-05-15T10:00:00Z", "title": "Standup"},
        ])

        notes = client.get("/api/records/ship_notes", headers=headers).json()
        blocks = client.get("/api/records/meeting_blocks", headers=headers).json()

        assert notes[0]["session_id"] == "s1"
        assert blocks[0]["title"] == "Standup"

    def test_empty_list(self, client, test_user):
        response = client.get("/api/records/meeting_blocks", headers=test_user["headers"])

        assert response.json() == []


class TestUpdateRecord:
    """Tests for PATCH /api/records/{kind}/{record_id}"""

    def test_patch_ends_session(self, client, test_user):
        headers = test_user["headers"]
        client.put("/api/records/sessions", headers=headers, json=[create_test_session("s1")])

        response = client.patch(
            "/api/records/sessions/s1",
            headers=headers,
            json={"ended_at": "2024-05-15T14:25:00Z", "duration_sec": 1500},
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["ended_at"].startswith("2024-05-15T14:25:00")
        assert data["task_title"] == "Write docs"

    def test_patch_missing_record(self, client, test_user):
        response = client.patch("/api/records/sessions/missing", headers=test_user["headers"], json={"task_title": "x"})

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_patch_other_users_record(self, client, test_user, test_user2):
        client.put("/api/records/sessions", headers=test_user["headers"], json=[create_test_session("s1")])

        response = client.patch("/api/records/sessions/s1", headers=test_user2["headers"], json={"task_title": "x"})

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_patch_invalid_value(self, client, test_user):
        headers = test_user["headers"]
        client.put("/api/records/sessions", headers=headers, json=[create_test_session("s1")])

        response = client.patch("/api/records/sessions/s1", headers=headers, json={"duration_sec": -1})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_patch_cannot_change_id(self, client, test_user, db):
        headers = test_user["headers"]
        client.put("/api/records/meeting_blocks", headers=headers, json=[
            {"id": "m1", "start_at": "2024-05-15T09:00:00Z", "end_at": "2024-05-15T10:00:00Z"},
        ])

        response = client.patch("/api/records/meeting_blocks/m1", headers=headers, json={"id": "m2", "title": "Retro"})

        assert response.json()["id"] == "m1"
        assert db.get(MeetingBlock, "m1").title == "Retro"
        assert db.get(MeetingBlock, "m2") is None

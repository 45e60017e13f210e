"""HTTP tests for the folder endpoints, over a mocked database session."""

import uuid
from datetime import datetime
from types import SimpleNamespace

from sqlalchemy.dialects import postgresql

from conftest import rows_result, scalar_result

API = "/api/v1/folders"


def make_folder(user_id, name="Work", position=1):
    return SimpleNamespace(
        id=uuid.uuid4(),
        user_id=user_id,
        name=name,
        color=None,
        icon=None,
        position=position,
        created_at=datetime(2026, 2, 1),
        updated_at=None,
        deleted_at=None,
    )


class TestDeleteFolder:
    """Soft delete re-homes the folder's notes."""

    def test_notes_move_to_default_folder(self, client, db_session, current_user):
        folder = make_folder(current_user.id)
        default = make_folder(current_user.id, name="Notes", position=0)
        db_session.execute.side_effect = [
            scalar_result(folder),
            scalar_result(default),
            rows_result([]),
        ]

        response = client.delete(f"{API}/{folder.id}")

        assert response.status_code == 200
        assert response.json()["data"] == {"id": str(folder.id)}
        assert isinstance(folder.deleted_at, datetime)

        move = db_session.execute.call_args_list[2].args[0].compile(dialect=postgresql.dialect())
        assert str(move).startswith("UPDATE notes SET folder_id=")
        assert default.id in move.params.values()
        assert folder.id in move.params.values()

    def test_notes_unfiled_without_default_folder(self, client, db_session, current_user):
        folder = make_folder(current_user.id)
        db_session.execute.side_effect = [
            scalar_result(folder),
            scalar_result(None),
            rows_result([]),
        ]

        client.delete(f"{API}/{folder.id}")

        move = db_session.execute.call_args_list[2].args[0].compile(dialect=postgresql.dialect())
        assert str(move).startswith("UPDATE notes SET folder_id=")
        assert move.params.get("folder_id") is None

    def test_missing_folder(self, client, db_session):
        db_session.execute.return_value = scalar_result(None)

        response = client.delete(f"{API}/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["error"] == "FOLDER_NOT_FOUND"
        assert db_session.execute.await_count == 1


class TestListFolders:

    def test_note_counts(self, client, db_session, current_user):
        work = make_folder(current_user.id, "Work", 1)
        home = make_folder(current_user.id, "Home", 2)
        db_session.execute.return_value = rows_result([(work, 3), (home, 0)])

        data = client.get(f"{API}/").json()["data"]

        assert [(f["name"], f["note_count"]) for f in data] == [("Work", 3), ("Home", 0)]


class TestCreateUpdateFolder:

    def test_create_appends_after_last_position(self, client, db_session, current_user):
        db_session.execute.return_value = scalar_result(4)

        async def assign_defaults(folder):
            folder.id = uuid.uuid4()
            folder.created_at = datetime(2026, 2, 1)

        db_session.refresh.side_effect = assign_defaults

        response = client.post(f"{API}/", json={"name": "Ideas", "color": "#ffaa00"})

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["name"] == "Ideas"
        assert data["color"] == "#ffaa00"
        assert data["position"] == 5

    def test_update_only_sent_fields(self, client, db_session, current_user):
        folder = make_folder(current_user.id, "Work")
        folder.color = "#000000"
        db_session.execute.return_value = scalar_result(folder)

        data = client.put(f"{API}/{folder.id}", json={"name": "Office"}).json()["data"]

        assert data["name"] == "Office"
        assert data["color"] == "#000000"

    def test_blank_name_rejected(self, client):
        response = client.post(f"{API}/", json={"name": ""})

        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"


class TestFolderDetail:

    def test_folder_with_notes(self, client, db_session, current_user):
        folder = make_folder(current_user.id)
        note = SimpleNamespace(
            id=uuid.uuid4(),
            folder_id=folder.id,
            title="Plan",
            content_plain="do things",
            word_count=2,
            is_pinned=False,
            is_favorite=False,
            tags=[],
            created_at=datetime(2026, 2, 2),
            updated_at=None,
        )
        db_session.execute.side_effect = [scalar_result(folder), rows_result([note])]

        data = client.get(f"{API}/{folder.id}").json()["data"]

        assert data["note_count"] == 1
        assert [n["title"] for n in data["notes"]] == ["Plan"]

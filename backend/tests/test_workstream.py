from datetime import datetime

import pytest

from finhub.dependencies import get_store
from finhub.store import RowStore, RowStoreError


@pytest.fixture
def seeded(store):
    store.insert(
        "ws_users",
        [
            {"id": "u1", "email": "ana@example.com", "name": "Ana", "role": "admin", "is_active": True},
            {"id": "u2", "email": "bob@example.com", "name": "Bob", "role": "member", "is_active": True},
            {"id": "u3", "email": "old@example.com", "name": "Old", "role": "member", "is_active": False},
        ],
    )
    store.insert("ws_tasks", [{"id": 1, "project_id": "p1", "title": "Close January", "assignee_id": "u1"}])
    store.insert(
        "ws_activity_log",
        [
            {"task_id": 1, "user_id": "u1", "action": "created", "created_at": datetime(2025, 1, 1, 9)},
            {"task_id": 1, "user_id": "u2", "action": "updated", "field_name": "status", "old_value": "todo",
             "new_value": "in_progress", "created_at": datetime(2025, 1, 2, 9)},
            {"task_id": 1, "user_id": None, "action": "reminder", "created_at": datetime(2025, 1, 3, 9)},
        ],
    )
    store.insert(
        "ws_comments",
        [
            {"task_id": 1, "user_id": "u2", "content": "Bank feeds are in", "created_at": datetime(2025, 1, 2, 10)},
            {"task_id": 1, "user_id": "u1", "content": "Thanks", "created_at": datetime(2025, 1, 2, 11)},
        ],
    )
    return store


def test_list_users_returns_active_users(client, seeded):
    response = client.get("/api/workstream/users")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert [user["name"] for user in body["data"]] == ["Ana", "Bob"]


class _BrokenStore(RowStore):
    def select(self, table_name, **kwargs):
        raise RowStoreError("connection refused", table=table_name)


def test_list_users_failure_is_reported(app, client):
    app.dependency_overrides[get_store] = lambda: _BrokenStore()

    response = client.get("/api/workstream/users")

    assert response.status_code == 500
    assert response.json()["success"] is False
    assert "connection refused" in response.json()["error"]


def test_get_task(client, seeded):
    body = client.get("/api/workstream/tasks/1").json()

    assert body["data"]["title"] == "Close January"
    assert body["data"]["status"] == "todo"


def test_unknown_task_is_404(client, seeded):
    response = client.get("/api/workstream/tasks/99/activity")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Task 99 not found"}


def test_activity_is_newest_first_with_user_email(client, seeded):
    data = client.get("/api/workstream/tasks/1/activity").json()["data"]

    assert [entry["action"] for entry in data] == ["reminder", "updated", "created"]
    assert data[0]["user_email"] is None
    assert data[1]["user_email"] == "bob@example.com"
    assert data[1]["old_value"] == "todo"
    assert data[2]["user_email"] == "ana@example.com"


def test_comments_in_posting_order(client, seeded):
    data = client.get("/api/workstream/tasks/1/comments").json()["data"]

    assert [comment["content"] for comment in data] == ["Bank feeds are in", "Thanks"]
    assert data[0]["user_name"] == "Bob"

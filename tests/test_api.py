# tests/test_api.py

from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.services.sync_engine import SyncEngine

from .factories import make_task

DEADLINE = "2030-01-01T12:00:00Z"


def create_user(client: TestClient, name: str = "Alice", email: str = "A@X.com", **extra) -> dict:
    response = client.post("/api/users", json={"name": name, "email": email, **extra})
    assert response.status_code == 201, response.json()
    return response.json()["data"]


def create_task(client: TestClient, **fields) -> dict:
    body = {"name": "T1", "deadline": DEADLINE, **fields}
    response = client.post("/api/tasks", json=body)
    assert response.status_code == 201, response.json()
    return response.json()["data"]


def test_root_and_health(client: TestClient) -> None:
    assert client.get("/").json() == {"message": "Task Board API"}
    assert client.get("/health").json() == {"status": "ok"}


def test_create_user_normalizes_email(client: TestClient) -> None:
    response = client.post("/api/users", json={"name": "Alice", "email": "  A@X.com "})

    body = response.json()
    assert response.status_code == 201
    assert body["message"] == "User created"
    assert body["data"]["email"] == "a@x.com"
    assert body["data"]["pendingTasks"] == []
    assert set(body["data"]) == {"_id", "name", "email", "pendingTasks", "dateCreated"}


def test_duplicate_email_is_rejected(client: TestClient) -> None:
    create_user(client)

    response = client.post("/api/users", json={"name": "Imposter", "email": "a@X.COM"})

    assert response.status_code == 400
    assert response.json() == {"message": "User with that email already exists", "data": None}
    assert client.get("/api/users", params={"count": "true"}).json()["data"] == 1


def test_missing_fields_are_client_errors(client: TestClient) -> None:
    response = client.post("/api/users", json={"name": "Alice"})
    assert response.status_code == 400
    assert response.json()["message"] == "Missing required fields (name, email)"
    assert response.json()["data"] == {"missing": ["email"]}

    response = client.post("/api/tasks", json={"name": "T1"})
    assert response.status_code == 400
    assert response.json()["data"] == {"missing": ["deadline"]}

    response = client.post("/api/tasks", json={"name": "T1", "deadline": "someday"})
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid request"


def test_task_lifecycle_keeps_both_sides_in_sync(client: TestClient) -> None:
    alice = create_user(client)
    task = create_task(client, assignedUser=alice["_id"])

    assert task["completed"] is False
    assert task["assignedUserName"] == "Alice"
    assert client.get(f"/api/users/{alice['_id']}").json()["data"]["pendingTasks"] == [task["_id"]]

    response = client.put(f"/api/tasks/{task['_id']}", json={
        "name": "T1", "deadline": DEADLINE, "completed": True, "assignedUser": alice["_id"],
    })
    assert response.json()["message"] == "Task updated"
    assert response.json()["data"]["assignedUser"] == alice["_id"]
    assert client.get(f"/api/users/{alice['_id']}").json()["data"]["pendingTasks"] == []

    response = client.delete(f"/api/users/{alice['_id']}")
    assert response.json() == {"message": "User deleted (tasks unassigned)", "data": None}

    task = client.get(f"/api/tasks/{task['_id']}").json()["data"]
    assert task["assignedUser"] == ""
    assert task["assignedUserName"] == "unassigned"


def test_assigned_user_name_cannot_be_set_by_clients(client: TestClient) -> None:
    task = create_task(client, assignedUserName="Mallory")

    assert task["assignedUserName"] == "unassigned"


def test_put_user_reassigns_tasks(client: TestClient) -> None:
    alice = create_user(client)
    bob = create_user(client, name="Bob", email="bob@x.com")
    task = create_task(client, assignedUser=alice["_id"])

    response = client.put(f"/api/users/{bob['_id']}", json={
        "name": "Bob", "email": "bob@x.com", "pendingTasks": [task["_id"]],
    })

    assert response.status_code == 200
    assert response.json()["message"] == "User updated"
    assert response.json()["data"]["pendingTasks"] == [task["_id"]]
    task = client.get(f"/api/tasks/{task['_id']}").json()["data"]
    assert task["assignedUser"] == bob["_id"]
    assert task["assignedUserName"] == "Bob"
    assert client.get(f"/api/users/{alice['_id']}").json()["data"]["pendingTasks"] == []


def test_delete_task(client: TestClient) -> None:
    alice = create_user(client)
    task = create_task(client, assignedUser=alice["_id"])

    response = client.delete(f"/api/tasks/{task['_id']}")

    assert response.json() == {"message": "Task deleted", "data": None}
    assert client.get(f"/api/users/{alice['_id']}").json()["data"]["pendingTasks"] == []
    assert client.get(f"/api/tasks/{task['_id']}").status_code == 404


def test_unknown_ids_are_not_found(client: TestClient) -> None:
    for method, path in [
        ("get", "/api/users/nope"),
        ("delete", "/api/users/nope"),
        ("get", "/api/tasks/nope"),
        ("delete", "/api/tasks/nope"),
    ]:
        response = getattr(client, method)(path)
        assert response.status_code == 404
        assert response.json()["data"] is None

    response = client.put("/api/tasks/nope", json={"name": "T", "deadline": DEADLINE})
    assert response.json() == {"message": "Task not found", "data": None}


def test_task_list_is_capped_at_100_by_default(app: FastAPI, client: TestClient) -> None:
    engine = SyncEngine(app.state.store)
    for i in range(105):
        make_task(engine, f"T{i}")

    assert len(client.get("/api/tasks").json()["data"]) == 100
    assert len(client.get("/api/tasks", params={"limit": "0"}).json()["data"]) == 105
    assert len(client.get("/api/tasks", params={"limit": "7"}).json()["data"]) == 7
    assert client.get("/api/tasks", params={"count": "true"}).json() == {"message": "OK", "data": 105}


def test_user_list_has_no_implicit_cap(client: TestClient) -> None:
    for i in range(3):
        create_user(client, name=f"U{i}", email=f"u{i}@x.com")

    body = client.get("/api/users", params={"sort": '{"name": -1}', "select": '{"name": 1}'}).json()

    assert [user["name"] for user in body["data"]] == ["U2", "U1", "U0"]
    assert all(set(user) == {"_id", "name"} for user in body["data"])


def test_list_query_errors(client: TestClient) -> None:
    assert client.get("/api/users", params={"where": "{oops"}).status_code == 200

    response = client.get("/api/users", params={"where": '{"colour": "red"}'})
    assert response.status_code == 400
    assert response.json()["message"] == "Bad request: unknown field 'colour'"


def test_where_filter_and_select_on_single_task(client: TestClient) -> None:
    alice = create_user(client)
    create_task(client, name="Mine", assignedUser=alice["_id"])
    loose = create_task(client, name="Loose")

    response = client.get("/api/tasks", params={"where": '{"assignedUser": ""}'})
    assert [task["name"] for task in response.json()["data"]] == ["Loose"]

    response = client.get(f"/api/tasks/{loose['_id']}", params={"select": '{"name": 1, "_id": 0}'})
    assert response.json() == {"message": "OK", "data": {"name": "Loose"}}

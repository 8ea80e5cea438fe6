#!/usr/bin/env python3
"""
Smoke test for a running Task Board API.
Run this after starting the backend server (python start_server.py).
"""

import os
import sys
import uuid
from datetime import datetime, timedelta, timezone

import requests

BASE_URL = os.getenv("API_URL", "http://localhost:8000")


def check(label: str, response: requests.Response, expected: int) -> dict:
    body = response.json()
    mark = "✓" if response.status_code == expected else "✗"
    print(f"{mark} {label}: {response.status_code} - {body.get('message')}")
    if response.status_code != expected:
        raise SystemExit(1)
    return body.get("data")


def run_smoke_test():
    """Walk one user and one task through the assignment lifecycle"""
    print("Testing Task Board API endpoints...")
    print("=" * 50)

    api = f"{BASE_URL}/api"
    deadline = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()
    email = f"smoke-{uuid.uuid4().hex[:8]}@Example.com"

    check("Health", requests.get(f"{BASE_URL}/health"), 200)

    user = check("Create user", requests.post(f"{api}/users", json={"name": "Smoke", "email": email}), 201)
    assert user["email"] == email.lower()

    task = check("Create task", requests.post(f"{api}/tasks", json={
        "name": "Smoke task", "deadline": deadline, "assignedUser": user["_id"],
    }), 201)
    assert task["assignedUserName"] == "Smoke"

    user = check("Get user", requests.get(f"{api}/users/{user['_id']}"), 200)
    assert task["_id"] in user["pendingTasks"]

    check("Complete task", requests.put(f"{api}/tasks/{task['_id']}", json={
        "name": "Smoke task", "deadline": deadline, "assignedUser": user["_id"], "completed": True,
    }), 200)
    user = check("Get user", requests.get(f"{api}/users/{user['_id']}"), 200)
    assert task["_id"] not in user["pendingTasks"]

    check("Delete user", requests.delete(f"{api}/users/{user['_id']}"), 200)
    task = check("Get task", requests.get(f"{api}/tasks/{task['_id']}"), 200)
    assert task["assignedUser"] == "" and task["assignedUserName"] == "unassigned"

    check("Delete task", requests.delete(f"{api}/tasks/{task['_id']}"), 200)

    print("\n" + "=" * 50)
    print("API smoke test completed!")


if __name__ == "__main__":
    try:
        run_smoke_test()
    except requests.ConnectionError as e:
        print(f"✗ Could not reach {BASE_URL}: {e}")
        sys.exit(1)

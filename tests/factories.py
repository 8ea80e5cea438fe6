# tests/factories.py

from __future__ import annotations

from datetime import datetime

from app.schemas import TaskPayload, UserPayload
from app.services.sync_engine import SyncEngine

DEADLINE = datetime(2030, 1, 1, 12, 0)


def make_user(engine: SyncEngine, name: str, email: str | None = None, **extra):
    return engine.create_user(UserPayload(name=name, email=email or f"{name.lower()}@example.com", **extra))


def make_task(engine: SyncEngine, name: str, assigned_user: str = "", completed: bool = False, **extra):
    return engine.create_task(TaskPayload(
        name=name,
        deadline=extra.pop("deadline", DEADLINE),
        assigned_user=assigned_user,
        completed=completed,
        **extra,
    ))

# tests/test_consistency.py

from __future__ import annotations

import asyncio

from app.models import Task, User
from app.services import consistency
from app.services.consistency import find_violations, repair
from app.services.document_store import DocumentStore
from app.services.scheduler import ConsistencyScheduler
from app.services.sync_engine import SyncEngine

from .factories import make_task, make_user


def kinds(store: DocumentStore) -> set[str]:
    return {violation.kind for violation in find_violations(store)}


def test_clean_data_has_no_violations(engine: SyncEngine, store: DocumentStore) -> None:
    alice = make_user(engine, "Alice")
    make_task(engine, "Open", assigned_user=alice.id)
    make_task(engine, "Done", assigned_user=alice.id, completed=True)
    make_task(engine, "Loose")

    assert find_violations(store) == []


def test_each_kind_of_drift_is_reported(engine: SyncEngine, store: DocumentStore) -> None:
    alice = make_user(engine, "Alice")
    bob = make_user(engine, "Bob")
    missing = make_task(engine, "Missing", assigned_user=alice.id)
    done = make_task(engine, "Done", assigned_user=alice.id, completed=True)
    loose = make_task(engine, "Loose")
    foreign = make_task(engine, "Foreign", assigned_user=bob.id)

    store.update_one(User, alice.id, {"pending_tasks": [done.id, loose.id, foreign.id]})
    store.update_one(User, bob.id, {"pending_tasks": [foreign.id, foreign.id]})
    store.update_one(Task, missing.id, {"assigned_user_name": "Old name"})

    assert kinds(store) == {
        consistency.MISSING_PENDING,
        consistency.COMPLETED_PENDING,
        consistency.UNASSIGNED_PENDING,
        consistency.FOREIGN_PENDING,
        consistency.DUPLICATE_PENDING,
        consistency.STALE_NAME,
    }


def test_repair_rebuilds_user_side_from_tasks(engine: SyncEngine, store: DocumentStore) -> None:
    alice = make_user(engine, "Alice")
    first = make_task(engine, "First", assigned_user=alice.id)
    second = make_task(engine, "Second", assigned_user=alice.id)
    loose = make_task(engine, "Loose")

    store.update_one(User, alice.id, {"pending_tasks": [second.id, loose.id, "gone"]})
    store.update_one(Task, first.id, {"assigned_user_name": "Old name"})

    assert repair(store) == 2
    assert store.get(User, alice.id).pending_tasks == [second.id, first.id]
    assert store.get(Task, first.id).assigned_user_name == "Alice"
    assert find_violations(store) == []
    assert repair(store) == 0


def test_scheduled_audit_reports_and_repairs(engine: SyncEngine, store: DocumentStore) -> None:
    alice = make_user(engine, "Alice")
    task = make_task(engine, "T1", assigned_user=alice.id)
    store.pull_pending_task(alice.id, task.id)

    audit_only = ConsistencyScheduler(store)
    assert asyncio.run(audit_only.run_audit()) == {"violations": 1, "repaired": 0}

    repairing = ConsistencyScheduler(store, repair_enabled=True)
    assert asyncio.run(repairing.run_audit()) == {"violations": 1, "repaired": 1}
    assert store.get(User, alice.id).pending_tasks == [task.id]

    status = asyncio.run(repairing.get_scheduler_status())
    assert status["status"] == "stopped"
    assert status["last_result"] == {"violations": 1, "repaired": 1}

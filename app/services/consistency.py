# app/services/consistency.py
"""
Audit and repair of the task/user assignment relation.

The sync engine keeps both sides coherent request by request, but a failure
between two of its writes can leave them disagreeing. ``find_violations``
reports every such disagreement; ``repair`` rewrites the user side (and stale
``assignedUserName`` values) from the task side, which is treated as the
source of truth.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List

from app.models import UNASSIGNED, Task, User
from app.services.document_store import DocumentStore

logger = logging.getLogger(__name__)

MISSING_PENDING = "missing_pending"
DUPLICATE_PENDING = "duplicate_pending"
COMPLETED_PENDING = "completed_pending"
UNASSIGNED_PENDING = "unassigned_pending"
FOREIGN_PENDING = "foreign_pending"
STALE_NAME = "stale_name"


@dataclass
class Violation:
    kind: str
    task_id: str
    user_id: str
    detail: str


def find_violations(store: DocumentStore) -> List[Violation]:
    users: Dict[str, User] = {user.id: user for user in store.all(User)}
    tasks: List[Task] = store.all(Task)
    violations = []

    # task id -> users listing it
    listed_by: Dict[str, List[str]] = {}
    for user in users.values():
        for task_id in user.pending_tasks or []:
            listed_by.setdefault(task_id, []).append(user.id)

    for task in tasks:
        owner = users.get(task.assigned_user) if task.assigned_user else None
        holders = listed_by.get(task.id, [])

        expected_name = owner.name if owner is not None else UNASSIGNED
        if task.assigned_user_name != expected_name:
            violations.append(Violation(
                STALE_NAME, task.id, task.assigned_user,
                f"assignedUserName is {task.assigned_user_name!r}, expected {expected_name!r}",
            ))

        if not task.assigned_user:
            for user_id in set(holders):
                violations.append(Violation(
                    UNASSIGNED_PENDING, task.id, user_id, "unassigned task listed as pending",
                ))
            continue

        for user_id in set(holders) - {task.assigned_user}:
            violations.append(Violation(
                FOREIGN_PENDING, task.id, user_id,
                f"task is assigned to {task.assigned_user} but listed as pending here",
            ))

        if owner is None:
            continue

        occurrences = Counter(owner.pending_tasks or [])[task.id]
        if task.completed and occurrences:
            violations.append(Violation(
                COMPLETED_PENDING, task.id, owner.id, "completed task listed as pending",
            ))
        elif not task.completed and occurrences == 0:
            violations.append(Violation(
                MISSING_PENDING, task.id, owner.id, "open task missing from pending list",
            ))
        elif not task.completed and occurrences > 1:
            violations.append(Violation(
                DUPLICATE_PENDING, task.id, owner.id, f"listed {occurrences} times",
            ))

    return violations


def repair(store: DocumentStore) -> int:
    """Rewrite every document that disagrees with the task side; returns the number rewritten"""
    users: Dict[str, User] = {user.id: user for user in store.all(User)}
    tasks: List[Task] = store.all(Task)
    rewritten = 0

    open_by_user: Dict[str, List[str]] = {}
    for task in tasks:
        if task.assigned_user and not task.completed:
            open_by_user.setdefault(task.assigned_user, []).append(task.id)

    for user in users.values():
        wanted = set(open_by_user.get(user.id, []))
        current = user.pending_tasks or []

        pending = []
        for task_id in current:
            if task_id in wanted and task_id not in pending:
                pending.append(task_id)
        pending.extend(task_id for task_id in open_by_user.get(user.id, []) if task_id not in pending)

        if pending != current:
            store.update_one(User, user.id, {"pending_tasks": pending})
            rewritten += 1

    for task in tasks:
        owner = users.get(task.assigned_user) if task.assigned_user else None
        expected_name = owner.name if owner is not None else UNASSIGNED
        if task.assigned_user_name != expected_name:
            store.update_one(Task, task.id, {"assigned_user_name": expected_name})
            rewritten += 1

    logger.info(f"Consistency repair rewrote {rewritten} documents")
    return rewritten

# app/services/sync_engine.py
"""
Sync engine: the mutation procedures behind the users and tasks endpoints.

Tasks point at users through ``Task.assigned_user`` and users mirror their open
tasks in ``User.pending_tasks``. The two collections live in separate tables
with no cross-document transaction, so each procedure below issues its store
writes one at a time in a fixed order. If a write fails midway the two sides
disagree until a later write (or the consistency audit) touches them again.

At rest, after every successful call:

* a task assigned to an existing user and not completed is listed exactly
  once in that user's ``pending_tasks``;
* a completed task is not listed in its assignee's ``pending_tasks``;
* an unassigned task is listed in no user's ``pending_tasks``;
* ``assigned_user_name`` is the assignee's current name, or "unassigned".

An ``assigned_user`` that matches no user is stored as given and shown as
"unassigned".
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from app.exceptions import ConflictError, DuplicateKeyError, NotFoundError, ValidationError
from app.models import UNASSIGNED, Task, User
from app.schemas.task import TaskPayload
from app.schemas.user import UserPayload
from app.services.document_store import DocumentStore
from app.services.name_resolver import NameResolver
from app.utils.query_builder import TASK_FIELDS, USER_FIELDS, ListQuery

logger = logging.getLogger(__name__)

UNASSIGN = {"assigned_user": "", "assigned_user_name": UNASSIGNED}


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _dedupe(ids: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for task_id in ids:
        if task_id not in seen:
            seen.add(task_id)
            result.append(task_id)
    return result


def _require(fields, *names: str):
    missing = [name for name in names if not getattr(fields, name, None)]
    if missing:
        raise ValidationError(
            f"Missing required fields ({', '.join(names)})",
            {"missing": missing},
        )


class SyncEngine:
    def __init__(self, store: DocumentStore, resolver: Optional[NameResolver] = None):
        self.store = store
        self.resolver = resolver or NameResolver(store)

    # ---------- Users ----------

    def list_users(self, list_query: ListQuery) -> List[User]:
        return self.store.find(USER_FIELDS, list_query)

    def count_users(self, where: Dict) -> int:
        return self.store.count(USER_FIELDS, where)

    def get_user(self, user_id: str) -> User:
        user = self.store.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def create_user(self, fields: UserPayload) -> User:
        """Create a user; a supplied pendingTasks list claims those tasks"""
        _require(fields, "name", "email")
        email = normalize_email(fields.email)

        if self.store.find_one(User, email=email):
            raise ConflictError("User with that email already exists")

        requested = _dedupe(fields.pending_tasks or [])
        claimed = self.store.find_by_ids(Task, requested)
        completed = {task.id for task in claimed if task.completed}

        try:
            user = self.store.insert(User(
                name=fields.name,
                email=email,
                pending_tasks=[task_id for task_id in requested if task_id not in completed],
            ))
        except DuplicateKeyError:
            raise ConflictError("User with that email already exists")

        logger.info(f"User {user.id} created")
        if requested:
            self._reconcile_tasks(user, removed=[], added=requested, claimed=claimed)
        return user

    def update_user(self, user_id: str, fields: UserPayload) -> User:
        """Replace name, email and (optionally) pendingTasks, then sync the task side.

        Only ids that entered or left ``pendingTasks`` are written on the task
        side. A removed task is unassigned only while it still points at this
        user; an added task is assigned to this user unconditionally.
        """
        _require(fields, "name", "email")

        previous = self.store.get(User, user_id)
        if previous is None:
            raise NotFoundError("User not found")

        email = normalize_email(fields.email)
        owner = self.store.find_one(User, email=email)
        if owner is not None and owner.id != user_id:
            raise ConflictError("User with that email already exists")

        values = {"name": fields.name, "email": email}
        replace_pending = fields.pending_tasks is not None
        added: List[str] = []
        removed: List[str] = []
        claimed: List[Task] = []

        if replace_pending:
            requested = _dedupe(fields.pending_tasks)
            previous_ids = set(previous.pending_tasks or [])
            next_ids = set(requested)
            added = [task_id for task_id in requested if task_id not in previous_ids]
            removed = [task_id for task_id in _dedupe(previous.pending_tasks or []) if task_id not in next_ids]

            # Completed tasks are assigned but never pending
            claimed = self.store.find_by_ids(Task, added)
            completed = {task.id for task in claimed if task.completed}
            values["pending_tasks"] = [task_id for task_id in requested if task_id not in completed]

        try:
            updated = self.store.update_one(User, user_id, values)
        except DuplicateKeyError:
            raise ConflictError("User with that email already exists")
        if updated is None:
            raise NotFoundError("User not found")

        logger.info(f"User {user_id} updated (+{len(added)} / -{len(removed)} pending tasks)")

        if replace_pending:
            self._reconcile_tasks(updated, removed=removed, added=added, claimed=claimed)

        if updated.name != previous.name:
            renamed = self.store.update_many(
                Task,
                [Task.assigned_user == user_id],
                {"assigned_user_name": updated.name},
            )
            logger.info(f"Refreshed assignedUserName on {renamed} tasks for user {user_id}")

        return updated

    def delete_user(self, user_id: str) -> User:
        """Delete a user and unassign every task that still points at it"""
        user = self.store.delete(User, user_id)
        if user is None:
            raise NotFoundError("User not found")

        unassigned = self.store.update_many(Task, [Task.assigned_user == user_id], dict(UNASSIGN))
        logger.info(f"User {user_id} deleted, {unassigned} tasks unassigned")
        return user

    def _reconcile_tasks(self, user: User, removed: List[str], added: List[str], claimed: List[Task]):
        if removed:
            self.store.update_many(
                Task,
                [Task.id.in_(removed), Task.assigned_user == user.id],
                dict(UNASSIGN),
            )

        if added:
            self.store.update_many(
                Task,
                [Task.id.in_(added)],
                {"assigned_user": user.id, "assigned_user_name": user.name},
            )
            # Tasks taken over from another user leave that user's pending list
            for task in claimed:
                if task.assigned_user and task.assigned_user != user.id:
                    self.store.pull_pending_task(task.assigned_user, task.id)

        missing = set(added) - {task.id for task in claimed}
        if missing:
            logger.warning(f"User {user.id} lists unknown task ids: {sorted(missing)}")

    # ---------- Tasks ----------

    def list_tasks(self, list_query: ListQuery) -> List[Task]:
        return self.store.find(TASK_FIELDS, list_query)

    def count_tasks(self, where: Dict) -> int:
        return self.store.count(TASK_FIELDS, where)

    def get_task(self, task_id: str) -> Task:
        task = self.store.get(Task, task_id)
        if task is None:
            raise NotFoundError("Task not found")
        return task

    def _assignee_name(self, user_id: str) -> str:
        name = self.resolver.resolve(user_id)
        if user_id and name == UNASSIGNED:
            logger.warning(f"assignedUser {user_id} does not match any user, storing it as given")
        return name

    def create_task(self, fields: TaskPayload) -> Task:
        _require(fields, "name", "deadline")

        assigned_user = fields.assigned_user or ""
        completed = bool(fields.completed)

        task = self.store.insert(Task(
            name=fields.name,
            description=fields.description or "",
            deadline=_naive_utc(fields.deadline),
            completed=completed,
            assigned_user=assigned_user,
            assigned_user_name=self._assignee_name(assigned_user),
        ))
        logger.info(f"Task {task.id} created")

        if assigned_user and not completed:
            self.store.add_pending_task(assigned_user, task.id)
        return task

    def update_task(self, task_id: str, fields: TaskPayload) -> Task:
        """Replace a task and move it between pending lists.

        The pending-list writes run in a fixed order: leave the previous
        assignee, join the new one if open, then leave the new one if
        completed. Completion therefore always wins over assignment.
        """
        _require(fields, "name", "deadline")

        previous = self.store.get(Task, task_id)
        if previous is None:
            raise NotFoundError("Task not found")

        new_user = fields.assigned_user or ""
        updated = self.store.update_one(Task, task_id, {
            "name": fields.name,
            "description": fields.description or "",
            "deadline": _naive_utc(fields.deadline),
            "completed": bool(fields.completed),
            "assigned_user": new_user,
            "assigned_user_name": self._assignee_name(new_user),
        })
        if updated is None:
            raise NotFoundError("Task not found")
        logger.info(f"Task {task_id} updated")

        prev_user = previous.assigned_user or ""
        if prev_user and prev_user != new_user:
            self.store.pull_pending_task(prev_user, task_id)
        if new_user and not updated.completed:
            self.store.add_pending_task(new_user, task_id)
        if updated.completed and new_user:
            self.store.pull_pending_task(new_user, task_id)

        return updated

    def delete_task(self, task_id: str) -> Task:
        task = self.store.delete(Task, task_id)
        if task is None:
            raise NotFoundError("Task not found")

        if task.assigned_user:
            self.store.pull_pending_task(task.assigned_user, task.id)
        logger.info(f"Task {task_id} deleted")
        return task

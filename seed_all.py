"""
Master Database Seeding Script
Creates database tables and populates them with demo users and tasks.
Everything goes through the sync engine so both sides of the assignment
relation start out consistent.
"""

import sys
from datetime import datetime, timedelta, timezone

from app.config.settings import Settings
from app.database import build_engine, build_session_factory, create_tables
from app.exceptions import ConflictError
from app.models import User
from app.schemas import TaskPayload, UserPayload
from app.services.consistency import find_violations
from app.services.document_store import DocumentStore
from app.services.sync_engine import SyncEngine, normalize_email

DEMO_USERS = [
    {"name": "Rajesh Kumar", "email": "rajesh.kumar@company.com"},
    {"name": "Priya Sharma", "email": "priya.sharma@company.com"},
    {"name": "Arjun Singh", "email": "arjun.singh@company.com"},
    {"name": "Deepika Patel", "email": "deepika.patel@company.com"},
]

# (name, description, days until deadline, completed, index into DEMO_USERS or None)
DEMO_TASKS = [
    ("Set up CI pipeline", "Build and test on every push", 3, False, 0),
    ("Write onboarding guide", "", 7, False, 1),
    ("Fix login redirect", "Users land on a blank page after login", 1, True, 1),
    ("Quarterly report", "Numbers for Q3", 14, False, 2),
    ("Clean up old branches", "", 30, False, None),
]


def seed_users(engine: SyncEngine) -> list:
    print(f"\n{'='*60}")
    print("🚀 Creating Demo Users")
    print(f"{'='*60}")

    users = []
    for data in DEMO_USERS:
        try:
            user = engine.create_user(UserPayload(**data))
            print(f"[SUCCESS] Created user {user.name} ({user.email})")
        except ConflictError:
            user = engine.store.find_one(User, email=normalize_email(data["email"]))
            print(f"[SKIP] User {data['email']} already exists")
        users.append(user)
    return users


def seed_tasks(engine: SyncEngine, users: list):
    print(f"\n{'='*60}")
    print("🚀 Creating Demo Tasks")
    print(f"{'='*60}")

    now = datetime.now(timezone.utc)
    for name, description, days, completed, owner in DEMO_TASKS:
        assignee = users[owner] if owner is not None else None
        task = engine.create_task(TaskPayload(
            name=name,
            description=description,
            deadline=now + timedelta(days=days),
            completed=completed,
            assignedUser=assignee.id if assignee else "",
        ))
        print(f"[SUCCESS] Created task {task.name} -> {task.assigned_user_name}")


def main():
    settings = Settings()
    db_engine = build_engine(settings.database_url, settings.db_sslmode)
    create_tables(db_engine)
    print("✅ All tables created successfully!")

    store = DocumentStore(build_session_factory(db_engine))
    engine = SyncEngine(store)

    users = seed_users(engine)
    seed_tasks(engine, users)

    violations = find_violations(store)
    if violations:
        print(f"[ERROR] Seeded data has {len(violations)} consistency violations")
        return 1

    print("\n[SUCCESS] Database seeded")
    return 0


if __name__ == "__main__":
    sys.exit(main())

# app/models/user.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, JSON, String

from app.database import Base


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)  # trimmed, lower-cased

    # Task ids assigned to this user and not yet completed, in insertion order
    pending_tasks = Column(JSON, nullable=False, default=list)

    date_created = Column(DateTime, nullable=False, default=utcnow)

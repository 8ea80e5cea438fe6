# app/models/task.py
from sqlalchemy import Boolean, Column, DateTime, String, Text

from app.database import Base
from app.models.user import new_id, utcnow

UNASSIGNED = "unassigned"


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    deadline = Column(DateTime, nullable=False)
    completed = Column(Boolean, nullable=False, default=False)

    # Soft reference to users.id, "" when unassigned. Kept in step with
    # users.pending_tasks by the sync engine.
    assigned_user = Column(String(32), nullable=False, default="", index=True)
    assigned_user_name = Column(String, nullable=False, default=UNASSIGNED)

    date_created = Column(DateTime, nullable=False, default=utcnow)

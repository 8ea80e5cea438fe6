from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from app.schemas.common import as_utc


class TaskPayload(BaseModel):
    """Body of POST /tasks and PUT /tasks/{id}.

    ``assignedUserName`` is derived from ``assignedUser`` and is ignored if sent.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    completed: Optional[bool] = None
    assigned_user: Optional[str] = Field(default=None, alias="assignedUser")


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(serialization_alias="_id")
    name: str
    description: str = ""
    deadline: datetime
    completed: bool = False
    assigned_user: str = Field(default="", serialization_alias="assignedUser")
    assigned_user_name: str = Field(default="unassigned", serialization_alias="assignedUserName")
    date_created: datetime = Field(serialization_alias="dateCreated")

    @field_serializer("deadline", "date_created")
    def serialize_dates(self, value: datetime) -> str:
        return as_utc(value)

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_serializer, field_validator

from app.schemas.common import as_utc


class UserPayload(BaseModel):
    """Body of POST /users and PUT /users/{id}; required fields are checked by the sync engine"""

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email: Optional[EmailStr] = None
    pending_tasks: Optional[List[str]] = Field(default=None, alias="pendingTasks")

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        if isinstance(value, str):
            return value.strip().lower() or None
        return value


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(serialization_alias="_id")
    name: str
    email: str
    pending_tasks: List[str] = Field(default_factory=list, serialization_alias="pendingTasks")
    date_created: datetime = Field(serialization_alias="dateCreated")

    @field_serializer("date_created")
    def serialize_date_created(self, value: datetime) -> str:
        return as_utc(value)

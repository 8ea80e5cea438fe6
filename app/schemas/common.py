from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel


class Envelope(BaseModel):
    """Shape of every API reply"""

    message: str
    data: Optional[Any] = None


def as_utc(value: datetime) -> str:
    # Stored timestamps are naive UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()

"""Member model mirrored from the identity service."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    USER = "USER"
    LIBRARIAN = "LIBRARIAN"


class Member(BaseModel):
    """A library account as seen by the lending core."""

    id: int = Field(..., ge=1)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=255)
    name: str = Field(..., min_length=1, max_length=200)
    role: Role = Field(default=Role.USER)
    is_blacklisted: bool = Field(default=False)
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

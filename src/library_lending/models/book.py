"""
Book inventory model for the Library Lending MCP Server.

Only the inventory-relevant fields of a catalog book live here. Title,
author and category are owned by the catalog and carried for display only;
``available_copies`` and ``status`` are owned by the inventory ledger.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class BookStatus(str, Enum):
    """Derived availability status of a book."""

    AVAILABLE = "AVAILABLE"
    UNAVAILABLE = "UNAVAILABLE"
    MAINTENANCE = "MAINTENANCE"


def recompute_status(available_copies: int, under_maintenance: bool = False) -> BookStatus:
    """AVAILABLE iff a copy can be taken, otherwise UNAVAILABLE."""
    if available_copies > 0 and not under_maintenance:
        return BookStatus.AVAILABLE
    return BookStatus.UNAVAILABLE


def stored_status(available_copies: int, under_maintenance: bool) -> BookStatus:
    """Status persisted on the book row; withdrawn titles show MAINTENANCE."""
    if under_maintenance:
        return BookStatus.MAINTENANCE
    return recompute_status(available_copies)


class BookInventory(BaseModel):
    """Point-in-time view of one book's copy counts."""

    id: int = Field(..., description="Catalog identifier of the book", ge=1)

    title: str = Field(
        ...,
        description="The title of the book",
        min_length=1,
        max_length=500,
        examples=["The Great Gatsby"],
    )

    author: str = Field(
        ...,
        description="Author as shown in the catalog",
        min_length=1,
        max_length=200,
        examples=["F. Scott Fitzgerald"],
    )

    category_id: int | None = Field(
        default=None,
        description="Catalog category the book is filed under",
    )

    total_copies: int = Field(
        ...,
        description="Total number of copies owned by the library",
        ge=1,
        examples=[1, 3, 10],
    )

    available_copies: int = Field(
        ...,
        description="Number of copies that can currently be reserved",
        ge=0,
        examples=[0, 1, 5],
    )

    under_maintenance: bool = Field(
        default=False,
        description="Administratively withdrawn from lending",
    )

    status: BookStatus = Field(..., description="Derived availability status")

    updated_at: datetime | None = Field(default=None)

    @model_validator(mode="after")
    def validate_copies(self) -> "BookInventory":
        if self.available_copies > self.total_copies:
            raise ValueError("Available copies cannot exceed total copies")
        return self

    @property
    def is_available(self) -> bool:
        return self.status == BookStatus.AVAILABLE

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "title": "The Great Gatsby",
                "author": "F. Scott Fitzgerald",
                "category_id": 3,
                "total_copies": 3,
                "available_copies": 2,
                "under_maintenance": False,
                "status": "AVAILABLE",
            }
        },
    )

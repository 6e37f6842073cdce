"""Dashboard statistics for a single member."""

from pydantic import BaseModel, Field


class DashboardStats(BaseModel):
    """Aggregate counts shown on a member's dashboard."""

    active: int = Field(..., description="Reservations currently holding a copy", ge=0)
    due_soon: int = Field(
        ..., description="Active reservations due within the due-soon window", ge=0
    )
    overdue: int = Field(..., description="Reservations past their due date", ge=0)
    total_borrowed: int = Field(
        ..., description="Every reservation that was not cancelled", ge=0
    )

from datetime import datetime

from pydantic import BaseModel, StrictInt, field_validator

from todograph.timestamps import as_utc


class TaskCreate(BaseModel):
    """
    Schema for creating a new task.

    Title emptiness is checked by the route so it can be reported with a
    dedicated message; here it only needs to be a string.
    """
    title: str | None = None
    due_date: datetime | None = None
    dependencies: list[StrictInt] | None = None

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, value: datetime | None) -> datetime | None:
        """Store due dates as aware UTC; a date without an offset is read as UTC."""
        return as_utc(value)


class DependencyRef(BaseModel):
    """Minimal view of a task referenced as a dependency."""
    id: int
    title: str

    model_config = {"from_attributes": True}


class TaskRead(BaseModel):
    """Schema for reading a task along with its resolved dependencies."""
    id: int
    title: str
    due_date: datetime | None
    image_url: str | None
    created_at: datetime
    dependencies: list[DependencyRef] = []

    model_config = {"from_attributes": True}

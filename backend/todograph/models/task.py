from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from todograph.timestamps import utcnow


class Task(SQLModel, table=True):
    """
    A todo item.

    Dependencies live in the task_dependencies link table rather than on
    the row itself, so the full graph can be loaded with two flat queries.
    """

    __tablename__ = "tasks"

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(index=True)
    due_date: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))
    image_url: str | None = Field(default=None)

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime(timezone=True),
        index=True,
    )

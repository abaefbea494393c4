from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from todograph.timestamps import utcnow


class TaskDependency(SQLModel, table=True):
    """
    Directed edge in the task graph.

    task_id -> depends_on_id means:
    "The task depends_on_id must complete before task_id can start"
    """

    __tablename__ = "task_dependencies"

    # Composite primary key
    task_id: int = Field(foreign_key="tasks.id", primary_key=True)
    depends_on_id: int = Field(foreign_key="tasks.id", primary_key=True)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

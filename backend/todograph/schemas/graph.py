from datetime import datetime

from pydantic import BaseModel

from todograph.schemas.task import TaskRead


class CriticalPathRead(BaseModel):
    """Longest dependency chain plus earliest-start date for every task."""
    critical_path: list[TaskRead]
    earliest_start_dates: dict[int, datetime]


class GraphNode(BaseModel):
    id: int
    title: str
    due_date: datetime | None
    earliest_start: datetime
    critical: bool


class GraphEdge(BaseModel):
    """Edge from a dependency (source) to the task waiting on it (target)."""
    source: int
    target: int
    critical: bool


class GraphRead(BaseModel):
    nodes: list[GraphNode]
    edges: list[GraphEdge]

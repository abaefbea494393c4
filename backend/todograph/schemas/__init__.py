from todograph.schemas.task import (
    DependencyRef,
    TaskCreate,
    TaskRead,
)
from todograph.schemas.graph import (
    CriticalPathRead,
    GraphEdge,
    GraphNode,
    GraphRead,
)

__all__ = [
    "DependencyRef",
    "TaskCreate",
    "TaskRead",
    "CriticalPathRead",
    "GraphEdge",
    "GraphNode",
    "GraphRead",
]

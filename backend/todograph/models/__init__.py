from todograph.models.task import Task
from todograph.models.dependency import TaskDependency

__all__ = ["Task", "TaskDependency"]

"""
Task routes for the TodoGraph API.
"""

import asyncio
from typing import Any, Mapping

import networkx as nx
from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy import delete, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from todograph.database import get_session
from todograph.exceptions import (
    CyclicDependencyError,
    DataIntegrityError,
    NotFoundError,
    UpstreamUnavailableError,
    ValidationError,
)
from todograph.logging_config import get_logger
from todograph.models import Task, TaskDependency
from todograph.schemas import CriticalPathRead, GraphRead, TaskCreate, TaskRead
from todograph.services.critical_path import GraphAnalysis, analyze
from todograph.services.cycle_guard import check_dependencies
from todograph.services.graph import build_graph, fetch_tasks, to_digraph
from todograph.services.images import attach_image
from todograph.timestamps import as_utc

logger = get_logger(__name__)

router = APIRouter()

# Single writer for dependency-graph mutations within this process, so two
# creations cannot both pass the cycle check against the same snapshot.
_graph_write_lock = asyncio.Lock()


STORE_ERRORS = (SQLAlchemyError, OSError)


async def _load_snapshot(session: AsyncSession) -> list[dict[str, Any]]:
    try:
        return await fetch_tasks(session)
    except STORE_ERRORS as exc:
        logger.error(f"Failed to load tasks: {exc}")
        raise UpstreamUnavailableError("Database", "Could not load tasks") from exc


def _analyze_snapshot(tasks: list[dict[str, Any]]) -> GraphAnalysis:
    try:
        return analyze(tasks)
    except CyclicDependencyError as exc:
        logger.error(f"Cycle found in stored dependencies: {exc.cycle}")
        raise DataIntegrityError(
            "Stored task dependencies contain a cycle",
            details=exc.details,
        ) from exc


def _to_read(task: Mapping[str, Any], tasks_by_id: Mapping[int, Mapping[str, Any]]) -> dict[str, Any]:
    """Shape a task record for TaskRead, resolving dependency titles."""
    return {
        "id": task["id"],
        "title": task["title"],
        "due_date": as_utc(task["due_date"]),
        "image_url": task["image_url"],
        "created_at": as_utc(task["created_at"]),
        "dependencies": [
            {"id": dep_id, "title": tasks_by_id[dep_id]["title"]}
            for dep_id in task.get("dependencies") or []
            if dep_id in tasks_by_id
        ],
    }


async def _insert_task(
    session: AsyncSession,
    tasks: list[dict[str, Any]],
    title: str,
    task_in: TaskCreate,
    dependency_ids: list[int],
) -> Task:
    """
    Insert the task, validate its dependencies and attach them.

    The row goes in first to obtain its ID. If validation fails it is
    deleted again before the error propagates, so nothing is committed.
    """
    tasks_by_id = {task["id"]: task for task in tasks}

    task = Task(title=title, due_date=task_in.due_date)
    session.add(task)
    await session.flush()

    try:
        missing = [
            dep_id for dep_id in dependency_ids
            if dep_id not in tasks_by_id and dep_id != task.id
        ]
        if missing:
            raise ValidationError(
                "All dependencies must be existing task IDs",
                details=[{
                    "loc": ["body", "dependencies"],
                    "msg": f"Unknown task IDs: {missing}",
                    "type": "unknown_dependency",
                }],
            )
        # Include the new task so stale links pointing at its ID count as edges
        proposed = tasks + [{"id": task.id, "dependencies": dependency_ids}]
        check_dependencies(build_graph(proposed), task.id, dependency_ids)
    except ValidationError as exc:
        logger.warning(f"Rejected task '{title}': {exc.message}")
        await session.delete(task)
        await session.flush()
        raise

    for dep_id in dependency_ids:
        session.add(TaskDependency(task_id=task.id, depends_on_id=dep_id))
    await session.flush()
    await session.refresh(task)

    # Commit while holding the lock so the next writer sees these edges
    await session.commit()
    return task


@router.post("/", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_in: TaskCreate,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """
    Create a new task.

    The dependency set is validated against the full graph; on any
    validation failure no task is left behind.
    """
    title = (task_in.title or "").strip()
    if not title:
        raise ValidationError(
            "Title is required",
            details=[{"loc": ["body", "title"], "msg": "Title must not be empty", "type": "missing"}],
        )

    # Duplicate IDs collapse to one edge
    dependency_ids = list(dict.fromkeys(task_in.dependencies or []))

    async with _graph_write_lock:
        tasks = await _load_snapshot(session)
        try:
            task = await _insert_task(session, tasks, title, task_in, dependency_ids)
        except STORE_ERRORS as exc:
            logger.error(f"Failed to save task '{title}': {exc}")
            raise UpstreamUnavailableError("Database", "Could not save task") from exc

    logger.info(f"Created task: id={task.id} title='{task.title}' dependencies={dependency_ids}")

    background_tasks.add_task(attach_image, task.id, task.title)

    record = task.model_dump()
    record["dependencies"] = dependency_ids
    return _to_read(record, {t["id"]: t for t in tasks})


@router.get("/", response_model=list[TaskRead])
async def list_tasks(
    session: AsyncSession = Depends(get_session),
) -> list[dict[str, Any]]:
    """List all tasks, newest first, with their dependencies."""
    tasks = await _load_snapshot(session)
    tasks_by_id = {task["id"]: task for task in tasks}

    logger.debug(f"Listed {len(tasks)} tasks")

    return [_to_read(task, tasks_by_id) for task in tasks]


@router.get("/critical-path", response_model=CriticalPathRead)
async def get_critical_path(
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """
    Compute the critical path and earliest-start dates.

    Recomputed from the current tasks on every call.
    """
    tasks = await _load_snapshot(session)
    tasks_by_id = {task["id"]: task for task in tasks}
    analysis = _analyze_snapshot(tasks)

    return {
        "critical_path": [_to_read(task, tasks_by_id) for task in analysis.critical_path],
        "earliest_start_dates": analysis.earliest_start_dates,
    }


@router.get("/graph", response_model=GraphRead)
async def get_graph(
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """
    Dependency graph for rendering.

    Nodes come dependency-first; edges point from a dependency to the task
    waiting on it. Consecutive critical-path pairs are flagged critical.
    """
    tasks = await _load_snapshot(session)
    tasks_by_id = {task["id"]: task for task in tasks}
    analysis = _analyze_snapshot(tasks)

    path_ids = [task["id"] for task in analysis.critical_path]
    critical_nodes = set(path_ids)
    # Path runs dependent -> dependency; edges run the other way
    critical_edges = {(dep_id, task_id) for task_id, dep_id in zip(path_ids, path_ids[1:])}

    digraph = to_digraph(analysis.graph, tasks_by_id)

    nodes = [
        {
            "id": node_id,
            "title": digraph.nodes[node_id]["title"],
            "due_date": digraph.nodes[node_id]["due_date"],
            "earliest_start": analysis.earliest_start_dates[node_id],
            "critical": node_id in critical_nodes,
        }
        for node_id in nx.lexicographical_topological_sort(digraph)
    ]
    edges = [
        {"source": source, "target": target, "critical": (source, target) in critical_edges}
        for source, target in sorted(digraph.edges)
    ]

    return {"nodes": nodes, "edges": edges}


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: int,
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Get a task by ID."""
    tasks = await _load_snapshot(session)
    tasks_by_id = {task["id"]: task for task in tasks}

    task = tasks_by_id.get(task_id)
    if task is None:
        raise NotFoundError("Task", task_id)
    return _to_read(task, tasks_by_id)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: int,
    session: AsyncSession = Depends(get_session),
) -> None:
    """
    Delete a task.

    Link rows in both directions go with it; tasks that depended on it
    simply lose that dependency.
    """
    async with _graph_write_lock:
        try:
            task = await session.get(Task, task_id)
            if not task:
                raise NotFoundError("Task", task_id)

            logger.info(f"Deleting task {task_id}: '{task.title}'")

            await session.execute(
                delete(TaskDependency).where(
                    or_(
                        TaskDependency.task_id == task_id,
                        TaskDependency.depends_on_id == task_id,
                    )
                )
            )
            await session.delete(task)
            await session.commit()
        except STORE_ERRORS as exc:
            logger.error(f"Failed to delete task {task_id}: {exc}")
            raise UpstreamUnavailableError("Database", "Could not delete task") from exc

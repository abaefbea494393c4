"""
Graph construction for the task dependency graph.

This module handles:
- Loading a snapshot of all tasks with their dependency IDs
- Building the adjacency mapping used by the analyzers and the cycle guard
- NetworkX views of the graph for cycle detection and the graph endpoint
"""

from typing import Any, Iterable, Mapping

import networkx as nx
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from todograph.models import Task, TaskDependency
from todograph.timestamps import as_utc

# Adjacency: task ID -> IDs of the tasks it depends on
Graph = dict[int, list[int]]


async def fetch_tasks(session: AsyncSession) -> list[dict[str, Any]]:
    """
    Load every task as a plain dict with a "dependencies" list of task IDs.

    Newest tasks come first. Dependency IDs keep insertion order of the
    link rows.
    """
    tasks_result = await session.execute(
        select(Task).order_by(Task.created_at.desc(), Task.id.desc())
    )
    tasks = tasks_result.scalars().all()

    deps_result = await session.execute(
        select(TaskDependency).order_by(TaskDependency.created_at, TaskDependency.depends_on_id)
    )
    dependencies = deps_result.scalars().all()

    records = {
        task.id: {
            "id": task.id,
            "title": task.title,
            "due_date": as_utc(task.due_date),
            "image_url": task.image_url,
            "created_at": as_utc(task.created_at),
            "dependencies": [],
        }
        for task in tasks
    }
    for dep in dependencies:
        record = records.get(dep.task_id)
        if record is not None:
            record["dependencies"].append(dep.depends_on_id)

    return list(records.values())


def build_graph(tasks: Iterable[Mapping[str, Any]]) -> Graph:
    """
    Build the adjacency mapping for a collection of tasks.

    Every task ID appears as a key, even when it has no dependencies, so
    traversals can treat it as a sink. References to tasks that are not in
    the collection (e.g. deleted ones) are dropped. Duplicate references
    are kept as-is.
    """
    tasks = list(tasks)
    known_ids = {task["id"] for task in tasks}

    graph: Graph = {}
    for task in tasks:
        graph[task["id"]] = [
            dep_id for dep_id in task.get("dependencies") or [] if dep_id in known_ids
        ]
    return graph


def to_digraph(graph: Graph, tasks_by_id: Mapping[int, Mapping[str, Any]]) -> nx.DiGraph:
    """
    Build a NetworkX DiGraph from the adjacency mapping.

    Returns a graph where:
    - Nodes are task IDs, carrying title and due_date
    - Edges go from dependency -> dependent (the direction work flows)
    """
    digraph = nx.DiGraph()

    for task_id in graph:
        task = tasks_by_id[task_id]
        digraph.add_node(task_id, title=task["title"], due_date=task.get("due_date"))

    for task_id, dep_ids in graph.items():
        for dep_id in dep_ids:
            digraph.add_edge(dep_id, task_id)

    return digraph


def dependency_digraph(graph: Graph) -> nx.DiGraph:
    """
    NetworkX DiGraph with edges in adjacency direction (task -> dependency).

    Every task is a node, and each node's successors keep adjacency order.
    Duplicate references collapse into one edge.
    """
    digraph = nx.DiGraph()
    digraph.add_nodes_from(graph)
    for task_id, dep_ids in graph.items():
        for dep_id in dep_ids:
            digraph.add_edge(task_id, dep_id)
    return digraph

"""
Critical path and earliest-start analysis over the dependency graph.

Calculates:
- Critical path: the longest chain of tasks reachable by following
  dependency edges, ending at a task with no dependencies (a sink)
- Earliest start: for each task, the latest due date among its
  dependencies, falling back to a dependency's own earliest start when it
  has no due date

Both passes walk a NetworkX topological order, dependencies first. A cycle
in persisted data raises CyclicDependencyError instead of recursing forever.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

import networkx as nx

from todograph.exceptions import CyclicDependencyError
from todograph.logging_config import get_logger
from todograph.services.cycle_guard import find_cycle
from todograph.services.graph import Graph, build_graph, dependency_digraph
from todograph.timestamps import utcnow

logger = get_logger(__name__)


@dataclass
class GraphAnalysis:
    """Everything the read endpoints need from one snapshot."""
    graph: Graph
    critical_path: list[dict[str, Any]]
    earliest_start_dates: dict[int, datetime]
    computed_at: datetime


def dependency_order(graph: Graph) -> list[int]:
    """
    Task IDs ordered so every task comes after all of its dependencies.

    Raises CyclicDependencyError (with the offending cycle) if there is none.
    """
    try:
        order = list(nx.topological_sort(dependency_digraph(graph)))
    except nx.NetworkXUnfeasible:
        cycle = find_cycle(graph)
        logger.error(f"Cycle detected in dependency graph: {cycle}")
        raise CyclicDependencyError(cycle or [])

    # Edges run task -> dependency, so reverse to get dependencies first
    order.reverse()
    return order


def longest_path_lengths(graph: Graph) -> tuple[dict[int, int], dict[int, Optional[int]]]:
    """
    Compute, for every node, the length (in nodes) of the longest path
    starting there, and the child that path continues through.

    Children are scanned in adjacency order and only a strictly longer
    result replaces the current best, so ties go to the first child. This
    reproduces the first longest path an exhaustive DFS would discover.
    """
    length: dict[int, int] = {}
    next_hop: dict[int, Optional[int]] = {}

    for node in dependency_order(graph):
        best_length, best_child = 1, None
        for child in graph.get(node, ()):
            if length[child] + 1 > best_length:
                best_length, best_child = length[child] + 1, child
        length[node] = best_length
        next_hop[node] = best_child

    return length, next_hop


def find_critical_path(
    graph: Graph,
    tasks_by_id: Mapping[int, Mapping[str, Any]],
) -> list[dict[str, Any]]:
    """
    Return the task records along the longest dependency chain, in
    root-to-sink order.

    Roots are tried in ascending ID order; the first root reaching the
    maximum length wins. An empty graph gives an empty path.
    """
    if not graph:
        return []

    length, next_hop = longest_path_lengths(graph)

    start = None
    for task_id in sorted(graph):
        if start is None or length[task_id] > length[start]:
            start = task_id

    path = []
    node = start
    while node is not None:
        path.append(node)
        node = next_hop[node]

    logger.debug(f"Critical path has {len(path)} tasks: {path}")

    return [dict(tasks_by_id[task_id]) for task_id in path]


def calc_earliest_start_dates(
    graph: Graph,
    tasks_by_id: Mapping[int, Mapping[str, Any]],
    now: Optional[datetime] = None,
) -> dict[int, datetime]:
    """
    Calculate the earliest permissible start date of every task.

    - No dependencies: `now`
    - Otherwise: max over dependencies of (due_date if set, else that
      dependency's own earliest start)
    """
    if now is None:
        now = utcnow()

    earliest: dict[int, datetime] = {}

    for node in dependency_order(graph):
        dep_ids = graph.get(node, ())
        if not dep_ids:
            earliest[node] = now
            continue
        earliest[node] = max(
            tasks_by_id[dep_id].get("due_date") or earliest[dep_id]
            for dep_id in dep_ids
        )

    return earliest


def analyze(
    tasks: Iterable[Mapping[str, Any]],
    now: Optional[datetime] = None,
) -> GraphAnalysis:
    """
    Run the full analysis on a task snapshot.

    Raises CyclicDependencyError if the snapshot contains a cycle.
    """
    tasks = list(tasks)
    if now is None:
        now = utcnow()

    tasks_by_id = {task["id"]: task for task in tasks}
    graph = build_graph(tasks)

    critical_path = find_critical_path(graph, tasks_by_id)
    earliest_start_dates = calc_earliest_start_dates(graph, tasks_by_id, now)

    logger.debug(
        f"Analyzed {len(graph)} tasks, "
        f"{sum(len(deps) for deps in graph.values())} dependency edges"
    )

    return GraphAnalysis(
        graph=graph,
        critical_path=critical_path,
        earliest_start_dates=earliest_start_dates,
        computed_at=now,
    )

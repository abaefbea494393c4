"""
Write-time cycle detection for new dependency sets.

Before a task's dependencies are committed, the proposed edges are merged
into the existing graph and NetworkX searches for a cycle reachable from the
task. Only a node revisited on the active DFS path counts, so diamonds (two
routes converging on the same dependency) are accepted.
"""

from typing import Hashable, Iterable, Optional

import networkx as nx

from todograph.exceptions import CyclicDependencyError, SelfDependencyError
from todograph.services.graph import Graph, dependency_digraph


def merge_proposal(graph: Graph, task_id: int, dependency_ids: Iterable[int]) -> Graph:
    """Return a copy of the graph with `task_id`'s edges replaced by the proposal."""
    merged = {node: list(deps) for node, deps in graph.items()}
    merged[task_id] = list(dependency_ids)
    return merged


def find_cycle(graph: Graph, start: Optional[Hashable] = None) -> Optional[list]:
    """
    Look for a cycle reachable from `start` (anywhere in the graph if None).

    Returns the cycle as a list of task IDs (first and last equal), or None.
    """
    digraph = dependency_digraph(graph)
    if start is not None and start not in digraph:
        return None

    try:
        edges = nx.find_cycle(digraph, source=start)
    except nx.NetworkXNoCycle:
        return None

    return [source for source, _ in edges] + [edges[-1][1]]


def would_create_cycle(graph: Graph, task_id: int, dependency_ids: Iterable[int]) -> bool:
    """True if giving `task_id` these dependencies would make the graph cyclic."""
    dependency_ids = list(dependency_ids)
    if task_id in dependency_ids:
        return True
    return find_cycle(merge_proposal(graph, task_id, dependency_ids), task_id) is not None


def check_dependencies(graph: Graph, task_id: int, dependency_ids: Iterable[int]) -> None:
    """
    Validate a proposed dependency set for `task_id`.

    Raises:
        SelfDependencyError: the task lists itself.
        CyclicDependencyError: the merged graph has a cycle reachable from the task.
    """
    dependency_ids = list(dependency_ids)

    if task_id in dependency_ids:
        raise SelfDependencyError(task_id)

    cycle = find_cycle(merge_proposal(graph, task_id, dependency_ids), task_id)
    if cycle is not None:
        raise CyclicDependencyError(cycle)

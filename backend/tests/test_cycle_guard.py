"""
Tests for write-time cycle detection.
"""

import pytest

from todograph.exceptions import CyclicDependencyError, SelfDependencyError, ValidationError
from todograph.services.cycle_guard import (
    check_dependencies,
    find_cycle,
    merge_proposal,
    would_create_cycle,
)


class TestCycleGuard:

    def test_self_reference_rejected(self):
        graph = {1: [], 2: [1]}

        assert would_create_cycle(graph, 3, [1, 3]) is True
        with pytest.raises(SelfDependencyError):
            check_dependencies(graph, 3, [1, 3])

    def test_closing_a_cycle_through_existing_edges(self):
        # Existing: B (2) depends on A (1). Proposal: A depends on B.
        graph = {1: [], 2: [1]}

        assert would_create_cycle(graph, 1, [2]) is True
        with pytest.raises(CyclicDependencyError) as exc_info:
            check_dependencies(graph, 1, [2])

        assert exc_info.value.cycle == [1, 2, 1]
        assert exc_info.value.error_code == "cycle_detected"
        assert exc_info.value.status_code == 400

    def test_long_cycle(self):
        graph = {1: [2], 2: [3], 3: [4], 4: [5], 5: []}

        with pytest.raises(CyclicDependencyError) as exc_info:
            check_dependencies(graph, 5, [1])

        assert exc_info.value.cycle == [5, 1, 2, 3, 4, 5]

    def test_diamond_accepted(self):
        """A depends on B and C; both depend on D."""
        graph = {"D": [], "B": ["D"], "C": ["D"]}

        assert would_create_cycle(graph, "A", ["B", "C"]) is False
        check_dependencies(graph, "A", ["B", "C"])

    def test_new_task_without_dependencies(self):
        assert would_create_cycle({1: [], 2: [1]}, 3, []) is False

    def test_unrelated_existing_cycle_is_not_reported(self):
        # Only cycles reachable from the new task matter
        graph = {1: [2], 2: [1], 3: []}

        assert would_create_cycle(graph, 4, [3]) is False

    def test_dependency_on_unknown_node_is_a_sink(self):
        assert would_create_cycle({1: []}, 2, [1, 77]) is False

    def test_errors_are_validation_errors(self):
        assert issubclass(SelfDependencyError, ValidationError)
        assert issubclass(CyclicDependencyError, ValidationError)


class TestHelpers:

    def test_merge_proposal_does_not_touch_original(self):
        graph = {1: [], 2: [1]}

        merged = merge_proposal(graph, 1, [2])

        assert merged == {1: [2], 2: [1]}
        assert graph == {1: [], 2: [1]}

    def test_merge_proposal_replaces_existing_edges(self):
        merged = merge_proposal({1: [2], 2: []}, 1, [])

        assert merged[1] == []

    def test_find_cycle_on_wide_dag(self):
        # Many converging routes; fully explored nodes are not revisited
        graph = {n: [m for m in range(n)] for n in range(200)}

        assert find_cycle(graph, 199) is None

    def test_find_cycle_returns_closed_path(self):
        graph = {1: [2], 2: [3], 3: [2]}

        assert find_cycle(graph, 1) == [2, 3, 2]

    def test_find_cycle_anywhere_when_no_start(self):
        graph = {1: [], 2: [1], 3: [4], 4: [3]}

        cycle = find_cycle(graph)

        assert cycle[0] == cycle[-1]
        assert set(cycle) == {3, 4}

    def test_find_cycle_unknown_start(self):
        assert find_cycle({1: [1]}, 9) is None

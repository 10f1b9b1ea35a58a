from __future__ import annotations

import pytest

from app.services.planning.dependency_resolver import (
    DependencyResolver,
    build_dependency_graph,
    detect_circular_dependencies,
)
from app.services.planning.errors import CircularDependencyError, PlanningError
from app.services.planning.types import DependencyEdge, PlanningTask, TaskStatus


def _task(task_id: str, status: TaskStatus = TaskStatus.PENDING) -> PlanningTask:
    return PlanningTask(id=task_id, title=f"Task {task_id}", status=status)


def _edges(*pairs):
    mapping = {}
    for task_id, depends_on in pairs:
        mapping.setdefault(task_id, []).append(DependencyEdge(task_id=task_id, depends_on_id=depends_on))
    return mapping


def test_task_without_dependencies_is_ready() -> None:
    resolution = DependencyResolver().resolve([_task("a"), _task("b")], {})

    assert [task.id for task in resolution.ready_tasks] == ["a", "b"]
    assert resolution.blocked_count == 0


def test_pending_prerequisite_blocks_dependent() -> None:
    t1, t2 = _task("t1"), _task("t2")

    resolution = DependencyResolver().resolve([t1, t2], _edges(("t1", "t2")))

    assert [task.id for task in resolution.ready_tasks] == ["t2"]
    blocked = resolution.blocked_tasks[0]
    assert blocked.task.id == "t1"
    assert blocked.reasons[0].type == "incomplete_dependency"
    assert blocked.reasons[0].dependency_task_id == "t2"
    assert "pending" in blocked.reasons[0].message


def test_done_prerequisite_from_known_tasks_unblocks() -> None:
    finished = _task("t0", TaskStatus.DONE)
    t1 = _task("t1")

    resolution = DependencyResolver().resolve([t1], _edges(("t1", "t0")), known_tasks=[finished, t1])

    assert [task.id for task in resolution.ready_tasks] == ["t1"]


def test_missing_prerequisite_is_orphaned() -> None:
    resolution = DependencyResolver().resolve([_task("t1")], _edges(("t1", "ghost")))

    assert resolution.ready_count == 0
    reason = resolution.blocked_tasks[0].reasons[0]
    assert reason.type == "orphaned_dependency"
    assert reason.dependency_task_id == "ghost"


def test_all_reasons_are_reported() -> None:
    t1, t2 = _task("t1"), _task("t2", TaskStatus.IN_PROGRESS)

    resolution = DependencyResolver().resolve([t1, t2], _edges(("t1", "t2"), ("t1", "gone")))

    reasons = resolution.blocked_tasks[0].reasons
    assert [reason.type for reason in reasons] == ["incomplete_dependency", "orphaned_dependency"]


def test_ready_tasks_keep_caller_order() -> None:
    tasks = [_task(name) for name in ("c", "a", "b")]

    resolution = DependencyResolver().resolve(tasks, {})

    assert [task.id for task in resolution.ready_tasks] == ["c", "a", "b"]


def test_three_node_cycle_rejects_whole_batch() -> None:
    tasks = [_task("a"), _task("b"), _task("c"), _task("free")]
    edges = _edges(("a", "b"), ("b", "c"), ("c", "a"))

    with pytest.raises(CircularDependencyError) as excinfo:
        DependencyResolver().resolve(tasks, edges)

    assert excinfo.value.task_id in {"a", "b", "c"}
    assert isinstance(excinfo.value, PlanningError)
    assert "Circular dependency detected" in str(excinfo.value)


def test_graph_counts_in_degree_and_ignores_duplicate_edges() -> None:
    edges = _edges(("t1", "t2"), ("t1", "t2"), ("t3", "t2"))

    graph = build_dependency_graph([_task("t1"), _task("t2"), _task("t3")], edges)

    assert list(graph.edges["t2"]) == ["t1", "t3"]
    assert graph.in_degree == {"t1": 1, "t2": 0, "t3": 1}


def test_long_chain_does_not_recurse() -> None:
    tasks = [_task(str(index)) for index in range(5000)]
    edges = _edges(*[(str(index), str(index + 1)) for index in range(4999)])

    detect_circular_dependencies(build_dependency_graph(tasks, edges))

"""Dependency graph construction, cycle detection and ready-task filtering."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Literal, Mapping, Optional, Sequence, Tuple

from app.services.planning.errors import CircularDependencyError
from app.services.planning.types import DependencyEdge, PlanningTask, TaskStatus

logger = logging.getLogger(__name__)

BlockingReasonType = Literal["orphaned_dependency", "incomplete_dependency"]


@dataclass(frozen=True)
class BlockingReason:
    type: BlockingReasonType
    message: str
    dependency_task_id: str


@dataclass(frozen=True)
class BlockedTask:
    task: PlanningTask
    reasons: Tuple[BlockingReason, ...]


@dataclass
class DependencyGraph:
    nodes: Dict[str, PlanningTask] = field(default_factory=dict)
    # prerequisite id -> dependent ids, insertion ordered
    edges: Dict[str, Dict[str, None]] = field(default_factory=dict)
    in_degree: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class DependencyResolution:
    ready_tasks: Tuple[PlanningTask, ...]
    blocked_tasks: Tuple[BlockedTask, ...]

    @property
    def ready_count(self) -> int:
        return len(self.ready_tasks)

    @property
    def blocked_count(self) -> int:
        return len(self.blocked_tasks)


class DependencyResolver:
    """Filter planning candidates down to tasks whose prerequisites are all done.

    ``known_tasks`` is the wider snapshot (typically every task the user owns)
    used to look up prerequisites that are not candidates themselves, such as
    tasks already marked done.
    """

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or logger

    def resolve(
        self,
        candidates: Sequence[PlanningTask],
        dependencies: Mapping[str, Iterable[DependencyEdge]],
        known_tasks: Optional[Iterable[PlanningTask]] = None,
    ) -> DependencyResolution:
        graph = build_dependency_graph(candidates, dependencies, known_tasks)
        detect_circular_dependencies(graph)

        ready: List[PlanningTask] = []
        blocked: List[BlockedTask] = []
        for task in candidates:
            reasons = _blocking_reasons(task, dependencies.get(task.id, ()), graph)
            if reasons:
                blocked.append(BlockedTask(task=task, reasons=tuple(reasons)))
            else:
                ready.append(task)

        self._log.info("Filtered %d ready tasks from %d candidates", len(ready), len(candidates))
        return DependencyResolution(ready_tasks=tuple(ready), blocked_tasks=tuple(blocked))


def build_dependency_graph(
    candidates: Sequence[PlanningTask],
    dependencies: Mapping[str, Iterable[DependencyEdge]],
    known_tasks: Optional[Iterable[PlanningTask]] = None,
) -> DependencyGraph:
    """Build a prerequisite -> dependent adjacency map over the known tasks."""
    graph = DependencyGraph()
    for task in list(candidates) + list(known_tasks or ()):
        if task.id in graph.nodes:
            continue
        graph.nodes[task.id] = task
        graph.edges[task.id] = {}
        graph.in_degree[task.id] = 0

    for task_id in graph.nodes:
        for edge in dependencies.get(task_id, ()):
            prerequisite = edge.depends_on_id
            if prerequisite not in graph.nodes or task_id in graph.edges[prerequisite]:
                continue
            graph.edges[prerequisite][task_id] = None
            graph.in_degree[task_id] += 1
    return graph


def detect_circular_dependencies(graph: DependencyGraph) -> None:
    """Raise CircularDependencyError if the graph has a cycle.

    Depth-first traversal with an explicit stack; a neighbour that is still on
    the current path is a back edge. Nodes are visited in graph insertion order
    so the reported task is deterministic for a given input.
    """
    visited: set[str] = set()
    on_path: set[str] = set()

    for root in graph.nodes:
        if root in visited:
            continue
        visited.add(root)
        on_path.add(root)
        stack: List[Tuple[str, Iterable[str]]] = [(root, iter(graph.edges[root]))]
        while stack:
            node, neighbours = stack[-1]
            advanced = False
            for neighbour in neighbours:
                if neighbour in on_path:
                    raise CircularDependencyError(neighbour)
                if neighbour not in visited:
                    visited.add(neighbour)
                    on_path.add(neighbour)
                    stack.append((neighbour, iter(graph.edges[neighbour])))
                    advanced = True
                    break
            if not advanced:
                stack.pop()
                on_path.discard(node)


def _blocking_reasons(
    task: PlanningTask,
    edges: Iterable[DependencyEdge],
    graph: DependencyGraph,
) -> List[BlockingReason]:
    reasons: List[BlockingReason] = []
    for edge in edges:
        prerequisite = graph.nodes.get(edge.depends_on_id)
        if prerequisite is None:
            reasons.append(
                BlockingReason(
                    type="orphaned_dependency",
                    message=f"Task depends on non-existent task {edge.depends_on_id}",
                    dependency_task_id=edge.depends_on_id,
                )
            )
        elif prerequisite.status != TaskStatus.DONE:
            reasons.append(
                BlockingReason(
                    type="incomplete_dependency",
                    message=f'Task depends on incomplete task "{prerequisite.title}" ({prerequisite.status.value})',
                    dependency_task_id=edge.depends_on_id,
                )
            )
    return reasons

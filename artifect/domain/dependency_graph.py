"""
Artifact type dependency graph.

One graph per project type, built once from its type dependency edges and
read-only afterwards. Construction fails fast on edges naming unknown
types and on cycles, so startability checks never have to guard against
either.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Set, Tuple

from artifect.domain.errors import DependencyCycleError, UnknownArtifactTypeError


@dataclass(frozen=True)
class TypeDependency:
    """Directed edge: ``dependent_type_id`` requires ``dependency_type_id``."""
    dependent_type_id: int
    dependency_type_id: int


@dataclass
class CycleTrace:
    """A detected dependency cycle, as type names."""
    cycle: List[str] = field(default_factory=list)


class DependencyGraph:
    """DAG of artifact types for a single project type."""

    def __init__(
        self,
        project_type: str,
        type_names: Mapping[int, str],
        edges: Iterable[TypeDependency],
    ):
        """
        Build and validate the graph.

        Args:
            project_type: Project type name (for error messages)
            type_names: Artifact type id -> name, for every type in the project type
            edges: Type dependency edges

        Raises:
            UnknownArtifactTypeError: If an edge references a type outside ``type_names``
            DependencyCycleError: If the edges contain a cycle
        """
        self._project_type = project_type
        self._names: Dict[int, str] = dict(type_names)
        self._deps: Dict[int, List[int]] = {type_id: [] for type_id in self._names}
        self._dependents: Dict[int, List[int]] = {type_id: [] for type_id in self._names}

        for edge in edges:
            for type_id in (edge.dependent_type_id, edge.dependency_type_id):
                if type_id not in self._names:
                    raise UnknownArtifactTypeError(str(type_id))
            if edge.dependency_type_id not in self._deps[edge.dependent_type_id]:
                self._deps[edge.dependent_type_id].append(edge.dependency_type_id)
                self._dependents[edge.dependency_type_id].append(edge.dependent_type_id)

        cycles = self._detect_cycles()
        if cycles:
            raise DependencyCycleError(project_type, cycles[0].cycle)

    @property
    def project_type(self) -> str:
        return self._project_type

    @property
    def type_ids(self) -> FrozenSet[int]:
        return frozenset(self._names)

    def dependencies_of(self, type_id: int) -> List[int]:
        """Direct dependencies of ``type_id``, in declaration order."""
        self._require(type_id)
        return list(self._deps[type_id])

    def dependents_of(self, type_id: int) -> List[int]:
        """Types that directly depend on ``type_id``."""
        self._require(type_id)
        return list(self._dependents[type_id])

    def missing_dependencies(self, type_id: int, approved_type_ids: Iterable[int]) -> List[int]:
        """Direct dependencies of ``type_id`` absent from ``approved_type_ids``."""
        approved: Set[int] = set(approved_type_ids)
        return [dep for dep in self.dependencies_of(type_id) if dep not in approved]

    def is_startable(self, type_id: int, approved_type_ids: Iterable[int]) -> bool:
        """True iff every direct dependency of ``type_id`` has been approved."""
        return not self.missing_dependencies(type_id, approved_type_ids)

    def topological_order(self) -> List[int]:
        """Dependencies before dependents; ties broken by type id."""
        remaining: Dict[int, int] = {tid: len(deps) for tid, deps in self._deps.items()}
        ready = sorted(tid for tid, count in remaining.items() if count == 0)
        order: List[int] = []

        while ready:
            current = ready.pop(0)
            order.append(current)
            for dependent in self._dependents[current]:
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    ready.append(dependent)
            ready.sort()

        return order

    def name_of(self, type_id: int) -> str:
        self._require(type_id)
        return self._names[type_id]

    def _require(self, type_id: int) -> None:
        if type_id not in self._names:
            raise UnknownArtifactTypeError(str(type_id))

    def _detect_cycles(self) -> List[CycleTrace]:
        """DFS cycle detection, processing nodes in sorted id order."""
        WHITE, GRAY, BLACK = 0, 1, 2
        color: Dict[int, int] = {tid: WHITE for tid in self._names}
        parent_map: Dict[int, Optional[int]] = {tid: None for tid in self._names}
        cycles: List[CycleTrace] = []

        def dfs(node: int) -> None:
            color[node] = GRAY
            for neighbor in sorted(self._deps[node]):
                if color[neighbor] == GRAY:
                    # Back edge: walk parents back to the neighbor
                    trace = [neighbor]
                    current = node
                    while current != neighbor:
                        trace.append(current)
                        current = parent_map[current]
                    trace.append(neighbor)
                    trace.reverse()
                    cycles.append(CycleTrace(cycle=[self._names[t] for t in trace]))
                elif color[neighbor] == WHITE:
                    parent_map[neighbor] = node
                    dfs(neighbor)
            color[node] = BLACK

        for node in sorted(self._names):
            if color[node] == WHITE:
                dfs(node)

        return cycles


def approved_type_ids(artifacts: Iterable[Tuple[int, bool]]) -> Set[int]:
    """Collapse ``(artifact_type_id, is_approved)`` pairs to the set of approved types.

    A type counts as approved once any single instance is approved.
    """
    return {type_id for type_id, approved in artifacts if approved}

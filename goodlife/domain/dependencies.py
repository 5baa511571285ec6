"""
Dependency edges between goals.

An edge ``goal -> dependency`` means the dependency should be completed before
the goal. Edges are informational: nothing here blocks a status change, and
cycles are allowed. ``DependencyGraph`` can report cycles so a caller may decide
what to do with them.

Each edge stores a snapshot of the dependency's description at the time the edge
was added. Use ``resolve_dependency_labels`` to read the live label instead.
"""

from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Tuple

import networkx as nx

from .errors import SelfDependencyError
from .models import Goal, GoalDependency, GoalStatus, new_dependency_id


def add_dependency(goal: Goal, dependency_goal: Goal) -> Goal:
    """Return a copy of ``goal`` depending on ``dependency_goal``.

    Raises SelfDependencyError for a self edge. An edge that already exists is a
    no-op and the original goal is returned.
    """
    if dependency_goal.id == goal.id:
        raise SelfDependencyError(goal.id)
    if any(dep.goal_id == dependency_goal.id for dep in goal.dependencies):
        return goal
    edge = GoalDependency(
        id=new_dependency_id(),
        goal_id=dependency_goal.id,
        description=dependency_goal.description,
    )
    updated = goal.copy()
    updated.dependencies.append(edge)
    return updated


def remove_dependency(goal: Goal, dependency_edge_id: str) -> Goal:
    """Return a copy of ``goal`` without the given edge; no-op if absent."""
    if not any(dep.id == dependency_edge_id for dep in goal.dependencies):
        return goal
    updated = goal.copy()
    updated.dependencies = [dep for dep in updated.dependencies if dep.id != dependency_edge_id]
    return updated


@dataclass(frozen=True)
class ResolvedDependency:
    edge: GoalDependency
    label: str
    is_stale: bool
    is_dangling: bool
    status: Optional[GoalStatus] = None


def resolve_dependency_labels(goal: Goal, goals_by_id: Dict[str, Goal]) -> List[ResolvedDependency]:
    """Pair each edge with the current description of the goal it points at.

    Dangling edges (dependency deleted) fall back to the cached label.
    """
    resolved = []
    for edge in goal.dependencies:
        target = goals_by_id.get(edge.goal_id)
        if target is None:
            resolved.append(ResolvedDependency(edge=edge, label=edge.description, is_stale=False, is_dangling=True))
            continue
        resolved.append(ResolvedDependency(
            edge=edge,
            label=target.description,
            is_stale=target.description != edge.description,
            is_dangling=False,
            status=target.status,
        ))
    return resolved


def refresh_dependency_labels(goal: Goal, goals_by_id: Dict[str, Goal]) -> Goal:
    """Re-snapshot every cached label from the live goals."""
    stale = [r for r in resolve_dependency_labels(goal, goals_by_id) if r.is_stale]
    if not stale:
        return goal
    live = {r.edge.id: r.label for r in stale}
    updated = goal.copy()
    updated.dependencies = [
        replace(dep, description=live[dep.id]) if dep.id in live else dep
        for dep in updated.dependencies
    ]
    return updated


class DependencyGraph:
    """Directed view over a set of goals: an edge ``goal -> dependency`` per stored edge.

    Edges pointing at goals that no longer exist still appear as graph nodes so
    they can be reported, but they never take part in a cycle.
    """

    def __init__(self, goals: Iterable[Goal]):
        self._goals: Dict[str, Goal] = {}
        self.graph = nx.DiGraph()
        for goal in goals:
            self._goals[goal.id] = goal
            self.graph.add_node(goal.id)
            for dep in goal.dependencies:
                self.graph.add_edge(goal.id, dep.goal_id)

    def __contains__(self, goal_id: str) -> bool:
        return goal_id in self._goals

    @property
    def goals_by_id(self) -> Dict[str, Goal]:
        return dict(self._goals)

    def edges(self) -> List[Tuple[str, str]]:
        return list(self.graph.edges())

    def dependencies_of(self, goal_id: str) -> List[str]:
        if goal_id not in self.graph:
            return []
        return list(self.graph.successors(goal_id))

    def dependents_of(self, goal_id: str) -> List[str]:
        if goal_id not in self.graph:
            return []
        return list(self.graph.predecessors(goal_id))

    def has_path(self, start: str, target: str) -> bool:
        if start not in self.graph or target not in self.graph:
            return False
        return nx.has_path(self.graph, start, target)

    def would_create_cycle(self, goal_id: str, dependency_id: str) -> bool:
        return goal_id == dependency_id or self.has_path(dependency_id, goal_id)

    def find_cycles(self) -> List[List[str]]:
        """Each elementary cycle once, rotated to start at its smallest id.

        Detection only; cycles are tolerated everywhere else.
        """
        cycles = []
        for cycle in nx.simple_cycles(self.graph):
            pivot = cycle.index(min(cycle))
            cycles.append(cycle[pivot:] + cycle[:pivot])
        return sorted(cycles)

    def dangling_edges(self) -> List[Tuple[str, GoalDependency]]:
        """Edges pointing at goals that no longer exist."""
        result = []
        for goal in self._goals.values():
            for dep in goal.dependencies:
                if dep.goal_id not in self._goals:
                    result.append((goal.id, dep))
        return result

    def incomplete_dependencies(self, goal_id: str) -> List[Goal]:
        """Dependencies of ``goal_id`` that are not completed yet."""
        return [
            self._goals[dep_id]
            for dep_id in self.dependencies_of(goal_id)
            if dep_id in self._goals and self._goals[dep_id].status is not GoalStatus.COMPLETED
        ]

    def stale_labels(self) -> List[Tuple[str, ResolvedDependency]]:
        result = []
        for goal in self._goals.values():
            for entry in resolve_dependency_labels(goal, self._goals):
                if entry.is_stale:
                    result.append((goal.id, entry))
        return result

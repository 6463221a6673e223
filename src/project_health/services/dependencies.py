"""Project-to-project dependencies.

The health scorer only looks at direct ("one hop") dependencies.
``DependencyGraph`` resolves transitive dependencies for callers that want
them, with explicit cycle detection.
"""

import logging
from typing import Dict, Iterable, List, Set

from ..storage import AnalyticsStore

logger = logging.getLogger(__name__)


class DependencyGraph:
    """Directed graph of project ids (edge = "depends on")."""

    def __init__(self, edges: Dict[str, Iterable[str]]):
        self.adjacency: Dict[str, List[str]] = {
            node: list(dict.fromkeys(targets)) for node, targets in edges.items()
        }

    def direct(self, project_id: str) -> List[str]:
        return list(self.adjacency.get(project_id, []))

    def transitive(self, project_id: str) -> List[str]:
        """Every project reachable from ``project_id``, nearest first."""
        seen: Set[str] = {project_id}
        order: List[str] = []
        frontier = self.direct(project_id)
        while frontier:
            next_frontier = []
            for node in frontier:
                if node in seen:
                    continue
                seen.add(node)
                order.append(node)
                next_frontier.extend(self.direct(node))
            frontier = next_frontier
        return order

    def find_cycles(self) -> List[List[str]]:
        """Return each dependency cycle once, as a closed path of ids."""
        cycles: List[List[str]] = []
        seen_cycles: Set[frozenset] = set()
        visiting: List[str] = []
        done: Set[str] = set()

        def visit(node: str):
            if node in done:
                return
            if node in visiting:
                cycle = visiting[visiting.index(node):] + [node]
                key = frozenset(cycle)
                if key not in seen_cycles:
                    seen_cycles.add(key)
                    cycles.append(cycle)
                return
            visiting.append(node)
            for target in self.adjacency.get(node, []):
                visit(target)
            visiting.pop()
            done.add(node)

        for node in sorted(self.adjacency):
            visit(node)
        return cycles

    def has_cycle_through(self, project_id: str) -> bool:
        reachable = [project_id] + self.transitive(project_id)
        return any(project_id in self.direct(node) for node in reachable)


class DependencyManager:
    """Store-backed dependency operations."""

    def __init__(self, store: AnalyticsStore):
        self.store = store

    def get_dependencies(self, project_id: str) -> List[str]:
        return self.store.get_dependencies(project_id)

    def set_dependencies(self, project_id: str, depends_on: Iterable[str]) -> bool:
        cleaned = [d for d in dict.fromkeys(depends_on) if d and d != project_id]
        return self.store.set_dependencies(project_id, cleaned)

    def add_dependency(self, project_id: str, dependency_id: str) -> bool:
        """Add a direct dependency; self and duplicate links are ignored."""
        if project_id == dependency_id:
            return False
        current = self.get_dependencies(project_id)
        if dependency_id in current:
            return False
        return self.store.set_dependencies(project_id, current + [dependency_id])

    def remove_dependency(self, project_id: str, dependency_id: str) -> bool:
        current = self.get_dependencies(project_id)
        if dependency_id not in current:
            return False
        return self.store.set_dependencies(
            project_id, [d for d in current if d != dependency_id]
        )

    def get_dependents_of(self, project_id: str) -> List[str]:
        """Projects that directly depend on ``project_id``."""
        return sorted(
            pid for pid, deps in self.store.list_dependency_records().items()
            if project_id in deps
        )

    def get_incomplete_dependency_ids(self, project_id: str) -> List[str]:
        """Direct dependencies that exist and are not completed.

        Dependencies on unknown projects are not counted.
        """
        deps = self.get_dependencies(project_id)
        if not deps:
            return []
        known = {p.id: p for p in self.store.get_projects_by_ids(deps)}
        return [d for d in deps if d in known and not known[d].is_completed]

    def graph(self) -> DependencyGraph:
        return DependencyGraph(self.store.list_dependency_records())

    def resolve_transitive(self, project_id: str) -> List[str]:
        graph = self.graph()
        cycles = [c for c in graph.find_cycles() if project_id in c]
        if cycles:
            logger.warning(f"Dependency cycle involving {project_id}: {' -> '.join(cycles[0])}")
        return [d for d in graph.transitive(project_id) if d != project_id]

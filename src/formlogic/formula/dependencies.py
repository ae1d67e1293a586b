"""Formula dependency tracking for calculated fields.

Tracks calculated-field dependencies to produce an evaluation order and
to detect circular references, both for evaluation and for validating a
proposed edit against a copy of the graph.
"""

import heapq
from collections import defaultdict, deque
from typing import Iterable

from formlogic.core.exceptions import CircularDependencyError
from formlogic.formula.parser import extract_references
from formlogic.schemas.field import FormField

# DFS colours
_UNVISITED, _IN_PROGRESS, _DONE = 0, 1, 2


def field_dependencies(field: FormField) -> list[str]:
    """
    Dependencies of a calculated field.

    Declared dependencies come first, followed by any further references
    parsed from the formula; duplicates are dropped.
    """
    if not field.calculation.enabled:
        return []
    result: list[str] = []
    for dep in [*field.calculation.dependencies, *extract_references(field.calculation.formula)]:
        if dep not in result:
            result.append(dep)
    return result


class FormulaDependencyGraph:
    """
    Track calculated-field dependencies for ordering and cycle detection.

    Maintains a bidirectional graph of field dependencies:
    - dependencies: field_id -> set of field_ids that depend on this field
    - reverse: field_id -> ordered list of field_ids this field depends on

    Every form field is a node; only calculated fields have outgoing edges.
    """

    def __init__(self):
        """Initialize empty dependency graph."""
        # Forward mapping: field_id -> set of dependent field_ids
        # If field A changes, all fields in dependencies[A] need recalculation
        self.dependencies: dict[str, set[str]] = defaultdict(set)

        # Reverse mapping: field_id -> fields it depends on, in declaration order
        # To calculate field A, we need all fields in reverse[A]
        self.reverse: dict[str, list[str]] = {}

        # Node -> sort key (display order, position) used to break ties
        self._nodes: dict[str, tuple[int, int]] = {}

    @classmethod
    def from_fields(cls, fields: Iterable[FormField]) -> "FormulaDependencyGraph":
        """
        Build a graph from a form's fields.

        Args:
            fields: Form fields, in their stored order

        Returns:
            Populated dependency graph
        """
        graph = cls()
        field_list = list(fields)
        for position, field in enumerate(field_list):
            graph.add_node(field.id, (field.order, position))
        for field in field_list:
            if field.calculation.enabled:
                graph.set_dependencies(field.id, field_dependencies(field))
        return graph

    def add_node(self, field_id: str, sort_key: tuple[int, int] | None = None) -> None:
        """Register a field; the first registration of an ID wins."""
        if field_id not in self._nodes:
            self._nodes[field_id] = sort_key or (0, len(self._nodes))

    def set_dependencies(self, field_id: str, depends_on: Iterable[str]) -> None:
        """
        Set (or replace) the dependencies of a calculated field.

        No cycle check happens here; use find_cycle() or
        detect_circular_reference() before trusting the graph.

        Args:
            field_id: ID of the calculated field
            depends_on: Field IDs this formula references
        """
        self.add_node(field_id)

        # Remove old dependencies if field already exists
        for old_dep in self.reverse.get(field_id, []):
            self.dependencies[old_dep].discard(field_id)

        ordered: list[str] = []
        for dep in depends_on:
            if dep not in ordered:
                ordered.append(dep)
        self.reverse[field_id] = ordered
        for dep in ordered:
            self.dependencies[dep].add(field_id)

    def copy(self) -> "FormulaDependencyGraph":
        """Independent copy, for trying out hypothetical edits."""
        clone = FormulaDependencyGraph()
        clone._nodes = dict(self._nodes)
        clone.reverse = {k: list(v) for k, v in self.reverse.items()}
        for k, v in self.dependencies.items():
            clone.dependencies[k] = set(v)
        return clone

    @property
    def nodes(self) -> list[str]:
        """Node IDs sorted by display order."""
        return sorted(self._nodes, key=self._nodes.__getitem__)

    @property
    def formula_fields(self) -> list[str]:
        """IDs of fields with outgoing edges, sorted by display order."""
        return [node for node in self.nodes if node in self.reverse]

    def unknown_references(self) -> list[tuple[str, str]]:
        """
        Edges that point at fields the graph does not know.

        Returns:
            List of (field_id, missing_dependency) pairs
        """
        return [
            (field_id, dep)
            for field_id in self.formula_fields
            for dep in self.reverse[field_id]
            if dep not in self._nodes
        ]

    def find_cycle(self) -> list[str] | None:
        """
        Look for a circular dependency.

        Iterative depth-first traversal with three colours; a back edge to
        a node that is still in progress closes a cycle.

        Returns:
            The cycle as a chain that starts and ends with the same field
            (e.g. ["a", "b", "a"]), or None when the graph is acyclic
        """
        color: dict[str, int] = {}

        for start in self.formula_fields:
            if color.get(start, _UNVISITED) != _UNVISITED:
                continue

            color[start] = _IN_PROGRESS
            path = [start]
            stack = [iter(self.reverse.get(start, []))]

            while stack:
                for dep in stack[-1]:
                    state = color.get(dep, _UNVISITED)
                    if state == _IN_PROGRESS:
                        return path[path.index(dep) :] + [dep]
                    if state == _UNVISITED:
                        color[dep] = _IN_PROGRESS
                        path.append(dep)
                        stack.append(iter(self.reverse.get(dep, [])))
                        break
                else:
                    color[path.pop()] = _DONE
                    stack.pop()

        return None

    def check_acyclic(self) -> None:
        """
        Raise when the graph contains a cycle.

        Raises:
            CircularDependencyError: naming the offending chain
        """
        cycle = self.find_cycle()
        if cycle is not None:
            raise CircularDependencyError(cycle)

    def detect_circular_reference(
        self, field_id: str, depends_on: Iterable[str]
    ) -> list[str] | None:
        """
        Check if giving a field these dependencies would create a cycle.

        The check runs on a copy; this graph is left untouched.

        Args:
            field_id: ID of the calculated field being added/updated
            depends_on: Field IDs the new formula references

        Returns:
            The cycle the edit would close, or None
        """
        candidate = self.copy()
        candidate.set_dependencies(field_id, depends_on)
        return candidate.find_cycle()

    def get_evaluation_order(self, field_ids: Iterable[str] | None = None) -> list[str]:
        """
        Get evaluation order for the graph's fields.

        Uses topological sort (Kahn's algorithm). Among fields that are
        ready at the same time, the one with the lowest display order goes
        first, so the result is deterministic.

        Args:
            field_ids: Restrict the result to these fields (default: all nodes)

        Returns:
            Ordered list of field IDs, dependencies before dependents

        Raises:
            CircularDependencyError: If the graph contains a cycle
        """
        self.check_acyclic()

        in_degree = {
            node: sum(1 for dep in self.reverse.get(node, []) if dep in self._nodes)
            for node in self._nodes
        }
        ready = [(self._nodes[node], node) for node, degree in in_degree.items() if degree == 0]
        heapq.heapify(ready)

        order: list[str] = []
        while ready:
            _, node = heapq.heappop(ready)
            order.append(node)
            for dependent in self.dependencies.get(node, ()):
                if dependent in in_degree:
                    in_degree[dependent] -= 1
                    if in_degree[dependent] == 0:
                        heapq.heappush(ready, (self._nodes[dependent], dependent))

        if field_ids is None:
            return order
        wanted = set(field_ids)
        return [node for node in order if node in wanted]

    def get_affected_fields(self, changed_field_id: str) -> list[str]:
        """
        Get calculated fields that need recalculation when a field changes.

        Uses BFS to traverse the dependency tree and find all
        transitive dependents of the changed field.

        Args:
            changed_field_id: ID of the field that changed

        Returns:
            List of field IDs that need recalculation
        """
        affected = []
        to_process = deque([changed_field_id])
        seen = {changed_field_id}

        while to_process:
            current = to_process.popleft()
            for dependent in sorted(self.dependencies.get(current, ()), key=self._sort_key):
                if dependent not in seen:
                    seen.add(dependent)
                    affected.append(dependent)
                    to_process.append(dependent)

        return affected

    def _sort_key(self, field_id: str) -> tuple[int, int]:
        return self._nodes.get(field_id, (0, 0))

    def to_dict(self) -> dict[str, list[str]]:
        """Calculated field -> its dependencies, in display order."""
        return {field_id: list(self.reverse[field_id]) for field_id in self.formula_fields}

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"FormulaDependencyGraph("
            f"fields={len(self.reverse)}, "
            f"edges={sum(len(deps) for deps in self.reverse.values())})"
        )

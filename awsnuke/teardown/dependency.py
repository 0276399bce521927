"""Dependency graph over resource types.

Used to validate declared dependencies at registration time and to compute a
deletion order for planning output. Runtime sequencing is done by polling in
the scheduler, not by this graph.
"""

from __future__ import annotations

from collections import deque
from typing import Iterable


class DependencyResolver:
    """Resource type dependency graph.

    Edges point from a resource type to the types it waits on: an edge
    A -> B means B's instances must be gone before A is deleted, so B comes
    first in deletion order.

    Attributes:
        graph: Mapping of resource type to the set of types it depends on
    """

    def __init__(self) -> None:
        self.graph: dict[str, set[str]] = {}

    def add_resource_type(self, resource_type: str) -> None:
        self.graph.setdefault(resource_type, set())

    def add_dependency(self, resource_type: str, depends_on: str) -> None:
        """Record that resource_type waits for depends_on to drain.

        Args:
            resource_type: Dependent resource type
            depends_on: Resource type that must be emptied first
        """
        self.graph.setdefault(resource_type, set()).add(depends_on)
        self.graph.setdefault(depends_on, set())

    def missing_dependencies(self, known: Iterable[str]) -> dict[str, list[str]]:
        """Find dependencies that name unknown resource types.

        Returns:
            Mapping of resource type to its unknown dependency names
        """
        known_set = set(known)
        missing = {}
        for resource_type, deps in self.graph.items():
            unknown = sorted(dep for dep in deps if dep not in known_set)
            if unknown and resource_type in known_set:
                missing[resource_type] = unknown
        return missing

    def has_cycle(self) -> bool:
        try:
            self.compute_deletion_order(self.graph)
        except ValueError:
            return True
        return False

    def compute_deletion_order(self, resource_types: Iterable[str]) -> list[str]:
        """Compute deletion order using Kahn's algorithm.

        Ties are broken alphabetically so the order is deterministic.

        Args:
            resource_types: Resource types to order

        Returns:
            Resource types, dependencies first

        Raises:
            ValueError: If the dependencies among resource_types contain a cycle
        """
        return [resource_type for tier in self._tiers(resource_types) for resource_type in tier]

    def get_deletion_tiers(self, resource_types: Iterable[str]) -> dict[int, list[str]]:
        """Group resource types into tiers.

        Tier 1 has no dependencies; tier N depends only on tiers below N.

        Raises:
            ValueError: If the dependencies contain a cycle
        """
        return {index: tier for index, tier in enumerate(self._tiers(resource_types), start=1)}

    def _tiers(self, resource_types: Iterable[str]) -> list[list[str]]:
        selected = set(resource_types)
        pending = {rt: {dep for dep in self.graph.get(rt, set()) if dep in selected} for rt in selected}
        dependents: dict[str, set[str]] = {rt: set() for rt in selected}
        for rt, deps in pending.items():
            for dep in deps:
                dependents[dep].add(rt)

        ready = deque(sorted(rt for rt, deps in pending.items() if not deps))
        tiers: list[list[str]] = []
        placed = 0

        while ready:
            tier = sorted(ready)
            ready.clear()
            tiers.append(tier)
            placed += len(tier)

            unlocked = set()
            for rt in tier:
                for dependent in dependents[rt]:
                    pending[dependent].discard(rt)
                    if not pending[dependent]:
                        unlocked.add(dependent)
            ready.extend(sorted(unlocked))

        if placed != len(selected):
            stuck = sorted(rt for rt, deps in pending.items() if deps)
            raise ValueError(f"Circular dependency detected among resource types: {', '.join(stuck)}")

        return tiers

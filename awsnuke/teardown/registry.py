"""Explicit registry of resource drivers."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from .dependency import DependencyResolver
from .driver import ResourceDriver

logger = logging.getLogger(__name__)


def select_drivers(
    drivers: Iterable[ResourceDriver],
    include: Iterable[str] = (),
    exclude: Iterable[str] = (),
) -> list[ResourceDriver]:
    """Filter drivers by name.

    Dependencies of selected drivers are pulled back in even when excluded,
    since a dependent type cannot be sequenced without them.

    Args:
        drivers: All available drivers
        include: Names to keep (empty = all)
        exclude: Names to drop

    Returns:
        Selected drivers in their original order

    Raises:
        ValueError: If include/exclude name an unknown resource type
    """
    available = {driver.name: driver for driver in drivers}
    include_set, exclude_set = set(include), set(exclude)

    unknown = sorted((include_set | exclude_set) - set(available))
    if unknown:
        raise ValueError(f"Unknown resource types: {', '.join(unknown)}")

    selected = {name for name in available if (not include_set or name in include_set) and name not in exclude_set}

    queue = list(selected)
    while queue:
        name = queue.pop()
        for dependency in available[name].dependencies:
            if dependency in available and dependency not in selected:
                logger.info(f"[Info] Including {dependency} because {name} depends on it")
                selected.add(dependency)
                queue.append(dependency)

    return [driver for name, driver in available.items() if name in selected]


class ResourceRegistry:
    """Resource drivers keyed by name, fixed once registration is done.

    Registration validates the dependency graph up front: duplicate names,
    dependencies on unregistered types and cycles raise ValueError instead of
    surfacing later as a dependency timeout.
    """

    def __init__(self) -> None:
        self._drivers: dict[str, ResourceDriver] = {}
        self.resolver = DependencyResolver()

    def register_all(self, drivers: Iterable[ResourceDriver]) -> None:
        """Register drivers and validate their dependencies.

        Raises:
            ValueError: On duplicate names, unknown dependencies or cycles
        """
        for driver in drivers:
            self.register(driver)
        self.validate()

    def register(self, driver: ResourceDriver) -> None:
        name = driver.name
        if name in self._drivers:
            raise ValueError(f"Resource type '{name}' is registered twice")

        self._drivers[name] = driver
        self.resolver.add_resource_type(name)
        for dependency in driver.dependencies:
            self.resolver.add_dependency(name, dependency)
        logger.debug(f"Registered resource type {name} (dependencies: {list(driver.dependencies)})")

    def validate(self) -> None:
        missing = self.resolver.missing_dependencies(self._drivers)
        if missing:
            details = "; ".join(f"{name} -> {', '.join(deps)}" for name, deps in sorted(missing.items()))
            raise ValueError(f"Unregistered dependencies: {details}")

        # Raises on cycles
        self.resolver.compute_deletion_order(self._drivers)

    def get(self, name: str) -> ResourceDriver:
        try:
            return self._drivers[name]
        except KeyError:
            raise KeyError(f"Resource type '{name}' is not registered") from None

    def names(self) -> list[str]:
        return list(self._drivers)

    def deletion_tiers(self) -> dict[int, list[str]]:
        return self.resolver.get_deletion_tiers(self._drivers)

    def __contains__(self, name: object) -> bool:
        return name in self._drivers

    def __iter__(self) -> Iterator[ResourceDriver]:
        return iter(list(self._drivers.values()))

    def __len__(self) -> int:
        return len(self._drivers)

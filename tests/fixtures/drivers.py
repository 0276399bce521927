"""Test fixtures for resource drivers and run configuration."""

from __future__ import annotations

import threading
from typing import Any, Iterable, Optional

from awsnuke.config import Config
from awsnuke.teardown.driver import BaseResourceDriver


def make_config(**overrides: Any) -> Config:
    """Create a Config suitable for engine tests.

    Defaults to a short timeout and poll interval so expected wait totals stay
    small and easy to reason about.
    """
    values: dict[str, Any] = {
        "account_id": "123456789012",
        "timeout": 30,
        "poll_interval": 10,
        "regions": ["us-east-1"],
    }
    values.update(overrides)
    config = Config()
    config.apply(values)
    return config


class StubDriver(BaseResourceDriver):
    """In-memory driver simulating a remote inventory.

    Attributes:
        remote: Simulated remote state (identifier -> metadata)
        inventories: Queued fetch results; each refresh pops one until a single
            entry is left, which then repeats. None means "fetch remote".
        remove_errors: Errors raised by successive remove() calls before the
            real removal runs. None entries mean "remove normally".
        fetch_errors: Errors raised by successive refreshes
        events: Shared log of (resource type, identifier) deletions
    """

    def __init__(
        self,
        name: str,
        items: Iterable[str] = (),
        dependencies: Iterable[str] = (),
        inventories: Optional[list[list[str]]] = None,
        remove_errors: Optional[list[Optional[Exception]]] = None,
        fetch_errors: Optional[list[Optional[Exception]]] = None,
        events: Optional[list[tuple[str, str]]] = None,
    ) -> None:
        super().__init__()
        self._name = name
        self._dependencies = tuple(dependencies)
        self.remote: dict[str, Any] = {item: {} for item in items}
        self.inventories = [list(inventory) for inventory in inventories] if inventories is not None else None
        self.remove_errors = list(remove_errors or [])
        self.fetch_errors = list(fetch_errors or [])
        self.events = events if events is not None else []
        self.fetch_calls = 0
        self.remove_calls = 0
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def dependencies(self) -> tuple[str, ...]:
        return self._dependencies

    def _fetch(self) -> dict[str, Any]:
        with self._lock:
            self.fetch_calls += 1
            if self.fetch_errors:
                error = self.fetch_errors.pop(0)
                if error is not None:
                    raise error
            if self.inventories is not None:
                current = self.inventories[0] if len(self.inventories) == 1 else self.inventories.pop(0)
                return {item: {} for item in current}
            return dict(self.remote)

    def remove(self) -> None:
        with self._lock:
            self.remove_calls += 1
            error = self.remove_errors.pop(0) if self.remove_errors else None
        if error is not None:
            raise error
        super().remove()

    def _delete_instance(self, identifier: str, metadata: Any) -> None:
        with self._lock:
            self.remote.pop(identifier, None)
            self.events.append((self._name, identifier))


def create_stub_driver(name: str, items: Iterable[str] = (), **kwargs: Any) -> StubDriver:
    """Create a StubDriver already set up with a test config."""
    config = kwargs.pop("config", None) or make_config()
    driver = StubDriver(name, items, **kwargs)
    driver.setup(config)
    return driver

"""Teardown task model.

Result of driving one resource type through the teardown state machine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from ..teardown.errors import TeardownError


class TaskState(Enum):
    """Per resource type state machine states."""

    IDLE = "idle"
    LISTING = "listing"
    WAITING_ON_DEPENDENCIES = "waiting-on-dependencies"
    DELETING = "deleting"
    RETRY_WAIT = "retry-wait"
    DONE = "done"
    FAILED = "failed"
    TIMED_OUT = "timed-out"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskState.DONE, TaskState.FAILED, TaskState.TIMED_OUT)


@dataclass
class TaskResult:
    """Teardown task entity for one resource type.

    State transitions:
        idle → listing → done (empty inventory)
        idle → listing → waiting-on-dependencies → deleting → done
        ... → waiting-on-dependencies → timed-out (dependency never drained)
        ... → deleting → retry-wait → deleting ... → done | failed | timed-out

    Attributes:
        resource_type: Resource type name
        account_id: AWS account ID
        dry_run: Whether deletion was skipped
        state: Current state
        transitions: Every state entered, in order (starts with idle)
        initial_inventory: Identifiers seen by the first refreshing list
        remaining: Identifiers still cached when the task finished
        remove_attempts: Number of Remove() calls
        dependency_wait_seconds: Seconds slept waiting on dependencies
        retry_wait_seconds: Seconds slept between Remove() retries
        error: Terminal error for failed/timed-out tasks
        started_at: When the task started
        completed_at: When the task reached a terminal state
    """

    resource_type: str
    account_id: str
    dry_run: bool = False
    state: TaskState = TaskState.IDLE
    transitions: list[TaskState] = field(default_factory=lambda: [TaskState.IDLE])
    initial_inventory: list[str] = field(default_factory=list)
    remaining: list[str] = field(default_factory=list)
    remove_attempts: int = 0
    dependency_wait_seconds: int = 0
    retry_wait_seconds: int = 0
    error: Optional[TeardownError] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def elapsed_seconds(self) -> int:
        """Total accumulated wait across dependency and retry loops."""
        return self.dependency_wait_seconds + self.retry_wait_seconds

    @property
    def succeeded(self) -> bool:
        return self.state == TaskState.DONE

    def transition(self, state: TaskState) -> None:
        """Move to a new state.

        Raises:
            ValueError: If the task already reached a terminal state
        """
        if self.state.is_terminal:
            raise ValueError(f"Task for {self.resource_type} already finished in state {self.state.value}")
        self.state = state
        self.transitions.append(state)

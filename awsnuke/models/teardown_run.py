"""Teardown run model.

Aggregate result of one orchestrator run across all resource types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from ..teardown.errors import TeardownError
from .teardown_task import TaskResult, TaskState


class RunStatus(Enum):
    """Run execution status."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class TeardownRun:
    """Teardown run entity.

    Results are appended in completion order. The first failing result
    decides the run's error (single-error-wins); later failures are kept in
    results for reporting but do not replace it.

    Attributes:
        run_id: Unique identifier for the run
        account_id: AWS account ID
        dry_run: Whether deletions were skipped
        timestamp: When the run was initiated (UTC)
        status: Current status
        results: Per resource type results, in completion order
        first_error: Error of the first resource type to fail
        completed_at: When every task finished (optional)
    """

    run_id: str
    account_id: str
    dry_run: bool
    timestamp: datetime
    status: RunStatus = RunStatus.RUNNING
    results: list[TaskResult] = field(default_factory=list)
    first_error: Optional[TeardownError] = None
    completed_at: Optional[datetime] = None

    def record(self, result: TaskResult) -> None:
        """Add a finished task result.

        Raises:
            ValueError: If the result has not reached a terminal state
        """
        if not result.state.is_terminal:
            raise ValueError(f"Result for {result.resource_type} is not terminal: {result.state.value}")

        self.results.append(result)
        if result.error is not None and self.first_error is None:
            self.first_error = result.error

    def finish(self, completed_at: datetime) -> None:
        self.completed_at = completed_at
        self.status = RunStatus.FAILED if self.first_error is not None else RunStatus.COMPLETED

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.COMPLETED

    @property
    def failed_results(self) -> list[TaskResult]:
        return [result for result in self.results if result.state in (TaskState.FAILED, TaskState.TIMED_OUT)]

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.timestamp).total_seconds()

    def result_for(self, resource_type: str) -> Optional[TaskResult]:
        for result in self.results:
            if result.resource_type == resource_type:
                return result
        return None

    def raise_for_error(self) -> None:
        """Raise the first error, if the run failed."""
        if self.first_error is not None:
            raise self.first_error

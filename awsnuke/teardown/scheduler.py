"""Per resource type teardown state machine.

    idle → listing → waiting-on-dependencies → deleting → done
                                                 ↓ ↑
                                              retry-wait → failed | timed-out

Every wait is a plain sleep of one poll interval, bounded by the configured
timeout. Elapsed time is the sum of intervals slept, not wall-clock time.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from ..config import Config
from ..models.teardown_task import TaskResult, TaskState
from .classifier import TransientErrorClassifier
from .driver import ResourceDriver
from .errors import (
    DeletionFailed,
    DeletionTimeout,
    DependencyTimeout,
    InventoryError,
    TeardownError,
    TransientAPIError,
)
from .registry import ResourceRegistry

logger = logging.getLogger(__name__)


class ResourceScheduler:
    """Drives one resource type from listing to a terminal state.

    Attributes:
        driver: Driver for the resource type
        registry: Registry used to look up dependency drivers
        config: Run configuration (timeout, poll interval, dry run)
        classifier: Decides which Remove() failures are retried
        result: Task result, updated as the task progresses
    """

    def __init__(
        self,
        driver: ResourceDriver,
        registry: ResourceRegistry,
        config: Config,
        classifier: Optional[TransientErrorClassifier] = None,
    ) -> None:
        self.driver = driver
        self.registry = registry
        self.config = config
        self.classifier = classifier or TransientErrorClassifier()
        self.result = TaskResult(
            resource_type=driver.name,
            account_id=config.account_id or "unknown",
            dry_run=config.dry_run,
        )

    @property
    def name(self) -> str:
        return self.driver.name

    def run(self) -> TaskResult:
        """Run the task to a terminal state.

        Returns:
            Final TaskResult (state is done, failed or timed-out)
        """
        self.result.started_at = datetime.now(timezone.utc)
        try:
            return self._run()
        except InventoryError as e:
            return self._finish(TaskState.FAILED, e)

    def _run(self) -> TaskResult:
        self._transition(TaskState.LISTING)
        logger.info(f"[Info] Retrieving list of resources for {self.name} (account: {self.result.account_id})")
        inventory = self.driver.list(refresh=True)
        self.result.initial_inventory = list(inventory)

        if not inventory:
            logger.info(f"[Skipping] No {self.name} items to delete (account: {self.result.account_id})")
            return self._finish(TaskState.DONE)

        self._transition(TaskState.WAITING_ON_DEPENDENCIES)
        try:
            waited = self._wait_for_dependencies()
        except DependencyTimeout as e:
            return self._finish(TaskState.TIMED_OUT, e)

        # The snapshot may be stale after waiting
        if waited:
            self.driver.list(refresh=True)

        if self.config.dry_run:
            logger.info(
                f"[Dry run] Would remove {self.name} items: {self.driver.list(refresh=False)} "
                f"(account: {self.result.account_id}, {self.result.elapsed_seconds} seconds)"
            )
            return self._finish(TaskState.DONE)

        return self._remove_with_retry()

    def _wait_for_dependencies(self) -> bool:
        """Block until every declared dependency reports an empty inventory.

        Dependencies are checked in declaration order. In dry-run mode each
        dependency is listed once and never waited on, since nothing will
        drain it.

        Returns:
            True if any wait occurred

        Raises:
            DependencyTimeout: If accumulated wait exceeds the timeout
        """
        waited = False
        seconds = 0

        for dependency_name in self.driver.dependencies:
            dependency = self.registry.get(dependency_name)

            while True:
                remaining = dependency.list(refresh=True)
                if not remaining:
                    break

                if self.config.dry_run:
                    logger.info(
                        f"[Dry run] Resource {self.name} would wait for dependency {dependency_name} "
                        f"({len(remaining)} items, account: {self.result.account_id}, "
                        f"{self.result.elapsed_seconds} seconds)"
                    )
                    break

                if seconds > self.config.timeout:
                    raise DependencyTimeout(self.name, dependency_name, self.config.timeout, remaining)

                time.sleep(self.config.poll_interval)
                seconds += self.config.poll_interval
                self.result.dependency_wait_seconds = seconds
                waited = True
                logger.info(
                    f"[Waiting] Resource {self.name} waiting for dependency {dependency_name} to delete. "
                    f"(account: {self.result.account_id}, {seconds} seconds)"
                )

        return waited

    def _remove_with_retry(self) -> TaskResult:
        """Call Remove() until it succeeds, fails terminally or times out.

        Bounded by time only; there is no attempt cap.
        """
        logger.info(
            f"[Remove] Removing {self.name} items: {self.driver.list(refresh=False)} "
            f"(account: {self.result.account_id}, {self.result.elapsed_seconds} seconds)"
        )
        seconds = 0
        error = self._attempt_remove()

        while error is not None and self.classifier.is_transient(error):
            transient = TransientAPIError(self.name, error)
            self._transition(TaskState.RETRY_WAIT)
            remaining = self.driver.list(refresh=True)

            if seconds > self.config.timeout:
                return self._finish(
                    TaskState.TIMED_OUT,
                    DeletionTimeout(self.name, self.config.timeout, transient, remaining),
                )

            logger.info(
                f"[Remove] In use Resource: {self.name}. Items: {remaining}. Waiting before retrying delete. "
                f"(account: {self.result.account_id}, {seconds} seconds)"
            )
            time.sleep(self.config.poll_interval)
            seconds += self.config.poll_interval
            self.result.retry_wait_seconds = seconds
            error = self._attempt_remove()

        if error is not None:
            return self._finish(TaskState.FAILED, DeletionFailed(self.name, error, self.driver.list(refresh=False)))

        return self._finish(TaskState.DONE)

    def _attempt_remove(self) -> Optional[Exception]:
        self._transition(TaskState.DELETING)
        self.result.remove_attempts += 1
        try:
            self.driver.remove()
        except Exception as e:
            return e
        return None

    def _transition(self, state: TaskState) -> None:
        self.result.transition(state)
        logger.info(
            f"[State] Resource {self.name} entered state {state.value} "
            f"(account: {self.result.account_id}, {self.result.elapsed_seconds} seconds)"
        )

    def _finish(self, state: TaskState, error: Optional[TeardownError] = None) -> TaskResult:
        self.result.error = error
        self.result.remaining = self.driver.list(refresh=False)
        self._transition(state)
        self.result.completed_at = datetime.now(timezone.utc)

        if error is None:
            logger.info(
                f"[Info] Resource {self.name} finished in state {state.value} "
                f"(account: {self.result.account_id}, {self.result.elapsed_seconds} seconds)"
            )
        else:
            logger.error(f"{error} (account: {self.result.account_id}, {self.result.elapsed_seconds} seconds)")
        return self.result

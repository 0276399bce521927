"""Teardown orchestrator.

Main entry point of the engine: runs one scheduler task per registered
resource type, all started together, and aggregates their results.
"""

from __future__ import annotations

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Iterable, Optional

from ..config import Config
from ..models.teardown_run import TeardownRun
from ..models.teardown_task import TaskResult, TaskState
from .classifier import TransientErrorClassifier
from .driver import ResourceDriver
from .errors import TeardownError
from .registry import ResourceRegistry
from .scheduler import ResourceScheduler

logger = logging.getLogger(__name__)


class Orchestrator:
    """Teardown orchestrator.

    A failing resource type never cancels its siblings: every task runs to
    its own completion or timeout, and the run reports the first failure to
    complete (single-error-wins).

    Attributes:
        config: Run configuration
        registry: Registered resource drivers
        classifier: Transient-error classifier shared by all tasks
    """

    def __init__(
        self,
        config: Config,
        drivers: Iterable[ResourceDriver],
        classifier: Optional[TransientErrorClassifier] = None,
    ) -> None:
        """Initialize orchestrator and register drivers.

        Args:
            config: Run configuration
            drivers: Resource drivers to register; each is set up with config
            classifier: Classifier override (default: built from config)

        Raises:
            ValueError: If driver registration fails validation
        """
        self.config = config
        self.classifier = classifier or TransientErrorClassifier.from_settings(
            extra_markers=config.extra_transient_markers,
            stale_listing_is_transient=config.stale_listing_is_transient,
        )
        self.registry = ResourceRegistry()
        self.registry.register_all(drivers)
        for driver in self.registry:
            driver.setup(config)

    def run(self) -> TeardownRun:
        """Tear down every registered resource type.

        Returns:
            TeardownRun with per-type results and the first error, if any
        """
        account_id = self.config.account_id or "unknown"
        run = TeardownRun(
            run_id=f"run_{uuid.uuid4()}",
            account_id=account_id,
            dry_run=self.config.dry_run,
            timestamp=datetime.now(timezone.utc),
        )
        logger.info(
            f"[Info] Starting teardown of {len(self.registry)} resource types in account {account_id} "
            f"(dry-run: {self.config.dry_run}). Timeout {self.config.timeout} seconds. "
            f"Polltime {self.config.poll_interval} seconds"
        )

        if len(self.registry) == 0:
            run.finish(datetime.now(timezone.utc))
            return run

        schedulers = [
            ResourceScheduler(driver, self.registry, self.config, self.classifier) for driver in self.registry
        ]

        with ThreadPoolExecutor(max_workers=len(schedulers), thread_name_prefix="teardown") as executor:
            futures = {executor.submit(scheduler.run): scheduler for scheduler in schedulers}

            for future in as_completed(futures):
                scheduler = futures[future]
                try:
                    result = future.result()
                except Exception as e:
                    logger.exception(f"[Error] Unexpected failure in {scheduler.name} teardown task")
                    result = self._crashed_result(scheduler, e)
                run.record(result)

        run.finish(datetime.now(timezone.utc))
        if run.succeeded:
            logger.info(f"-- Deletion complete for account {account_id} (dry-run: {self.config.dry_run}) --")
        else:
            logger.error(
                f"[Error] Teardown of account {account_id} failed for "
                f"{', '.join(result.resource_type for result in run.failed_results)}"
            )
        return run

    def _crashed_result(self, scheduler: ResourceScheduler, error: Exception) -> TaskResult:
        result = scheduler.result
        result.error = TeardownError(f"[Error] Resource: {scheduler.name}. Unexpected error: {error}", scheduler.name)
        result.remaining = scheduler.driver.list(refresh=False)
        if not result.state.is_terminal:
            result.transition(TaskState.FAILED)
        result.completed_at = datetime.now(timezone.utc)
        return result

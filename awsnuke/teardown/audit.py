"""Audit storage for teardown runs.

Stores and retrieves run logs in YAML format for troubleshooting.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import yaml

from ..models.teardown_run import TeardownRun
from ..models.teardown_task import TaskResult


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _parse_timestamp(value: str) -> datetime:
    return _as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


class AuditStorage:
    """Audit log storage and retrieval.

    Stores teardown run logs as YAML files organized by year/month.

    Storage structure:
        ~/.awsnuke/audit-logs/
            2026/
                10/
                    run-run_123.yaml

    Attributes:
        storage_dir: Base directory for audit logs
    """

    def __init__(self, storage_dir: Optional[str] = None) -> None:
        """Initialize audit storage.

        Args:
            storage_dir: Base directory for audit logs (default: ~/.awsnuke/audit-logs)
        """
        if storage_dir is None:
            storage_dir = str(Path.home() / ".awsnuke" / "audit-logs")

        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def log_run(self, run: TeardownRun) -> Path:
        """Write a run log, overwriting any log with the same run ID.

        Returns:
            Path of the written file
        """
        year_month_dir = self.storage_dir / str(run.timestamp.year) / f"{run.timestamp.month:02d}"
        year_month_dir.mkdir(parents=True, exist_ok=True)

        audit_data = {
            "metadata": {
                "version": "1.0",
                "log_type": "account_teardown",
                "created_at": datetime.now(timezone.utc).isoformat(),
            },
            "run": {
                "run_id": run.run_id,
                "account_id": run.account_id,
                "dry_run": run.dry_run,
                "timestamp": run.timestamp.isoformat(),
                "completed_at": _isoformat(run.completed_at),
                "duration_seconds": run.duration_seconds,
                "status": run.status.value,
                "error": str(run.first_error) if run.first_error else None,
            },
            "resource_types": [self._result_to_dict(result) for result in run.results],
        }

        audit_file = year_month_dir / f"run-{run.run_id}.yaml"
        with open(audit_file, "w") as f:
            yaml.dump(audit_data, f, default_flow_style=False, sort_keys=False)
        return audit_file

    @staticmethod
    def _result_to_dict(result: TaskResult) -> dict:
        return {
            "resource_type": result.resource_type,
            "state": result.state.value,
            "transitions": [state.value for state in result.transitions],
            "initial_inventory": result.initial_inventory,
            "remaining": result.remaining,
            "remove_attempts": result.remove_attempts,
            "dependency_wait_seconds": result.dependency_wait_seconds,
            "retry_wait_seconds": result.retry_wait_seconds,
            "error_type": type(result.error).__name__ if result.error else None,
            "error_message": str(result.error) if result.error else None,
            "started_at": _isoformat(result.started_at),
            "completed_at": _isoformat(result.completed_at),
        }

    def get_run(self, run_id: str) -> Optional[dict]:
        """Retrieve a run log by ID.

        Returns:
            Audit log dictionary if found, None otherwise
        """
        for audit_file in self.storage_dir.glob(f"*/*/run-{run_id}.yaml"):
            with open(audit_file, "r") as f:
                return yaml.safe_load(f)
        return None

    def query_runs(self, since: Optional[datetime] = None, until: Optional[datetime] = None) -> list[dict]:
        """Query runs within a date range, oldest first.

        Args:
            since: Start (inclusive), None for all
            until: End (inclusive), None for all

        Returns:
            List of run audit logs matching criteria
        """
        since = _as_utc(since)
        until = _as_utc(until)
        results = []

        for audit_file in sorted(self.storage_dir.glob("*/*/run-*.yaml")):
            with open(audit_file, "r") as f:
                audit_data = yaml.safe_load(f)

            timestamp = _parse_timestamp(audit_data["run"]["timestamp"])
            if since and timestamp < since:
                continue
            if until and timestamp > until:
                continue

            results.append(audit_data)

        results.sort(key=lambda data: _parse_timestamp(data["run"]["timestamp"]))
        return results

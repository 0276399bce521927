"""Asynchronous operation poller.

Turns a just-issued asynchronous delete into a synchronous result with a
bounded wait. Drivers supply only the per-iteration "is this done" probe; the
loop itself has no side effects beyond probing and logging, so callers can
retry it freely.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .errors import OperationFailed, PollTimeout

logger = logging.getLogger(__name__)


@dataclass
class OperationHandle:
    """Reference to an in-flight remote state change.

    Attributes:
        operation_id: Remote operation identifier (request token, operation name)
        status: Last observed status
        status_message: Last observed status detail, if the API reports one
    """

    operation_id: str
    status: str
    status_message: str = ""


def poll_until(
    probe: Callable[[], bool],
    description: str,
    poll_interval: int,
    timeout: int,
    resource_type: Optional[str] = None,
) -> int:
    """Call probe until it reports completion.

    Args:
        probe: Returns True once the remote operation is finished. Exceptions
            propagate unchanged (a remote rejection, not a timeout).
        description: Human-readable subject for log lines and errors
        poll_interval: Seconds to sleep between probes
        timeout: Seconds of accumulated waiting allowed
        resource_type: Resource type name attached to a PollTimeout

    Returns:
        Accumulated wait in seconds

    Raises:
        PollTimeout: If accumulated wait exceeds timeout before probe succeeds
    """
    seconds = 0
    while True:
        logger.info(f"[Info] Resource currently being deleted {description} ({seconds} seconds)")
        if probe():
            logger.info(f"[Info] Resource deleted {description} ({seconds} seconds)")
            return seconds

        if seconds > timeout:
            raise PollTimeout(description, timeout, resource_type)

        time.sleep(poll_interval)
        seconds += poll_interval


def wait_for_operation(
    refresh: Callable[[OperationHandle], OperationHandle],
    handle: OperationHandle,
    description: str,
    poll_interval: int,
    timeout: int,
    done_statuses: Iterable[str] = ("DONE",),
    failed_statuses: Iterable[str] = (),
    resource_type: Optional[str] = None,
) -> int:
    """Poll an operation handle until it reaches a terminal status.

    Args:
        refresh: Fetches the current state of a handle
        handle: Handle returned by the delete request
        done_statuses: Statuses meaning the operation succeeded
        failed_statuses: Statuses meaning the operation finished unsuccessfully

    Returns:
        Accumulated wait in seconds

    Raises:
        OperationFailed: If the operation reaches a failed status
        PollTimeout: If the operation is still running after timeout
    """
    done = set(done_statuses)
    failed = set(failed_statuses)
    current = [handle]

    def probe() -> bool:
        latest = refresh(current[0])
        current[0] = latest
        if latest.status in failed:
            raise OperationFailed(description, latest.status, latest.status_message, resource_type)
        return latest.status in done

    return poll_until(probe, description, poll_interval, timeout, resource_type)


def wait_until_absent(
    exists: Callable[[], bool],
    description: str,
    poll_interval: int,
    timeout: int,
    resource_type: Optional[str] = None,
) -> int:
    """Poll until a resource no longer shows up.

    For delete-then-disappear APIs that return no operation object.

    Args:
        exists: Returns True while the resource is still visible

    Returns:
        Accumulated wait in seconds

    Raises:
        PollTimeout: If the resource is still present after timeout
    """
    return poll_until(lambda: not exists(), description, poll_interval, timeout, resource_type)

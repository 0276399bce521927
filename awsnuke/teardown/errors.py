"""Typed errors raised by the teardown engine.

Every bounded wait surfaces one of these instead of blocking forever.
"""

from __future__ import annotations

from typing import Optional, Sequence


class TeardownError(Exception):
    """Base class for teardown failures attributed to one resource type."""

    def __init__(self, message: str, resource_type: Optional[str] = None) -> None:
        super().__init__(message)
        self.resource_type = resource_type


class DependencyTimeout(TeardownError):
    """A declared dependency never drained within the timeout."""

    def __init__(self, resource_type: str, dependency: str, timeout: int, remaining: Sequence[str] = ()) -> None:
        self.dependency = dependency
        self.timeout = timeout
        self.remaining = list(remaining)
        super().__init__(
            f"[Error] Resource {resource_type} timed out whilst waiting for dependency {dependency} "
            f"to delete. ({timeout} seconds). Dependency items: {self.remaining}",
            resource_type,
        )


class TransientAPIError(TeardownError):
    """A retry-worthy remote failure.

    Never shown to the operator on its own; it is carried as context by
    DeletionTimeout when retries run out.
    """

    def __init__(self, resource_type: str, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(str(cause), resource_type)


class DeletionTimeout(TeardownError):
    """The Remove() retry loop for a resource type exceeded the timeout."""

    def __init__(
        self,
        resource_type: str,
        timeout: int,
        last_error: TransientAPIError,
        remaining: Sequence[str] = (),
    ) -> None:
        self.timeout = timeout
        self.last_error = last_error
        self.remaining = list(remaining)
        super().__init__(
            f"[Error] Resource {resource_type} timed out whilst trying to delete. ({timeout} seconds). "
            f"Items: {self.remaining}. Details of error below:\n {last_error}",
            resource_type,
        )


class DeletionFailed(TeardownError):
    """Remove() returned a non-transient error."""

    def __init__(self, resource_type: str, cause: BaseException, remaining: Sequence[str] = ()) -> None:
        self.cause = cause
        self.remaining = list(remaining)
        super().__init__(
            f"[Error] Resource: {resource_type}. Items: {self.remaining}. Details of error below:\n {cause}",
            resource_type,
        )


class InventoryError(TeardownError):
    """A refreshing List() could not enumerate remote inventory."""

    def __init__(self, resource_type: str, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"[Error] Unable to list {resource_type}: {cause}", resource_type)


class PollTimeout(TeardownError):
    """A single asynchronous operation did not finish before the timeout.

    Treated as non-transient: the control plane is stuck, not racing.
    """

    def __init__(self, description: str, timeout: int, resource_type: Optional[str] = None) -> None:
        self.description = description
        self.timeout = timeout
        super().__init__(f"[Error] Resource deletion timed out for {description} ({timeout} seconds)", resource_type)


class OperationFailed(TeardownError):
    """An operation handle reached a failed terminal state."""

    def __init__(self, description: str, status: str, detail: str = "", resource_type: Optional[str] = None) -> None:
        self.description = description
        self.status = status
        self.detail = detail
        message = f"[Error] Operation for {description} finished with status {status}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, resource_type)

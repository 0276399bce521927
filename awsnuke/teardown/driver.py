"""Resource driver contract and shared base implementation.

A driver knows how to enumerate and delete one resource type. The scheduler
only ever talks to drivers through the ResourceDriver protocol.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Iterable, Optional, Protocol, runtime_checkable

from botocore.exceptions import BotoCoreError, ClientError

from ..aws.client import create_boto_client
from ..config import Config
from .cache import ResourceCache
from .errors import InventoryError
from .poller import OperationHandle, wait_for_operation, wait_until_absent


@runtime_checkable
class ResourceDriver(Protocol):
    """Capability set the scheduler requires from every resource type."""

    @property
    def name(self) -> str: ...

    @property
    def dependencies(self) -> tuple[str, ...]: ...

    def setup(self, config: Config) -> None: ...

    def list(self, refresh: bool = False) -> list[str]: ...

    def remove(self) -> None: ...


class BaseResourceDriver(ABC):
    """Base class implementing the driver contract around a ResourceCache.

    Subclasses provide:
    1. A unique name
    2. Declared dependencies (resource type names), if any
    3. _fetch() to enumerate remote inventory
    4. _delete_instance() to delete one instance and wait for it to go away

    list(refresh=False) never touches the network. remove() deletes every
    cached instance in parallel and evicts each one as soon as its delete is
    confirmed, so partial progress survives sibling failures.
    """

    def __init__(self) -> None:
        self.config: Optional[Config] = None
        self.logger = logging.getLogger(self.__class__.__module__)
        self._cache = ResourceCache()
        self._clients: dict[tuple[str, Optional[str]], Any] = {}
        self._clients_lock = threading.Lock()

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique resource type name (e.g., "S3Buckets")."""

    @property
    def dependencies(self) -> tuple[str, ...]:
        """Resource types that must be empty before this one is deleted."""
        return ()

    @abstractmethod
    def _fetch(self) -> dict[str, Any]:
        """Enumerate remote inventory.

        Returns:
            Mapping of identifier to driver-specific metadata
        """

    @abstractmethod
    def _delete_instance(self, identifier: str, metadata: Any) -> None:
        """Delete one instance and block until the delete is confirmed.

        Raises:
            Exception: Any failure; the scheduler classifies it
        """

    def setup(self, config: Config) -> None:
        self.config = config

    @property
    def account_id(self) -> str:
        return (self.config.account_id if self.config else None) or "unknown"

    def list(self, refresh: bool = False) -> list[str]:
        """List instance identifiers.

        Args:
            refresh: Re-enumerate remote inventory and replace the cache

        Returns:
            Sorted identifiers of the current snapshot

        Raises:
            InventoryError: If a refresh fails
        """
        if not refresh:
            return self._cache.keys()

        self._require_setup()
        try:
            entries = self._fetch()
        except (ClientError, BotoCoreError) as e:
            raise InventoryError(self.name, e) from e

        return self._cache.replace(entries)

    def remove(self) -> None:
        """Delete every cached instance in parallel.

        Raises:
            Exception: The first instance failure in completion order, raised
                only after every sibling deletion has finished
        """
        config = self._require_setup()
        items = self._cache.items()
        if not items:
            return

        first_error: Optional[BaseException] = None
        workers = min(config.instance_concurrency, len(items))

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=self.name) as executor:
            futures = {
                executor.submit(self._remove_instance, identifier, metadata): identifier
                for identifier, metadata in items
            }

            for future in as_completed(futures):
                identifier = futures[future]
                try:
                    future.result()
                except Exception as e:
                    self.logger.warning(f"[Remove] Failed to delete {self.describe(identifier)}: {e}")
                    if first_error is None:
                        first_error = e

        if first_error is not None:
            raise first_error

    def _remove_instance(self, identifier: str, metadata: Any) -> None:
        self._delete_instance(identifier, metadata)
        self._cache.evict(identifier)

    def describe(self, identifier: str) -> str:
        return f"{identifier} [type: {self.name} account: {self.account_id}]"

    def _require_setup(self) -> Config:
        if self.config is None:
            raise RuntimeError(f"Driver {self.name} used before setup()")
        return self.config

    def _create_client(self, service_name: str, region: Optional[str] = None) -> Any:
        """Create (or reuse) a boto3 client for this driver."""
        config = self._require_setup()
        key = (service_name, region)
        with self._clients_lock:
            if key not in self._clients:
                self._clients[key] = create_boto_client(
                    service_name=service_name,
                    region_name=region,
                    profile_name=config.aws_profile,
                )
            return self._clients[key]

    def _wait_until_absent(self, identifier: str, exists: Callable[[], bool]) -> int:
        config = self._require_setup()
        return wait_until_absent(
            exists,
            description=self.describe(identifier),
            poll_interval=config.poll_interval,
            timeout=config.timeout,
            resource_type=self.name,
        )

    def _wait_for_operation(
        self,
        identifier: str,
        refresh: Callable[[OperationHandle], OperationHandle],
        handle: OperationHandle,
        done_statuses: Iterable[str] = ("DONE",),
        failed_statuses: Iterable[str] = (),
    ) -> int:
        config = self._require_setup()
        return wait_for_operation(
            refresh,
            handle,
            description=self.describe(identifier),
            poll_interval=config.poll_interval,
            timeout=config.timeout,
            done_statuses=done_statuses,
            failed_statuses=failed_statuses,
            resource_type=self.name,
        )


class RegionalResourceDriver(BaseResourceDriver):
    """Driver for resources that live in individual regions.

    Identifiers are qualified as "<region>/<resource id>" and metadata always
    carries "region" and "id" keys.
    """

    @abstractmethod
    def _fetch_region(self, region: str) -> dict[str, dict[str, Any]]:
        """Enumerate one region.

        Returns:
            Mapping of unqualified resource id to extra metadata
        """

    @abstractmethod
    def _delete_regional(self, region: str, resource_id: str, metadata: dict[str, Any]) -> None:
        """Delete one resource in one region and wait for completion."""

    @staticmethod
    def qualify(region: str, resource_id: str) -> str:
        return f"{region}/{resource_id}"

    def _fetch(self) -> dict[str, Any]:
        config = self._require_setup()
        entries: dict[str, Any] = {}
        for region in config.regions:
            for resource_id, extra in self._fetch_region(region).items():
                entries[self.qualify(region, resource_id)] = {**extra, "region": region, "id": resource_id}
        return entries

    def _delete_instance(self, identifier: str, metadata: Any) -> None:
        self._delete_regional(metadata["region"], metadata["id"], metadata)

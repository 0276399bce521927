"""Generic driver for resource types exposed through AWS Cloud Control."""

from __future__ import annotations

from typing import Any

from botocore.exceptions import ClientError

from ..teardown.driver import RegionalResourceDriver
from ..teardown.poller import OperationHandle

# Regions where a type is unavailable report these instead of an empty list
_UNAVAILABLE_CODES = ("UnsupportedActionException", "TypeNotFoundException", "OptInRequired")


def _to_handle(progress_event: dict[str, Any]) -> OperationHandle:
    message = progress_event.get("StatusMessage", "")
    error_code = progress_event.get("ErrorCode")
    status = progress_event.get("OperationStatus", "PENDING")
    # Deleting something that is already gone
    if status == "FAILED" and error_code == "NotFound":
        status = "SUCCESS"
    if error_code:
        message = f"{error_code}: {message}" if message else error_code
    return OperationHandle(
        operation_id=progress_event["RequestToken"],
        status=status,
        status_message=message,
    )


class CloudControlDriver(RegionalResourceDriver):
    """Deletes any Cloud Control-supported type via delete_resource.

    Each delete returns a request token that is polled with
    get_resource_request_status until it reports SUCCESS.
    """

    def __init__(self, name: str, type_name: str, dependencies: tuple[str, ...] = ()) -> None:
        """Initialize driver.

        Args:
            name: Resource type name used for logging and dependencies
            type_name: CloudFormation type name (e.g., "AWS::Logs::LogGroup")
            dependencies: Resource types that must drain first
        """
        super().__init__()
        self._name = name
        self.type_name = type_name
        self._dependencies = tuple(dependencies)

    @property
    def name(self) -> str:
        return self._name

    @property
    def dependencies(self) -> tuple[str, ...]:
        return self._dependencies

    def _fetch_region(self, region: str) -> dict[str, dict[str, Any]]:
        client = self._create_client("cloudcontrol", region)
        paginator = client.get_paginator("list_resources")

        resources: dict[str, dict[str, Any]] = {}
        try:
            for page in paginator.paginate(TypeName=self.type_name):
                for description in page.get("ResourceDescriptions", []):
                    resources[description["Identifier"]] = {}
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in _UNAVAILABLE_CODES:
                self.logger.debug(f"{self.type_name} not available in {region}: {error_code}")
                return {}
            raise

        self.logger.debug(f"Collected {len(resources)} {self.type_name} resources in {region}")
        return resources

    def _delete_regional(self, region: str, resource_id: str, metadata: dict[str, Any]) -> None:
        client = self._create_client("cloudcontrol", region)
        response = client.delete_resource(TypeName=self.type_name, Identifier=resource_id)
        handle = _to_handle(response["ProgressEvent"])

        def refresh(current: OperationHandle) -> OperationHandle:
            status = client.get_resource_request_status(RequestToken=current.operation_id)
            return _to_handle(status["ProgressEvent"])

        self._wait_for_operation(
            self.qualify(region, resource_id),
            refresh,
            handle,
            done_statuses=("SUCCESS",),
            failed_statuses=("FAILED", "CANCEL_COMPLETE"),
        )

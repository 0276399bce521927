"""EC2 security group driver."""

from __future__ import annotations

from typing import Any

from botocore.exceptions import ClientError

from ..teardown.driver import RegionalResourceDriver


def _group_references(permissions: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [permission for permission in permissions if permission.get("UserIdGroupPairs")]


class SecurityGroupsDriver(RegionalResourceDriver):
    """Deletes non-default security groups.

    Groups referenced by instances or databases cannot be deleted, so this
    type waits for EC2Instances and RDSInstances to drain. Ingress and egress
    rules that reference other groups are revoked first so groups pointing at
    each other can go; any remaining DependencyViolation is retried by the
    scheduler.
    """

    @property
    def name(self) -> str:
        return "SecurityGroups"

    @property
    def dependencies(self) -> tuple[str, ...]:
        return ("EC2Instances", "RDSInstances")

    def _fetch_region(self, region: str) -> dict[str, dict[str, Any]]:
        client = self._create_client("ec2", region)
        paginator = client.get_paginator("describe_security_groups")

        groups = {}
        for page in paginator.paginate():
            for group in page.get("SecurityGroups", []):
                # Default groups are deleted with their VPC
                if group.get("GroupName") == "default":
                    continue
                groups[group["GroupId"]] = {
                    "group_name": group.get("GroupName", ""),
                    "vpc_id": group.get("VpcId"),
                    "ingress_references": _group_references(group.get("IpPermissions", [])),
                    "egress_references": _group_references(group.get("IpPermissionsEgress", [])),
                }

        self.logger.debug(f"Collected {len(groups)} security groups in {region}")
        return groups

    def _delete_regional(self, region: str, resource_id: str, metadata: dict[str, Any]) -> None:
        client = self._create_client("ec2", region)

        ingress = metadata.get("ingress_references") or []
        if ingress:
            self._revoke(client.revoke_security_group_ingress, resource_id, ingress)
        egress = metadata.get("egress_references") or []
        if egress:
            self._revoke(client.revoke_security_group_egress, resource_id, egress)

        client.delete_security_group(GroupId=resource_id)
        self._wait_until_absent(self.qualify(region, resource_id), lambda: self._group_exists(client, resource_id))

    @staticmethod
    def _revoke(revoke: Any, group_id: str, permissions: list[dict[str, Any]]) -> None:
        try:
            revoke(GroupId=group_id, IpPermissions=permissions)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") != "InvalidPermission.NotFound":
                raise

    @staticmethod
    def _group_exists(client: Any, group_id: str) -> bool:
        try:
            response = client.describe_security_groups(GroupIds=[group_id])
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "InvalidGroup.NotFound":
                return False
            raise
        return bool(response.get("SecurityGroups"))

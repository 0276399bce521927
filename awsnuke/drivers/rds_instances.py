"""RDS DB instance driver."""

from __future__ import annotations

from typing import Any

from botocore.exceptions import ClientError

from ..teardown.driver import RegionalResourceDriver


class RDSInstancesDriver(RegionalResourceDriver):
    """Deletes RDS DB instances without a final snapshot.

    Deletion protection is switched off first. An instance that is already
    deleting is simply waited on.
    """

    @property
    def name(self) -> str:
        return "RDSInstances"

    def _fetch_region(self, region: str) -> dict[str, dict[str, Any]]:
        client = self._create_client("rds", region)
        paginator = client.get_paginator("describe_db_instances")

        instances = {}
        for page in paginator.paginate():
            for db in page.get("DBInstances", []):
                instances[db["DBInstanceIdentifier"]] = {
                    "status": db.get("DBInstanceStatus", "unknown"),
                    "deletion_protection": db.get("DeletionProtection", False),
                }

        self.logger.debug(f"Collected {len(instances)} RDS instances in {region}")
        return instances

    def _delete_regional(self, region: str, resource_id: str, metadata: dict[str, Any]) -> None:
        client = self._create_client("rds", region)

        if metadata.get("deletion_protection"):
            identifier = self.describe(self.qualify(region, resource_id))
            self.logger.info(f"[Remove] Disabling deletion protection on {identifier}")
            client.modify_db_instance(
                DBInstanceIdentifier=resource_id,
                DeletionProtection=False,
                ApplyImmediately=True,
            )

        try:
            client.delete_db_instance(
                DBInstanceIdentifier=resource_id,
                SkipFinalSnapshot=True,
                DeleteAutomatedBackups=True,
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if not (code == "InvalidDBInstanceState" and metadata.get("status") == "deleting"):
                raise
            self.logger.debug(f"RDS instance {resource_id} is already deleting")

        self._wait_until_absent(self.qualify(region, resource_id), lambda: self._instance_exists(client, resource_id))

    @staticmethod
    def _instance_exists(client: Any, db_instance_id: str) -> bool:
        try:
            client.describe_db_instances(DBInstanceIdentifier=db_instance_id)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("DBInstanceNotFound", "DBInstanceNotFoundFault"):
                return False
            raise
        return True

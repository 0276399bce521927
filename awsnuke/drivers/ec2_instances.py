"""EC2 instance driver."""

from __future__ import annotations

from typing import Any

from botocore.exceptions import ClientError

from ..teardown.driver import RegionalResourceDriver

_LIVE_STATES = ["pending", "running", "stopping", "stopped", "shutting-down"]


class EC2InstancesDriver(RegionalResourceDriver):
    """Terminates EC2 instances and waits for them to reach "terminated"."""

    @property
    def name(self) -> str:
        return "EC2Instances"

    def _fetch_region(self, region: str) -> dict[str, dict[str, Any]]:
        client = self._create_client("ec2", region)
        paginator = client.get_paginator("describe_instances")

        instances = {}
        for page in paginator.paginate(Filters=[{"Name": "instance-state-name", "Values": _LIVE_STATES}]):
            for reservation in page.get("Reservations", []):
                for instance in reservation.get("Instances", []):
                    instances[instance["InstanceId"]] = {"state": instance.get("State", {}).get("Name", "unknown")}

        self.logger.debug(f"Collected {len(instances)} EC2 instances in {region}")
        return instances

    def _delete_regional(self, region: str, resource_id: str, metadata: dict[str, Any]) -> None:
        client = self._create_client("ec2", region)

        if self._termination_protected(client, resource_id):
            self.logger.info(f"[Remove] Disabling termination protection on {self.qualify(region, resource_id)}")
            client.modify_instance_attribute(InstanceId=resource_id, DisableApiTermination={"Value": False})

        client.terminate_instances(InstanceIds=[resource_id])
        self._wait_until_absent(self.qualify(region, resource_id), lambda: self._instance_exists(client, resource_id))

    @staticmethod
    def _termination_protected(client: Any, instance_id: str) -> bool:
        response = client.describe_instance_attribute(InstanceId=instance_id, Attribute="disableApiTermination")
        return bool(response.get("DisableApiTermination", {}).get("Value", False))

    @staticmethod
    def _instance_exists(client: Any, instance_id: str) -> bool:
        try:
            response = client.describe_instances(InstanceIds=[instance_id])
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "InvalidInstanceID.NotFound":
                return False
            raise

        for reservation in response.get("Reservations", []):
            for instance in reservation.get("Instances", []):
                if instance.get("State", {}).get("Name") != "terminated":
                    return True
        return False

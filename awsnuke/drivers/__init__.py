"""Concrete AWS resource drivers."""

from __future__ import annotations

from ..teardown.driver import BaseResourceDriver
from .cloudcontrol import CloudControlDriver
from .ec2_instances import EC2InstancesDriver
from .rds_instances import RDSInstancesDriver
from .s3_buckets import S3BucketsDriver
from .security_groups import SecurityGroupsDriver


def default_drivers() -> list[BaseResourceDriver]:
    """Build the fixed list of supported resource types."""
    return [
        EC2InstancesDriver(),
        RDSInstancesDriver(),
        SecurityGroupsDriver(),
        S3BucketsDriver(),
        CloudControlDriver("LogGroups", "AWS::Logs::LogGroup"),
        CloudControlDriver("SQSQueues", "AWS::SQS::Queue"),
    ]


__all__ = [
    "CloudControlDriver",
    "EC2InstancesDriver",
    "RDSInstancesDriver",
    "S3BucketsDriver",
    "SecurityGroupsDriver",
    "default_drivers",
]

"""boto3 client factory and account discovery helpers."""

from __future__ import annotations

import logging
from typing import Any, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

# Adaptive retries absorb throttling; eventual-consistency races are left to the scheduler
_BOTO_CONFIG = BotoConfig(retries={"max_attempts": 10, "mode": "adaptive"})


class CredentialValidationError(Exception):
    """Raised when AWS credentials are missing or rejected."""


def create_boto_client(
    service_name: str,
    region_name: Optional[str] = None,
    profile_name: Optional[str] = None,
) -> Any:
    """Create a boto3 client.

    Args:
        service_name: AWS service name (e.g., "ec2")
        region_name: AWS region (optional for global services)
        profile_name: AWS profile name (optional)

    Returns:
        boto3 client
    """
    session = boto3.Session(profile_name=profile_name)
    return session.client(service_name, region_name=region_name, config=_BOTO_CONFIG)


def get_account_id(profile_name: Optional[str] = None) -> str:
    """Resolve the AWS account ID of the active credentials.

    Raises:
        CredentialValidationError: If credentials are missing or invalid
    """
    try:
        sts = create_boto_client("sts", profile_name=profile_name)
        return sts.get_caller_identity()["Account"]
    except (ClientError, BotoCoreError) as e:
        raise CredentialValidationError(f"Unable to validate AWS credentials: {e}") from e


def get_enabled_regions(profile_name: Optional[str] = None) -> list[str]:
    """List regions enabled for the account, sorted by name.

    Raises:
        CredentialValidationError: If credentials are missing or invalid
    """
    try:
        ec2 = create_boto_client("ec2", region_name="us-east-1", profile_name=profile_name)
        response = ec2.describe_regions(AllRegions=False)
    except (ClientError, BotoCoreError) as e:
        raise CredentialValidationError(f"Unable to list AWS regions: {e}") from e

    regions = sorted(region["RegionName"] for region in response.get("Regions", []))
    logger.debug(f"Discovered {len(regions)} enabled regions")
    return regions

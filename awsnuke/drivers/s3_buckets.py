"""S3 bucket driver."""

from __future__ import annotations

from typing import Any

from botocore.exceptions import ClientError

from ..teardown.driver import BaseResourceDriver

_DELETE_BATCH_SIZE = 1000
_NOT_FOUND_CODES = ("404", "NoSuchBucket", "NotFound")


class S3BucketsDriver(BaseResourceDriver):
    """Empties and deletes S3 buckets.

    Bucket names are global, so identifiers are unqualified. Each bucket is
    emptied of every object version and delete marker before the bucket itself
    is deleted, then polled with head_bucket until it is gone.
    """

    @property
    def name(self) -> str:
        return "S3Buckets"

    def _fetch(self) -> dict[str, Any]:
        client = self._create_client("s3")
        response = client.list_buckets()

        buckets = {bucket["Name"]: {"region": bucket.get("BucketRegion")} for bucket in response.get("Buckets", [])}
        self.logger.debug(f"Collected {len(buckets)} S3 buckets")
        return buckets

    def _delete_instance(self, identifier: str, metadata: Any) -> None:
        region = (metadata or {}).get("region") or "us-east-1"
        client = self._create_client("s3", region)

        self._empty_bucket(client, identifier)
        client.delete_bucket(Bucket=identifier)
        self._wait_until_absent(identifier, lambda: self._bucket_exists(client, identifier))

    def _empty_bucket(self, client: Any, bucket: str) -> None:
        paginator = client.get_paginator("list_object_versions")
        deleted = 0

        for page in paginator.paginate(Bucket=bucket):
            objects = [
                {"Key": entry["Key"], "VersionId": entry["VersionId"]}
                for entry in page.get("Versions", []) + page.get("DeleteMarkers", [])
            ]
            for start in range(0, len(objects), _DELETE_BATCH_SIZE):
                batch = objects[start : start + _DELETE_BATCH_SIZE]
                response = client.delete_objects(Bucket=bucket, Delete={"Objects": batch, "Quiet": True})
                errors = response.get("Errors", [])
                if errors:
                    first = errors[0]
                    raise RuntimeError(
                        f"{first.get('Code', 'Unknown')}: failed to delete {len(errors)} objects from bucket "
                        f"{bucket} (first: {first.get('Key')}: {first.get('Message', '')})"
                    )
                deleted += len(batch)

        if deleted:
            self.logger.debug(f"Deleted {deleted} object versions from bucket {bucket}")

    @staticmethod
    def _bucket_exists(client: Any, bucket: str) -> bool:
        try:
            client.head_bucket(Bucket=bucket)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES:
                return False
            raise
        return True

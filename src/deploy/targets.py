"""Origin storage and edge cache collaborators used by the deploy orchestrator."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import Protocol

from botocore.exceptions import ClientError

from src.config import MANIFEST_KEY
from src.deploy.snapshot import AssetSnapshot
from src.helpers.aws_client import get_client
from src.helpers.retry import error_code

logger = logging.getLogger(__name__)


class StorageTarget(Protocol):
    identity: str

    def put(self, path: str, content: bytes, content_type: str) -> None: ...

    def delete(self, path: str) -> None: ...


class EdgeCache(Protocol):
    def invalidate(self, path_patterns: Iterable[str], caller_reference: str) -> str: ...


class S3StorageTarget:
    """Site bucket. S3 is strongly consistent for reads after a successful put."""

    def __init__(self, bucket: str, s3_client=None):
        self.bucket = bucket
        self.identity = f"s3://{bucket}"
        self._s3 = s3_client or get_client("s3")

    def put(self, path: str, content: bytes, content_type: str) -> None:
        self._s3.put_object(
            Bucket=self.bucket,
            Key=path,
            Body=content,
            ContentType=content_type,
        )

    def delete(self, path: str) -> None:
        self._s3.delete_object(Bucket=self.bucket, Key=path)

    def load_manifest(self, key: str = MANIFEST_KEY) -> AssetSnapshot | None:
        """Load the snapshot manifest of the last successful deploy, if any."""
        try:
            response = self._s3.get_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if error_code(exc) in {"404", "NoSuchKey", "NotFound"}:
                return None
            raise
        return AssetSnapshot.from_manifest(json.loads(response["Body"].read()))

    def save_manifest(self, snapshot: AssetSnapshot, key: str = MANIFEST_KEY) -> None:
        """Save the snapshot manifest (write to temp key, then copy)."""
        temp_key = f"{key}.tmp"
        body = json.dumps(snapshot.to_manifest(), indent=2, sort_keys=True)
        self._s3.put_object(
            Bucket=self.bucket,
            Key=temp_key,
            Body=body.encode(),
            ContentType="application/json",
        )
        self._s3.copy_object(
            Bucket=self.bucket,
            CopySource={"Bucket": self.bucket, "Key": temp_key},
            Key=key,
        )
        self._s3.delete_object(Bucket=self.bucket, Key=temp_key)


class CloudFrontEdgeCache:
    """Edge cache backed by a CloudFront distribution.

    Acceptance only means CloudFront queued the purge; it completes later.
    """

    def __init__(self, distribution_id: str, cloudfront_client=None):
        self.distribution_id = distribution_id
        self._cloudfront = cloudfront_client or get_client("cloudfront")

    def invalidate(self, path_patterns: Iterable[str], caller_reference: str) -> str:
        items = sorted(path_patterns)
        response = self._cloudfront.create_invalidation(
            DistributionId=self.distribution_id,
            InvalidationBatch={
                "Paths": {"Quantity": len(items), "Items": items},
                "CallerReference": caller_reference,
            },
        )
        invalidation = response["Invalidation"]
        logger.info(
            f"CloudFront invalidation {invalidation['Id']} on {self.distribution_id}: "
            f"{invalidation.get('Status', 'unknown')}"
        )
        return invalidation["Id"]

"""Publish a built site directory to its bucket and distribution."""

from __future__ import annotations

import logging
from pathlib import Path

from src.config import (
    SITE_CONFIG,
    get_distribution_id,
    get_retry_attempts,
    get_retry_backoff_seconds,
    get_site_bucket,
    get_upload_workers,
)
from src.deploy.invalidator import DeployInvalidator, InvalidationRequest, deploy_lock
from src.deploy.snapshot import AssetSnapshot
from src.deploy.targets import CloudFrontEdgeCache, S3StorageTarget

logger = logging.getLogger(__name__)


def publish_site(
    site_dir: str | Path,
    *,
    bucket: str | None = None,
    distribution_id: str | None = None,
    prune: bool = True,
    s3_client=None,
    cloudfront_client=None,
) -> InvalidationRequest:
    """Upload ``site_dir`` as a new snapshot and invalidate the edge cache.

    The previous snapshot is read from the manifest stored in the bucket and
    the manifest is only replaced once the upload phase has succeeded. The
    target's deploy lock is held from the manifest read to the manifest write.
    """
    if bucket is None:
        bucket = get_site_bucket()
    if distribution_id is None:
        distribution_id = get_distribution_id()

    snapshot = AssetSnapshot.from_directory(site_dir, root_document=SITE_CONFIG.root_document)
    storage = S3StorageTarget(bucket, s3_client=s3_client)
    edge_cache = CloudFrontEdgeCache(distribution_id, cloudfront_client=cloudfront_client)

    invalidator = DeployInvalidator(
        storage,
        edge_cache,
        config=SITE_CONFIG,
        max_workers=get_upload_workers(),
        attempts=get_retry_attempts(),
        backoff_seconds=get_retry_backoff_seconds(),
        prune=prune,
    )
    with deploy_lock(storage.identity):
        previous = storage.load_manifest()
        if previous is not None:
            changed = snapshot.diff(previous)
            logger.info(f"{len(changed)} file(s) changed since the last deploy")
        request = invalidator.deploy(snapshot, previous)
        storage.save_manifest(snapshot)
    return request

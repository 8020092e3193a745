"""Publish an asset snapshot to origin storage, then invalidate the edge cache.

Ordering is the whole point of this module: every upload (and prune) must
have completed before any invalidation is issued, otherwise the edge can
refetch paths whose new content is not in the bucket yet.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from urllib.parse import quote

from botocore.exceptions import BotoCoreError, ClientError

from src.config import SITE_CONFIG, SiteConfig
from src.deploy.errors import InvalidationFailure, UploadFailure
from src.deploy.snapshot import AssetSnapshot
from src.deploy.targets import EdgeCache, StorageTarget
from src.helpers.retry import call_with_retries, is_transient_error

logger = logging.getLogger(__name__)

AWS_ERRORS = (ClientError, BotoCoreError, OSError)

# Unreserved URL characters plus the path separator. Everything else, a
# literal `*` included, is percent-encoded in invalidation paths.
_PATH_SAFE_CHARS = "/-._~"

_locks_guard = threading.Lock()
_target_locks: dict[str, threading.RLock] = {}


def deploy_lock(identity: str) -> threading.RLock:
    """Return the process-wide lock serializing deploys to one storage target.

    Reentrant so callers can hold it across manifest load, deploy and save.
    """
    with _locks_guard:
        lock = _target_locks.get(identity)
        if lock is None:
            lock = threading.RLock()
            _target_locks[identity] = lock
        return lock


@dataclass(frozen=True)
class InvalidationRequest:
    path_patterns: frozenset[str]
    caller_reference: str
    invalidation_id: str | None = None

    @property
    def accepted(self) -> bool:
        return self.invalidation_id is not None


def _covered_by(path: str, prefix_patterns: tuple[str, ...]) -> bool:
    for pattern in prefix_patterns:
        if pattern.endswith("*") and path.startswith(pattern[:-1]):
            return True
        if path == pattern:
            return True
    return False


def invalidation_paths(
    snapshot: AssetSnapshot,
    previous: AssetSnapshot | None,
    config: SiteConfig = SITE_CONFIG,
) -> frozenset[str]:
    """Compute the cache paths to purge for publishing ``snapshot`` over ``previous``."""
    patterns = set(config.section_prefixes)
    patterns.update(config.root_paths)

    explicit = sorted(
        quote(path, safe=_PATH_SAFE_CHARS)
        for path in (f"/{rel}" for rel in snapshot.diff(previous))
        if not _covered_by(path, config.section_prefixes) and path not in patterns
    )
    if len(explicit) > config.max_invalidation_paths:
        patterns.add("/*")
    else:
        patterns.update(explicit)
    return frozenset(patterns)


class DeployInvalidator:
    """Upload-then-invalidate pipeline for one storage target and edge cache."""

    def __init__(
        self,
        storage: StorageTarget,
        edge_cache: EdgeCache,
        *,
        config: SiteConfig = SITE_CONFIG,
        max_workers: int = 8,
        attempts: int = 4,
        backoff_seconds: float = 1.0,
        prune: bool = True,
        sleep=time.sleep,
    ):
        self.storage = storage
        self.edge_cache = edge_cache
        self.config = config
        self.max_workers = max(1, max_workers)
        self.attempts = attempts
        self.backoff_seconds = backoff_seconds
        self.prune = prune
        self._sleep = sleep

    def _retry(self, fn, *args, description: str, retryable=AWS_ERRORS):
        return call_with_retries(
            fn,
            *args,
            attempts=self.attempts,
            backoff_seconds=self.backoff_seconds,
            retryable=retryable,
            should_retry=is_transient_error,
            sleep=self._sleep,
            description=description,
        )

    def _upload_one(self, path: str, snapshot: AssetSnapshot) -> None:
        asset = snapshot.files[path]
        if asset.content is None:
            raise ValueError(f"Snapshot file has no content loaded: {path}")
        self._retry(
            self.storage.put,
            path,
            asset.content,
            asset.content_type,
            description=f"upload {path}",
        )

    def upload(self, snapshot: AssetSnapshot) -> None:
        """Upload every file and block until all of them have finished.

        Raises UploadFailure if any file could not be written.
        """
        failures: dict[str, str] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {
                pool.submit(self._upload_one, path, snapshot): path
                for path in sorted(snapshot.files)
            }
            wait(futures)
        for future, path in futures.items():
            exc = future.exception()
            if exc is not None:
                logger.error(f"Upload of {path} to {self.storage.identity} failed: {exc}")
                failures[path] = str(exc)
        if failures:
            raise UploadFailure(failures)
        logger.info(f"Uploaded {len(snapshot.files)} file(s) to {self.storage.identity}")

    def remove_stale(self, snapshot: AssetSnapshot, previous: AssetSnapshot | None) -> list[str]:
        removed = sorted(snapshot.removed_since(previous))
        failures: dict[str, str] = {}
        for path in removed:
            try:
                self._retry(self.storage.delete, path, description=f"delete {path}")
            except AWS_ERRORS as e:
                failures[path] = str(e)
        if failures:
            raise UploadFailure(failures)
        if removed:
            logger.info(f"Removed {len(removed)} stale file(s) from {self.storage.identity}")
        return removed

    def invalidate(self, path_patterns: frozenset[str]) -> InvalidationRequest:
        """Issue the invalidation; failures are logged, never raised."""
        caller_reference = f"deploy-{uuid.uuid4().hex}"
        try:
            invalidation_id = self._retry(
                self._issue,
                path_patterns,
                caller_reference,
                description="invalidation",
                retryable=(InvalidationFailure, *AWS_ERRORS),
            )
        except (InvalidationFailure, *AWS_ERRORS) as e:
            logger.warning(
                f"Cache invalidation failed: {e}. "
                "New content is live in storage; cached copies expire by TTL."
            )
            invalidation_id = None
        return InvalidationRequest(
            path_patterns=path_patterns,
            caller_reference=caller_reference,
            invalidation_id=invalidation_id,
        )

    def _issue(self, path_patterns: frozenset[str], caller_reference: str) -> str:
        invalidation_id = self.edge_cache.invalidate(path_patterns, caller_reference)
        if not invalidation_id:
            raise InvalidationFailure("Edge cache did not return an invalidation id")
        return invalidation_id

    def deploy(self, snapshot: AssetSnapshot, previous: AssetSnapshot | None = None) -> InvalidationRequest:
        """Publish ``snapshot`` and purge the affected cache paths.

        Deploys to the same storage target are serialized. Upload failures
        abort before anything is invalidated.
        """
        with deploy_lock(self.storage.identity):
            logger.info(
                f"Deploying {len(snapshot.files)} file(s) to {self.storage.identity}"
                + (" (first deploy)" if previous is None else "")
            )
            self.upload(snapshot)
            if self.prune:
                self.remove_stale(snapshot, previous)

            path_patterns = invalidation_paths(snapshot, previous, self.config)
            request = self.invalidate(path_patterns)
            if request.accepted:
                logger.info(f"Invalidation {request.invalidation_id} issued for {len(path_patterns)} path(s)")
            return request

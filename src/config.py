"""Runtime configuration helpers shared across the edge function and deploy tooling."""

from __future__ import annotations

import os
from dataclasses import dataclass

STATIC_EXTENSIONS = (
    "html",
    "js",
    "css",
    "json",
    "png",
    "jpg",
    "jpeg",
    "gif",
    "svg",
    "ico",
    "woff",
    "woff2",
    "ttf",
    "eot",
    "xml",
    "txt",
    "pdf",
    "zip",
)

# Site sections rebuilt on every deploy.
SECTION_PREFIXES = (
    "/tutorials/*",
    "/pt-br/*",
    "/en/*",
    "/authors/*",
    "/categories/*",
    "/series/*",
    "/tags/*",
)

# Deploy bookkeeping; the bucket policy denies CloudFront reads under this prefix.
DEPLOY_STATE_PREFIX = "_deploy/"
MANIFEST_KEY = f"{DEPLOY_STATE_PREFIX}manifest.json"


@dataclass(frozen=True)
class SiteConfig:
    """Immutable site settings injected into the rewriter and the invalidator."""

    static_extensions: tuple[str, ...] = STATIC_EXTENSIONS
    section_prefixes: tuple[str, ...] = SECTION_PREFIXES
    root_document: str = "index.html"
    max_invalidation_paths: int = 100

    @property
    def root_paths(self) -> tuple[str, ...]:
        """Paths invalidated on every deploy regardless of what changed."""
        return (f"/{self.root_document}", "/")


SITE_CONFIG = SiteConfig()


def _required_env(name: str) -> str:
    value = os.environ.get(name, "").strip()
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _positive_int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a positive integer, got: {raw}") from exc
    if value <= 0:
        raise RuntimeError(f"{name} must be > 0, got: {raw}")
    return value


def get_bucket_prefix() -> str:
    """Get the shared bucket prefix used across this project."""
    return _required_env("WEBSITE_BUCKET_PREFIX")


def get_site_bucket() -> str:
    """Get the S3 bucket holding the published site assets."""
    explicit = os.environ.get("WEBSITE_BUCKET", "").strip()
    if explicit:
        return explicit
    return f"{get_bucket_prefix()}-site"


def get_distribution_id() -> str:
    """Get the CloudFront distribution id fronting the site bucket."""
    return _required_env("WEBSITE_DISTRIBUTION_ID")


def get_deploy_role_arn() -> str:
    return _required_env("WEBSITE_DEPLOY_ROLE_ARN")


def get_upload_workers() -> int:
    """Get the number of parallel uploads per deploy."""
    return _positive_int_env("WEBSITE_UPLOAD_WORKERS", 8)


def get_retry_attempts() -> int:
    """Get the bounded number of attempts for uploads and invalidations."""
    return _positive_int_env("WEBSITE_RETRY_ATTEMPTS", 4)


def get_retry_backoff_seconds() -> float:
    raw = os.environ.get("WEBSITE_RETRY_BACKOFF_SECONDS", "").strip()
    if not raw:
        return 1.0
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(f"WEBSITE_RETRY_BACKOFF_SECONDS must be a number, got: {raw}") from exc
    return max(0.0, value)

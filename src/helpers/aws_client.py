"""Boto3 client factory for AWS and LocalStack."""

from __future__ import annotations

import os
from urllib.parse import urlparse

import boto3
from botocore.config import Config

USER_AGENT_EXTRA = "website-deploy/1.0"

_LOCAL_HOSTS = {"localhost", "127.0.0.1", "::1", "localstack"}


def _region() -> str:
    for name in ("AWS_DEFAULT_REGION", "AWS_REGION"):
        value = os.environ.get(name, "").strip()
        if value:
            return value
    raise RuntimeError("Missing required environment variable: AWS_DEFAULT_REGION")


def _service_endpoint(service: str) -> str | None:
    specific_key = f"AWS_ENDPOINT_URL_{service.replace('-', '_').upper()}"
    return os.environ.get(specific_key) or os.environ.get("AWS_ENDPOINT_URL")


def is_local_endpoint(endpoint: str | None) -> bool:
    if not endpoint:
        return False
    host = (urlparse(endpoint).hostname or "").lower()
    return host in _LOCAL_HOSTS or "localstack" in host


def _local_auth_kwargs(endpoint: str | None) -> dict[str, str]:
    """LocalStack accepts any credentials; default to `test` when none are set."""
    if not is_local_endpoint(endpoint):
        return {}
    return {
        "aws_access_key_id": os.environ.get("AWS_ACCESS_KEY_ID", "").strip() or "test",
        "aws_secret_access_key": os.environ.get("AWS_SECRET_ACCESS_KEY", "").strip() or "test",
        "aws_session_token": os.environ.get("AWS_SESSION_TOKEN", "").strip() or "test",
    }


def _service_config(service: str, endpoint: str | None) -> Config:
    options: dict = {"user_agent_extra": USER_AGENT_EXTRA}
    if service == "s3":
        addressing = os.environ.get("AWS_S3_ADDRESSING_STYLE", "").strip().lower()
        if addressing not in {"path", "virtual", "auto"}:
            addressing = "path" if is_local_endpoint(endpoint) else ""
        if addressing:
            options["s3"] = {"addressing_style": addressing}
    return Config(**options)


def get_client(service: str):
    """Create a boto3 client for the given service."""
    endpoint = _service_endpoint(service)
    return boto3.client(
        service,
        region_name=_region(),
        endpoint_url=endpoint,
        config=_service_config(service, endpoint),
        **_local_auth_kwargs(endpoint),
    )

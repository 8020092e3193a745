"""Shared test fixtures."""

import base64
import json
import os

import boto3
import pytest
from moto import mock_aws

from src.deploy.snapshot import AssetFile, AssetSnapshot


@pytest.fixture(autouse=True)
def default_project_env(monkeypatch):
    """Provide deterministic default env vars for tests."""
    defaults = {
        "AWS_ACCESS_KEY_ID": "testing",
        "AWS_SECRET_ACCESS_KEY": "testing",
        "AWS_SECURITY_TOKEN": "testing",
        "AWS_SESSION_TOKEN": "testing",
        "AWS_DEFAULT_REGION": "us-east-1",
        "WEBSITE_BUCKET_PREFIX": "site",
        "WEBSITE_REMOVAL_POLICY": "retain",
        "WEBSITE_GITHUB_REPOS": "acme/site,acme/site:ref:refs/heads/main",
        "WEBSITE_DISTRIBUTION_ID": "E2TESTDIST",
        "WEBSITE_RETRY_BACKOFF_SECONDS": "0",
    }
    for key, value in defaults.items():
        monkeypatch.setenv(key, value)
    for key in ("AWS_ENDPOINT_URL", "AWS_ENDPOINT_URL_S3", "WEBSITE_BUCKET"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


@pytest.fixture
def s3_client(aws_credentials):
    """Create a mocked S3 client with the site bucket."""
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket="site-site")
        yield client


def make_snapshot(files: dict[str, bytes]) -> AssetSnapshot:
    return AssetSnapshot(files={path: AssetFile.from_bytes(path, body) for path, body in files.items()})


@pytest.fixture
def sample_snapshot():
    """Small built site: root page, a section page, a top-level page and assets."""
    return make_snapshot({
        "index.html": b"<html>home</html>",
        "en/posts/hello/index.html": b"<html>hello</html>",
        "about/index.html": b"<html>about</html>",
        "css/site.css": b"body{}",
        "js/app.js": b"console.log(1)",
    })


def make_token(claims: dict) -> str:
    """Build an unsigned JWT carrying ``claims``."""

    def _part(data: dict) -> str:
        raw = base64.urlsafe_b64encode(json.dumps(data).encode()).decode()
        return raw.rstrip("=")

    return f"{_part({'alg': 'RS256', 'typ': 'JWT'})}.{_part(claims)}.c2lnbmF0dXJl"


@pytest.fixture
def snapshot_factory():
    return make_snapshot


@pytest.fixture
def token_factory():
    return make_token

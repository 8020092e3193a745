"""CDK environment configuration (AWS-only)."""

import os

REQUIRED_KEYS = (
    "AWS_DEFAULT_REGION",
    "WEBSITE_BUCKET_PREFIX",
    "WEBSITE_REMOVAL_POLICY",
    "WEBSITE_GITHUB_REPOS",
)


def _required(name: str) -> str:
    value = os.environ.get(name, "").strip()
    if not value:
        raise ValueError(f"Missing required environment variable: {name}")
    return value


def _required_removal_policy() -> str:
    value = _required("WEBSITE_REMOVAL_POLICY").lower()
    if value not in {"destroy", "retain"}:
        raise ValueError("WEBSITE_REMOVAL_POLICY must be one of: destroy, retain")
    return value


def _get_csv(name: str) -> list[str]:
    raw = os.environ.get(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


def _get_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    if raw in {"1", "true", "yes"}:
        return True
    if raw in {"0", "false", "no"}:
        return False
    raise ValueError(f"{name} must be true or false, got: {raw}")


def get_env_config() -> dict:
    """Get environment-specific configuration."""
    for key in REQUIRED_KEYS:
        _required(key)

    github_repos = _get_csv("WEBSITE_GITHUB_REPOS")
    if not github_repos:
        raise ValueError("WEBSITE_GITHUB_REPOS must list at least one owner/repo[:filter]")

    return {
        "account": os.environ.get("CDK_DEFAULT_ACCOUNT"),
        "region": _required("AWS_DEFAULT_REGION"),
        "bucket_prefix": _required("WEBSITE_BUCKET_PREFIX"),
        "removal_policy": _required_removal_policy(),
        "github_repos": github_repos,
        "deploy_role_name": os.environ.get("WEBSITE_DEPLOY_ROLE_NAME", "").strip() or "GitHubDeployRole",
        "asset_dir": os.environ.get("WEBSITE_ASSET_DIR", "").strip() or "public",
        "deploy_assets": _get_bool("WEBSITE_STACK_DEPLOYS_ASSETS", True),
    }

#!/usr/bin/env python3
"""Publish the built site to S3 and invalidate CloudFront.

Examples:
  python tools/publish_site.py --site-dir public
  python tools/publish_site.py --site-dir public --web-identity-token-file "$TOKEN_FILE"

In GitHub Actions the token file holds the job's OIDC token (audience
`sts.amazonaws.com`); it is checked against WEBSITE_GITHUB_REPOS and exchanged
for one-hour credentials on WEBSITE_DEPLOY_ROLE_ARN before anything is uploaded.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from env_loader import load_project_env, require_env_vars
from src.config import get_deploy_role_arn
from src.deploy.credentials import mint_credentials
from src.deploy.errors import AuthorizationDenied, UploadFailure
from src.deploy.publish import publish_site
from src.deploy.trust import RepositoryConfig, TrustClaim


def _trust_claim_from_env() -> TrustClaim:
    raw = os.environ.get("WEBSITE_GITHUB_REPOS", "")
    repos = [RepositoryConfig.parse(item) for item in raw.split(",") if item.strip()]
    if not repos:
        raise SystemExit("WEBSITE_GITHUB_REPOS must list at least one owner/repo[:filter]")
    return TrustClaim.for_repositories(repos)


def _assume_deploy_role(token_file: Path) -> None:
    token = token_file.read_text().strip()
    credentials = mint_credentials(token, _trust_claim_from_env(), role_arn=get_deploy_role_arn())
    os.environ["AWS_ACCESS_KEY_ID"] = credentials["AccessKeyId"]
    os.environ["AWS_SECRET_ACCESS_KEY"] = credentials["SecretAccessKey"]
    os.environ["AWS_SESSION_TOKEN"] = credentials["SessionToken"]
    print(f"[publish] Assumed deploy role (expires {credentials['Expiration']})")


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--site-dir", default=str(PROJECT_ROOT / "public"), help="Built site directory")
    parser.add_argument("--bucket", default=None, help="Override WEBSITE_BUCKET / <prefix>-site")
    parser.add_argument("--distribution-id", default=None, help="Override WEBSITE_DISTRIBUTION_ID")
    parser.add_argument("--no-prune", action="store_true", help="Keep objects removed from the site")
    parser.add_argument("--web-identity-token-file", default=None, help="OIDC token to exchange for credentials")
    parser.add_argument("--skip-env-files", action="store_true", help="Use only the process environment")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if not args.skip_env_files:
        load_project_env()
    require_env_vars(["AWS_DEFAULT_REGION"])

    try:
        if args.web_identity_token_file:
            _assume_deploy_role(Path(args.web_identity_token_file))
        request = publish_site(
            args.site_dir,
            bucket=args.bucket,
            distribution_id=args.distribution_id,
            prune=not args.no_prune,
        )
    except AuthorizationDenied as exc:
        print(f"[publish] {exc}", file=sys.stderr)
        return 1
    except UploadFailure as exc:
        print(f"[publish] Deploy aborted, nothing invalidated: {exc}", file=sys.stderr)
        return 1

    print(f"[publish] Invalidated {len(request.path_patterns)} path pattern(s):")
    for pattern in sorted(request.path_patterns):
        print(f"  {pattern}")
    if not request.accepted:
        print("[publish] WARNING: invalidation was not accepted; cached pages refresh on TTL expiry")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

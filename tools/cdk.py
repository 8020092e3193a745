#!/usr/bin/env python3
"""Small CDK wrapper that loads env files before invoking the CDK CLI.

Examples:
  python tools/cdk.py synth
  python tools/cdk.py diff WebsiteDeployStack
  python tools/cdk.py deploy WebsiteDeployStack --require-approval never
"""

from __future__ import annotations

import argparse
import os
import shlex
import shutil
import subprocess
import sys
from pathlib import Path

from env_loader import PROJECT_ROOT, load_project_env, require_env_vars


def _resolve_cdk_command() -> list[str]:
    cdk = shutil.which("cdk")
    if cdk:
        return [cdk]

    npx = shutil.which("npx")
    if npx:
        return [npx, "cdk"]

    raise SystemExit("Could not find `cdk` or `npx` on PATH. Install the AWS CDK CLI first.")


def _check_asset_dir() -> None:
    if os.environ.get("WEBSITE_STACK_DEPLOYS_ASSETS", "true").strip().lower() in {"0", "false", "no"}:
        return
    asset_dir = PROJECT_ROOT / (os.environ.get("WEBSITE_ASSET_DIR", "").strip() or "public")
    if not asset_dir.is_dir():
        raise SystemExit(
            f"Site assets not found at {asset_dir}. Build the site first or set "
            "WEBSITE_STACK_DEPLOYS_ASSETS=false."
        )


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--shared-env-file",
        default=str(PROJECT_ROOT / ".env.shared"),
        help="Shared env file to load (default: .env.shared)",
    )
    parser.add_argument(
        "--env-file",
        default=str(PROJECT_ROOT / ".env.local"),
        help="Optional local env override file (default: .env.local)",
    )
    parser.add_argument("cdk_args", nargs=argparse.REMAINDER, help="Arguments passed to the CDK CLI")
    args = parser.parse_args()

    if not args.cdk_args:
        raise SystemExit("Missing CDK arguments. Example: python tools/cdk.py diff WebsiteDeployStack")

    load_project_env(Path(args.shared_env_file), Path(args.env_file))
    require_env_vars(
        [
            "AWS_DEFAULT_REGION",
            "WEBSITE_BUCKET_PREFIX",
            "WEBSITE_REMOVAL_POLICY",
            "WEBSITE_GITHUB_REPOS",
        ]
    )
    if "deploy" in args.cdk_args:
        _check_asset_dir()

    # Keep CDK app execution (`python3 app.py`) inside the same venv.
    python_bin = str(Path(sys.executable).parent)
    current_path = os.environ.get("PATH", "")
    os.environ["PATH"] = f"{python_bin}{os.pathsep}{current_path}" if current_path else python_bin
    cmd = _resolve_cdk_command() + args.cdk_args

    print(f"[cdk] Running: {shlex.join(cmd)}")
    subprocess.run(cmd, cwd=PROJECT_ROOT, check=True)


if __name__ == "__main__":
    main()

"""Short-lived deploy credentials via OIDC web identity federation."""

from __future__ import annotations

import base64
import binascii
import json
import logging

from src.deploy.errors import AuthorizationDenied
from src.deploy.trust import TrustClaim, authorize
from src.helpers.aws_client import get_client

logger = logging.getLogger(__name__)

# Hard cap; also the deploy role's max session duration.
MAX_SESSION_SECONDS = 3600


def read_token_claims(token: str) -> dict:
    """Decode the (unverified) payload of a JWT. STS does the signature check."""
    parts = token.split(".")
    if len(parts) != 3:
        raise AuthorizationDenied("<unknown>", "token is not a JWT")
    payload = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        return json.loads(base64.urlsafe_b64decode(payload))
    except (binascii.Error, ValueError) as exc:
        raise AuthorizationDenied("<unknown>", f"unreadable token payload: {exc}") from exc


def _token_audience(claims: dict) -> str:
    aud = claims.get("aud", "")
    if isinstance(aud, list):
        return aud[0] if len(aud) == 1 else ""
    return str(aud)


def mint_credentials(
    token: str,
    claim: TrustClaim,
    *,
    role_arn: str,
    session_name: str = "website-deploy",
    sts_client=None,
) -> dict:
    """Exchange a CI identity token for deploy credentials.

    The subject and audience are checked against ``claim`` first; a mismatch
    raises AuthorizationDenied without calling STS.
    """
    claims = read_token_claims(token)
    subject = str(claims.get("sub", ""))
    audience = _token_audience(claims)
    if audience != claim.audience:
        raise AuthorizationDenied(subject, f"audience {audience!r} does not match {claim.audience!r}")
    if not authorize(subject, claim, audience=audience):
        raise AuthorizationDenied(subject)

    sts = sts_client or get_client("sts")
    response = sts.assume_role_with_web_identity(
        RoleArn=role_arn,
        RoleSessionName=session_name,
        WebIdentityToken=token,
        DurationSeconds=MAX_SESSION_SECONDS,
    )
    logger.info(f"Minted deploy credentials for {subject} (expires {response['Credentials']['Expiration']})")
    return response["Credentials"]

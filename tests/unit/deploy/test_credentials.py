"""Tests for deploy credential minting."""

from unittest.mock import MagicMock, patch

import pytest

from src.deploy.credentials import MAX_SESSION_SECONDS, mint_credentials, read_token_claims
from src.deploy.errors import AuthorizationDenied
from src.deploy.trust import TrustClaim

ROLE_ARN = "arn:aws:iam::123456789012:role/GitHubDeployRole"
CLAIM = TrustClaim(subject_patterns=frozenset({"repo:acme/site:*"}))


def _sts():
    sts = MagicMock()
    sts.assume_role_with_web_identity.return_value = {
        "Credentials": {
            "AccessKeyId": "AKIA",
            "SecretAccessKey": "secret",
            "SessionToken": "session",
            "Expiration": "2026-01-01T01:00:00Z",
        }
    }
    return sts


def test_read_token_claims(token_factory):
    token = token_factory({"sub": "repo:acme/site:ref:refs/heads/main", "aud": "sts.amazonaws.com"})
    assert read_token_claims(token)["sub"] == "repo:acme/site:ref:refs/heads/main"


def test_read_token_claims_rejects_non_jwt():
    with pytest.raises(AuthorizationDenied):
        read_token_claims("not-a-token")


def test_mint_credentials_caps_session_at_one_hour(token_factory):
    token = token_factory({"sub": "repo:acme/site:ref:refs/heads/main", "aud": "sts.amazonaws.com"})
    sts = _sts()

    credentials = mint_credentials(token, CLAIM, role_arn=ROLE_ARN, sts_client=sts)

    assert credentials["AccessKeyId"] == "AKIA"
    kwargs = sts.assume_role_with_web_identity.call_args.kwargs
    assert kwargs["DurationSeconds"] == MAX_SESSION_SECONDS == 3600
    assert kwargs["RoleArn"] == ROLE_ARN
    assert kwargs["WebIdentityToken"] == token


def test_mint_credentials_accepts_single_item_audience_list(token_factory):
    token = token_factory({"sub": "repo:acme/site:ref:refs/heads/main", "aud": ["sts.amazonaws.com"]})
    sts = _sts()
    mint_credentials(token, CLAIM, role_arn=ROLE_ARN, sts_client=sts)
    sts.assume_role_with_web_identity.assert_called_once()


def test_mint_credentials_denies_other_repository(token_factory):
    token = token_factory({"sub": "repo:acme/site-other:ref:refs/heads/main", "aud": "sts.amazonaws.com"})
    sts = _sts()

    with pytest.raises(AuthorizationDenied) as exc_info:
        mint_credentials(token, CLAIM, role_arn=ROLE_ARN, sts_client=sts)

    assert exc_info.value.subject == "repo:acme/site-other:ref:refs/heads/main"
    sts.assume_role_with_web_identity.assert_not_called()


def test_mint_credentials_denies_wrong_audience(token_factory):
    token = token_factory({"sub": "repo:acme/site:ref:refs/heads/main", "aud": "https://github.com/acme"})
    sts = _sts()

    with pytest.raises(AuthorizationDenied):
        mint_credentials(token, CLAIM, role_arn=ROLE_ARN, sts_client=sts)
    sts.assume_role_with_web_identity.assert_not_called()


@patch("src.deploy.credentials.get_client")
def test_mint_credentials_uses_default_sts_client(mock_get_client, token_factory):
    mock_get_client.return_value = _sts()
    token = token_factory({"sub": "repo:acme/site:ref:refs/heads/main", "aud": "sts.amazonaws.com"})

    mint_credentials(token, CLAIM, role_arn=ROLE_ARN)

    mock_get_client.assert_called_once_with("sts")

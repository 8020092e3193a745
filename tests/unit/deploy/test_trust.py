"""Tests for OIDC trust matching."""

import pytest

from src.deploy.trust import (
    GITHUB_OIDC_DOMAIN,
    STS_AUDIENCE,
    RepositoryConfig,
    TrustClaim,
    authorize,
    subject_matches,
    subject_patterns,
    trust_conditions,
)

MAIN_SUBJECT = "repo:acme/site:ref:refs/heads/main"


class TestAuthorize:
    def test_exact_pattern_matches(self):
        claim = TrustClaim(subject_patterns=frozenset({MAIN_SUBJECT}))
        assert authorize(MAIN_SUBJECT, claim)

    def test_repo_wildcard_matches(self):
        claim = TrustClaim(subject_patterns=frozenset({"repo:acme/site:*"}))
        assert authorize(MAIN_SUBJECT, claim)
        assert authorize("repo:acme/site:pull_request", claim)

    def test_textually_overlapping_repo_does_not_match(self):
        claim = TrustClaim(subject_patterns=frozenset({"repo:acme/site-other:*"}))
        assert not authorize(MAIN_SUBJECT, claim)

        claim = TrustClaim(subject_patterns=frozenset({"repo:acme/site:*"}))
        assert not authorize("repo:acme/site-other:ref:refs/heads/main", claim)

    def test_exact_pattern_does_not_match_other_branch(self):
        claim = TrustClaim(subject_patterns=frozenset({MAIN_SUBJECT}))
        assert not authorize("repo:acme/site:ref:refs/heads/dev", claim)

    def test_wildcard_needs_a_non_empty_suffix(self):
        assert not subject_matches("repo:acme/site:", "repo:acme/site:*")

    def test_audience_must_match_exactly(self):
        claim = TrustClaim(subject_patterns=frozenset({"repo:acme/site:*"}))
        assert not authorize(MAIN_SUBJECT, claim, audience="https://github.com/acme")
        assert authorize(MAIN_SUBJECT, claim, audience=STS_AUDIENCE)

    def test_empty_claim_authorizes_nobody(self):
        assert not authorize(MAIN_SUBJECT, TrustClaim())


class TestPatternValidation:
    @pytest.mark.parametrize(
        "pattern",
        [
            "repo:acme/*:ref:refs/heads/main",
            "repo:acme/site*",
            "*",
            "repo:*/site:*",
        ],
    )
    def test_invalid_wildcards_are_rejected(self, pattern):
        with pytest.raises(ValueError):
            TrustClaim(subject_patterns=frozenset({pattern}))

    def test_slash_delimited_wildcard_is_allowed(self):
        claim = TrustClaim(subject_patterns=frozenset({"repo:acme/site:ref:refs/heads/*"}))
        assert authorize(MAIN_SUBJECT, claim)


class TestRepositoryConfig:
    def test_subject_patterns_default_to_any_ref(self):
        repos = [
            RepositoryConfig(owner="acme", repo="site"),
            RepositoryConfig(owner="acme", repo="site", filter="ref:refs/heads/main"),
            RepositoryConfig(owner="acme", repo="site"),
        ]
        assert subject_patterns(repos) == ["repo:acme/site:*", MAIN_SUBJECT]

    def test_parse_keeps_colons_in_filter(self):
        repo = RepositoryConfig.parse(" acme/site:ref:refs/heads/main ")
        assert repo == RepositoryConfig(owner="acme", repo="site", filter="ref:refs/heads/main")

    @pytest.mark.parametrize("raw", ["acme", "acme/", "/site", "acme/site/extra"])
    def test_parse_rejects_malformed(self, raw):
        with pytest.raises(ValueError):
            RepositoryConfig.parse(raw)

    def test_for_repositories(self):
        claim = TrustClaim.for_repositories([RepositoryConfig.parse("acme/site")])
        assert claim.audience == STS_AUDIENCE
        assert claim.subject_patterns == frozenset({"repo:acme/site:*"})


def test_trust_conditions_block():
    claim = TrustClaim(subject_patterns=frozenset({MAIN_SUBJECT, "repo:acme/site:*"}))
    conditions = trust_conditions(claim)
    assert conditions == {
        "StringEquals": {f"{GITHUB_OIDC_DOMAIN}:aud": STS_AUDIENCE},
        "StringLike": {f"{GITHUB_OIDC_DOMAIN}:sub": sorted([MAIN_SUBJECT, "repo:acme/site:*"])},
    }

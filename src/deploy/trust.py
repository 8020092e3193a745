"""GitHub Actions OIDC trust rules for the deploy role."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

GITHUB_OIDC_DOMAIN = "token.actions.githubusercontent.com"
STS_AUDIENCE = "sts.amazonaws.com"

_SEPARATORS = (":", "/")


@dataclass(frozen=True)
class RepositoryConfig:
    owner: str
    repo: str
    filter: str | None = None

    @property
    def subject_pattern(self) -> str:
        return f"repo:{self.owner}/{self.repo}:{self.filter or '*'}"

    @classmethod
    def parse(cls, raw: str) -> "RepositoryConfig":
        """Parse ``owner/repo`` or ``owner/repo:<filter>`` (filter may contain colons)."""
        value = raw.strip()
        name, _, ref_filter = value.partition(":")
        owner, slash, repo = name.partition("/")
        if not owner or not slash or not repo or "/" in repo:
            raise ValueError(f"Repository must look like owner/repo[:filter], got: {raw!r}")
        return cls(owner=owner, repo=repo, filter=ref_filter or None)


def _validate_pattern(pattern: str) -> None:
    star = pattern.find("*")
    if star == -1:
        return
    if star != len(pattern) - 1:
        raise ValueError(f"Wildcard is only allowed as a trailing suffix: {pattern!r}")
    if star == 0 or pattern[star - 1] not in _SEPARATORS:
        raise ValueError(f"Wildcard must follow a ':' or '/' separator: {pattern!r}")


@dataclass(frozen=True)
class TrustClaim:
    audience: str = STS_AUDIENCE
    subject_patterns: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        patterns = frozenset(self.subject_patterns)
        for pattern in patterns:
            _validate_pattern(pattern)
        object.__setattr__(self, "subject_patterns", patterns)

    @classmethod
    def for_repositories(
        cls,
        repositories: Iterable[RepositoryConfig],
        audience: str = STS_AUDIENCE,
    ) -> "TrustClaim":
        return cls(audience=audience, subject_patterns=frozenset(subject_patterns(repositories)))


def subject_patterns(repositories: Iterable[RepositoryConfig]) -> list[str]:
    """Build ``repo:<owner>/<repo>:<filter|*>`` patterns, order preserved, no duplicates."""
    seen: set[str] = set()
    out: list[str] = []
    for repo in repositories:
        pattern = repo.subject_pattern
        if pattern not in seen:
            out.append(pattern)
            seen.add(pattern)
    return out


def subject_matches(subject: str, pattern: str) -> bool:
    """Match a subject against one pattern; ``*`` stands for a non-empty suffix."""
    if not pattern.endswith("*"):
        return subject == pattern
    prefix = pattern[:-1]
    return len(subject) > len(prefix) and subject.startswith(prefix)


def authorize(subject: str, claim: TrustClaim, audience: str = STS_AUDIENCE) -> bool:
    """Return True when the token audience and subject satisfy the trust claim."""
    if audience != claim.audience:
        return False
    return any(subject_matches(subject, pattern) for pattern in claim.subject_patterns)


def trust_conditions(claim: TrustClaim, issuer: str = GITHUB_OIDC_DOMAIN) -> dict:
    """IAM condition block for an OIDC principal enforcing ``claim``."""
    return {
        "StringEquals": {f"{issuer}:aud": claim.audience},
        "StringLike": {f"{issuer}:sub": sorted(claim.subject_patterns)},
    }

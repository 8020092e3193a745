"""Deploy error taxonomy."""

from __future__ import annotations


class DeployError(Exception):
    """Base class for deploy failures."""


class UploadFailure(DeployError):
    """One or more assets could not be written to origin storage.

    Raised before any invalidation is issued, so previously served content
    stays in place.
    """

    def __init__(self, failed_paths: dict[str, str]):
        self.failed_paths = dict(failed_paths)
        listed = ", ".join(sorted(self.failed_paths))
        super().__init__(f"Upload failed for {len(self.failed_paths)} file(s): {listed}")


class InvalidationFailure(DeployError):
    """The edge cache did not accept an invalidation request."""


class AuthorizationDenied(DeployError):
    """A deploy identity did not match the trust claim. Never retried."""

    def __init__(self, subject: str, reason: str = "subject does not match any trusted pattern"):
        self.subject = subject
        self.reason = reason
        super().__init__(f"Authorization denied for {subject!r}: {reason}")

"""Bounded retries with exponential backoff for AWS calls."""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from typing import Any, TypeVar

from botocore.exceptions import ClientError

T = TypeVar("T")

logger = logging.getLogger(__name__)

# Error codes AWS returns for throttling and server-side faults.
RETRYABLE_ERROR_CODES = frozenset({
    "Throttling",
    "ThrottlingException",
    "TooManyRequestsException",
    "SlowDown",
    "RequestTimeout",
    "RequestTimeoutException",
    "InternalError",
    "InternalFailure",
    "ServiceUnavailable",
    "TooManyInvalidationsInProgress",
})


def error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", "")).strip()


def is_transient_error(exc: BaseException) -> bool:
    """True for throttling/5xx service errors and connection-level failures.

    Other ClientErrors, such as AccessDenied, are permanent.
    """
    if isinstance(exc, ClientError):
        status = int(exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0) or 0)
        return error_code(exc) in RETRYABLE_ERROR_CODES or status >= 500
    return True


def backoff_seconds_for(
    attempt: int,
    *,
    backoff_seconds: float,
    max_backoff_seconds: float = 30.0,
) -> float:
    """Return the sleep before retrying after the given (0-based) attempt."""
    candidate = max(0.0, float(backoff_seconds)) * (2 ** max(0, attempt))

    # Jitter keeps parallel uploads from retrying in lockstep.
    if candidate > 0:
        candidate *= random.uniform(0.8, 1.2)

    return min(max_backoff_seconds, candidate)


def call_with_retries(
    fn: Callable[..., T],
    *args: Any,
    attempts: int = 3,
    backoff_seconds: float = 1.0,
    max_backoff_seconds: float = 30.0,
    retryable: tuple[type[BaseException], ...] = (Exception,),
    should_retry: Callable[[BaseException], bool] | None = None,
    sleep: Callable[[float], None] = time.sleep,
    description: str = "call",
    **kwargs: Any,
) -> T:
    """Call ``fn`` until it succeeds or ``attempts`` are used up.

    Only exceptions listed in ``retryable`` are retried, and only when
    ``should_retry`` (if given) accepts them. The last error is re-raised
    once attempts run out.
    """
    if attempts < 1:
        attempts = 1

    last_error: BaseException | None = None
    for attempt in range(attempts):
        try:
            return fn(*args, **kwargs)
        except retryable as e:
            last_error = e
            if should_retry is not None and not should_retry(e):
                break
            if attempt < attempts - 1:
                delay = backoff_seconds_for(
                    attempt,
                    backoff_seconds=backoff_seconds,
                    max_backoff_seconds=max_backoff_seconds,
                )
                logger.info(
                    f"{description} failed (attempt {attempt + 1}/{attempts}): {e}; "
                    f"retrying in {delay:.2f}s"
                )
                if delay > 0:
                    sleep(delay)
    assert last_error is not None
    raise last_error

"""Tests for retry.py."""

from unittest.mock import MagicMock

import pytest

from botocore.exceptions import ClientError

from src.helpers.retry import backoff_seconds_for, call_with_retries, is_transient_error


def test_returns_first_success():
    fn = MagicMock(return_value="ok")
    assert call_with_retries(fn, 1, key="v", attempts=3, backoff_seconds=0) == "ok"
    fn.assert_called_once_with(1, key="v")


def test_retries_until_success():
    fn = MagicMock(side_effect=[ConnectionError("a"), ConnectionError("b"), "ok"])
    sleeps = []

    result = call_with_retries(fn, attempts=3, backoff_seconds=1.0, sleep=sleeps.append)

    assert result == "ok"
    assert fn.call_count == 3
    assert len(sleeps) == 2
    assert 0.8 <= sleeps[0] <= 1.2
    assert 1.6 <= sleeps[1] <= 2.4


def test_reraises_last_error_when_exhausted():
    fn = MagicMock(side_effect=ConnectionError("down"))
    with pytest.raises(ConnectionError, match="down"):
        call_with_retries(fn, attempts=2, backoff_seconds=0)
    assert fn.call_count == 2


def test_non_retryable_errors_propagate_immediately():
    fn = MagicMock(side_effect=ValueError("bad input"))
    with pytest.raises(ValueError):
        call_with_retries(fn, attempts=5, backoff_seconds=0, retryable=(OSError,))
    assert fn.call_count == 1


def test_attempts_below_one_still_calls_once():
    fn = MagicMock(return_value=1)
    assert call_with_retries(fn, attempts=0) == 1


def test_backoff_is_capped():
    assert backoff_seconds_for(10, backoff_seconds=1.0, max_backoff_seconds=5.0) == 5.0
    assert backoff_seconds_for(3, backoff_seconds=0) == 0


def _client_error(code, status=400):
    return ClientError(
        {"Error": {"Code": code, "Message": code}, "ResponseMetadata": {"HTTPStatusCode": status}},
        "PutObject",
    )


@pytest.mark.parametrize(
    "exc,expected",
    [
        (_client_error("AccessDenied", 403), False),
        (_client_error("NoSuchBucket", 404), False),
        (_client_error("SlowDown", 503), True),
        (_client_error("Throttling"), True),
        (_client_error("SomethingOdd", 502), True),
        (ConnectionError("reset"), True),
    ],
)
def test_is_transient_error(exc, expected):
    assert is_transient_error(exc) is expected


def test_should_retry_stops_on_permanent_error():
    fn = MagicMock(side_effect=_client_error("AccessDenied", 403))
    sleeps = []
    with pytest.raises(ClientError):
        call_with_retries(
            fn, attempts=4, backoff_seconds=1.0, should_retry=is_transient_error, sleep=sleeps.append
        )
    assert fn.call_count == 1
    assert sleeps == []


def test_should_retry_keeps_retrying_throttling():
    fn = MagicMock(side_effect=[_client_error("SlowDown", 503), "ok"])
    assert call_with_retries(fn, attempts=4, backoff_seconds=0, should_retry=is_transient_error) == "ok"
    assert fn.call_count == 2

import pytest

from core.domain.errors import (
    FORBIDDEN_MESSAGE,
    NETWORK_MESSAGE,
    NOT_FOUND_MESSAGE,
    SERVER_ERROR_MESSAGE,
    SESSION_EXPIRED_MESSAGE,
    ApiError,
    ApiErrorKind,
    kind_for_status,
)
from core.domain.models import RetryPolicy


@pytest.mark.parametrize(
    ("status", "kind"),
    [
        (500, ApiErrorKind.SERVER_ERROR),
        (503, ApiErrorKind.SERVER_ERROR),
        (429, ApiErrorKind.RATE_LIMITED),
        (400, ApiErrorKind.CLIENT_ERROR),
        (404, ApiErrorKind.CLIENT_ERROR),
        (401, ApiErrorKind.CLIENT_ERROR),
    ],
)
def test_kind_for_status(status, kind):
    assert kind_for_status(status) is kind


def test_retryable_kinds():
    assert ApiError(ApiErrorKind.NETWORK, "x").retryable
    assert ApiError(ApiErrorKind.TIMEOUT, "x").retryable
    assert ApiError(ApiErrorKind.SERVER_ERROR, "x", status=500).retryable
    assert ApiError(ApiErrorKind.RATE_LIMITED, "x", status=429).retryable
    assert not ApiError(ApiErrorKind.CLIENT_ERROR, "x", status=400).retryable
    assert not ApiError(ApiErrorKind.PARSE_ERROR, "x").retryable


@pytest.mark.parametrize(
    ("error", "message"),
    [
        (ApiError(ApiErrorKind.NETWORK, "ECONNREFUSED"), NETWORK_MESSAGE),
        (ApiError(ApiErrorKind.SERVER_ERROR, "stack", status=500), SERVER_ERROR_MESSAGE),
        (ApiError(ApiErrorKind.CLIENT_ERROR, "missing", status=404), NOT_FOUND_MESSAGE),
        (ApiError(ApiErrorKind.CLIENT_ERROR, "denied", status=403), FORBIDDEN_MESSAGE),
    ],
)
def test_user_facing_rewrites_by_category(error, message):
    rewritten = error.user_facing()
    assert rewritten.message == message
    assert str(rewritten) == message
    assert rewritten.original_message == error.message
    assert rewritten.kind is error.kind


def test_user_facing_keeps_other_messages():
    error = ApiError(ApiErrorKind.CLIENT_ERROR, "Email is required", status=422)
    assert error.user_facing() is error

    expired = ApiError(ApiErrorKind.CLIENT_ERROR, SESSION_EXPIRED_MESSAGE, status=401)
    assert expired.user_facing() is expired
    assert expired.session_expired


def test_retry_policy_delays():
    policy = RetryPolicy(max_attempts=4, base_delay_ms=1000, rate_limit_delay_ms=5000)

    assert [policy.delay_ms_for(ApiErrorKind.SERVER_ERROR, n) for n in (1, 2, 3)] == [1000, 2000, 3000]
    assert [policy.delay_ms_for(ApiErrorKind.RATE_LIMITED, n) for n in (1, 2, 3)] == [5000, 5000, 5000]

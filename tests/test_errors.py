"""Tests for error translation."""

from __future__ import annotations

import httpx

from dora_scorecard.errors import (
    AuthenticationError,
    GitHubApiError,
    NotFoundError,
    RateLimitError,
    ScorecardError,
    ServerError,
    error_from_response,
)

URL = "https://api.github.com/repos/acme/api/pulls"


def _response(status: int, headers: dict | None = None) -> httpx.Response:
    return httpx.Response(status, headers=headers, request=httpx.Request("GET", URL))


def test_not_found():
    exc = error_from_response(_response(404))
    assert isinstance(exc, NotFoundError)
    assert exc.status_code == 404
    assert URL in str(exc)
    assert not exc.retryable


def test_authentication():
    assert isinstance(error_from_response(_response(401)), AuthenticationError)
    assert isinstance(error_from_response(_response(403)), AuthenticationError)


def test_rate_limit_from_remaining_header():
    exc = error_from_response(
        _response(403, {"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "1700000000"})
    )
    assert isinstance(exc, RateLimitError)
    assert exc.retryable
    assert exc.reset_at == 1700000000.0


def test_secondary_rate_limit_from_retry_after():
    exc = error_from_response(_response(429, {"Retry-After": "60"}))
    assert isinstance(exc, RateLimitError)
    assert exc.reset_at is None


def test_server_error_is_retryable():
    exc = error_from_response(_response(502))
    assert isinstance(exc, ServerError)
    assert exc.retryable


def test_other_client_error():
    exc = error_from_response(_response(422))
    assert type(exc) is GitHubApiError
    assert exc.status_code == 422


def test_response_without_request():
    exc = error_from_response(httpx.Response(500))
    assert "<unknown>" in str(exc)


def test_hierarchy():
    assert issubclass(GitHubApiError, ScorecardError)
    assert issubclass(RateLimitError, GitHubApiError)

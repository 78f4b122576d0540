"""Exception types for dora-scorecard.

Only the GitHub ingestion layer and the CLI raise these; the metrics engine
returns sentinel values instead of raising.
"""

from __future__ import annotations

import httpx


class ScorecardError(Exception):
    """Base exception for all dora-scorecard errors."""


class ConfigurationError(ScorecardError):
    """Raised when command-line configuration is missing or invalid."""


class GitHubApiError(ScorecardError):
    """Raised when a GitHub API request fails."""

    retryable = False

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(GitHubApiError):
    """Token missing, invalid, or lacking the required scopes."""


class NotFoundError(GitHubApiError):
    """Repository or resource does not exist or is not visible to the token."""


class RateLimitError(GitHubApiError):
    """Primary or secondary rate limit exhausted."""

    retryable = True

    def __init__(
        self, message: str, status_code: int | None = None, reset_at: float | None = None
    ) -> None:
        super().__init__(message, status_code)
        self.reset_at = reset_at


class ServerError(GitHubApiError):
    """GitHub returned a 5xx response."""

    retryable = True


def error_from_response(response: httpx.Response) -> GitHubApiError:
    """Translate a failed response into the matching exception."""
    status = response.status_code
    try:
        url = str(response.request.url)
    except RuntimeError:  # response built without a request
        url = "<unknown>"
    if status in (403, 429) and (
        response.headers.get("X-RateLimit-Remaining") == "0"
        or "Retry-After" in response.headers
    ):
        reset = response.headers.get("X-RateLimit-Reset")
        return RateLimitError(
            f"GitHub rate limit exceeded for {url}",
            status,
            reset_at=float(reset) if reset is not None else None,
        )
    if status in (401, 403):
        return AuthenticationError(f"GitHub rejected the token for {url}", status)
    if status == 404:
        return NotFoundError(f"Not found: {url}", status)
    if status >= 500:
        return ServerError(f"GitHub returned {status} for {url}", status)
    return GitHubApiError(f"GitHub returned {status} for {url}", status)

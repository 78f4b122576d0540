"""GitHub REST API client for delivery events."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import httpx

from ..errors import error_from_response
from .rate_limit import RateLimitMonitor

logger = logging.getLogger(__name__)

BASE_URL = "https://api.github.com"


class GitHubClient:
    """Async GitHub REST API client with pagination and rate limit support."""

    def __init__(
        self,
        token: str,
        concurrency: int = 5,
        base_url: str | None = None,
        verify_ssl: bool = True,
    ) -> None:
        headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {token}",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        self._client = httpx.AsyncClient(
            base_url=base_url or BASE_URL,
            headers=headers,
            timeout=30.0,
            verify=verify_ssl,
        )
        self._rate_limit = RateLimitMonitor()
        self._semaphore = asyncio.Semaphore(concurrency)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def _get(
        self, url: str, params: dict[str, Any] | None = None
    ) -> httpx.Response:
        async with self._semaphore:
            await self._rate_limit.wait_if_needed()
            response = await self._client.get(url, params=params)
            self._rate_limit.update(response)
            if response.status_code >= 400:
                raise error_from_response(response)
            return response

    async def _paginate(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        item_key: str | None = None,
        stop_when: Callable[[dict[str, Any]], bool] | None = None,
    ) -> list[Any]:
        """Follow Link headers and collect every item.

        ``item_key`` selects the list inside wrapped responses such as
        ``{"workflow_runs": [...]}``. Pagination ends at the first item
        matching ``stop_when``; that item and the rest are dropped.
        """
        results: list[Any] = []
        params = dict(params or {})
        params.setdefault("per_page", 100)
        next_url: str | None = url

        while next_url is not None:
            response = await self._get(next_url, params)
            data = response.json()
            if item_key is not None and isinstance(data, dict):
                data = data.get(item_key, [])
            items = data if isinstance(data, list) else [data]

            for item in items:
                if stop_when is not None and stop_when(item):
                    return results
                results.append(item)

            next_url = None
            link_header = response.headers.get("Link", "")
            for part in link_header.split(","):
                if 'rel="next"' in part:
                    next_url = part.split(";")[0].strip().strip("<>")
                    params = {}  # URL already contains params
                    break

        return results

    async def list_pull_requests(
        self, owner: str, repo: str, state: str = "all", since: str | None = None
    ) -> list[dict[str, Any]]:
        """List pull requests, newest activity first, back to ``since``."""
        params = {"state": state, "sort": "updated", "direction": "desc"}

        def stale(pr: dict[str, Any]) -> bool:
            return (pr.get("updated_at") or "") < since

        return await self._paginate(
            f"/repos/{owner}/{repo}/pulls", params=params, stop_when=stale if since else None
        )

    async def get_pull_request(
        self, owner: str, repo: str, number: int
    ) -> dict[str, Any]:
        """Single PR, including additions/deletions/changed_files."""
        response = await self._get(f"/repos/{owner}/{repo}/pulls/{number}")
        return response.json()

    async def list_reviews(
        self, owner: str, repo: str, number: int
    ) -> list[dict[str, Any]]:
        return await self._paginate(f"/repos/{owner}/{repo}/pulls/{number}/reviews")

    async def list_deployments(
        self, owner: str, repo: str, environment: str | None = None
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {}
        if environment:
            params["environment"] = environment
        return await self._paginate(
            f"/repos/{owner}/{repo}/deployments", params=params
        )

    async def get_latest_deployment_status(
        self, owner: str, repo: str, deployment_id: int
    ) -> str | None:
        """State of the newest status of a deployment, None if it has none."""
        response = await self._get(
            f"/repos/{owner}/{repo}/deployments/{deployment_id}/statuses",
            params={"per_page": 1},
        )
        statuses = response.json()
        if isinstance(statuses, list) and statuses:
            return statuses[0].get("state")
        return None

    async def list_deployments_with_status(
        self,
        owner: str,
        repo: str,
        environment: str | None = None,
        since: str | None = None,
    ) -> list[dict[str, Any]]:
        """Deployments created at or after ``since``, each with a ``status`` key."""
        deployments = await self.list_deployments(owner, repo, environment=environment)
        if since:
            deployments = [d for d in deployments if d.get("created_at", "") >= since]

        statuses = await asyncio.gather(
            *(
                self.get_latest_deployment_status(owner, repo, d["id"])
                for d in deployments
            )
        )
        logger.debug(
            "%s/%s: fetched %d deployment statuses", owner, repo, len(statuses)
        )
        return [{**d, "status": status} for d, status in zip(deployments, statuses)]

    async def list_workflow_runs(
        self, owner: str, repo: str, since: str | None = None
    ) -> list[dict[str, Any]]:
        """Completed workflow runs created at or after ``since``."""
        params: dict[str, Any] = {"status": "completed"}
        if since:
            params["created"] = f">={since[:10]}"
        return await self._paginate(
            f"/repos/{owner}/{repo}/actions/runs",
            params=params,
            item_key="workflow_runs",
        )

    async def list_issues(
        self,
        owner: str,
        repo: str,
        state: str = "all",
        since: str | None = None,
    ) -> list[dict[str, Any]]:
        """List issues (excluding pull requests) for a repository."""
        params: dict[str, Any] = {
            "state": state,
            "sort": "created",
            "direction": "desc",
        }
        if since:
            params["since"] = since
        results = await self._paginate(
            f"/repos/{owner}/{repo}/issues", params=params
        )
        # GitHub issues API includes PRs; filter them out
        return [i for i in results if "pull_request" not in i]

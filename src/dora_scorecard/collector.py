"""Event collection: fetch, normalize and filter events per repository."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime

import httpx
from rich.progress import Progress, SpinnerColumn, TextColumn

from .errors import AuthenticationError, GitHubApiError
from .github import normalize
from .github.client import GitHubClient
from .models import (
    Deployment,
    Issue,
    PRReviewData,
    PRSizeData,
    PullRequest,
    WorkflowRun,
)

logger = logging.getLogger(__name__)


@dataclass
class CollectOptions:
    environment: str | None = None
    deploy_workflow_patterns: tuple[str, ...] = normalize.DEFAULT_DEPLOY_WORKFLOW_PATTERNS
    exclude_labels: tuple[str, ...] = ()
    exclude_branches: tuple[str, ...] = ()
    incident_labels: tuple[str, ...] = normalize.DEFAULT_INCIDENT_LABELS
    extended: bool = False


@dataclass
class RepositoryEvents:
    repository: str
    prs: list[PullRequest] = field(default_factory=list)
    deployments: list[Deployment] = field(default_factory=list)
    runs: list[WorkflowRun] = field(default_factory=list)
    incidents: list[Issue] = field(default_factory=list)
    review_data: list[PRReviewData] | None = None
    size_data: list[PRSizeData] | None = None


def _iso(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


async def _collect_extended(
    client: GitHubClient, owner: str, repo: str, prs: list[PullRequest]
) -> tuple[list[PRReviewData], list[PRSizeData]]:
    """Per-PR detail and reviews for merged PRs."""
    merged = [pr for pr in prs if pr.merged_at is not None]
    details = await asyncio.gather(
        *(client.get_pull_request(owner, repo, pr.number) for pr in merged)
    )
    reviews = await asyncio.gather(
        *(client.list_reviews(owner, repo, pr.number) for pr in merged)
    )
    repository = f"{owner}/{repo}"
    sized = [normalize.to_pull_request(raw, repository) for raw in details]
    return (
        [normalize.to_review_data(pr, r) for pr, r in zip(merged, reviews)],
        [normalize.to_size_data(pr) for pr in sized],
    )


async def collect_repository_events(
    client: GitHubClient,
    repository: str,
    since: datetime,
    until: datetime,
    options: CollectOptions | None = None,
) -> RepositoryEvents:
    """Fetch all events of ``owner/repo`` inside ``[since, until]``.

    Pull requests are required. Deployments, workflow runs and issues are
    optional sources: a failed fetch is logged and treated as empty.
    """
    options = options or CollectOptions()
    owner, repo = repository.split("/", 1)
    since_iso = _iso(since)

    results = await asyncio.gather(
        client.list_pull_requests(owner, repo, since=since_iso),
        client.list_deployments_with_status(
            owner, repo, environment=options.environment, since=since_iso
        ),
        client.list_workflow_runs(owner, repo, since=since_iso),
        client.list_issues(owner, repo, since=since_iso),
        return_exceptions=True,
    )
    raw_prs, raw_deployments, raw_runs, raw_issues = results

    if isinstance(raw_prs, BaseException):
        raise raw_prs
    if isinstance(raw_deployments, Exception):
        logger.warning("%s: error fetching deployments: %s", repository, raw_deployments)
        raw_deployments = []
    if isinstance(raw_runs, Exception):
        logger.warning("%s: error fetching workflow runs: %s", repository, raw_runs)
        raw_runs = []
    if isinstance(raw_issues, Exception):
        logger.warning("%s: error fetching issues: %s", repository, raw_issues)
        raw_issues = []

    prs = [
        normalize.to_pull_request(raw, repository)
        for raw in normalize.exclude_labelled(raw_prs, options.exclude_labels)
    ]
    prs = normalize.exclude_branches(prs, options.exclude_branches)
    prs = normalize.pull_requests_in_period(prs, since, until)

    deployments = normalize.created_in_period(
        (normalize.to_deployment(raw, repository) for raw in raw_deployments),
        since,
        until,
    )
    runs = normalize.match_deploy_workflows(
        normalize.created_in_period(
            (normalize.to_workflow_run(raw, repository) for raw in raw_runs),
            since,
            until,
        ),
        options.deploy_workflow_patterns,
    )
    incidents = normalize.select_incidents(
        normalize.created_in_period(
            (normalize.to_issue(raw, repository) for raw in raw_issues), since, until
        ),
        options.incident_labels,
    )

    events = RepositoryEvents(
        repository=repository,
        prs=prs,
        deployments=deployments,
        runs=runs,
        incidents=incidents,
    )
    if options.extended:
        events.review_data, events.size_data = await _collect_extended(
            client, owner, repo, prs
        )

    logger.info(
        "%s: %d PRs, %d deployments, %d deploy runs, %d incidents",
        repository,
        len(prs),
        len(deployments),
        len(runs),
        len(incidents),
    )
    return events


async def collect_all(
    client: GitHubClient,
    repositories: list[str],
    since: datetime,
    until: datetime,
    options: CollectOptions | None = None,
) -> tuple[list[RepositoryEvents], list[str]]:
    """Collect every repository concurrently.

    Returns the collected events and the repositories that failed.
    Authentication failures abort the whole run.
    """
    failed: list[str] = []

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        transient=True,
    ) as progress:
        task = progress.add_task(
            f"Collecting events for {len(repositories)} repos...",
            total=len(repositories),
        )

        async def collect_and_update(repository: str) -> RepositoryEvents | None:
            try:
                return await collect_repository_events(
                    client, repository, since, until, options
                )
            except AuthenticationError:
                raise
            except (GitHubApiError, httpx.HTTPError) as exc:
                logger.warning("Failed to collect events for %s: %s", repository, exc)
                failed.append(repository)
                return None
            finally:
                progress.advance(task)

        results = await asyncio.gather(*(collect_and_update(r) for r in repositories))

    return [r for r in results if r is not None], failed

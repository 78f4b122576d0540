"""Convert GitHub REST payloads into event models and apply upstream filters.

The metrics engine trusts its inputs, so everything that decides *which*
events count (period, labels, branches, deploy workflows, incidents) lives
here.
"""

from __future__ import annotations

import fnmatch
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from ..models import (
    Deployment,
    Issue,
    PRReviewData,
    PRSizeData,
    PullRequest,
    WorkflowRun,
)
from ..stats import hours_between

DEFAULT_DEPLOY_WORKFLOW_PATTERNS = ("deploy",)
DEFAULT_INCIDENT_LABELS = ("incident",)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp such as ``2024-06-01T12:00:00Z``."""
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _login(user: dict[str, Any] | None) -> str:
    return (user or {}).get("login", "unknown")


def _label_names(raw: dict[str, Any]) -> tuple[str, ...]:
    return tuple(
        label["name"] if isinstance(label, dict) else str(label)
        for label in raw.get("labels", [])
    )


def to_pull_request(raw: dict[str, Any], repository: str) -> PullRequest:
    return PullRequest(
        id=raw["id"],
        number=raw["number"],
        title=raw.get("title", ""),
        state=raw.get("state", "open"),
        created_at=parse_timestamp(raw["created_at"]),
        merged_at=parse_timestamp(raw.get("merged_at")),
        closed_at=parse_timestamp(raw.get("closed_at")),
        author=_login(raw.get("user")),
        repository=repository,
        base_ref_name=(raw.get("base") or {}).get("ref", ""),
        head_ref_name=(raw.get("head") or {}).get("ref", ""),
        additions=raw.get("additions", 0),
        deletions=raw.get("deletions", 0),
        changed_files=raw.get("changed_files", 0),
    )


def to_deployment(raw: dict[str, Any], repository: str) -> Deployment:
    created_at = parse_timestamp(raw["created_at"])
    return Deployment(
        id=raw["id"],
        sha=raw.get("sha", ""),
        environment=raw.get("environment", ""),
        created_at=created_at,
        updated_at=parse_timestamp(raw.get("updated_at")) or created_at,
        status=raw.get("status"),
        repository=repository,
    )


def to_workflow_run(raw: dict[str, Any], repository: str) -> WorkflowRun:
    created_at = parse_timestamp(raw["created_at"])
    return WorkflowRun(
        id=raw["id"],
        name=raw.get("name") or "",
        status=raw.get("status", ""),
        conclusion=raw.get("conclusion"),
        created_at=created_at,
        updated_at=parse_timestamp(raw.get("updated_at")) or created_at,
        repository=repository,
    )


def to_issue(raw: dict[str, Any], repository: str) -> Issue:
    return Issue(
        id=raw["id"],
        number=raw["number"],
        title=raw.get("title", ""),
        state=raw.get("state", "open"),
        created_at=parse_timestamp(raw["created_at"]),
        closed_at=parse_timestamp(raw.get("closed_at")),
        repository=repository,
        labels=_label_names(raw),
    )


def in_period(moment: datetime | None, since: datetime, until: datetime) -> bool:
    return moment is not None and since <= moment <= until


def pull_requests_in_period(
    prs: Iterable[PullRequest], since: datetime, until: datetime
) -> list[PullRequest]:
    """Merged PRs are kept by merge time, unmerged ones by creation time."""
    return [
        pr
        for pr in prs
        if in_period(pr.merged_at or pr.created_at, since, until)
    ]


def created_in_period(events: Iterable, since: datetime, until: datetime) -> list:
    return [e for e in events if in_period(e.created_at, since, until)]


def exclude_labelled(
    raw_items: Iterable[dict[str, Any]], labels: Sequence[str]
) -> list[dict[str, Any]]:
    """Drop payloads carrying any of ``labels`` (case-insensitive)."""
    excluded = {label.lower() for label in labels}
    if not excluded:
        return list(raw_items)
    return [
        raw
        for raw in raw_items
        if not excluded.intersection(name.lower() for name in _label_names(raw))
    ]


def exclude_branches(
    prs: Iterable[PullRequest], patterns: Sequence[str]
) -> list[PullRequest]:
    """Drop PRs whose base or head branch matches a glob pattern."""
    if not patterns:
        return list(prs)
    return [
        pr
        for pr in prs
        if not any(
            fnmatch.fnmatchcase(branch, pattern)
            for pattern in patterns
            for branch in (pr.base_ref_name, pr.head_ref_name)
        )
    ]


def match_deploy_workflows(
    runs: Iterable[WorkflowRun],
    patterns: Sequence[str] = DEFAULT_DEPLOY_WORKFLOW_PATTERNS,
) -> list[WorkflowRun]:
    """Keep runs whose workflow name contains one of ``patterns``."""
    lowered = [p.lower() for p in patterns]
    return [r for r in runs if any(p in r.name.lower() for p in lowered)]


def select_incidents(
    issues: Iterable[Issue], labels: Sequence[str] = DEFAULT_INCIDENT_LABELS
) -> list[Issue]:
    wanted = {label.lower() for label in labels}
    return [i for i in issues if wanted.intersection(name.lower() for name in i.labels)]


def _hours(later: datetime | None, earlier: datetime | None) -> float | None:
    if later is None or earlier is None:
        return None
    return hours_between(later, earlier)


def to_review_data(pr: PullRequest, reviews: Iterable[dict[str, Any]]) -> PRReviewData:
    """Review phase timings of one PR from its submitted reviews.

    Reviews by the PR author and pending reviews are ignored. The PR is
    treated as ready for review when it was opened.
    """
    submitted = sorted(
        (
            (parse_timestamp(r.get("submitted_at")), r.get("state"))
            for r in reviews
            if r.get("submitted_at")
            and r.get("state") != "PENDING"
            and _login(r.get("user")) != pr.author
        ),
        key=lambda item: item[0],
    )
    first_review_at = submitted[0][0] if submitted else None
    approved_at = next((at for at, state in submitted if state == "APPROVED"), None)
    ready_at = pr.created_at

    return PRReviewData(
        pr_number=pr.number,
        title=pr.title,
        repository=pr.repository,
        created_at=pr.created_at,
        ready_for_review_at=ready_at,
        first_review_at=first_review_at,
        approved_at=approved_at,
        merged_at=pr.merged_at,
        time_to_first_review_hours=_hours(first_review_at, ready_at),
        review_duration_hours=_hours(approved_at, first_review_at),
        time_to_merge_hours=_hours(pr.merged_at, approved_at),
        total_time_hours=_hours(pr.merged_at, ready_at),
    )


def to_size_data(pr: PullRequest) -> PRSizeData:
    return PRSizeData(
        pr_number=pr.number,
        title=pr.title,
        repository=pr.repository,
        created_at=pr.created_at,
        merged_at=pr.merged_at,
        additions=pr.additions,
        deletions=pr.deletions,
        lines_of_code=pr.additions + pr.deletions,
        files_changed=pr.changed_files,
    )

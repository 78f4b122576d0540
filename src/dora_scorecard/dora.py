"""DORA four key metrics: lead time, deployment frequency, CFR and MTTR.

Every calculator accepts event lists that are already filtered to the
reporting period. Deployment data is preferred; workflow runs are used only
when a repository has no deployments at all.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta, timezone

from .models import (
    Deployment,
    DevOpsMetrics,
    FrequencyCategory,
    IncidentMetrics,
    Issue,
    LeadTimeResult,
    PullRequest,
    WorkflowRun,
)
from .stats import hours_between, mean_of
from .tiers import frequency_category

logger = logging.getLogger(__name__)

LEAD_TIME_DEPLOY_MATCH_WINDOW = timedelta(hours=24)
FAILURE_STATES = frozenset({"failure", "error"})
SUCCESS_STATE = "success"


def _utc_day(moment: datetime) -> date:
    if moment.tzinfo is None:
        return moment.date()
    return moment.astimezone(timezone.utc).date()


def _first_deployment_in_window(
    merged_at: datetime, deployments: Sequence[Deployment]
) -> Deployment | None:
    """Earliest deployment created within 24h after the merge.

    ``deployments`` must be sorted by ``created_at``.
    """
    window_end = merged_at + LEAD_TIME_DEPLOY_MATCH_WINDOW
    for deployment in deployments:
        if deployment.created_at < merged_at:
            continue
        if deployment.created_at > window_end:
            return None
        return deployment
    return None


def lead_time_detailed(
    prs: Iterable[PullRequest], deployments: Iterable[Deployment] = ()
) -> LeadTimeResult:
    """Lead time for changes with a breakdown of how each PR was measured.

    A merged PR followed by a successful deployment within 24 hours is
    measured merge -> deploy. Otherwise it falls back to creation -> merge.
    """
    merged = [pr for pr in prs if pr.merged_at is not None]
    if not merged:
        return LeadTimeResult()

    successful = sorted(
        (d for d in deployments if d.status == SUCCESS_STATE),
        key=lambda d: d.created_at,
    )

    lead_times: list[float] = []
    result = LeadTimeResult()
    for pr in merged:
        deployment = _first_deployment_in_window(pr.merged_at, successful)
        if deployment is not None:
            lead_times.append(hours_between(deployment.created_at, pr.merged_at))
            result.merge_to_deploy_count += 1
        else:
            lead_times.append(hours_between(pr.merged_at, pr.created_at))
            result.create_to_merge_count += 1

    result.hours = mean_of(lead_times) or 0
    return result


def lead_time(
    prs: Iterable[PullRequest], deployments: Iterable[Deployment] = ()
) -> float:
    """Mean lead time in hours, 0 when no PR was merged."""
    return lead_time_detailed(prs, deployments).hours


def deployment_frequency(
    deployments: Sequence[Deployment],
    runs: Sequence[WorkflowRun],
    period_days: float,
) -> tuple[int, FrequencyCategory]:
    """Count successful deployments and categorise the daily rate.

    Returns ``(count, frequency)``.
    """
    if deployments:
        count = sum(1 for d in deployments if d.status == SUCCESS_STATE)
    else:
        count = sum(1 for r in runs if r.conclusion == SUCCESS_STATE)

    per_day = count / period_days if period_days > 0 else 0
    return count, frequency_category(per_day)


def change_failure_rate(
    deployments: Sequence[Deployment], runs: Sequence[WorkflowRun]
) -> tuple[int, int, float]:
    """Returns ``(total, failed, rate)`` with ``rate`` as a percentage."""
    if deployments:
        outcomes = [d.status for d in deployments]
    else:
        outcomes = [r.conclusion for r in runs]

    total = len(outcomes)
    failed = sum(1 for outcome in outcomes if outcome in FAILURE_STATES)
    rate = failed / total * 100 if total else 0
    return total, failed, rate


def _recovery_times(events: Iterable[tuple[datetime, str | None]]) -> list[float]:
    # A streak of failures is one outage, timed from its first failure.
    recoveries: list[float] = []
    outage_start: datetime | None = None
    for created_at, outcome in sorted(events, key=lambda e: e[0]):
        if outcome in FAILURE_STATES:
            if outage_start is None:
                outage_start = created_at
        elif outcome == SUCCESS_STATE and outage_start is not None:
            recoveries.append(hours_between(created_at, outage_start))
            outage_start = None
    return recoveries


def mttr(
    deployments: Sequence[Deployment], runs: Sequence[WorkflowRun]
) -> float | None:
    """Mean time to recovery in hours, None when nothing failed and recovered.

    Consecutive failures before a success count as one outage lasting from
    the first of them to the success. A failure never followed by a success
    is still open and does not contribute.
    """
    if deployments:
        events = [(d.created_at, d.status) for d in deployments]
    else:
        events = [(r.created_at, r.conclusion) for r in runs]
    return mean_of(_recovery_times(events))


def incident_metrics(incidents: Sequence[Issue]) -> IncidentMetrics:
    """MTTR from incident issues: creation to close of each closed incident."""
    durations = [
        hours_between(i.closed_at, i.created_at)
        for i in incidents
        if i.closed_at is not None
    ]
    return IncidentMetrics(
        incident_count=len(incidents),
        open_incidents=sum(1 for i in incidents if i.state == "open"),
        mttr_hours=mean_of(durations),
    )


def _latest_event_day(
    prs: Sequence[PullRequest],
    runs: Sequence[WorkflowRun],
    deployments: Sequence[Deployment],
) -> str:
    moments: list[datetime] = []
    for pr in prs:
        moments.append(pr.merged_at or pr.created_at)
    moments.extend(r.created_at for r in runs)
    moments.extend(d.created_at for d in deployments)
    if not moments:
        return ""
    return max(_utc_day(m) for m in moments).isoformat()


def compose_repository_metrics(
    repository: str,
    prs: Iterable[PullRequest],
    runs: Iterable[WorkflowRun],
    deployments: Iterable[Deployment],
    period_days: float = 30,
    *,
    incidents: Iterable[Issue] | None = None,
    as_of: str | None = None,
) -> DevOpsMetrics:
    """Compute all four DORA metrics for one repository.

    Inputs may span several repositories; only events of ``repository`` are
    used. When incident issues exist for the repository, MTTR is measured
    from them instead of from deployment outcomes.
    """
    repo_prs = [pr for pr in prs if pr.repository == repository]
    repo_runs = [r for r in runs if r.repository == repository]
    repo_deployments = [d for d in deployments if d.repository == repository]
    repo_incidents = [i for i in incidents or () if i.repository == repository]

    count, frequency = deployment_frequency(repo_deployments, repo_runs, period_days)
    total, failed, rate = change_failure_rate(repo_deployments, repo_runs)
    lead = lead_time_detailed(repo_prs, repo_deployments)

    incident_result: IncidentMetrics | None = None
    if repo_incidents:
        incident_result = incident_metrics(repo_incidents)
        recovery_hours = incident_result.mttr_hours
    else:
        recovery_hours = mttr(repo_deployments, repo_runs)

    logger.debug(
        "%s: %d PRs, %d deployments, %d runs, %d incidents",
        repository,
        len(repo_prs),
        len(repo_deployments),
        len(repo_runs),
        len(repo_incidents),
    )

    return DevOpsMetrics(
        date=as_of if as_of is not None else _latest_event_day(
            repo_prs, repo_runs, repo_deployments
        ),
        repository=repository,
        deployment_count=count,
        deployment_frequency=frequency,
        lead_time_for_changes_hours=lead.hours,
        total_deployments=total,
        failed_deployments=failed,
        change_failure_rate=rate,
        mean_time_to_recovery_hours=recovery_hours,
        lead_time_measurement=lead,
        incident_metrics=incident_result,
    )


def calculate_metrics_for_date(
    repository: str,
    day: date,
    prs: Sequence[PullRequest],
    runs: Sequence[WorkflowRun],
    deployments: Sequence[Deployment],
) -> DevOpsMetrics:
    """Metrics for one repository on one UTC day.

    PRs are bucketed by merge day, deployments and runs by creation day.
    """
    day_prs = [
        pr
        for pr in prs
        if pr.repository == repository
        and pr.merged_at is not None
        and _utc_day(pr.merged_at) == day
    ]
    day_runs = [
        r for r in runs if r.repository == repository and _utc_day(r.created_at) == day
    ]
    day_deployments = [
        d
        for d in deployments
        if d.repository == repository and _utc_day(d.created_at) == day
    ]
    return compose_repository_metrics(
        repository,
        day_prs,
        day_runs,
        day_deployments,
        period_days=1,
        as_of=day.isoformat(),
    )


def date_range(since: date, until: date) -> list[date]:
    """Every calendar day from ``since`` to ``until`` inclusive."""
    days: list[date] = []
    current = since
    while current <= until:
        days.append(current)
        current += timedelta(days=1)
    return days


def calculate_daily_metrics(
    repositories: Iterable[str],
    prs: Sequence[PullRequest],
    runs: Sequence[WorkflowRun],
    deployments: Sequence[Deployment],
    since: date,
    until: date,
) -> list[DevOpsMetrics]:
    """One metrics row per repository per day, ordered by day then repository."""
    repositories = list(repositories)
    return [
        calculate_metrics_for_date(repo, day, prs, runs, deployments)
        for day in date_range(since, until)
        for repo in repositories
    ]

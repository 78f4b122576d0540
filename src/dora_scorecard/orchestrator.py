"""Orchestrator: wires together collection, the metrics engine, and rendering."""

from __future__ import annotations

from datetime import datetime

from .aggregator import aggregate_multi_repo
from .collector import CollectOptions, RepositoryEvents, collect_all
from .dora import calculate_daily_metrics, compose_repository_metrics
from .extended import pr_size, review_efficiency
from .github.client import GitHubClient
from .health import (
    DEFAULT_HEALTH_THRESHOLDS,
    HealthThresholds,
    detect_alerts,
    determine_health_status,
)
from .models import RepositoryScore, ScorecardReport
from .renderer import render_csv, render_json, render_report
from .tiers import (
    change_failure_rate_level,
    deployment_frequency_level,
    lead_time_level,
    mttr_level,
)
from .trends import weekly_trends


def score_repository(
    events: RepositoryEvents,
    period_days: int,
    as_of: str,
    period_label: str,
    thresholds: HealthThresholds = DEFAULT_HEALTH_THRESHOLDS,
) -> RepositoryScore:
    metrics = compose_repository_metrics(
        events.repository,
        events.prs,
        events.runs,
        events.deployments,
        period_days,
        incidents=events.incidents or None,
        as_of=as_of,
    )
    sizes = pr_size(events.size_data, period_label) if events.size_data is not None else None
    reviews = (
        review_efficiency(events.review_data, period_label)
        if events.review_data is not None
        else None
    )
    first_review_hours = reviews.time_to_first_review.avg_hours if reviews else None

    mttr_hours = metrics.mean_time_to_recovery_hours
    lead = metrics.lead_time_measurement
    # No merged PR means no lead time signal
    lead_hours = (
        metrics.lead_time_for_changes_hours
        if lead is not None and lead.merge_to_deploy_count + lead.create_to_merge_count
        else None
    )
    return RepositoryScore(
        repository=events.repository,
        metrics=metrics,
        deployment_frequency_level=deployment_frequency_level(
            metrics.deployment_count / period_days
        ),
        lead_time_level=lead_time_level(lead_hours) if lead_hours is not None else None,
        change_failure_rate_level=change_failure_rate_level(metrics.change_failure_rate),
        mttr_level=mttr_level(mttr_hours) if mttr_hours is not None else None,
        health=determine_health_status(
            lead_hours,
            metrics.change_failure_rate,
            None,
            first_review_hours,
            thresholds,
        ),
        pr_size=sizes,
        review_efficiency=reviews,
    )


def build_report(
    collected: list[RepositoryEvents],
    since: datetime,
    until: datetime,
    week_count: int = 8,
    thresholds: HealthThresholds = DEFAULT_HEALTH_THRESHOLDS,
    failed_repos: list[str] | None = None,
) -> ScorecardReport:
    """Run the metrics engine over collected events."""
    period_days = (until.date() - since.date()).days + 1
    period_label = f"{since.date().isoformat()}~{until.date().isoformat()}"
    as_of = until.date().isoformat()

    scores = [
        score_repository(events, period_days, as_of, period_label, thresholds)
        for events in collected
    ]
    daily = calculate_daily_metrics(
        [e.repository for e in collected],
        [pr for e in collected for pr in e.prs],
        [run for e in collected for run in e.runs],
        [d for e in collected for d in e.deployments],
        since.date(),
        until.date(),
    )

    return ScorecardReport(
        period_start=since.date().isoformat(),
        period_end=as_of,
        period_days=period_days,
        scores=scores,
        trends=weekly_trends(daily, week_count),
        summary=aggregate_multi_repo(daily),
        alerts=detect_alerts([s.metrics for s in scores], thresholds, period_days),
        failed_repos=list(failed_repos or []),
    )


async def run(
    repositories: list[str],
    token: str,
    since: datetime,
    until: datetime,
    week_count: int = 8,
    options: CollectOptions | None = None,
    thresholds: HealthThresholds = DEFAULT_HEALTH_THRESHOLDS,
    output_format: str = "table",
    output_file: str | None = None,
    api_url: str | None = None,
    verify_ssl: bool = True,
) -> ScorecardReport:
    """Main pipeline: fetch events, compute metrics, render."""
    async with GitHubClient(token=token, base_url=api_url, verify_ssl=verify_ssl) as client:
        collected, failed = await collect_all(client, repositories, since, until, options)

    report = build_report(collected, since, until, week_count, thresholds, failed)

    if output_format == "json":
        render_json(report, output_file=output_file)
    elif output_format == "csv":
        render_csv(report, output_file=output_file)
    else:
        render_report(report, output_file=output_file)
    return report

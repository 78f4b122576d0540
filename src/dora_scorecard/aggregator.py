"""Cross-repository aggregation of DevOps metrics rows."""

from __future__ import annotations

from collections.abc import Sequence

from .models import DevOpsMetrics, MultiRepoSummary, OverallSummary, RepositorySummary
from .stats import mean_of, round1


def _group_by_repository(
    metrics: Sequence[DevOpsMetrics],
) -> dict[str, list[DevOpsMetrics]]:
    groups: dict[str, list[DevOpsMetrics]] = {}
    for m in metrics:
        groups.setdefault(m.repository, []).append(m)
    return groups


def summarize_repository(repository: str, rows: Sequence[DevOpsMetrics]) -> RepositorySummary:
    """Average one repository's rows; ``rows`` must not be empty."""
    return RepositorySummary(
        repository=repository,
        data_point_count=len(rows),
        avg_deployment_count=round1(mean_of(m.deployment_count for m in rows)),
        avg_lead_time_hours=round1(mean_of(m.lead_time_for_changes_hours for m in rows)),
        avg_change_failure_rate=round1(mean_of(m.change_failure_rate for m in rows)),
        avg_mttr_hours=round1(mean_of(m.mean_time_to_recovery_hours for m in rows)),
        last_updated=max(m.date for m in rows),
    )


def aggregate_multi_repo(metrics: Sequence[DevOpsMetrics]) -> MultiRepoSummary:
    """Per-repository averages plus an unweighted mean of those averages.

    Every repository counts once in the overall row regardless of how many
    rows it contributed.
    """
    summaries = [
        summarize_repository(repository, rows)
        for repository, rows in _group_by_repository(metrics).items()
    ]

    overall = OverallSummary(
        total_repositories=len(summaries),
        avg_deployment_count=round1(mean_of(s.avg_deployment_count for s in summaries)),
        avg_lead_time_hours=round1(mean_of(s.avg_lead_time_hours for s in summaries)),
        avg_change_failure_rate=round1(
            mean_of(s.avg_change_failure_rate for s in summaries)
        ),
        avg_mttr_hours=round1(mean_of(s.avg_mttr_hours for s in summaries)),
    )
    return MultiRepoSummary(repository_summaries=summaries, overall_summary=overall)

"""Secondary delivery indicators: cycle time, coding time, rework, review, PR size.

Each calculator takes per-item records that were correlated upstream (issue
to PR chain, PR to reviews, PR to commits) and a period label.
"""

from __future__ import annotations

from collections.abc import Sequence

from .models import (
    AdditionalCommitStats,
    CodingTimeMetrics,
    CycleTimeMetrics,
    ForcePushStats,
    IssueCodingTime,
    IssueCycleTime,
    IssueCycleTimeDetail,
    NumericStatistics,
    PRReviewData,
    PRReworkData,
    PRSizeData,
    PRSizeMetrics,
    ReviewEfficiencyMetrics,
    ReworkRateMetrics,
    TimeStatistics,
)
from .stats import calculate_stats, round1


def cycle_time(items: Sequence[IssueCycleTime], period: str) -> CycleTimeMetrics:
    """Issue creation to production merge, over issues that reached production."""
    details = [
        IssueCycleTimeDetail(
            issue_number=item.issue_number,
            title=item.issue_title,
            repository=item.repository,
            issue_created_at=item.issue_created_at,
            production_merged_at=item.production_merged_at,
            cycle_time_hours=item.cycle_time_hours,
            pr_chain_summary="→".join(f"#{pr.pr_number}" for pr in item.pr_chain),
        )
        for item in items
        if item.production_merged_at is not None and item.cycle_time_hours is not None
    ]
    if not details:
        return CycleTimeMetrics(period=period)

    stats = calculate_stats(d.cycle_time_hours for d in details)
    return CycleTimeMetrics(
        period=period,
        completed_task_count=len(details),
        avg_cycle_time_hours=stats.avg,
        median_cycle_time_hours=stats.median,
        min_cycle_time_hours=stats.min,
        max_cycle_time_hours=stats.max,
        issue_details=details,
    )


def coding_time(items: Sequence[IssueCodingTime], period: str) -> CodingTimeMetrics:
    """Issue creation to PR creation, over issues with a linked PR."""
    valid = [
        item
        for item in items
        if item.pr_created_at is not None
        and item.coding_time_hours is not None
        and item.coding_time_hours >= 0
    ]
    if not valid:
        return CodingTimeMetrics(period=period)

    stats = calculate_stats(item.coding_time_hours for item in valid)
    return CodingTimeMetrics(
        period=period,
        issue_count=len(valid),
        avg_coding_time_hours=stats.avg,
        median_coding_time_hours=stats.median,
        min_coding_time_hours=stats.min,
        max_coding_time_hours=stats.max,
        issue_details=valid,
    )


def rework_rate(items: Sequence[PRReworkData], period: str) -> ReworkRateMetrics:
    """Commits pushed and force pushes made after each PR was opened."""
    if not items:
        return ReworkRateMetrics(period=period)

    pr_count = len(items)
    commit_counts = [item.additional_commits for item in items]
    commit_stats = calculate_stats(commit_counts)
    total_commits = sum(commit_counts)

    total_force_pushes = sum(item.force_push_count for item in items)
    with_force_push = sum(1 for item in items if item.force_push_count > 0)

    return ReworkRateMetrics(
        period=period,
        pr_count=pr_count,
        additional_commits=AdditionalCommitStats(
            total=total_commits,
            avg_per_pr=round1(total_commits / pr_count),
            median=commit_stats.median,
            max=commit_stats.max,
        ),
        force_pushes=ForcePushStats(
            total=total_force_pushes,
            avg_per_pr=round1(total_force_pushes / pr_count),
            prs_with_force_push=with_force_push,
            force_push_rate=round1(with_force_push / pr_count * 100),
        ),
        pr_details=list(items),
    )


def _time_statistics(values) -> TimeStatistics:
    stats = calculate_stats(values)
    return TimeStatistics(
        avg_hours=stats.avg,
        median_hours=stats.median,
        min_hours=stats.min,
        max_hours=stats.max,
    )


def review_efficiency(
    items: Sequence[PRReviewData], period: str
) -> ReviewEfficiencyMetrics:
    """Time spent in each review phase; missing phases are skipped per PR."""
    if not items:
        return ReviewEfficiencyMetrics(period=period)

    return ReviewEfficiencyMetrics(
        period=period,
        pr_count=len(items),
        time_to_first_review=_time_statistics(
            item.time_to_first_review_hours for item in items
        ),
        review_duration=_time_statistics(item.review_duration_hours for item in items),
        time_to_merge=_time_statistics(item.time_to_merge_hours for item in items),
        total_time=_time_statistics(item.total_time_hours for item in items),
        pr_details=list(items),
    )


def _numeric_statistics(values: list[int]) -> NumericStatistics:
    stats = calculate_stats(values)
    return NumericStatistics(
        total=sum(values),
        avg=stats.avg,
        median=stats.median,
        min=stats.min,
        max=stats.max,
    )


def pr_size(items: Sequence[PRSizeData], period: str) -> PRSizeMetrics:
    """Changed lines and files per PR."""
    if not items:
        return PRSizeMetrics(period=period)

    return PRSizeMetrics(
        period=period,
        pr_count=len(items),
        lines_of_code=_numeric_statistics([item.lines_of_code for item in items]),
        files_changed=_numeric_statistics([item.files_changed for item in items]),
        pr_details=list(items),
    )

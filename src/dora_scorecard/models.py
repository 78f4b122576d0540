"""Data models for dora-scorecard."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

HealthStatus = Literal["good", "warning", "critical"]
PerformanceLevel = Literal["elite", "high", "medium", "low"]
FrequencyCategory = Literal["daily", "weekly", "monthly", "yearly"]


@dataclass(frozen=True)
class PullRequest:
    id: int
    number: int
    title: str
    state: str
    created_at: datetime
    merged_at: datetime | None
    closed_at: datetime | None
    author: str
    repository: str
    base_ref_name: str = ""
    head_ref_name: str = ""
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0


@dataclass(frozen=True)
class Deployment:
    id: int
    sha: str
    environment: str
    created_at: datetime
    updated_at: datetime
    status: str | None
    repository: str


@dataclass(frozen=True)
class WorkflowRun:
    """A CI run, used only when no deployment data exists."""

    id: int
    name: str
    status: str
    conclusion: str | None
    created_at: datetime
    updated_at: datetime
    repository: str


@dataclass(frozen=True)
class Issue:
    id: int
    number: int
    title: str
    state: str
    created_at: datetime
    closed_at: datetime | None
    repository: str
    labels: tuple[str, ...] = ()


@dataclass(frozen=True)
class Threshold:
    """Lower-is-better pair: <= good is good, <= warning is warning."""

    good: float
    warning: float


@dataclass
class LeadTimeResult:
    hours: float = 0
    merge_to_deploy_count: int = 0
    create_to_merge_count: int = 0


@dataclass
class IncidentMetrics:
    incident_count: int = 0
    open_incidents: int = 0
    mttr_hours: float | None = None


@dataclass
class DevOpsMetrics:
    """DORA metrics for one repository over one reporting period."""

    date: str
    repository: str
    deployment_count: int = 0
    deployment_frequency: FrequencyCategory = "yearly"
    lead_time_for_changes_hours: float = 0
    total_deployments: int = 0
    failed_deployments: int = 0
    change_failure_rate: float = 0
    mean_time_to_recovery_hours: float | None = None
    lead_time_measurement: LeadTimeResult | None = None
    incident_metrics: IncidentMetrics | None = None


@dataclass
class WeeklyTrendData:
    week: str
    total_deployments: int = 0
    avg_lead_time_hours: float | None = None
    avg_change_failure_rate: float | None = None
    avg_cycle_time_hours: float | None = None


@dataclass
class RepositorySummary:
    repository: str
    data_point_count: int
    avg_deployment_count: float
    avg_lead_time_hours: float
    avg_change_failure_rate: float
    avg_mttr_hours: float | None
    last_updated: str


@dataclass
class OverallSummary:
    total_repositories: int = 0
    avg_deployment_count: float | None = None
    avg_lead_time_hours: float | None = None
    avg_change_failure_rate: float | None = None
    avg_mttr_hours: float | None = None


@dataclass
class MultiRepoSummary:
    repository_summaries: list[RepositorySummary] = field(default_factory=list)
    overall_summary: OverallSummary = field(default_factory=OverallSummary)


@dataclass
class Alert:
    type: Literal[
        "critical_health",
        "high_lead_time",
        "high_failure_rate",
        "low_deployment_frequency",
    ]
    repository: str
    metric: str
    value: str
    threshold: str
    severity: Literal["warning", "critical"]


# Extended metrics: per-item inputs are correlated upstream.


@dataclass
class PRChainItem:
    pr_number: int
    base_branch: str
    head_branch: str
    merged_at: datetime | None


@dataclass
class IssueCycleTime:
    issue_number: int
    issue_title: str
    repository: str
    issue_created_at: datetime
    production_merged_at: datetime | None
    cycle_time_hours: float | None
    pr_chain: list[PRChainItem] = field(default_factory=list)


@dataclass
class IssueCycleTimeDetail:
    issue_number: int
    title: str
    repository: str
    issue_created_at: datetime
    production_merged_at: datetime
    cycle_time_hours: float
    pr_chain_summary: str


@dataclass
class CycleTimeMetrics:
    period: str
    completed_task_count: int = 0
    avg_cycle_time_hours: float | None = None
    median_cycle_time_hours: float | None = None
    min_cycle_time_hours: float | None = None
    max_cycle_time_hours: float | None = None
    issue_details: list[IssueCycleTimeDetail] = field(default_factory=list)


@dataclass
class IssueCodingTime:
    issue_number: int
    issue_title: str
    repository: str
    issue_created_at: datetime
    pr_created_at: datetime | None
    pr_number: int | None
    coding_time_hours: float | None


@dataclass
class CodingTimeMetrics:
    period: str
    issue_count: int = 0
    avg_coding_time_hours: float | None = None
    median_coding_time_hours: float | None = None
    min_coding_time_hours: float | None = None
    max_coding_time_hours: float | None = None
    issue_details: list[IssueCodingTime] = field(default_factory=list)


@dataclass
class PRReworkData:
    pr_number: int
    title: str
    repository: str
    created_at: datetime
    merged_at: datetime | None
    additional_commits: int
    force_push_count: int
    total_commits: int


@dataclass
class AdditionalCommitStats:
    total: int = 0
    avg_per_pr: float | None = None
    median: float | None = None
    max: float | None = None


@dataclass
class ForcePushStats:
    total: int = 0
    avg_per_pr: float | None = None
    prs_with_force_push: int = 0
    force_push_rate: float | None = None


@dataclass
class ReworkRateMetrics:
    period: str
    pr_count: int = 0
    additional_commits: AdditionalCommitStats = field(
        default_factory=AdditionalCommitStats
    )
    force_pushes: ForcePushStats = field(default_factory=ForcePushStats)
    pr_details: list[PRReworkData] = field(default_factory=list)


@dataclass
class PRReviewData:
    pr_number: int
    title: str
    repository: str
    created_at: datetime
    ready_for_review_at: datetime
    first_review_at: datetime | None
    approved_at: datetime | None
    merged_at: datetime | None
    time_to_first_review_hours: float | None
    review_duration_hours: float | None
    time_to_merge_hours: float | None
    total_time_hours: float | None


@dataclass
class TimeStatistics:
    avg_hours: float | None = None
    median_hours: float | None = None
    min_hours: float | None = None
    max_hours: float | None = None


@dataclass
class ReviewEfficiencyMetrics:
    period: str
    pr_count: int = 0
    time_to_first_review: TimeStatistics = field(default_factory=TimeStatistics)
    review_duration: TimeStatistics = field(default_factory=TimeStatistics)
    time_to_merge: TimeStatistics = field(default_factory=TimeStatistics)
    total_time: TimeStatistics = field(default_factory=TimeStatistics)
    pr_details: list[PRReviewData] = field(default_factory=list)


@dataclass
class PRSizeData:
    pr_number: int
    title: str
    repository: str
    created_at: datetime
    merged_at: datetime | None
    additions: int
    deletions: int
    lines_of_code: int
    files_changed: int


@dataclass
class NumericStatistics:
    total: float = 0
    avg: float | None = None
    median: float | None = None
    min: float | None = None
    max: float | None = None


@dataclass
class PRSizeMetrics:
    period: str
    pr_count: int = 0
    lines_of_code: NumericStatistics = field(default_factory=NumericStatistics)
    files_changed: NumericStatistics = field(default_factory=NumericStatistics)
    pr_details: list[PRSizeData] = field(default_factory=list)


@dataclass
class RepositoryScore:
    """Classification of one repository's metrics for display."""

    repository: str
    metrics: DevOpsMetrics
    deployment_frequency_level: PerformanceLevel
    lead_time_level: PerformanceLevel | None
    change_failure_rate_level: PerformanceLevel
    mttr_level: PerformanceLevel | None
    health: HealthStatus
    pr_size: PRSizeMetrics | None = None
    review_efficiency: ReviewEfficiencyMetrics | None = None


@dataclass
class ScorecardReport:
    period_start: str
    period_end: str
    period_days: int
    scores: list[RepositoryScore] = field(default_factory=list)
    trends: list[WeeklyTrendData] = field(default_factory=list)
    summary: MultiRepoSummary = field(default_factory=MultiRepoSummary)
    alerts: list[Alert] = field(default_factory=list)
    failed_repos: list[str] = field(default_factory=list)

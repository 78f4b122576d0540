"""Health status evaluation against local good/warning thresholds.

All metrics are lower-is-better. A metric without a value has no status and
never makes the overall status worse.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import NamedTuple

from .models import Alert, DevOpsMetrics, HealthStatus, Threshold

_SEVERITY: dict[HealthStatus, int] = {"good": 0, "warning": 1, "critical": 2}

LEAD_TIME_CRITICAL_FACTOR = 2
CHANGE_FAILURE_RATE_CRITICAL_FACTOR = 1.5
DEPLOYMENTS_PER_DAY_TARGET = 1.0
DEPLOYMENTS_PER_DAY_CRITICAL = 0.5


@dataclass(frozen=True)
class HealthThresholds:
    lead_time: Threshold = Threshold(good=24, warning=168)
    change_failure_rate: Threshold = Threshold(good=15, warning=30)
    cycle_time: Threshold = Threshold(good=48, warning=120)
    time_to_first_review: Threshold = Threshold(good=4, warning=24)


DEFAULT_HEALTH_THRESHOLDS = HealthThresholds()


class MetricInput(NamedTuple):
    value: float | None
    threshold: Threshold


def evaluate_metric(value: float | None, threshold: Threshold) -> HealthStatus | None:
    if value is None:
        return None
    if value <= threshold.good:
        return "good"
    if value <= threshold.warning:
        return "warning"
    return "critical"


def select_worst_status(statuses: Iterable[HealthStatus | None]) -> HealthStatus:
    """Most severe status, ignoring None. Defaults to ``good``."""
    present = [s for s in statuses if s is not None]
    if not present:
        return "good"
    return max(present, key=_SEVERITY.__getitem__)


def evaluate_overall_health(metrics: Mapping[str, MetricInput]) -> HealthStatus:
    return select_worst_status(
        evaluate_metric(value, threshold) for value, threshold in metrics.values()
    )


def determine_health_status(
    lead_time_hours: float | None,
    change_failure_rate: float | None,
    cycle_time_hours: float | None,
    time_to_first_review_hours: float | None,
    thresholds: HealthThresholds = DEFAULT_HEALTH_THRESHOLDS,
) -> HealthStatus:
    return evaluate_overall_health(
        {
            "lead_time": MetricInput(lead_time_hours, thresholds.lead_time),
            "change_failure_rate": MetricInput(
                change_failure_rate, thresholds.change_failure_rate
            ),
            "cycle_time": MetricInput(cycle_time_hours, thresholds.cycle_time),
            "time_to_first_review": MetricInput(
                time_to_first_review_hours, thresholds.time_to_first_review
            ),
        }
    )


def detect_alerts(
    metrics: Sequence[DevOpsMetrics],
    thresholds: HealthThresholds = DEFAULT_HEALTH_THRESHOLDS,
    period_days: float = 30,
) -> list[Alert]:
    """Alerts for every metrics row that breaches a threshold."""
    alerts: list[Alert] = []

    for m in metrics:
        health = determine_health_status(
            m.lead_time_for_changes_hours, m.change_failure_rate, None, None, thresholds
        )
        if health == "critical":
            alerts.append(
                Alert(
                    type="critical_health",
                    repository=m.repository,
                    metric="overall health",
                    value="critical",
                    threshold="good",
                    severity="critical",
                )
            )

        lead_warning = thresholds.lead_time.warning
        lead_critical = lead_warning * LEAD_TIME_CRITICAL_FACTOR
        if m.lead_time_for_changes_hours > lead_warning:
            critical = m.lead_time_for_changes_hours > lead_critical
            alerts.append(
                Alert(
                    type="high_lead_time",
                    repository=m.repository,
                    metric="lead time",
                    value=f"{m.lead_time_for_changes_hours:.1f}h",
                    threshold=f"{(lead_critical if critical else lead_warning):g}h",
                    severity="critical" if critical else "warning",
                )
            )

        cfr_warning = thresholds.change_failure_rate.warning
        cfr_critical = cfr_warning * CHANGE_FAILURE_RATE_CRITICAL_FACTOR
        if m.change_failure_rate > cfr_warning:
            critical = m.change_failure_rate > cfr_critical
            alerts.append(
                Alert(
                    type="high_failure_rate",
                    repository=m.repository,
                    metric="change failure rate",
                    value=f"{m.change_failure_rate:.1f}%",
                    threshold=f"{(cfr_critical if critical else cfr_warning):.1f}%",
                    severity="critical" if critical else "warning",
                )
            )

        per_day = m.deployment_count / period_days if period_days > 0 else 0
        if per_day < DEPLOYMENTS_PER_DAY_TARGET:
            alerts.append(
                Alert(
                    type="low_deployment_frequency",
                    repository=m.repository,
                    metric="deployment frequency",
                    value=f"{per_day:.1f}/day",
                    threshold=f"{DEPLOYMENTS_PER_DAY_TARGET:.1f}/day",
                    severity=(
                        "critical"
                        if per_day < DEPLOYMENTS_PER_DAY_CRITICAL
                        else "warning"
                    ),
                )
            )

    return alerts

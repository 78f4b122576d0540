"""Weekly trend aggregation over daily or periodic metrics rows."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from .models import DevOpsMetrics, IssueCycleTimeDetail, WeeklyTrendData
from .stats import mean_of

logger = logging.getLogger(__name__)

NO_CHANGE = "-"
FLAT = "横ばい"


def iso_week(day: date | str) -> str:
    """ISO 8601 week label such as ``2024-W03`` (Monday-start, ISO year)."""
    if isinstance(day, str):
        day = date.fromisoformat(day[:10])
    elif isinstance(day, datetime):
        if day.tzinfo is not None:
            day = day.astimezone(timezone.utc)
        day = day.date()
    year, week, _ = day.isocalendar()
    return f"{year}-W{week:02d}"


def weekly_trends(
    metrics: Sequence[DevOpsMetrics],
    week_count: int = 8,
    cycle_times: Sequence[IssueCycleTimeDetail] | None = None,
) -> list[WeeklyTrendData]:
    """Per-week aggregates for the most recent ``week_count`` weeks, newest first.

    Lead times of zero carry no signal (no merged PR that day) and are left
    out of the weekly average.
    """
    by_week: dict[str, list[DevOpsMetrics]] = defaultdict(list)
    for m in metrics:
        try:
            week = iso_week(m.date)
        except ValueError:
            logger.debug("Skipping %s row with unparseable date %r", m.repository, m.date)
            continue
        by_week[week].append(m)

    cycle_by_week: dict[str, list[float]] = defaultdict(list)
    for detail in cycle_times or ():
        cycle_by_week[iso_week(detail.production_merged_at)].append(
            detail.cycle_time_hours
        )

    trends: list[WeeklyTrendData] = []
    for week in sorted(by_week, reverse=True)[:week_count]:
        rows = by_week[week]
        trends.append(
            WeeklyTrendData(
                week=week,
                total_deployments=sum(m.deployment_count for m in rows),
                avg_lead_time_hours=mean_of(
                    m.lead_time_for_changes_hours
                    for m in rows
                    if m.lead_time_for_changes_hours > 0
                ),
                avg_change_failure_rate=mean_of(m.change_failure_rate for m in rows),
                avg_cycle_time_hours=mean_of(cycle_by_week.get(week, ())),
            )
        )
    return trends


def calculate_change(current: float | None, previous: float | None) -> str:
    """Week-over-week change as a signed whole percentage."""
    if current is None or previous is None or previous == 0:
        return NO_CHANGE

    change = (current - previous) / previous * 100
    if abs(change) < 1:
        return FLAT
    # Halves round away from zero
    magnitude = int(Decimal(abs(change)).quantize(Decimal(1), ROUND_HALF_UP))
    return f"+{magnitude}%" if change > 0 else f"-{magnitude}%"

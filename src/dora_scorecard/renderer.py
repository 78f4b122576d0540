"""Rich-based terminal scorecard renderer with JSON/CSV support."""

from __future__ import annotations

import csv
import io
import json
from dataclasses import asdict

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import HealthStatus, PerformanceLevel, ScorecardReport
from .trends import calculate_change

_STATUS_STYLES: dict[HealthStatus, str] = {
    "good": "[green]● good[/green]",
    "warning": "[yellow]● warning[/yellow]",
    "critical": "[red]● critical[/red]",
}

_LEVEL_STYLES: dict[PerformanceLevel, str] = {
    "elite": "bold green",
    "high": "green",
    "medium": "yellow",
    "low": "red",
}

CSV_COLUMNS = [
    "date",
    "repository",
    "deployment_count",
    "deployment_frequency",
    "lead_time_for_changes_hours",
    "total_deployments",
    "failed_deployments",
    "change_failure_rate",
    "mean_time_to_recovery_hours",
]


def _format_number(n: float | None) -> str:
    if n is None:
        return "-"
    if isinstance(n, int) or float(n).is_integer():
        return f"{int(n):,}"
    return f"{n:,.1f}"


def _format_hours(h: float | None) -> str:
    if h is None:
        return "-"
    if h < 1:
        return f"{h * 60:.0f}m"
    if h < 24:
        return f"{h:.1f}h"
    return f"{h / 24:.1f}d"


def _format_percent(p: float | None) -> str:
    return "-" if p is None else f"{p:.1f}%"


def _format_level(level: PerformanceLevel | None) -> str:
    if level is None:
        return "-"
    style = _LEVEL_STYLES[level]
    return f"[{style}]{level}[/{style}]"


def format_status(status: HealthStatus) -> str:
    return _STATUS_STYLES[status]


def _write_to_file(content: str, output_file: str) -> None:
    """Write content to a file and print confirmation."""
    with open(output_file, "w", encoding="utf-8") as f:
        f.write(content)
    Console().print(f"Saved to {output_file}")


def render_report(report: ScorecardReport, output_file: str | None = None) -> None:
    """Render a ScorecardReport to the terminal using rich."""
    if output_file:
        string_io = io.StringIO()
        console = Console(file=string_io, force_terminal=False, width=120)
    else:
        console = Console()

    console.print(Panel(
        Text(
            f"DORA scorecard\nPeriod: {report.period_start} ~ {report.period_end}"
            f" ({report.period_days} days)",
            justify="center",
        ),
        style="bold cyan",
    ))
    console.print()

    if report.failed_repos:
        console.print(
            f"[bold yellow]Warning:[/bold yellow] Failed to collect events for "
            f"{len(report.failed_repos)} repo(s): {', '.join(report.failed_repos)}"
        )
        console.print()

    # Scorecard
    if report.scores:
        console.print("[bold]DORA Metrics[/bold]")
        table = Table(show_header=True, header_style="bold")
        table.add_column("Repo", no_wrap=True)
        table.add_column("Deploys", justify="right")
        table.add_column("Frequency")
        table.add_column("Lead Time", justify="right")
        table.add_column("CFR", justify="right")
        table.add_column("MTTR", justify="right")
        table.add_column("Health", no_wrap=True)

        for s in report.scores:
            m = s.metrics
            table.add_row(
                m.repository,
                _format_number(m.deployment_count),
                f"{m.deployment_frequency} ({_format_level(s.deployment_frequency_level)})",
                f"{_format_hours(m.lead_time_for_changes_hours if s.lead_time_level else None)} "
                f"({_format_level(s.lead_time_level)})",
                f"{_format_percent(m.change_failure_rate)} "
                f"({_format_level(s.change_failure_rate_level)})",
                f"{_format_hours(m.mean_time_to_recovery_hours)} "
                f"({_format_level(s.mttr_level)})",
                format_status(s.health),
            )
        console.print(table)
        console.print()

    # Repository summary (only when multiple repos)
    summaries = report.summary.repository_summaries
    if len(summaries) > 1:
        console.print("[bold]Repository Summary[/bold]")
        summary_table = Table(show_header=True, header_style="bold")
        summary_table.add_column("Repo", no_wrap=True)
        summary_table.add_column("Days", justify="right")
        summary_table.add_column("Avg Deploys", justify="right")
        summary_table.add_column("Avg Lead Time", justify="right")
        summary_table.add_column("Avg CFR", justify="right")
        summary_table.add_column("Avg MTTR", justify="right")
        summary_table.add_column("Last Updated", no_wrap=True)
        for r in summaries:
            summary_table.add_row(
                r.repository,
                _format_number(r.data_point_count),
                _format_number(r.avg_deployment_count),
                _format_hours(r.avg_lead_time_hours),
                _format_percent(r.avg_change_failure_rate),
                _format_hours(r.avg_mttr_hours),
                r.last_updated,
            )
        overall = report.summary.overall_summary
        summary_table.add_row(
            f"[bold]Overall ({overall.total_repositories} repos)[/bold]",
            "",
            _format_number(overall.avg_deployment_count),
            _format_hours(overall.avg_lead_time_hours),
            _format_percent(overall.avg_change_failure_rate),
            _format_hours(overall.avg_mttr_hours),
            "",
        )
        console.print(summary_table)
        console.print()

    # Weekly trends, newest first
    if report.trends:
        console.print("[bold]Weekly Trends[/bold]")
        trend_table = Table(show_header=True, header_style="bold")
        trend_table.add_column("Week", no_wrap=True)
        trend_table.add_column("Deploys", justify="right")
        trend_table.add_column("Δ", justify="right")
        trend_table.add_column("Avg Lead Time", justify="right")
        trend_table.add_column("Δ", justify="right")
        trend_table.add_column("Avg CFR", justify="right")

        for i, week in enumerate(report.trends):
            previous = report.trends[i + 1] if i + 1 < len(report.trends) else None
            trend_table.add_row(
                week.week,
                _format_number(week.total_deployments),
                calculate_change(
                    week.total_deployments,
                    previous.total_deployments if previous else None,
                ),
                _format_hours(week.avg_lead_time_hours),
                calculate_change(
                    week.avg_lead_time_hours,
                    previous.avg_lead_time_hours if previous else None,
                ),
                _format_percent(week.avg_change_failure_rate),
            )
        console.print(trend_table)
        console.print()

    # Extended metrics
    extended = [s for s in report.scores if s.pr_size or s.review_efficiency]
    if extended:
        console.print("[bold]Review & PR Size[/bold]")
        ext_table = Table(show_header=True, header_style="bold")
        ext_table.add_column("Repo", no_wrap=True)
        ext_table.add_column("PRs", justify="right")
        ext_table.add_column("Avg Lines", justify="right")
        ext_table.add_column("Avg Files", justify="right")
        ext_table.add_column("First Review", justify="right")
        ext_table.add_column("Time to Merge", justify="right")
        for s in extended:
            size = s.pr_size
            review = s.review_efficiency
            ext_table.add_row(
                s.repository,
                _format_number(size.pr_count if size else None),
                _format_number(size.lines_of_code.avg if size else None),
                _format_number(size.files_changed.avg if size else None),
                _format_hours(review.time_to_first_review.avg_hours if review else None),
                _format_hours(review.time_to_merge.avg_hours if review else None),
            )
        console.print(ext_table)
        console.print()

    # Alerts
    if report.alerts:
        console.print("[bold]Alerts[/bold]")
        alert_table = Table(show_header=True, header_style="bold")
        alert_table.add_column("Severity")
        alert_table.add_column("Repo", no_wrap=True)
        alert_table.add_column("Metric")
        alert_table.add_column("Value", justify="right")
        alert_table.add_column("Threshold", justify="right")
        for alert in sorted(report.alerts, key=lambda a: a.severity != "critical"):
            alert_table.add_row(
                format_status(alert.severity),
                alert.repository,
                alert.metric,
                alert.value,
                alert.threshold,
            )
        console.print(alert_table)
        console.print()

    if output_file:
        _write_to_file(string_io.getvalue(), output_file)


def render_json(report: ScorecardReport, output_file: str | None = None) -> None:
    """Render a ScorecardReport as JSON."""
    content = json.dumps(asdict(report), indent=2, ensure_ascii=False, default=str)
    if output_file:
        _write_to_file(content, output_file)
    else:
        print(content)


def render_csv(report: ScorecardReport, output_file: str | None = None) -> None:
    """Render one DevOps metrics row per repository as CSV."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_COLUMNS)
    for s in report.scores:
        row = asdict(s.metrics)
        writer.writerow(["" if row[c] is None else row[c] for c in CSV_COLUMNS])
    content = output.getvalue()
    if output_file:
        _write_to_file(content, output_file)
    else:
        print(content, end="")

"""CLI entrypoint for dora-scorecard."""

from __future__ import annotations

import asyncio
import logging
import re
import sys
from datetime import date, datetime, time, timedelta, timezone

import click
import httpx
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .collector import CollectOptions
from .errors import (
    AuthenticationError,
    ConfigurationError,
    NotFoundError,
    RateLimitError,
    ScorecardError,
)
from .github.normalize import DEFAULT_DEPLOY_WORKFLOW_PATTERNS, DEFAULT_INCIDENT_LABELS
from .health import DEFAULT_HEALTH_THRESHOLDS, HealthThresholds
from .models import Threshold

_REPOSITORY_RE = re.compile(r"^[\w.-]+/[\w.-]+$")


def _today() -> date:
    return datetime.now(timezone.utc).date()


def _parse_relative_date(value: str, today: date) -> date | None:
    """Parse relative date like 7d, 2w, 3m, 1y."""
    match = re.match(r"^(\d+)([dwmy])$", value)
    if not match:
        return None
    amount = int(match.group(1))
    unit = match.group(2)
    if unit == "d":
        delta = timedelta(days=amount)
    elif unit == "w":
        delta = timedelta(weeks=amount)
    elif unit == "m":
        delta = timedelta(days=amount * 30)
    else:  # unit == "y"
        delta = timedelta(days=amount * 365)
    return today - delta


def _resolve_date(value: str | None, today: date) -> date | None:
    """Resolve a date value that may be relative (7d, 30d, 3m, 1y) or absolute (YYYY-MM-DD)."""
    if value is None:
        return None
    parsed = _parse_relative_date(value, today)
    if parsed is not None:
        return parsed
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ConfigurationError(
            f"Invalid date '{value}'. Use YYYY-MM-DD or a relative value like 30d."
        ) from None


def resolve_period(
    days: int,
    since: str | None = None,
    until: str | None = None,
    today: date | None = None,
) -> tuple[datetime, datetime]:
    """Turn CLI period options into an inclusive UTC ``[since, until]`` range.

    ``--since``/``--until`` win over ``--days``; a missing end defaults to today
    and a missing start to ``days`` days before the end.
    """
    today = today or _today()
    if days < 1:
        raise ConfigurationError("--days must be at least 1.")
    end = _resolve_date(until, today) or today
    start = _resolve_date(since, today) or end - timedelta(days=days - 1)
    if start > end:
        raise ConfigurationError(
            f"--since ({start.isoformat()}) is after --until ({end.isoformat()})."
        )
    return (
        datetime.combine(start, time.min, tzinfo=timezone.utc),
        datetime.combine(end, time(23, 59, 59), tzinfo=timezone.utc),
    )


def validate_repositories(repositories: tuple[str, ...]) -> list[str]:
    if not repositories:
        raise ConfigurationError("At least one repository (owner/repo) is required.")
    invalid = [r for r in repositories if not _REPOSITORY_RE.match(r)]
    if invalid:
        raise ConfigurationError(
            f"Invalid repository name(s): {', '.join(invalid)}. Expected owner/repo."
        )
    # Preserve order, drop duplicates
    return list(dict.fromkeys(repositories))


def _threshold(value: tuple[float, float] | None, default: Threshold, name: str) -> Threshold:
    if value is None:
        return default
    good, warning = value
    if good > warning:
        raise ConfigurationError(f"{name}: GOOD ({good}) must not exceed WARNING ({warning}).")
    return Threshold(good=good, warning=warning)


def configure_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.command()
@click.argument("repositories", nargs=-1)
@click.option(
    "--token",
    envvar="GITHUB_TOKEN",
    required=True,
    show_envvar=True,
    help="GitHub personal access token",
)
@click.option(
    "--days", default=30, show_default=True, help="Length of the period ending today"
)
@click.option(
    "--since",
    default=None,
    help="Start date (YYYY-MM-DD or relative: 7d, 2w, 3m, 1y)",
)
@click.option(
    "--until",
    default=None,
    help="End date (YYYY-MM-DD or relative: 7d, 2w, 3m, 1y)",
)
@click.option(
    "--weeks", default=8, show_default=True, help="Number of weekly trend rows to show"
)
@click.option("--environment", default=None, help="Only count deployments to this environment")
@click.option(
    "--deploy-workflow",
    multiple=True,
    help="Workflow name substring that marks a deploy workflow (repeatable, default: deploy)",
)
@click.option(
    "--exclude-label",
    multiple=True,
    help="Exclude PRs carrying this label (repeatable)",
)
@click.option(
    "--exclude-branch",
    multiple=True,
    help="Exclude PRs whose base or head branch matches this glob (repeatable)",
)
@click.option(
    "--incident-label",
    multiple=True,
    help="Issue label that marks an incident (repeatable, default: incident)",
)
@click.option(
    "--extended",
    is_flag=True,
    default=False,
    help="Also collect PR size and review efficiency (one extra request per PR)",
)
@click.option(
    "--lead-time-threshold",
    type=(float, float),
    default=None,
    metavar="GOOD WARNING",
    help="Lead time health thresholds in hours",
)
@click.option(
    "--cfr-threshold",
    type=(float, float),
    default=None,
    metavar="GOOD WARNING",
    help="Change failure rate health thresholds in percent",
)
@click.option(
    "--review-threshold",
    type=(float, float),
    default=None,
    metavar="GOOD WARNING",
    help="Time to first review health thresholds in hours",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json", "csv"], case_sensitive=False),
    default="table",
    show_default=True,
    help="Output format (csv exports one metrics row per repository)",
)
@click.option(
    "--output",
    "output_file",
    default=None,
    type=click.Path(),
    help="Save output to file instead of stdout",
)
@click.option(
    "--api-url",
    default=None,
    help="GitHub Enterprise API base URL",
)
@click.option(
    "--no-ssl-verify",
    is_flag=True,
    default=False,
    help="Disable SSL verification (self-signed certs)",
)
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v, -vv)")
@click.version_option(version=__version__)
def main(
    repositories: tuple[str, ...],
    token: str,
    days: int,
    since: str | None,
    until: str | None,
    weeks: int,
    environment: str | None,
    deploy_workflow: tuple[str, ...],
    exclude_label: tuple[str, ...],
    exclude_branch: tuple[str, ...],
    incident_label: tuple[str, ...],
    extended: bool,
    lead_time_threshold: tuple[float, float] | None,
    cfr_threshold: tuple[float, float] | None,
    review_threshold: tuple[float, float] | None,
    output_format: str,
    output_file: str | None,
    api_url: str | None,
    no_ssl_verify: bool,
    verbose: int,
) -> None:
    """Compute DORA metrics for GitHub repositories.

    \b
    REPOSITORIES are one or more owner/repo names.

    \b
    Examples:
      dora-scorecard myorg/api myorg/web
      dora-scorecard myorg/api --days 90 --weeks 12
      dora-scorecard myorg/api --since 2024-01-01 --until 2024-03-31 --format json
      dora-scorecard myorg/api --environment production --extended
    """
    configure_logging(verbose)

    from .orchestrator import run

    try:
        repos = validate_repositories(repositories)
        period_since, period_until = resolve_period(days, since, until)
        defaults = DEFAULT_HEALTH_THRESHOLDS
        thresholds = HealthThresholds(
            lead_time=_threshold(lead_time_threshold, defaults.lead_time, "--lead-time-threshold"),
            change_failure_rate=_threshold(
                cfr_threshold, defaults.change_failure_rate, "--cfr-threshold"
            ),
            cycle_time=defaults.cycle_time,
            time_to_first_review=_threshold(
                review_threshold, defaults.time_to_first_review, "--review-threshold"
            ),
        )
        options = CollectOptions(
            environment=environment,
            deploy_workflow_patterns=deploy_workflow or DEFAULT_DEPLOY_WORKFLOW_PATTERNS,
            exclude_labels=exclude_label,
            exclude_branches=exclude_branch,
            incident_labels=incident_label or DEFAULT_INCIDENT_LABELS,
            extended=extended,
        )
        asyncio.run(
            run(
                repositories=repos,
                token=token,
                since=period_since,
                until=period_until,
                week_count=weeks,
                options=options,
                thresholds=thresholds,
                output_format=output_format.lower(),
                output_file=output_file,
                api_url=api_url,
                verify_ssl=not no_ssl_verify,
            )
        )
    except ConfigurationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)
    except AuthenticationError:
        click.echo("Error: Authentication failed. Check your --token or $GITHUB_TOKEN.", err=True)
        sys.exit(1)
    except NotFoundError as exc:
        click.echo(f"Error: {exc}. Check the owner/repo name.", err=True)
        sys.exit(1)
    except RateLimitError as exc:
        click.echo(f"Error: {exc}. Try again later.", err=True)
        sys.exit(1)
    except ScorecardError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
        click.echo(f"Error: Could not connect to GitHub API. {exc}", err=True)
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    main()

"""Tests for the orchestrator module."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from dora_scorecard.collector import RepositoryEvents
from dora_scorecard.models import Deployment, PRReviewData, PRSizeData, PullRequest
from dora_scorecard.orchestrator import build_report, run, score_repository

SINCE = datetime(2024, 6, 1, tzinfo=timezone.utc)
UNTIL = datetime(2024, 6, 30, 23, 59, 59, tzinfo=timezone.utc)
T0 = datetime(2024, 6, 3, 9, 0, tzinfo=timezone.utc)


def _at(hours: float) -> datetime:
    return T0 + timedelta(hours=hours)


def _pr(repository: str, number: int, created: float, merged: float) -> PullRequest:
    return PullRequest(
        id=number,
        number=number,
        title=f"PR {number}",
        state="closed",
        created_at=_at(created),
        merged_at=_at(merged),
        closed_at=_at(merged),
        author="alice",
        repository=repository,
    )


def _deploy(repository: str, id: int, at: float, status="success") -> Deployment:
    return Deployment(
        id=id,
        sha="abc",
        environment="production",
        created_at=_at(at),
        updated_at=_at(at),
        status=status,
        repository=repository,
    )


def _events(repository="acme/api") -> RepositoryEvents:
    return RepositoryEvents(
        repository=repository,
        prs=[_pr(repository, 1, 0, 10)],
        deployments=[
            _deploy(repository, 1, 12),
            _deploy(repository, 2, 30, status="failure"),
            _deploy(repository, 3, 32),
        ],
    )


def test_score_repository():
    score = score_repository(_events(), 30, "2024-06-30", "2024-06-01~2024-06-30")
    assert score.repository == "acme/api"
    assert score.metrics.date == "2024-06-30"
    assert score.metrics.deployment_count == 2
    assert score.metrics.lead_time_for_changes_hours == 2
    assert score.deployment_frequency_level == "medium"
    assert score.lead_time_level == "high"
    assert score.change_failure_rate_level == "low"
    assert score.mttr_level == "high"
    assert score.health == "critical"
    assert score.pr_size is None
    assert score.review_efficiency is None


def test_score_repository_without_recoveries():
    events = RepositoryEvents(repository="acme/api")
    score = score_repository(events, 30, "2024-06-30", "period")
    assert score.mttr_level is None
    assert score.lead_time_level is None
    assert score.health == "good"
    assert score.deployment_frequency_level == "low"


def test_score_repository_extended():
    events = _events()
    events.size_data = [
        PRSizeData(1, "PR 1", "acme/api", _at(0), _at(10), 10, 2, 12, 1),
    ]
    events.review_data = [
        PRReviewData(1, "PR 1", "acme/api", _at(0), _at(0), _at(30), None, _at(40),
                     30, None, None, 40),
    ]
    score = score_repository(events, 30, "2024-06-30", "period")
    assert score.pr_size.pr_count == 1
    assert score.review_efficiency.time_to_first_review.avg_hours == 30
    assert score.health == "critical"


def test_build_report():
    report = build_report(
        [_events("acme/api"), _events("acme/web")], SINCE, UNTIL, failed_repos=["acme/gone"]
    )
    assert report.period_start == "2024-06-01"
    assert report.period_end == "2024-06-30"
    assert report.period_days == 30
    assert [s.repository for s in report.scores] == ["acme/api", "acme/web"]
    assert report.failed_repos == ["acme/gone"]

    # daily rows for 30 days and 2 repositories
    api_summary = report.summary.repository_summaries[0]
    assert api_summary.data_point_count == 30
    assert report.summary.overall_summary.total_repositories == 2

    assert report.trends
    assert sum(t.total_deployments for t in report.trends) == 4

    alert_types = {(a.repository, a.type) for a in report.alerts}
    assert ("acme/api", "high_failure_rate") in alert_types
    assert ("acme/api", "low_deployment_frequency") in alert_types


def test_build_report_empty():
    report = build_report([], SINCE, UNTIL)
    assert report.scores == []
    assert report.trends == []
    assert report.alerts == []
    assert report.summary.overall_summary.total_repositories == 0


@pytest.mark.asyncio
async def test_run_renders_requested_format():
    client = MagicMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=None)

    with patch("dora_scorecard.orchestrator.GitHubClient", return_value=client) as client_cls, \
         patch(
             "dora_scorecard.orchestrator.collect_all",
             new_callable=AsyncMock,
             return_value=([_events()], []),
         ) as collect, \
         patch("dora_scorecard.orchestrator.render_json") as render_json, \
         patch("dora_scorecard.orchestrator.render_report") as render_report:
        report = await run(
            ["acme/api"],
            "token",
            SINCE,
            UNTIL,
            output_format="json",
            output_file="out.json",
            api_url="https://ghe.example.com/api/v3",
        )

    client_cls.assert_called_once_with(
        token="token", base_url="https://ghe.example.com/api/v3", verify_ssl=True
    )
    collect.assert_awaited_once()
    render_json.assert_called_once_with(report, output_file="out.json")
    render_report.assert_not_called()
    assert report.scores[0].repository == "acme/api"


def test_score_repository_without_merged_prs_has_no_lead_time_level():
    events = RepositoryEvents(
        repository="acme/api",
        deployments=[_deploy("acme/api", 1, 12), _deploy("acme/api", 2, 36)],
    )
    score = score_repository(events, 30, "2024-06-30", "period")
    assert score.metrics.lead_time_for_changes_hours == 0
    assert score.lead_time_level is None
    assert score.health == "good"


def test_score_repository_idle_lead_time_does_not_mask_review_health():
    events = RepositoryEvents(repository="acme/api")
    events.review_data = [
        PRReviewData(1, "PR 1", "acme/api", _at(0), _at(0), _at(10), None, None,
                     10, None, None, None),
    ]
    score = score_repository(events, 30, "2024-06-30", "period")
    assert score.lead_time_level is None
    assert score.health == "warning"

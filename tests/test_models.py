"""Tests for data models."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone

import pytest

from dora_scorecard.models import (
    DevOpsMetrics,
    LeadTimeResult,
    MultiRepoSummary,
    PullRequest,
    ReworkRateMetrics,
    ScorecardReport,
    Threshold,
)


def test_devops_metrics_defaults():
    metrics = DevOpsMetrics(date="2024-06-30", repository="acme/api")
    assert metrics.deployment_count == 0
    assert metrics.deployment_frequency == "yearly"
    assert metrics.lead_time_for_changes_hours == 0
    assert metrics.change_failure_rate == 0
    assert metrics.mean_time_to_recovery_hours is None
    assert metrics.lead_time_measurement is None


def test_lead_time_result_defaults():
    assert LeadTimeResult() == LeadTimeResult(0, 0, 0)


def test_events_are_frozen():
    pr = PullRequest(
        id=1,
        number=1,
        title="PR",
        state="open",
        created_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
        merged_at=None,
        closed_at=None,
        author="alice",
        repository="acme/api",
    )
    with pytest.raises(dataclasses.FrozenInstanceError):
        pr.title = "changed"
    assert pr.additions == 0
    assert pr.base_ref_name == ""


def test_threshold_positional():
    assert Threshold(1, 2) == Threshold(good=1, warning=2)


def test_mutable_defaults_are_independent():
    a = ScorecardReport(period_start="a", period_end="b", period_days=1)
    b = ScorecardReport(period_start="a", period_end="b", period_days=1)
    a.alerts.append("x")
    assert b.alerts == []
    assert MultiRepoSummary().overall_summary.total_repositories == 0
    assert ReworkRateMetrics(period="p").force_pushes.total == 0

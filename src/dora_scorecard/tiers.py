"""DORA performance tiers.

Fixed benchmark thresholds from the State of DevOps reports. Each function
maps one raw metric value to ``elite``/``high``/``medium``/``low``.
"""

from __future__ import annotations

from .models import FrequencyCategory, PerformanceLevel

HOURS_PER_WEEK = 24 * 7

# Deployments per day
DEPLOYMENT_FREQUENCY_ELITE = 1
DEPLOYMENT_FREQUENCY_HIGH = 1 / 7
DEPLOYMENT_FREQUENCY_MEDIUM = 1 / 30

# Hours, exclusive upper bounds
LEAD_TIME_ELITE = 1
LEAD_TIME_HIGH = 24
LEAD_TIME_MEDIUM = HOURS_PER_WEEK

# Percent, inclusive upper bounds. Elite and high share one band.
CHANGE_FAILURE_RATE_ELITE_HIGH = 15
CHANGE_FAILURE_RATE_MEDIUM = 30

# Hours, exclusive upper bounds
MTTR_ELITE = 1
MTTR_HIGH = 24
MTTR_MEDIUM = HOURS_PER_WEEK


def deployment_frequency_level(deploys_per_day: float) -> PerformanceLevel:
    if deploys_per_day >= DEPLOYMENT_FREQUENCY_ELITE:
        return "elite"
    if deploys_per_day >= DEPLOYMENT_FREQUENCY_HIGH:
        return "high"
    if deploys_per_day >= DEPLOYMENT_FREQUENCY_MEDIUM:
        return "medium"
    return "low"


def lead_time_level(hours: float) -> PerformanceLevel:
    if hours < LEAD_TIME_ELITE:
        return "elite"
    if hours < LEAD_TIME_HIGH:
        return "high"
    if hours < LEAD_TIME_MEDIUM:
        return "medium"
    return "low"


def change_failure_rate_level(rate: float) -> PerformanceLevel:
    """Classify a change failure rate.

    Never returns ``elite``: the rate alone cannot separate elite from high.
    """
    if rate <= CHANGE_FAILURE_RATE_ELITE_HIGH:
        return "high"
    if rate <= CHANGE_FAILURE_RATE_MEDIUM:
        return "medium"
    return "low"


def mttr_level(hours: float) -> PerformanceLevel:
    if hours < MTTR_ELITE:
        return "elite"
    if hours < MTTR_HIGH:
        return "high"
    if hours < MTTR_MEDIUM:
        return "medium"
    return "low"


def frequency_category(deploys_per_day: float) -> FrequencyCategory:
    """Map a deployment rate to the cadence label stored on metrics rows."""
    if deploys_per_day >= DEPLOYMENT_FREQUENCY_ELITE:
        return "daily"
    if deploys_per_day >= DEPLOYMENT_FREQUENCY_HIGH:
        return "weekly"
    if deploys_per_day >= DEPLOYMENT_FREQUENCY_MEDIUM:
        return "monthly"
    return "yearly"

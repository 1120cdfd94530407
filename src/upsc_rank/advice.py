"""Study recommendations and risk factors attached to each prediction.

Fixed-threshold rules over the progress snapshot and the sample history.
Pure functions, no side effects.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timezone
from typing import Sequence

from upsc_rank.adaptive import PerformanceSample
from upsc_rank.subjects import UserProgressSnapshot

# --- Recommendation thresholds ---
COMPLETION_TARGET = 60.0
TEST_SCORE_TARGET = 70.0
DAILY_HOURS_TARGET = 6.0
STUDY_DAYS_TARGET = 20

# --- Risk thresholds ---
COMPLETION_RISK = 50.0
TEST_SCORE_RISK = 60.0
DAYS_LEFT_RISK = 100
READINESS_RISK = 70

DEFAULT_RECOMMENDATIONS = [
    "Continue your current study pattern",
    "Focus on revision and practice tests",
    "Maintain consistent study schedule",
]
NO_RISK_FACTORS = ["No major risk factors identified"]


def study_days(samples: Sequence[PerformanceSample]) -> int:
    """Distinct UTC calendar days with at least one sample."""
    return len({s.timestamp.astimezone(timezone.utc).date() for s in samples})


def average_daily_hours(samples: Sequence[PerformanceSample]) -> float | None:
    """Study hours per active day, or None when no sample records a duration."""
    durations = [s.duration_minutes for s in samples if s.duration_minutes is not None]
    if not durations:
        return None
    return sum(durations) / 60 / max(study_days(samples), 1)


def exam_readiness(snapshot: UserProgressSnapshot, daily_hours: float | None) -> int:
    """0-100 readiness: 40% completion, 30% tests, 30% daily hours (10h = full)."""
    hours_score = min((daily_hours or 0.0) * 10, 100.0)
    readiness = (
        snapshot.completion_ratio * 100 * 0.4
        + snapshot.test_performance_ratio * 100 * 0.3
        + hours_score * 0.3
    )
    return max(0, min(100, math.floor(readiness + 0.5)))


def days_until(exam_date: date, today: date | None = None) -> int:
    today = today or datetime.now(tz=timezone.utc).date()
    return (exam_date - today).days


def build_recommendations(
    snapshot: UserProgressSnapshot,
    samples: Sequence[PerformanceSample] = (),
) -> list[str]:
    """Actionable suggestions; a generic list when nothing stands out."""
    recommendations: list[str] = []
    if snapshot.completion_ratio < COMPLETION_TARGET / 100:
        recommendations.append("Focus on completing more syllabus coverage")
    if snapshot.test_performance_ratio < TEST_SCORE_TARGET / 100:
        recommendations.append("Increase practice test frequency and analyze mistakes")
    hours = average_daily_hours(samples)
    if hours is not None and hours < DAILY_HOURS_TARGET:
        recommendations.append("Increase daily study hours to at least 6-8 hours")
    if study_days(samples) < STUDY_DAYS_TARGET:
        recommendations.append("Maintain consistent daily study routine")
    return recommendations or list(DEFAULT_RECOMMENDATIONS)


def build_risk_factors(
    snapshot: UserProgressSnapshot,
    samples: Sequence[PerformanceSample] = (),
    days_to_exam: int | None = None,
) -> list[str]:
    """Warning signs. The time check only applies when the exam date is known."""
    risks: list[str] = []
    if snapshot.completion_ratio < COMPLETION_RISK / 100:
        risks.append("Syllabus completion is behind schedule")
    if snapshot.test_performance_ratio < TEST_SCORE_RISK / 100:
        risks.append("Test performance needs significant improvement")
    if days_to_exam is not None and days_to_exam < DAYS_LEFT_RISK:
        if exam_readiness(snapshot, average_daily_hours(samples)) < READINESS_RISK:
            risks.append("Limited time remaining for preparation")
    return risks or list(NO_RISK_FACTORS)

"""Real-time study metrics derived from recent performance samples."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Sequence

from upsc_rank.adaptive import PerformanceSample

DEFAULT_PEAK_HOURS = [9, 15, 21]
REVISIONS_FOR_FULL_RETENTION = 3


@dataclass
class StudyMetrics:
    study_consistency: float = 0.5
    accuracy_trend: float = 0.5
    speed_improvement: float = 0.5
    retention_rate: float = 0.4
    burnout_risk: float = 0.5
    peak_performance_hours: list[int] = field(default_factory=lambda: list(DEFAULT_PEAK_HOURS))


def _within(samples: Sequence[PerformanceSample], now: datetime, days: int) -> list[PerformanceSample]:
    cutoff = now - timedelta(days=days)
    return [s for s in samples if s.timestamp > cutoff]


def _halves(values: list[float]) -> tuple[list[float], list[float]]:
    """Split most-recent-first values into (recent, older); recent gets the odd one."""
    middle = math.ceil(len(values) / 2)
    return values[:middle], values[middle:]


def calculate_study_consistency(samples: Sequence[PerformanceSample]) -> float:
    """Share of weekdays studied, scaled by how even the daily hours are."""
    if len(samples) < 7:
        return 0.3
    daily_hours = [0.0] * 7
    for s in samples:
        daily_hours[s.timestamp.weekday()] += (s.duration_minutes or 0) / 60
    study_days = sum(1 for h in daily_hours if h > 0)
    avg = sum(daily_hours) / 7
    variance = sum((h - avg) ** 2 for h in daily_hours) / 7
    return (study_days / 7) * max(0.3, 1 - math.sqrt(variance) / (avg + 1))


def calculate_accuracy_trend(samples: Sequence[PerformanceSample]) -> float:
    """0.5 is flat; above means recent accuracy beats older accuracy."""
    values = [s.accuracy for s in samples if s.accuracy is not None]
    if len(values) < 5:
        return 0.5
    recent, older = _halves(values)
    change = sum(recent) / len(recent) - sum(older) / len(older)
    return max(0.0, min(1.0, 0.5 + change / 100))


def calculate_speed_improvement(samples: Sequence[PerformanceSample]) -> float:
    """0.5 is flat; above means recent answers take less time."""
    values = [s.time_taken_seconds for s in samples if s.time_taken_seconds is not None]
    if len(values) < 10:
        return 0.5
    recent, older = _halves(values)
    recent_avg = sum(recent) / len(recent)
    older_avg = sum(older) / len(older)
    if older_avg <= 0:
        return 0.5
    return max(0.0, min(1.0, 0.5 + (older_avg - recent_avg) / older_avg))


def calculate_retention_rate(samples: Sequence[PerformanceSample]) -> float:
    counts = [s.revision_count for s in samples if s.revision_count is not None]
    if not counts:
        return 0.4
    return min(1.0, sum(counts) / len(counts) / REVISIONS_FOR_FULL_RETENTION)


def calculate_burnout_risk(samples: Sequence[PerformanceSample]) -> float:
    """Average of overwork, inconsistency and bad-mood risk over a week of samples."""
    if not samples:
        return 0.5
    avg_daily_hours = sum((s.duration_minutes or 0) / 60 for s in samples) / 7
    if avg_daily_hours > 12:
        overwork = 0.8
    elif avg_daily_hours > 10:
        overwork = 0.6
    else:
        overwork = 0.3
    inconsistency = 0.7 if calculate_study_consistency(samples) < 0.5 else 0.3
    bad_moods = sum(1 for s in samples if s.mood_tag and "bad" in s.mood_tag.lower())
    mood = bad_moods / len(samples)
    return min(1.0, (overwork + inconsistency + mood) / 3)


def identify_peak_hours(samples: Sequence[PerformanceSample], top: int = 3) -> list[int]:
    """Hours of day with the best average performance, best first."""
    totals = [0.0] * 24
    counts = [0] * 24
    for s in samples:
        if s.performance:
            hour = s.timestamp.hour
            totals[hour] += s.performance
            counts[hour] += 1
    averages = [totals[h] / counts[h] if counts[h] else 0.0 for h in range(24)]
    return sorted(range(24), key=lambda h: averages[h], reverse=True)[:top]


def calculate_realtime_metrics(
    samples: Sequence[PerformanceSample],
    now: datetime | None = None,
) -> StudyMetrics:
    """Compute every study metric. samples are most-recent-first."""
    if not samples:
        return StudyMetrics()
    now = now or datetime.now(tz=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    last_week = _within(samples, now, 7)
    last_month = _within(samples, now, 30)
    return StudyMetrics(
        study_consistency=calculate_study_consistency(last_week),
        accuracy_trend=calculate_accuracy_trend(last_month),
        speed_improvement=calculate_speed_improvement(last_month),
        retention_rate=calculate_retention_rate(samples),
        burnout_risk=calculate_burnout_risk(last_week),
        peak_performance_hours=identify_peak_hours(samples),
    )

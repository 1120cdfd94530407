"""Adaptive factor calculator for upsc-rank.

Derives score multipliers from a user's recent performance history.
Samples are always ordered most-recent-first. Every factor falls back to a
fixed low-confidence constant when the history is too short; nothing here
raises on sparse data.
"""

from __future__ import annotations

import math
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator, Sequence

# --- Cold-start defaults ---
DEFAULT_TIME_DECAY = 0.5
DEFAULT_CONSISTENCY = 0.6
DEFAULT_LEARNING_VELOCITY = 0.8
DEFAULT_STRESS_SHORT = 0.8  # fewer than STRESS_WINDOW samples
DEFAULT_STRESS_NO_BASELINE = 0.9  # fewer than 2 * STRESS_WINDOW samples

# --- Minimum history per factor ---
MIN_SAMPLES_CONSISTENCY = 5
MIN_SAMPLES_VELOCITY = 10
STRESS_WINDOW = 7

# --- Ranges ---
CONSISTENCY_MIN = 0.3
CONSISTENCY_MAX = 1.2
VELOCITY_MIN = 0.5
VELOCITY_MAX = 1.3

DECAY_RATE = 0.1  # weight = exp(-DECAY_RATE * index)
VELOCITY_SLOPE_GAIN = 0.5
VELOCITY_SMOOTHING = 0.5  # weight kept from the previous stored velocity
CONFIDENCE_SAMPLE_TARGET = 100


class InvalidSampleError(ValueError):
    """Performance sample outside 0-100 or not finite."""


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _check_score(value: float | None, name: str) -> None:
    if value is None:
        return
    if not math.isfinite(value) or not 0.0 <= value <= 100.0:
        raise InvalidSampleError(f"{name} must be within [0, 100], got {value!r}")


@dataclass(frozen=True)
class PerformanceSample:
    """One recorded observation. Scores are on a 0-100 scale."""

    timestamp: datetime
    performance: float
    accuracy: float | None = None
    time_taken_seconds: float | None = None
    mood_tag: str | None = None
    duration_minutes: float | None = None
    revision_count: int | None = None

    def __post_init__(self) -> None:
        _check_score(self.performance, "performance")
        _check_score(self.accuracy, "accuracy")
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, "timestamp", self.timestamp.replace(tzinfo=timezone.utc))


@dataclass(frozen=True)
class AdaptiveFactors:
    """Multipliers derived from the sample history at call time."""

    time_decay: float = DEFAULT_TIME_DECAY
    consistency: float = DEFAULT_CONSISTENCY
    learning_velocity: float = DEFAULT_LEARNING_VELOCITY
    stress_impact: float = DEFAULT_STRESS_SHORT
    confidence_level: float = 0.4 * DEFAULT_CONSISTENCY


class LearningVelocityStore:
    """Per-user running learning-velocity values.

    Reads and writes for one user are serialized through that user's lock;
    different users never contend.
    """

    def __init__(self) -> None:
        self._values: dict[str, float] = {}
        self._updated_at: dict[str, datetime] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[user_id] = lock
            return lock

    @contextmanager
    def lock(self, user_id: str) -> Iterator[None]:
        """Hold the user's lock for a read-modify-write cycle."""
        lock = self._lock_for(user_id)
        with lock:
            yield

    def get(self, user_id: str) -> float | None:
        return self._values.get(user_id)

    def set(self, user_id: str, velocity: float) -> None:
        self._values[user_id] = velocity
        self._updated_at[user_id] = datetime.now(tz=timezone.utc)

    def seed(self, user_id: str, velocity: float | None) -> None:
        """Load a persisted value without overwriting a newer in-memory one."""
        if velocity is None:
            return
        with self.lock(user_id):
            if user_id not in self._values:
                self.set(user_id, _clamp(velocity, VELOCITY_MIN, VELOCITY_MAX))

    def last_updated(self, user_id: str) -> datetime | None:
        return self._updated_at.get(user_id)

    def snapshot(self) -> dict[str, float]:
        with self._registry_lock:
            return dict(self._values)


def calculate_time_decay(samples: Sequence[PerformanceSample]) -> float:
    """Exponentially weighted mean performance, scaled to [0, 1]."""
    if not samples:
        return DEFAULT_TIME_DECAY
    weights = [math.exp(-DECAY_RATE * i) for i in range(len(samples))]
    weighted = sum(s.performance * w for s, w in zip(samples, weights))
    return _clamp(weighted / sum(weights) / 100.0, 0.0, 1.0)


def calculate_consistency(samples: Sequence[PerformanceSample]) -> float:
    """1 - coefficient of variation, bounded to [0.3, 1.2]."""
    if len(samples) < MIN_SAMPLES_CONSISTENCY:
        return DEFAULT_CONSISTENCY
    values = [s.performance for s in samples]
    mean = sum(values) / len(values)
    if mean <= 0:
        return CONSISTENCY_MIN
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    score = 1.0 - math.sqrt(variance) / mean
    return _clamp(score, CONSISTENCY_MIN, CONSISTENCY_MAX)


def trend_slope(values: Sequence[float]) -> float:
    """Least-squares slope of values against their position (0, 1, 2, ...)."""
    n = len(values)
    if n < 2:
        return 0.0
    sum_x = n * (n - 1) / 2
    sum_xx = (n - 1) * n * (2 * n - 1) / 6
    sum_y = sum(values)
    sum_xy = sum(i * v for i, v in enumerate(values))
    denominator = n * sum_xx - sum_x**2
    if denominator == 0:
        return 0.0
    slope = (n * sum_xy - sum_x * sum_y) / denominator
    return slope if math.isfinite(slope) else 0.0


def calculate_learning_velocity(
    samples: Sequence[PerformanceSample],
    user_id: str,
    store: LearningVelocityStore,
) -> float:
    """Improvement rate over the history, smoothed against the stored value.

    The slope runs over sample index, the same most-recent-first index the
    time decay weights use.
    """
    if len(samples) < MIN_SAMPLES_VELOCITY:
        return DEFAULT_LEARNING_VELOCITY

    by_index = [s.performance for s in samples]
    raw = _clamp(
        DEFAULT_LEARNING_VELOCITY + trend_slope(by_index) * VELOCITY_SLOPE_GAIN,
        VELOCITY_MIN,
        VELOCITY_MAX,
    )

    with store.lock(user_id):
        previous = store.get(user_id)
        if previous is None:
            velocity = raw
        else:
            velocity = VELOCITY_SMOOTHING * previous + (1.0 - VELOCITY_SMOOTHING) * raw
        velocity = _clamp(velocity, VELOCITY_MIN, VELOCITY_MAX)
        store.set(user_id, velocity)
    return velocity


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def calculate_stress_impact(samples: Sequence[PerformanceSample]) -> float:
    """Compare the last week of samples against the week before.

    Drop > 20%: 0.7. Drop > 10%: 0.8. Rise > 10%: 1.1. Otherwise 0.9.
    """
    if len(samples) < STRESS_WINDOW:
        return DEFAULT_STRESS_SHORT
    if len(samples) < 2 * STRESS_WINDOW:
        return DEFAULT_STRESS_NO_BASELINE

    recent = _mean([s.performance for s in samples[:STRESS_WINDOW]])
    older = _mean([s.performance for s in samples[STRESS_WINDOW : 2 * STRESS_WINDOW]])

    if older == 0:
        return 1.1 if recent > 0 else 0.9

    change = (recent - older) / older
    if change < -0.2:
        return 0.7
    if change < -0.1:
        return 0.8
    if change > 0.1:
        return 1.1
    return 0.9


def calculate_confidence_level(sample_count: int, consistency: float) -> float:
    """Blend of data volume (60%) and consistency (40%), in [0, 1]."""
    data_confidence = min(1.0, max(0, sample_count) / CONFIDENCE_SAMPLE_TARGET)
    return _clamp(0.6 * data_confidence + 0.4 * consistency, 0.0, 1.0)


def compute_adaptive_factors(
    samples: Sequence[PerformanceSample],
    user_id: str,
    store: LearningVelocityStore,
) -> AdaptiveFactors:
    """Compute every adaptive factor for one user's history."""
    consistency = calculate_consistency(samples)
    return AdaptiveFactors(
        time_decay=calculate_time_decay(samples),
        consistency=consistency,
        learning_velocity=calculate_learning_velocity(samples, user_id, store),
        stress_impact=calculate_stress_impact(samples),
        confidence_level=calculate_confidence_level(len(samples), consistency),
    )

"""Per-subject score prediction. Pure functions, no side effects."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable

from upsc_rank.adaptive import AdaptiveFactors
from upsc_rank.profiles import DEFAULT_TABLES, SubjectProfile, UnknownSubjectError

logger = logging.getLogger(__name__)

# Base performance weights
COMPLETION_WEIGHT = 0.4
ACCURACY_WEIGHT = 0.35
TEST_WEIGHT = 0.25

DIFFICULTY_PENALTY = 0.3
VOLATILITY_PENALTY = 0.2


@dataclass
class UserProgressSnapshot:
    """Aggregate progress ratios (0-1) plus the reservation category."""

    completion_ratio: float = 0.0
    accuracy_ratio: float = 0.0
    test_performance_ratio: float = 0.0
    category: str = "general"

    def __post_init__(self) -> None:
        self.completion_ratio = _ratio(self.completion_ratio)
        self.accuracy_ratio = _ratio(self.accuracy_ratio)
        self.test_performance_ratio = _ratio(self.test_performance_ratio)
        self.category = (self.category or "general").lower()


@dataclass
class SubjectPrediction:
    subject: str
    score: int
    confidence: float
    difficulty: float | None = None
    volatility: float | None = None
    known: bool = True


def _ratio(value: float | None) -> float:
    if value is None or not math.isfinite(value):
        return 0.0
    return max(0.0, min(1.0, float(value)))


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (2.5 -> 3)."""
    return math.floor(value + 0.5)


def base_performance(snapshot: UserProgressSnapshot) -> float:
    """Weighted progress score on a 0-100 scale."""
    return 100.0 * (
        COMPLETION_WEIGHT * snapshot.completion_ratio
        + ACCURACY_WEIGHT * snapshot.accuracy_ratio
        + TEST_WEIGHT * snapshot.test_performance_ratio
    )


def predict_subject_score(
    subject: str,
    base_score: float,
    factors: AdaptiveFactors,
    profiles: dict[str, SubjectProfile] | None = None,
    strict: bool = False,
) -> SubjectPrediction:
    """Predict one paper's score from the base score and adaptive factors.

    adjusted = base * (1 - difficulty * 0.3) * consistency * time_decay,
    rounded and clamped to [0, max_possible_score].

    Unknown subjects give a zero-score, zero-confidence prediction with
    known=False, or raise UnknownSubjectError when strict is set.
    """
    profiles = DEFAULT_TABLES.subject_profiles if profiles is None else profiles
    code = subject.lower()
    profile = profiles.get(code)
    if profile is None:
        if strict:
            raise UnknownSubjectError(subject)
        logger.warning("Unknown subject code %r, predicting zero", subject)
        return SubjectPrediction(subject=code, score=0, confidence=0.0, known=False)

    adjusted = (
        max(0.0, base_score)
        * (1.0 - profile.difficulty * DIFFICULTY_PENALTY)
        * factors.consistency
        * factors.time_decay
    )
    score = max(0, min(profile.max_possible_score, round_half_up(adjusted)))
    confidence = factors.confidence_level * (1.0 - profile.volatility * VOLATILITY_PENALTY)

    return SubjectPrediction(
        subject=code,
        score=score,
        confidence=max(0.0, min(1.0, confidence)),
        difficulty=profile.difficulty,
        volatility=profile.volatility,
    )


def predict_all_subjects(
    subjects: Iterable[str],
    base_score: float,
    factors: AdaptiveFactors,
    profiles: dict[str, SubjectProfile] | None = None,
    strict: bool = False,
) -> dict[str, SubjectPrediction]:
    """Predict every subject in order; keys are lower-cased subject codes."""
    predictions: dict[str, SubjectPrediction] = {}
    for subject in subjects:
        prediction = predict_subject_score(subject, base_score, factors, profiles, strict)
        predictions[prediction.subject] = prediction
    return predictions

"""Rank and percentile estimation for upsc-rank.

Converts an aggregate predicted score into a percentile of the reference
population (normal approximation), an all-India rank, a category rank and a
qualification probability. No side effects. Pure functions only.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Mapping

from upsc_rank.profiles import DEFAULT_TABLES, ScoringTables
from upsc_rank.subjects import SubjectPrediction, round_half_up

logger = logging.getLogger(__name__)

# --- Abramowitz & Stegun 7.1.26 ---
_A1 = 0.254829592
_A2 = -0.284496736
_A3 = 1.421413741
_A4 = -1.453152027
_A5 = 1.061405429
_P = 0.3275911

DEFAULT_VOLATILITY = 0.5
INTERVAL_SCALE = 1000

# --- Qualification probability bounds (percent) ---
QUALIFICATION_MAX = 95.0
QUALIFICATION_MIN = 1.0


@dataclass
class ConfidenceInterval:
    lower: int
    upper: int


@dataclass
class RankPrediction:
    """Final rank estimate. Lower rank numbers are better."""

    predicted_rank: int
    category_rank: int
    percentile: float
    confidence_interval: ConfidenceInterval
    qualification_probability: float
    category: str = "general"


def erf(x: float) -> float:
    """Error function, five-term rational approximation (max error 1.5e-7)."""
    sign = 1.0 if x >= 0 else -1.0
    x = abs(x)
    t = 1.0 / (1.0 + _P * x)
    y = 1.0 - (((((_A5 * t + _A4) * t) + _A3) * t + _A2) * t + _A1) * t * math.exp(-x * x)
    return sign * y


def normal_cdf(z: float) -> float:
    """Standard normal CDF via erf."""
    return 0.5 * (1.0 + erf(z / math.sqrt(2.0)))


def calculate_percentile(
    total_score: float,
    mean: float = DEFAULT_TABLES.reference_mean,
    stddev: float = DEFAULT_TABLES.reference_stddev,
) -> float:
    """Share of the reference population scoring below total_score, in [0, 100]."""
    percentile = normal_cdf((total_score - mean) / stddev) * 100.0
    return max(0.0, min(100.0, percentile))


def calculate_rank(percentile: float, pool: int = DEFAULT_TABLES.candidate_pool) -> int:
    """All-India rank out of the candidate pool, never below 1."""
    return max(1, round_half_up((1.0 - percentile / 100.0) * pool))


def apply_category_adjustment(
    rank: int,
    category: str,
    multipliers: Mapping[str, float] | None = None,
) -> int:
    """Scale a rank by the category multiplier. Unknown categories use 1.0."""
    multipliers = DEFAULT_TABLES.category_multipliers if multipliers is None else multipliers
    multiplier = multipliers.get(category.lower()) if category else None
    if multiplier is None:
        logger.debug("Unknown category %r, using multiplier 1.0", category)
        multiplier = 1.0
    return max(1, round_half_up(rank * multiplier))


def confidence_interval_width(subject_predictions: Mapping[str, SubjectPrediction]) -> int:
    """Half-width of the rank interval: 1000 x mean subject volatility."""
    volatilities = [
        p.volatility if p.volatility is not None else DEFAULT_VOLATILITY
        for p in subject_predictions.values()
    ]
    average = sum(volatilities) / len(volatilities) if volatilities else DEFAULT_VOLATILITY
    return round_half_up(INTERVAL_SCALE * average)


def calculate_qualification_probability(rank: int) -> float:
    """Heuristic chance (percent) of making the final list at a given rank.

    rank <= 1000:  60 rising to 95 toward rank 1
    rank <= 3000:  falls from 60, floor 20
    rank <= 10000: falls from 20, floor 5
    beyond:        falls from 5, floor 1
    """
    if rank <= 1000:
        return min(QUALIFICATION_MAX, 60.0 + (1000 - rank) / 25)
    if rank <= 3000:
        return max(20.0, 60.0 - (rank - 1000) / 100)
    if rank <= 10000:
        return max(5.0, 20.0 - (rank - 3000) / 350)
    return max(QUALIFICATION_MIN, 5.0 - (rank - 10000) / 10000)


def estimate_rank(
    total_score: float,
    subject_predictions: Mapping[str, SubjectPrediction],
    category: str = "general",
    tables: ScoringTables = DEFAULT_TABLES,
) -> RankPrediction:
    """Full rank estimate for an aggregate score."""
    percentile = calculate_percentile(total_score, tables.reference_mean, tables.reference_stddev)
    rank = calculate_rank(percentile, tables.candidate_pool)
    width = confidence_interval_width(subject_predictions)

    return RankPrediction(
        predicted_rank=rank,
        category_rank=apply_category_adjustment(rank, category, tables.category_multipliers),
        percentile=round_half_up(percentile * 10) / 10,
        confidence_interval=ConfidenceInterval(
            lower=max(1, rank - width),
            upper=min(tables.candidate_pool, rank + width),
        ),
        qualification_probability=calculate_qualification_probability(rank),
        category=(category or "general").lower(),
    )

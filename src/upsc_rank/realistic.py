"""Band-based "realistic" score and rank draws.

Maps progress onto historical UPSC scoring bands and cut-offs, drawing a
value inside the matching band. Randomness comes from an injected source so
callers (and tests) can seed it.
"""

from __future__ import annotations

import random
from typing import Protocol

# Final cut-offs, general category
FINAL_CUTOFFS: dict[int, float] = {
    2023: 953,
    2022: 960,
    2021: 953,
    2020: 944,
    2019: 961,
    2018: 982,
    2017: 1006,
}

# (low, high) inclusive bands per paper
SCORING_BANDS: dict[str, dict[str, tuple[int, int]]] = {
    "essay": {"average": (80, 130), "toppers": (150, 180)},
    "gs1": {"average": (70, 120), "toppers": (130, 150)},
    "gs2": {"average": (65, 110), "toppers": (125, 145)},
    "gs3": {"average": (75, 125), "toppers": (135, 155)},
    "gs4": {"average": (60, 105), "toppers": (120, 140)},
    "optional": {"average": (180, 280), "toppers": (350, 450)},
    "interview": {"average": (140, 180), "toppers": (200, 230)},
}

# 2021 optional subject results
OPTIONAL_SUCCESS: dict[str, dict[str, float]] = {
    "psir": {"appeared": 1571, "recommended": 140, "success_rate": 8.9},
    "anthropology": {"appeared": 1159, "recommended": 90, "success_rate": 7.8},
    "sociology": {"appeared": 1087, "recommended": 92, "success_rate": 8.5},
    "geography": {"appeared": 1079, "recommended": 66, "success_rate": 6.1},
    "history": {"appeared": 574, "recommended": 25, "success_rate": 4.4},
    "public_admin": {"appeared": 361, "recommended": 31, "success_rate": 8.6},
    "commerce": {"appeared": 140, "recommended": 21, "success_rate": 15.0},
    "law": {"appeared": 180, "recommended": 21, "success_rate": 11.7},
}

TIMELINE: list[dict] = [
    {
        "min_days": 180,
        "expected_completion": 70,
        "focus": "Complete first reading, start current affairs integration",
    },
    {
        "min_days": 90,
        "expected_completion": 85,
        "focus": "Prelims revision, daily mock tests",
    },
    {
        "min_days": 0,
        "expected_completion": 95,
        "focus": "Rapid revision, accuracy improvement",
    },
]

# (offset from mean cut-off, rank low, rank high); first match wins
RANK_BANDS: list[tuple[float, int, int]] = [
    (100, 1, 100),
    (50, 100, 599),
    (0, 600, 2599),
    (-50, 2600, 12599),
    (-100, 12600, 62599),
]
BELOW_BAND_RANKS = (62600, 462599)

FLOOR_SCORE = 40


class RandomSource(Protocol):
    """Anything with random.Random's randint()."""

    def randint(self, a: int, b: int) -> int: ...


def mean_final_cutoff() -> float:
    return sum(FINAL_CUTOFFS.values()) / len(FINAL_CUTOFFS)


def calculate_realistic_score(
    completion: float,
    test_performance: float,
    subject: str,
    rng: RandomSource | None = None,
) -> int:
    """Draw a paper score from the band matching completion/test progress (0-100).

    base >= 90: topper band. base >= 75: an average-band-wide window starting
    at the top of the average band. base >= 60: average band. Otherwise 40 up
    to just under the average floor. Unknown subjects score 0.
    """
    bands = SCORING_BANDS.get(subject.lower())
    if bands is None:
        return 0
    rng = rng or random.Random()
    min_avg, max_avg = bands["average"]
    min_top, max_top = bands["toppers"]

    base = completion * 0.6 + test_performance * 0.4
    if base >= 90:
        return rng.randint(min_top, max_top)
    if base >= 75:
        return rng.randint(max_avg, 2 * max_avg - min_avg)
    if base >= 60:
        return rng.randint(min_avg, max_avg)
    return rng.randint(FLOOR_SCORE, FLOOR_SCORE + min_avg - 1)


def calculate_realistic_rank(total_score: float, rng: RandomSource | None = None) -> int:
    """Draw a rank from the band the total falls into relative to the mean cut-off."""
    rng = rng or random.Random()
    cutoff = mean_final_cutoff()
    for offset, low, high in RANK_BANDS:
        if total_score >= cutoff + offset:
            return rng.randint(low, high)
    return rng.randint(*BELOW_BAND_RANKS)


def get_timeline_expectation(days_to_exam: int) -> dict:
    """Expected syllabus completion and focus for the time left."""
    for stage in TIMELINE:
        if days_to_exam >= stage["min_days"]:
            return {"expected_completion": stage["expected_completion"], "focus": stage["focus"]}
    last = TIMELINE[-1]
    return {"expected_completion": last["expected_completion"], "focus": last["focus"]}


def get_optional_benchmark(optional: str = "psir") -> dict:
    """Midpoint average/topper optional scores and the subject's success rate."""
    bands = SCORING_BANDS["optional"]
    stats = OPTIONAL_SUCCESS.get(optional.lower(), {})
    return {
        "average_score": sum(bands["average"]) / 2,
        "topper_score": sum(bands["toppers"]) / 2,
        "success_rate": stats.get("success_rate"),
    }

"""Static scoring tables for upsc-rank.

Subject difficulty profiles, category multipliers and the reference score
distribution. Tables are plain data; build_tables() merges config overrides
onto the defaults and validates everything once, up front.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """A static table or config value is missing or out of range."""


class UnknownSubjectError(KeyError):
    """Subject code not present in the difficulty table."""


@dataclass(frozen=True)
class SubjectProfile:
    """Difficulty/volatility constants for one paper."""

    difficulty: float
    volatility: float
    max_possible_score: int


# Mains papers plus prelims CSAT. "optional" is the generic optional paper;
# psir carries the same profile under its own code.
SUBJECT_PROFILES: dict[str, SubjectProfile] = {
    "gs1": SubjectProfile(difficulty=0.75, volatility=0.6, max_possible_score=150),
    "gs2": SubjectProfile(difficulty=0.8, volatility=0.7, max_possible_score=145),
    "gs3": SubjectProfile(difficulty=0.85, volatility=0.5, max_possible_score=155),
    "gs4": SubjectProfile(difficulty=0.9, volatility=0.8, max_possible_score=140),
    "essay": SubjectProfile(difficulty=0.8, volatility=0.9, max_possible_score=175),
    "optional": SubjectProfile(difficulty=0.7, volatility=0.4, max_possible_score=400),
    "psir": SubjectProfile(difficulty=0.7, volatility=0.4, max_possible_score=400),
    "csat": SubjectProfile(difficulty=0.6, volatility=0.3, max_possible_score=130),
}

DEFAULT_SUBJECTS: tuple[str, ...] = ("gs1", "gs2", "gs3", "gs4", "psir", "essay", "csat")

CATEGORY_MULTIPLIERS: dict[str, float] = {
    "general": 1.0,
    "ews": 0.9,
    "obc": 0.73,
    "sc": 0.6,
    "st": 0.525,
}

# Reference population of aggregate scores
REFERENCE_MEAN = 850.0
REFERENCE_STDDEV = 120.0
CANDIDATE_POOL = 1_000_000


@dataclass(frozen=True)
class ScoringTables:
    """Validated bundle of every table the estimator reads."""

    subject_profiles: dict[str, SubjectProfile] = field(
        default_factory=lambda: dict(SUBJECT_PROFILES)
    )
    subjects: tuple[str, ...] = DEFAULT_SUBJECTS
    category_multipliers: dict[str, float] = field(
        default_factory=lambda: dict(CATEGORY_MULTIPLIERS)
    )
    reference_mean: float = REFERENCE_MEAN
    reference_stddev: float = REFERENCE_STDDEV
    candidate_pool: int = CANDIDATE_POOL


def _unit_interval(value: object, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value) or not 0.0 <= value <= 1.0:
        raise ConfigurationError(f"{name} must be within [0, 1], got {value!r}")
    return float(value)


def _positive(value: object, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value) or value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value!r}")
    return float(value)


def _parse_profile(code: str, raw: object) -> SubjectProfile:
    if isinstance(raw, SubjectProfile):
        raw = {
            "difficulty": raw.difficulty,
            "volatility": raw.volatility,
            "max_possible_score": raw.max_possible_score,
        }
    if not isinstance(raw, dict):
        raise ConfigurationError(f"subject profile {code!r} must be an object")
    missing = {"difficulty", "volatility", "max_possible_score"} - raw.keys()
    if missing:
        raise ConfigurationError(
            f"subject profile {code!r} is missing {', '.join(sorted(missing))}"
        )
    return SubjectProfile(
        difficulty=_unit_interval(raw["difficulty"], f"{code}.difficulty"),
        volatility=_unit_interval(raw["volatility"], f"{code}.volatility"),
        max_possible_score=int(_positive(raw["max_possible_score"], f"{code}.max_possible_score")),
    )


def build_tables(config: dict | None = None) -> ScoringTables:
    """Merge config overrides onto the default tables and validate them.

    Raises ConfigurationError on any malformed entry. Meant to be called once
    at startup; per-call code receives the resulting ScoringTables.
    """
    config = config or {}

    profiles: dict[str, SubjectProfile] = {
        code: _parse_profile(code, profile) for code, profile in SUBJECT_PROFILES.items()
    }
    overrides = config.get("subject_profiles", {})
    if not isinstance(overrides, dict):
        raise ConfigurationError("subject_profiles must be an object")
    for code, raw in overrides.items():
        profiles[str(code).lower()] = _parse_profile(code, raw)

    multipliers = dict(CATEGORY_MULTIPLIERS)
    cat_overrides = config.get("category_multipliers", {})
    if not isinstance(cat_overrides, dict):
        raise ConfigurationError("category_multipliers must be an object")
    for category, value in cat_overrides.items():
        multipliers[str(category).lower()] = _positive(value, f"category_multipliers.{category}")
    if "general" not in multipliers:
        raise ConfigurationError("category_multipliers must define 'general'")

    subjects = config.get("subjects", list(DEFAULT_SUBJECTS))
    if not isinstance(subjects, (list, tuple)) or not subjects:
        raise ConfigurationError("subjects must be a non-empty list")
    subjects = tuple(str(s).lower() for s in subjects)
    unknown = [s for s in subjects if s not in profiles]
    if unknown:
        raise ConfigurationError(f"subjects without a profile: {', '.join(unknown)}")

    pool = _positive(config.get("candidate_pool", CANDIDATE_POOL), "candidate_pool")

    tables = ScoringTables(
        subject_profiles=profiles,
        subjects=subjects,
        category_multipliers=multipliers,
        reference_mean=_positive(config.get("reference_mean", REFERENCE_MEAN), "reference_mean"),
        reference_stddev=_positive(
            config.get("reference_stddev", REFERENCE_STDDEV), "reference_stddev"
        ),
        candidate_pool=int(pool),
    )
    logger.debug(
        "Scoring tables built: %d subjects, %d categories",
        len(tables.subject_profiles),
        len(tables.category_multipliers),
    )
    return tables


DEFAULT_TABLES: ScoringTables = build_tables()

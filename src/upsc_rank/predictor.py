"""Prediction pipeline for upsc-rank.

history -> adaptive factors -> subject scores -> total -> rank estimate.
generate_prediction() is pure apart from the learning-velocity store;
PredictionService wires it to the SQLite store.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from typing import Sequence

from upsc_rank.adaptive import (
    AdaptiveFactors,
    LearningVelocityStore,
    PerformanceSample,
    compute_adaptive_factors,
)
from upsc_rank.advice import build_recommendations, build_risk_factors, days_until
from upsc_rank.config import DEFAULT_LOOKBACK_WINDOW, DEFAULT_LOW_CONFIDENCE_THRESHOLD
from upsc_rank.db import Database
from upsc_rank.profiles import DEFAULT_TABLES, ScoringTables
from upsc_rank.ranking import RankPrediction, estimate_rank
from upsc_rank.realistic import get_timeline_expectation
from upsc_rank.subjects import (
    SubjectPrediction,
    UserProgressSnapshot,
    base_performance,
    predict_all_subjects,
)

logger = logging.getLogger(__name__)

HIGH_QUALITY_SAMPLES = 50
MEDIUM_QUALITY_SAMPLES = 20


@dataclass
class Prediction:
    """Everything the dashboard shows for one prediction request."""

    total_score: int
    base_score: float
    subject_predictions: dict[str, SubjectPrediction]
    rank: RankPrediction
    factors: AdaptiveFactors
    confidence_level: float
    data_quality: str
    sample_count: int
    low_confidence: bool
    recommendations: list[str] = field(default_factory=list)
    risk_factors: list[str] = field(default_factory=list)
    days_to_exam: int | None = None
    timeline: dict | None = None
    last_updated: str = field(
        default_factory=lambda: datetime.now(tz=timezone.utc).isoformat()
    )


def classify_data_quality(sample_count: int) -> str:
    """'high' from 50 samples, 'medium' from 20, otherwise 'low'."""
    if sample_count >= HIGH_QUALITY_SAMPLES:
        return "high"
    if sample_count >= MEDIUM_QUALITY_SAMPLES:
        return "medium"
    return "low"


def generate_prediction(
    snapshot: UserProgressSnapshot,
    samples: Sequence[PerformanceSample],
    user_id: str,
    store: LearningVelocityStore,
    tables: ScoringTables = DEFAULT_TABLES,
    low_confidence_threshold: float = DEFAULT_LOW_CONFIDENCE_THRESHOLD,
    days_to_exam: int | None = None,
) -> Prediction:
    """Run the full estimator for one user.

    samples must be ordered most-recent-first. days_to_exam, when known, adds
    the time-left risk check and the timeline expectation.
    """
    factors = compute_adaptive_factors(samples, user_id, store)
    base_score = base_performance(snapshot)
    subject_predictions = predict_all_subjects(
        tables.subjects, base_score, factors, tables.subject_profiles
    )
    total_score = sum(p.score for p in subject_predictions.values())
    rank = estimate_rank(total_score, subject_predictions, snapshot.category, tables)

    return Prediction(
        total_score=total_score,
        base_score=base_score,
        subject_predictions=subject_predictions,
        rank=rank,
        factors=factors,
        confidence_level=factors.confidence_level,
        data_quality=classify_data_quality(len(samples)),
        sample_count=len(samples),
        low_confidence=factors.confidence_level < low_confidence_threshold,
        recommendations=build_recommendations(snapshot, samples),
        risk_factors=build_risk_factors(snapshot, samples, days_to_exam),
        days_to_exam=days_to_exam,
        timeline=(
            get_timeline_expectation(max(0, days_to_exam)) if days_to_exam is not None else None
        ),
    )


def prediction_to_dict(prediction: Prediction) -> dict:
    """JSON-ready dict in the shape served by the CLI and MCP tools."""
    return asdict(prediction)


class PredictionService:
    """Fetches a user's data from the store, predicts, and persists the result."""

    def __init__(
        self,
        db: Database,
        store: LearningVelocityStore | None = None,
        tables: ScoringTables = DEFAULT_TABLES,
        lookback: int = DEFAULT_LOOKBACK_WINDOW,
        low_confidence_threshold: float = DEFAULT_LOW_CONFIDENCE_THRESHOLD,
        exam_date: date | None = None,
    ) -> None:
        self.db = db
        self.store = store or LearningVelocityStore()
        self.tables = tables
        self.lookback = lookback
        self.low_confidence_threshold = low_confidence_threshold
        self.exam_date = exam_date

    def snapshot_for(self, user_id: str) -> UserProgressSnapshot:
        snapshot = self.db.get_progress(user_id)
        if snapshot is None:
            logger.info("No progress snapshot for %s, using zeros", user_id)
            return UserProgressSnapshot()
        return snapshot

    def predict(self, user_id: str, persist: bool = True) -> Prediction:
        """Predict from the latest lookback window of samples."""
        samples = self.db.get_recent_samples(user_id, limit=self.lookback)
        snapshot = self.snapshot_for(user_id)
        self.store.seed(user_id, self.db.get_learning_velocity(user_id))

        prediction = generate_prediction(
            snapshot,
            samples,
            user_id,
            self.store,
            self.tables,
            self.low_confidence_threshold,
            days_to_exam=days_until(self.exam_date) if self.exam_date else None,
        )
        logger.info(
            "Prediction for %s: total=%d rank=%d percentile=%.1f (%d samples, %s quality)",
            user_id,
            prediction.total_score,
            prediction.rank.predicted_rank,
            prediction.rank.percentile,
            prediction.sample_count,
            prediction.data_quality,
        )

        if persist:
            velocity = self.store.get(user_id)
            if velocity is not None:
                self.db.set_learning_velocity(user_id, velocity)
            self.db.save_prediction(
                user_id,
                created_at=prediction.last_updated,
                total_score=prediction.total_score,
                predicted_rank=prediction.rank.predicted_rank,
                percentile=prediction.rank.percentile,
                payload=prediction_to_dict(prediction),
            )
        return prediction

"""MCP server for upsc-rank.

Exposes predictions and study metrics as MCP tools.
Run via: python3 -m upsc_rank.mcp_server
"""
from __future__ import annotations

from dataclasses import asdict
from typing import Any

from mcp.server.fastmcp import FastMCP

from upsc_rank.adaptive import LearningVelocityStore

mcp = FastMCP(name="upsc-rank")

# Shared across tool calls; serializes velocity updates per user
_velocity_store = LearningVelocityStore()


def _get_db():
    from upsc_rank.db import Database
    return Database()


@mcp.tool()
def get_prediction(user_id: str = "default") -> dict[str, Any]:
    """Compute a fresh score and rank prediction for a user.

    Includes study recommendations and risk factors; days to exam and the
    timeline expectation are filled in when exam_date is configured.
    """
    from upsc_rank.config import (
        get_exam_date,
        get_lookback_window,
        get_low_confidence_threshold,
        load_tables,
    )
    from upsc_rank.predictor import PredictionService, prediction_to_dict
    from upsc_rank.profiles import ConfigurationError

    try:
        tables = load_tables()
        lookback = get_lookback_window()
        threshold = get_low_confidence_threshold()
        exam_date = get_exam_date()
    except ConfigurationError as exc:
        return {"error": f"Invalid configuration: {exc}"}

    db = _get_db()
    try:
        if db.count_samples(user_id) == 0 and db.get_progress(user_id) is None:
            return {"error": "No data yet. Log samples with: upsc-rank log --performance N"}
        service = PredictionService(
            db,
            store=_velocity_store,
            tables=tables,
            lookback=lookback,
            low_confidence_threshold=threshold,
            exam_date=exam_date,
        )
        return prediction_to_dict(service.predict(user_id))
    finally:
        db.close()


@mcp.tool()
def get_study_metrics(user_id: str = "default") -> dict[str, Any]:
    """Get consistency, accuracy trend, speed, retention, burnout risk and peak hours."""
    from upsc_rank.metrics import calculate_realtime_metrics

    db = _get_db()
    try:
        samples = db.get_recent_samples(user_id, limit=100)
        if not samples:
            return {"error": "No samples yet."}
        return asdict(calculate_realtime_metrics(samples))
    finally:
        db.close()


@mcp.tool()
def get_prediction_history(user_id: str = "default", limit: int = 10) -> dict[str, Any]:
    """Get stored predictions, newest first."""
    db = _get_db()
    try:
        rows = db.get_prediction_history(user_id, limit=max(1, limit))
        return {"predictions": rows, "count": len(rows)}
    finally:
        db.close()


@mcp.tool()
def get_timeline(days_to_exam: int) -> dict[str, Any]:
    """Expected syllabus completion and study focus for the days left."""
    from upsc_rank.realistic import get_optional_benchmark, get_timeline_expectation

    if days_to_exam < 0:
        return {"error": "days_to_exam must be zero or positive"}
    result = get_timeline_expectation(days_to_exam)
    result["days_to_exam"] = days_to_exam
    result["optional_benchmark"] = get_optional_benchmark()
    return result


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()

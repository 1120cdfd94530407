"""CLI commands for upsc-rank."""

from __future__ import annotations

import argparse
import json
import logging
import random
import sys
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path

from rich.logging import RichHandler

from upsc_rank.adaptive import InvalidSampleError, PerformanceSample
from upsc_rank.config import (
    get_default_category,
    get_exam_date,
    get_lookback_window,
    get_low_confidence_threshold,
    load_config,
    load_tables,
    save_config,
    set_config_value,
)
from upsc_rank.db import Database
from upsc_rank.display import (
    console,
    print_draw_result,
    print_error,
    print_history,
    print_metrics,
    print_no_data_message,
    print_prediction,
    print_progress_saved,
    print_sample_logged,
)
from upsc_rank.metrics import calculate_realtime_metrics
from upsc_rank.predictor import PredictionService, prediction_to_dict
from upsc_rank.profiles import ConfigurationError
from upsc_rank.realistic import SCORING_BANDS, calculate_realistic_rank, calculate_realistic_score
from upsc_rank.subjects import UserProgressSnapshot

logger = logging.getLogger("upsc_rank")

DEFAULT_USER = "default"


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="upsc-rank",
        description="Track UPSC preparation and estimate your rank",
    )
    parser.add_argument("--user", "-u", default=DEFAULT_USER, help="User id")
    parser.add_argument("--db", default=None, help="Path to the SQLite database")
    parser.add_argument("--config", default=None, help="Path to config.json")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command")

    log_p = subparsers.add_parser("log", help="Record a performance sample")
    log_p.add_argument("--performance", "-p", type=float, required=True, help="Score 0-100")
    log_p.add_argument("--accuracy", type=float, default=None, help="Accuracy 0-100")
    log_p.add_argument("--time-taken", type=float, default=None, help="Seconds taken")
    log_p.add_argument("--mood", default=None, help="Mood tag")
    log_p.add_argument("--duration", type=float, default=None, help="Study minutes")
    log_p.add_argument("--revisions", type=int, default=None, help="Revision count")
    log_p.add_argument("--timestamp", default=None, help="ISO timestamp (default: now)")

    prog_p = subparsers.add_parser("progress", help="Set the progress snapshot")
    prog_p.add_argument("--completion", type=float, required=True, help="Syllabus completion 0-1")
    prog_p.add_argument("--accuracy", type=float, required=True, help="Question accuracy 0-1")
    prog_p.add_argument("--tests", type=float, required=True, help="Test performance 0-1")
    prog_p.add_argument("--category", default=None, help="general, ews, obc, sc or st")

    predict_p = subparsers.add_parser("predict", help="Estimate scores and rank")
    predict_p.add_argument("--json", action="store_true", help="Print JSON instead of tables")
    predict_p.add_argument(
        "--cached", action="store_true", help="Show the last stored prediction without recomputing"
    )

    subparsers.add_parser("metrics", help="Real-time study metrics")

    history_p = subparsers.add_parser("history", help="Stored predictions")
    history_p.add_argument("--limit", "-n", type=int, default=10)

    draw_p = subparsers.add_parser("draw", help="Band-based realistic score and rank draw")
    draw_p.add_argument("--seed", type=int, default=None, help="Seed for a repeatable draw")

    config_p = subparsers.add_parser("config", help="Show or change settings")
    config_sub = config_p.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Print the config file")
    set_p = config_sub.add_parser("set", help="Set one config value")
    set_p.add_argument("key", help="Config key, e.g. exam_date or lookback_window")
    set_p.add_argument("value", help="JSON value; bare words are stored as strings")
    return parser


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


def main(argv: list[str] | None = None) -> None:
    """Entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    command = args.command or "predict"
    setup_logging(args.verbose)

    config_path = Path(args.config).expanduser() if args.config else None
    if command == "config":
        try:
            if getattr(args, "config_command", None) == "set":
                do_config_set(args.key, args.value, config_path)
            else:
                do_config_show(config_path)
        except ConfigurationError as exc:
            print_error(f"Invalid configuration: {exc}")
            sys.exit(2)
        return

    try:
        tables = load_tables(config_path)
        lookback = get_lookback_window(config_path)
        threshold = get_low_confidence_threshold(config_path)
        exam_date = get_exam_date(config_path)
    except ConfigurationError as exc:
        print_error(f"Invalid configuration: {exc}")
        sys.exit(2)

    db = Database(Path(args.db).expanduser() if args.db else None)
    service = PredictionService(
        db,
        tables=tables,
        lookback=lookback,
        low_confidence_threshold=threshold,
        exam_date=exam_date,
    )

    try:
        if command == "log":
            do_log(
                db,
                args.user,
                performance=args.performance,
                accuracy=args.accuracy,
                time_taken=args.time_taken,
                mood=args.mood,
                duration=args.duration,
                revisions=args.revisions,
                timestamp=args.timestamp,
            )
        elif command == "progress":
            do_progress(
                db,
                args.user,
                completion=args.completion,
                accuracy=args.accuracy,
                tests=args.tests,
                category=args.category or get_default_category(config_path),
            )
        elif command == "predict":
            do_predict(
                service,
                args.user,
                as_json=getattr(args, "json", False),
                cached=getattr(args, "cached", False),
            )
        elif command == "metrics":
            do_metrics(db, args.user, lookback=lookback)
        elif command == "history":
            do_history(db, args.user, limit=args.limit)
        elif command == "draw":
            do_draw(db, args.user, seed=args.seed)
    except InvalidSampleError as exc:
        print_error(str(exc))
        sys.exit(1)
    finally:
        db.close()


def do_log(
    db: Database,
    user_id: str,
    performance: float,
    accuracy: float | None = None,
    time_taken: float | None = None,
    mood: str | None = None,
    duration: float | None = None,
    revisions: int | None = None,
    timestamp: str | None = None,
) -> dict:
    """Append one performance sample. Raises InvalidSampleError on bad scores."""
    if timestamp:
        try:
            when = datetime.fromisoformat(timestamp)
        except ValueError as exc:
            raise InvalidSampleError(f"timestamp must be ISO 8601, got {timestamp!r}") from exc
    else:
        when = datetime.now(tz=timezone.utc)

    sample = PerformanceSample(
        timestamp=when,
        performance=performance,
        accuracy=accuracy,
        time_taken_seconds=time_taken,
        mood_tag=mood,
        duration_minutes=duration,
        revision_count=revisions,
    )
    sample_id = db.add_sample(user_id, sample)
    result = {
        "id": sample_id,
        "performance": performance,
        "sample_count": db.count_samples(user_id),
    }
    print_sample_logged(result)
    return result


def do_progress(
    db: Database,
    user_id: str,
    completion: float,
    accuracy: float,
    tests: float,
    category: str = "general",
) -> dict:
    """Store the user's progress snapshot. Ratios are clamped to 0-1."""
    snapshot = UserProgressSnapshot(
        completion_ratio=completion,
        accuracy_ratio=accuracy,
        test_performance_ratio=tests,
        category=category,
    )
    db.set_progress(user_id, snapshot)
    result = asdict(snapshot)
    print_progress_saved(result)
    return result


def do_predict(
    service: PredictionService,
    user_id: str,
    as_json: bool = False,
    cached: bool = False,
) -> dict:
    """Run and persist a prediction, then show it. cached reuses the last stored one."""
    if cached:
        data = service.db.get_latest_prediction(user_id)
        if data is None:
            print_no_data_message("No stored prediction. Run [bold]upsc-rank predict[/] first.")
            return {}
    else:
        data = prediction_to_dict(service.predict(user_id))
    if as_json:
        console.print_json(data=data)
    else:
        print_prediction(data)
    return data


def do_metrics(db: Database, user_id: str, lookback: int = 100) -> dict:
    """Show study metrics over the lookback window."""
    samples = db.get_recent_samples(user_id, limit=lookback)
    if not samples:
        print_no_data_message()
        return {"ok": False}
    data = asdict(calculate_realtime_metrics(samples))
    print_metrics(data)
    return {"ok": True, **data}


def do_history(db: Database, user_id: str, limit: int = 10) -> list[dict]:
    rows = db.get_prediction_history(user_id, limit=max(1, limit))
    print_history(rows)
    return rows


def do_draw(db: Database, user_id: str, seed: int | None = None) -> dict:
    """Draw band-based paper scores from progress, then a rank for the total."""
    snapshot = db.get_progress(user_id)
    if snapshot is None:
        print_no_data_message("No progress set. Run [bold]upsc-rank progress[/] first.")
        return {"ok": False}
    rng = random.Random(seed)
    completion = snapshot.completion_ratio * 100
    tests = snapshot.test_performance_ratio * 100
    scores = {
        subject: calculate_realistic_score(completion, tests, subject, rng)
        for subject in SCORING_BANDS
    }
    total = sum(scores.values())
    result = {
        "ok": True,
        "scores": scores,
        "total_score": total,
        "rank": calculate_realistic_rank(total, rng),
        "seed": seed,
    }
    logger.debug("Draw for %s with seed %s: total=%d", user_id, seed, total)
    print_draw_result(result)
    return result


def _parse_config_value(raw: str) -> object:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def do_config_set(key: str, raw_value: str, config_path: Path | None = None) -> dict:
    """Set one config value; the previous config is restored if it no longer validates."""
    previous = load_config(config_path)
    value = _parse_config_value(raw_value)
    set_config_value(key, value, config_path)
    try:
        load_tables(config_path)
        get_lookback_window(config_path)
        get_low_confidence_threshold(config_path)
        get_exam_date(config_path)
    except ConfigurationError:
        save_config(previous, config_path)
        raise
    logger.debug("Config %s set to %r", key, value)
    console.print(f"[green]Config updated[/]: {key} = {json.dumps(value)}")
    return {"ok": True, "key": key, "value": value}


def do_config_show(config_path: Path | None = None) -> dict:
    config = load_config(config_path)
    console.print_json(data=config)
    return config

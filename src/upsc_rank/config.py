"""Configuration file management for upsc-rank.

Reads and writes ~/.upsc-rank/config.json for settings that don't belong in
the DB: table overrides, lookback window, display thresholds.
"""
from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path

from upsc_rank.profiles import ConfigurationError, ScoringTables, build_tables

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH: Path = Path.home() / ".upsc-rank" / "config.json"

DEFAULT_LOOKBACK_WINDOW = 100
DEFAULT_LOW_CONFIDENCE_THRESHOLD = 0.5


def load_config(config_path: Path | None = None) -> dict:
    """Load config from JSON file. Returns {} if file missing or invalid."""
    path = config_path or DEFAULT_CONFIG_PATH
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: top level is not an object", path)
        return {}
    return data


def save_config(data: dict, config_path: Path | None = None) -> None:
    """Write config dict to JSON file. Creates parent dirs if needed."""
    path = config_path or DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def load_tables(config_path: Path | None = None) -> ScoringTables:
    """Build validated scoring tables from config. Raises ConfigurationError."""
    return build_tables(load_config(config_path))


def get_lookback_window(config_path: Path | None = None) -> int:
    """Number of recent samples fed to the estimator."""
    raw = load_config(config_path).get("lookback_window", DEFAULT_LOOKBACK_WINDOW)
    if isinstance(raw, bool) or not isinstance(raw, int) or raw <= 0:
        raise ConfigurationError(f"lookback_window must be a positive integer, got {raw!r}")
    return raw


def get_low_confidence_threshold(config_path: Path | None = None) -> float:
    """Confidence level below which a prediction is flagged low confidence."""
    raw = load_config(config_path).get(
        "low_confidence_threshold", DEFAULT_LOW_CONFIDENCE_THRESHOLD
    )
    if isinstance(raw, bool) or not isinstance(raw, (int, float)) or not 0 <= raw <= 1:
        raise ConfigurationError(f"low_confidence_threshold must be within [0, 1], got {raw!r}")
    return float(raw)


def get_default_category(config_path: Path | None = None) -> str:
    return str(load_config(config_path).get("default_category", "general")).lower()


def get_exam_date(config_path: Path | None = None) -> date | None:
    """Configured exam date (ISO "YYYY-MM-DD"), or None when unset."""
    raw = load_config(config_path).get("exam_date")
    if raw is None:
        return None
    try:
        return date.fromisoformat(str(raw))
    except ValueError as exc:
        raise ConfigurationError(f"exam_date must be an ISO date, got {raw!r}") from exc


def set_config_value(key: str, value: object, config_path: Path | None = None) -> None:
    """Persist a single top-level config value."""
    config = load_config(config_path)
    config[key] = value
    save_config(config, config_path)

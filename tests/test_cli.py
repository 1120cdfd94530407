"""Tests for CLI commands and display helpers."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest

from upsc_rank.adaptive import InvalidSampleError
from upsc_rank.cli import (
    build_parser,
    do_config_set,
    do_config_show,
    do_draw,
    do_history,
    do_log,
    do_metrics,
    do_predict,
    do_progress,
    main,
)
from upsc_rank.config import load_config, save_config
from upsc_rank.db import Database
from upsc_rank.display import _bar, format_rank
from upsc_rank.profiles import ConfigurationError
from upsc_rank.predictor import PredictionService
from upsc_rank.realistic import SCORING_BANDS


@pytest.fixture
def db(tmp_path):
    """Create a temporary database for testing."""
    db_path = tmp_path / "test.db"
    database = Database(db_path=db_path)
    yield database
    database.close()


# ── Argument Parsing ──────────────────────────────────────────────────────────


class TestArgumentParsing:
    def test_no_args_defaults_to_none_command(self):
        args = build_parser().parse_args([])
        assert args.command is None
        assert args.user == "default"

    def test_log_command(self):
        args = build_parser().parse_args(
            ["--user", "asha", "log", "-p", "72.5", "--mood", "good", "--revisions", "2"]
        )
        assert args.command == "log"
        assert args.user == "asha"
        assert args.performance == 72.5
        assert args.mood == "good"
        assert args.revisions == 2

    def test_log_requires_performance(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["log"])

    def test_progress_command(self):
        args = build_parser().parse_args(
            ["progress", "--completion", "0.6", "--accuracy", "0.7", "--tests", "0.5"]
        )
        assert args.completion == 0.6
        assert args.category is None

    def test_predict_json_flag(self):
        args = build_parser().parse_args(["predict", "--json"])
        assert args.json is True

    def test_history_limit(self):
        args = build_parser().parse_args(["history", "-n", "3"])
        assert args.limit == 3

    def test_draw_seed(self):
        args = build_parser().parse_args(["draw", "--seed", "11"])
        assert args.seed == 11

    def test_predict_cached_flag(self):
        args = build_parser().parse_args(["predict", "--cached"])
        assert args.cached is True

    def test_config_set_command(self):
        args = build_parser().parse_args(["config", "set", "exam_date", "2027-05-23"])
        assert args.command == "config"
        assert args.config_command == "set"
        assert (args.key, args.value) == ("exam_date", "2027-05-23")

    def test_invalid_command_raises(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["nonexistent"])


# ── Display helpers ───────────────────────────────────────────────────────────


class TestFormatRank:
    def test_small(self):
        assert format_rank(42) == "42"

    def test_thousands(self):
        assert format_rank(1_000_000) == "1,000,000"


class TestBar:
    def test_half(self):
        assert _bar(0.5, width=10) == "[█████░░░░░]"

    def test_clamped(self):
        assert _bar(1.7, width=4) == "[████]"
        assert _bar(-1, width=4) == "[░░░░]"


# ── Commands ──────────────────────────────────────────────────────────────────


class TestDoLog:
    @patch("upsc_rank.cli.print_sample_logged")
    def test_stores_sample(self, mock_print, db):
        result = do_log(db, "u1", performance=70, accuracy=80, timestamp="2026-03-01T10:00:00")
        assert result["sample_count"] == 1
        stored = db.get_recent_samples("u1")[0]
        assert stored.performance == 70
        assert stored.accuracy == 80
        assert stored.timestamp.tzinfo is not None
        mock_print.assert_called_once_with(result)

    def test_out_of_range_rejected(self, db):
        with pytest.raises(InvalidSampleError):
            do_log(db, "u1", performance=140)
        assert db.count_samples("u1") == 0

    def test_bad_timestamp_rejected(self, db):
        with pytest.raises(InvalidSampleError, match="ISO 8601"):
            do_log(db, "u1", performance=50, timestamp="yesterday")


class TestDoProgress:
    @patch("upsc_rank.cli.print_progress_saved")
    def test_clamps_and_stores(self, mock_print, db):
        result = do_progress(db, "u1", completion=1.4, accuracy=0.7, tests=0.5, category="OBC")
        assert result["completion_ratio"] == 1.0
        assert result["category"] == "obc"
        assert db.get_progress("u1").accuracy_ratio == 0.7


class TestDoPredict:
    @patch("upsc_rank.cli.print_prediction")
    def test_returns_and_persists(self, mock_print, db):
        do_progress(db, "u1", completion=0.7, accuracy=0.8, tests=0.6)
        for i in range(12):
            do_log(db, "u1", performance=60 + i, timestamp=f"2026-03-01T{i:02d}:00:00")
        data = do_predict(PredictionService(db), "u1")
        assert data["sample_count"] == 12
        assert data["total_score"] == sum(
            p["score"] for p in data["subject_predictions"].values()
        )
        assert len(db.get_prediction_history("u1")) == 1
        mock_print.assert_called_once_with(data)

    @patch("upsc_rank.cli.console")
    def test_json_output(self, mock_console, db):
        data = do_predict(PredictionService(db), "u1", as_json=True)
        mock_console.print_json.assert_called_once_with(data=data)

    def test_empty_user_still_predicts(self, db):
        service = MagicMock()
        service.predict.return_value = PredictionService(db).predict("nobody", persist=False)
        with patch("upsc_rank.cli.print_prediction"):
            data = do_predict(service, "nobody")
        assert data["data_quality"] == "low"
        assert data["low_confidence"] is True

    @patch("upsc_rank.cli.print_no_data_message")
    def test_cached_without_history(self, mock_print, db):
        assert do_predict(PredictionService(db), "u1", cached=True) == {}
        mock_print.assert_called_once()
        assert db.get_prediction_history("u1") == []

    @patch("upsc_rank.cli.print_prediction")
    def test_cached_reuses_last_prediction(self, mock_print, db):
        service = PredictionService(db)
        fresh = do_predict(service, "u1")
        cached = do_predict(service, "u1", cached=True)
        assert cached["total_score"] == fresh["total_score"]
        assert cached["rank"] == fresh["rank"]
        assert len(db.get_prediction_history("u1")) == 1


class TestDoMetrics:
    @patch("upsc_rank.cli.print_no_data_message")
    def test_no_samples(self, mock_print, db):
        assert do_metrics(db, "u1") == {"ok": False}
        mock_print.assert_called_once()

    @patch("upsc_rank.cli.print_metrics")
    def test_with_samples(self, mock_print, db):
        for i in range(3):
            do_log(db, "u1", performance=50 + i, revisions=3)
        result = do_metrics(db, "u1")
        assert result["ok"] is True
        assert result["retention_rate"] == 1.0
        assert len(result["peak_performance_hours"]) == 3


class TestDoHistory:
    @patch("upsc_rank.cli.print_history")
    def test_limit(self, mock_print, db):
        service = PredictionService(db)
        for _ in range(3):
            service.predict("u1")
        assert len(do_history(db, "u1", limit=2)) == 2

    @pytest.mark.parametrize("limit", [0, -5])
    @patch("upsc_rank.cli.print_history")
    def test_non_positive_limit_shows_one(self, mock_print, limit, db):
        service = PredictionService(db)
        for _ in range(3):
            service.predict("u1")
        assert len(do_history(db, "u1", limit=limit)) == 1


class TestDoDraw:
    @patch("upsc_rank.cli.print_no_data_message")
    def test_requires_progress(self, mock_print, db):
        assert do_draw(db, "u1") == {"ok": False}

    @patch("upsc_rank.cli.print_draw_result")
    def test_seeded_draw_repeats(self, mock_print, db):
        do_progress(db, "u1", completion=0.8, accuracy=0.7, tests=0.7)
        first = do_draw(db, "u1", seed=5)
        second = do_draw(db, "u1", seed=5)
        assert first == second
        assert set(first["scores"]) == set(SCORING_BANDS)
        assert first["total_score"] == sum(first["scores"].values())
        assert first["rank"] >= 1


class TestDoConfig:
    @patch("upsc_rank.cli.console")
    def test_set_json_value(self, mock_console, tmp_path):
        path = tmp_path / "config.json"
        result = do_config_set("lookback_window", "40", path)
        assert result == {"ok": True, "key": "lookback_window", "value": 40}
        assert load_config(path) == {"lookback_window": 40}

    @patch("upsc_rank.cli.console")
    def test_set_bare_string(self, mock_console, tmp_path):
        path = tmp_path / "config.json"
        do_config_set("exam_date", "2027-05-23", path)
        assert load_config(path)["exam_date"] == "2027-05-23"

    @patch("upsc_rank.cli.console")
    def test_invalid_value_restores_previous(self, mock_console, tmp_path):
        path = tmp_path / "config.json"
        save_config({"lookback_window": 30}, path)
        with pytest.raises(ConfigurationError):
            do_config_set("lookback_window", "-1", path)
        assert load_config(path) == {"lookback_window": 30}

    @patch("upsc_rank.cli.console")
    def test_invalid_exam_date_restores_previous(self, mock_console, tmp_path):
        path = tmp_path / "config.json"
        with pytest.raises(ConfigurationError):
            do_config_set("exam_date", "next may", path)
        assert load_config(path) == {}

    @patch("upsc_rank.cli.console")
    def test_show(self, mock_console, tmp_path):
        path = tmp_path / "config.json"
        save_config({"exam_date": "2027-05-23"}, path)
        assert do_config_show(path) == {"exam_date": "2027-05-23"}
        mock_console.print_json.assert_called_once_with(data={"exam_date": "2027-05-23"})


# ── Entry point ───────────────────────────────────────────────────────────────


class TestMain:
    def test_log_then_history(self, tmp_path):
        db_path = tmp_path / "main.db"
        config_path = tmp_path / "config.json"
        main(["--db", str(db_path), "--config", str(config_path), "log", "-p", "65"])
        main(["--db", str(db_path), "--config", str(config_path), "predict", "--json"])
        database = Database(db_path=db_path)
        try:
            assert database.count_samples("default") == 1
            assert len(database.get_prediction_history("default")) == 1
        finally:
            database.close()

    def test_invalid_config_exits_2(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"lookback_window": -1}), encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main(["--db", str(tmp_path / "x.db"), "--config", str(config_path), "predict"])
        assert exc_info.value.code == 2

    def test_invalid_sample_exits_1(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main([
                "--db", str(tmp_path / "x.db"),
                "--config", str(tmp_path / "config.json"),
                "log", "-p", "150",
            ])
        assert exc_info.value.code == 1

    def test_config_set_then_predict_with_exam_date(self, tmp_path):
        db_path = tmp_path / "main.db"
        config_path = tmp_path / "config.json"
        main(["--config", str(config_path), "config", "set", "exam_date", "2099-05-23"])
        assert load_config(config_path) == {"exam_date": "2099-05-23"}
        main(["--db", str(db_path), "--config", str(config_path), "predict", "--json"])
        database = Database(db_path=db_path)
        try:
            payload = database.get_latest_prediction("default")
        finally:
            database.close()
        assert payload["days_to_exam"] > 0
        assert payload["timeline"]["expected_completion"] == 70

    def test_invalid_config_set_exits_2(self, tmp_path):
        config_path = tmp_path / "config.json"
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(config_path), "config", "set", "lookback_window", "0"])
        assert exc_info.value.code == 2
        assert load_config(config_path) == {}

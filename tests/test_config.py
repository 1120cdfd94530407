"""Tests for the config module."""
import json
from datetime import date

import pytest

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
from upsc_rank.profiles import ConfigurationError


class TestLoadConfig:
    def test_missing_file_returns_empty(self, tmp_path):
        assert load_config(tmp_path / "nonexistent.json") == {}

    def test_invalid_json_returns_empty(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("not json", encoding="utf-8")
        assert load_config(path) == {}

    def test_non_object_returns_empty(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert load_config(path) == {}

    def test_loads_valid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text('{"key": "value"}', encoding="utf-8")
        assert load_config(path) == {"key": "value"}


class TestSaveConfig:
    def test_creates_parent_dirs(self, tmp_path):
        path = tmp_path / "sub" / "dir" / "config.json"
        save_config({"nested": True}, path)
        assert json.loads(path.read_text()) == {"nested": True}

    def test_set_value_preserves_other_keys(self, tmp_path):
        path = tmp_path / "config.json"
        save_config({"other_key": "keep_me"}, path)
        set_config_value("lookback_window", 50, path)
        assert load_config(path) == {"other_key": "keep_me", "lookback_window": 50}


class TestSettings:
    def test_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        assert get_lookback_window(path) == 100
        assert get_low_confidence_threshold(path) == 0.5
        assert get_default_category(path) == "general"

    def test_configured_values(self, tmp_path):
        path = tmp_path / "config.json"
        save_config(
            {"lookback_window": 30, "low_confidence_threshold": 0.7, "default_category": "SC"},
            path,
        )
        assert get_lookback_window(path) == 30
        assert get_low_confidence_threshold(path) == 0.7
        assert get_default_category(path) == "sc"

    @pytest.mark.parametrize("value", [0, -5, "100", 2.5, True])
    def test_bad_lookback(self, tmp_path, value):
        path = tmp_path / "config.json"
        save_config({"lookback_window": value}, path)
        with pytest.raises(ConfigurationError):
            get_lookback_window(path)

    def test_bad_threshold(self, tmp_path):
        path = tmp_path / "config.json"
        save_config({"low_confidence_threshold": 1.5}, path)
        with pytest.raises(ConfigurationError):
            get_low_confidence_threshold(path)


class TestLoadTables:
    def test_overrides_applied(self, tmp_path):
        path = tmp_path / "config.json"
        save_config({"candidate_pool": 500_000}, path)
        assert load_tables(path).candidate_pool == 500_000

    def test_invalid_tables_raise(self, tmp_path):
        path = tmp_path / "config.json"
        save_config({"subject_profiles": {"gs1": {"difficulty": 2}}}, path)
        with pytest.raises(ConfigurationError):
            load_tables(path)


class TestExamDate:
    def test_unset(self, tmp_path):
        assert get_exam_date(tmp_path / "config.json") is None

    def test_parsed(self, tmp_path):
        path = tmp_path / "config.json"
        save_config({"exam_date": "2027-05-23"}, path)
        assert get_exam_date(path) == date(2027, 5, 23)

    @pytest.mark.parametrize("value", ["next may", "23/05/2027", "2027-13-01"])
    def test_invalid(self, tmp_path, value):
        path = tmp_path / "config.json"
        save_config({"exam_date": value}, path)
        with pytest.raises(ConfigurationError):
            get_exam_date(path)

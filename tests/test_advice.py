"""Tests for study recommendations and risk factors."""

from datetime import date, datetime, timedelta, timezone

import pytest

from upsc_rank.adaptive import PerformanceSample
from upsc_rank.advice import (
    DEFAULT_RECOMMENDATIONS,
    NO_RISK_FACTORS,
    average_daily_hours,
    build_recommendations,
    build_risk_factors,
    days_until,
    exam_readiness,
    study_days,
)
from upsc_rank.subjects import UserProgressSnapshot

START = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

COVERAGE = "Focus on completing more syllabus coverage"
PRACTICE = "Increase practice test frequency and analyze mistakes"
HOURS = "Increase daily study hours to at least 6-8 hours"
ROUTINE = "Maintain consistent daily study routine"
BEHIND = "Syllabus completion is behind schedule"
WEAK_TESTS = "Test performance needs significant improvement"
TIME_LEFT = "Limited time remaining for preparation"


def daily(days, minutes):
    """One sample per day, most recent first."""
    return [
        PerformanceSample(
            timestamp=START - timedelta(days=i), performance=60, duration_minutes=minutes
        )
        for i in range(days)
    ]


def snap(completion=0.8, tests=0.8):
    return UserProgressSnapshot(
        completion_ratio=completion, accuracy_ratio=0.7, test_performance_ratio=tests
    )


class TestStudyDays:
    def test_same_day_counted_once(self):
        samples = [
            PerformanceSample(timestamp=START, performance=50),
            PerformanceSample(timestamp=START + timedelta(hours=3), performance=55),
        ]
        assert study_days(samples) == 1

    def test_empty(self):
        assert study_days([]) == 0


class TestAverageDailyHours:
    def test_per_active_day(self):
        samples = [
            PerformanceSample(timestamp=START, performance=50, duration_minutes=60),
            PerformanceSample(timestamp=START + timedelta(hours=2), performance=50, duration_minutes=120),
        ]
        assert average_daily_hours(samples) == pytest.approx(3.0)

    def test_no_durations(self):
        assert average_daily_hours([PerformanceSample(timestamp=START, performance=50)]) is None


class TestExamReadiness:
    def test_weights(self):
        assert exam_readiness(UserProgressSnapshot(0.5, 0.0, 0.5), 5) == 50

    def test_hours_capped(self):
        assert exam_readiness(UserProgressSnapshot(1.0, 1.0, 1.0), 14) == 100

    def test_unknown_hours_count_as_zero(self):
        assert exam_readiness(UserProgressSnapshot(0.6, 0.0, 0.6), None) == 42


class TestDaysUntil:
    def test_future(self):
        assert days_until(date(2027, 5, 23), today=date(2027, 5, 1)) == 22

    def test_past_is_negative(self):
        assert days_until(date(2027, 5, 1), today=date(2027, 5, 3)) == -2


class TestBuildRecommendations:
    def test_nothing_stands_out_gives_defaults(self):
        assert build_recommendations(snap(), daily(25, 420)) == DEFAULT_RECOMMENDATIONS

    def test_defaults_are_a_copy(self):
        build_recommendations(snap(), daily(25, 420)).append("extra")
        assert len(DEFAULT_RECOMMENDATIONS) == 3

    @pytest.mark.parametrize("completion,expected", [(0.59, True), (0.6, False)])
    def test_completion_threshold(self, completion, expected):
        result = build_recommendations(snap(completion=completion), daily(25, 420))
        assert (COVERAGE in result) is expected

    @pytest.mark.parametrize("tests,expected", [(0.69, True), (0.7, False)])
    def test_test_score_threshold(self, tests, expected):
        result = build_recommendations(snap(tests=tests), daily(25, 420))
        assert (PRACTICE in result) is expected

    @pytest.mark.parametrize("minutes,expected", [(300, True), (360, False)])
    def test_daily_hours_threshold(self, minutes, expected):
        result = build_recommendations(snap(), daily(25, minutes))
        assert (HOURS in result) is expected

    def test_hours_rule_skipped_without_durations(self):
        samples = [PerformanceSample(timestamp=START - timedelta(days=i), performance=60) for i in range(25)]
        assert HOURS not in build_recommendations(snap(), samples)

    @pytest.mark.parametrize("days,expected", [(19, True), (20, False)])
    def test_study_days_threshold(self, days, expected):
        result = build_recommendations(snap(), daily(days, 420))
        assert (ROUTINE in result) is expected

    def test_order(self):
        result = build_recommendations(snap(completion=0.1, tests=0.1), daily(3, 60))
        assert result == [COVERAGE, PRACTICE, HOURS, ROUTINE]


class TestBuildRiskFactors:
    def test_no_risks(self):
        assert build_risk_factors(snap(), daily(25, 420), days_to_exam=300) == NO_RISK_FACTORS

    @pytest.mark.parametrize("completion,expected", [(0.49, True), (0.5, False)])
    def test_completion_threshold(self, completion, expected):
        assert (BEHIND in build_risk_factors(snap(completion=completion))) is expected

    @pytest.mark.parametrize("tests,expected", [(0.59, True), (0.6, False)])
    def test_test_score_threshold(self, tests, expected):
        assert (WEAK_TESTS in build_risk_factors(snap(tests=tests))) is expected

    @pytest.mark.parametrize("days,expected", [(99, True), (100, False), (None, False)])
    def test_time_left_with_low_readiness(self, days, expected):
        # readiness 42 without durations
        result = build_risk_factors(snap(completion=0.6, tests=0.6), [], days_to_exam=days)
        assert (TIME_LEFT in result) is expected

    def test_time_left_ignored_when_ready(self):
        result = build_risk_factors(snap(completion=1.0, tests=1.0), daily(25, 600), days_to_exam=10)
        assert TIME_LEFT not in result

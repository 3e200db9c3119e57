"""
Tests for the Atmospheric Statistics Engine

These tests verify that:
1. Descriptive statistics keep count + missing_count == series length
2. The correlation matrix is symmetric with a unit diagonal
3. Trends are 'stable' unless significant at p < 0.05
4. Anomalies are flagged above 3 sigma with ordered severities
5. The data quality report scores completeness and plausibility
6. A full analysis is deterministic and degrades cleanly on empty input

Run with: python -m pytest tests/test_atmospheric.py -v
"""

import logging
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from renewcast.atmospheric import (
    MAX_SUSPICIOUS_VALUES,
    AtmosphericEngine,
    analyze_trend,
    calculate_correlation_matrix,
    calculate_statistics,
    detect_anomalies,
    generate_quality_report,
    generate_research_data,
    samples_to_frame,
)
from renewcast.models import HourlySample, Severity, TrendDirection

logger = logging.getLogger(__name__)


def hours(n, start=datetime(2025, 6, 1)):
    return [start + timedelta(hours=i) for i in range(n)]


@pytest.fixture
def week_of_weather(make_samples):
    """168 hours of plausible, slightly noisy weather."""
    rng = np.random.RandomState(42)
    n = 168
    hour_of_day = np.arange(n) % 24
    daylight = np.clip(np.sin((hour_of_day - 6) / 12 * np.pi), 0, None)
    return make_samples(
        temperature=list(15 + 8 * daylight + rng.normal(0, 1, n)),
        surface_pressure=list(1013 + rng.normal(0, 2, n)),
        relative_humidity=list(np.clip(70 - 20 * daylight + rng.normal(0, 3, n), 0, 100)),
        wind_speed=list(np.abs(5 + rng.normal(0, 1.5, n))),
        solar_irradiance=list(850 * daylight),
    )


class TestStatistics:
    """Test suite for descriptive statistics."""

    def test_reference_series(self):
        stats = calculate_statistics([10, 20, 30, 40, 50])
        assert stats.mean == pytest.approx(30.0)
        assert stats.std_dev == pytest.approx(14.1421, abs=1e-4)
        assert stats.median == 30.0
        assert stats.count == 5
        assert stats.missing_count == 0

    def test_counts_cover_every_entry(self):
        values = [1.0, None, 3.0, float("nan"), float("inf"), 6.0]
        stats = calculate_statistics(values)
        assert stats.count + stats.missing_count == len(values)
        assert stats.count == 3
        assert stats.max == 6.0


class TestCorrelation:
    """Test suite for the correlation matrix."""

    def test_identical_series(self):
        logger.info("[TEST] Correlating two identical series...")
        result = calculate_correlation_matrix({"a": [1, 2, 3, 4, 5], "b": [1, 2, 3, 4, 5]})
        assert result.matrix[0][1] == 1.0
        assert result.matrix[1][0] == 1.0
        assert result.p("a", "b") == 0.0

    def test_symmetric_with_unit_diagonal(self, week_of_weather):
        frame = samples_to_frame(week_of_weather)
        names = ["temperature", "surface_pressure", "relative_humidity", "wind_speed", "solar_irradiance"]
        result = calculate_correlation_matrix({name: frame[name].tolist() for name in names})

        for i in range(len(names)):
            assert result.matrix[i][i] == 1.0
            assert result.p_values[i][i] == 0.0
            for j in range(len(names)):
                assert result.matrix[i][j] == result.matrix[j][i]
                assert result.p_values[i][j] == result.p_values[j][i]
                assert -1.0 <= result.matrix[i][j] <= 1.0

        # Sun warms and dries the air
        assert result.r("temperature", "solar_irradiance") > 0.5
        assert result.r("relative_humidity", "solar_irradiance") < -0.5

    def test_too_few_pairs(self):
        result = calculate_correlation_matrix({"a": [1, None, 3], "b": [None, 2, 3]})
        assert result.r("a", "b") == 0.0
        assert result.p("a", "b") == 1.0


class TestTrend:
    """Test suite for trend analysis."""

    def test_increasing(self):
        values = [10 + 0.5 * h + (0.2 if h % 2 else -0.2) for h in range(48)]
        trend = analyze_trend(hours(48), values, "temperature")
        assert trend.trend == TrendDirection.INCREASING
        assert trend.slope == pytest.approx(0.5, abs=0.02)
        assert trend.p_value < 0.05
        assert trend.confidence == trend.r_squared

    def test_decreasing(self):
        values = [1020 - 0.1 * h for h in range(24)]
        trend = analyze_trend(hours(24), values, "surface_pressure")
        assert trend.trend == TrendDirection.DECREASING

    def test_flat_series_is_stable(self):
        trend = analyze_trend(hours(24), [5.0] * 24, "wind_speed")
        assert trend.trend == TrendDirection.STABLE
        assert trend.slope == 0.0

    def test_too_few_points(self):
        trend = analyze_trend(hours(5), [1.0, None, None, 4.0, None], "temperature")
        assert trend.trend == TrendDirection.STABLE
        assert trend.p_value == 1.0
        assert trend.slope == 0.0


class TestAnomalies:
    """Test suite for z-score anomaly detection."""

    def test_extreme_outlier(self):
        logger.info("[TEST] Injecting a single large outlier...")
        values = [19.0, 21.0] * 50 + [40.0]
        anomalies = detect_anomalies(hours(len(values)), values, "temperature")

        assert len(anomalies) == 1
        anomaly = anomalies[0]
        assert anomaly.value == 40.0
        assert anomaly.expected_value == pytest.approx(np.mean(values))
        assert anomaly.deviation > 5
        assert anomaly.severity == Severity.EXTREME
        assert anomaly.timestamp == hours(len(values))[-1]

    def test_constant_series_has_no_anomalies(self):
        assert detect_anomalies(hours(10), [7.0] * 10, "wind_speed") == []

    def test_threshold_is_respected(self):
        values = [19.0, 21.0] * 50 + [40.0]
        assert detect_anomalies(hours(len(values)), values, "temperature", threshold=20.0) == []

    def test_severity_never_decreases_with_deviation(self):
        # Unit-sigma background with outliers landing in three different bands
        values = [-1.0, 1.0] * 500 + [3.7, 4.5, 6.0]
        anomalies = detect_anomalies(hours(len(values)), values, "wind_speed")
        assert {a.severity for a in anomalies} == {Severity.MEDIUM, Severity.HIGH, Severity.EXTREME}

        ordered = sorted(anomalies, key=lambda a: a.deviation)
        for earlier, later in zip(ordered, ordered[1:]):
            assert earlier.severity <= later.severity


class TestQualityReport:
    """Test suite for the data quality report."""

    def test_empty_series(self):
        report = generate_quality_report([])
        assert report.total_records == 0
        assert report.quality_score == 0.0
        assert report.missing_data_percentage == 100.0

    def test_one_incomplete_record(self, make_samples):
        samples = make_samples(
            temperature=[20, 21, 22, 23],
            surface_pressure=[1010, 1011, 1012, 1013],
            relative_humidity=[50, None, 55, 60],
        )
        report = generate_quality_report(samples)
        assert report.complete_records == 3
        assert report.missing_data_percentage == pytest.approx(25.0)
        assert report.quality_score == pytest.approx(75.0)
        assert report.variable_completeness["relative_humidity"] == pytest.approx(75.0)
        assert report.outlier_count == 0

    def test_suspicious_values_capped(self, make_samples):
        n = MAX_SUSPICIOUS_VALUES + 10
        samples = make_samples(
            temperature=[95.0] * n,
            surface_pressure=[1010.0] * n,
            relative_humidity=[50.0] * n,
        )
        report = generate_quality_report(samples)
        assert report.outlier_count == n
        assert len(report.suspicious_values) == MAX_SUSPICIOUS_VALUES
        assert report.suspicious_values[0].variable == "temperature"
        assert 0.0 <= report.quality_score <= 100.0
        assert report.quality_score == 0.0

    def test_infinite_reading_is_missing_and_suspicious(self, make_samples):
        samples = make_samples(
            temperature=[float("inf"), 20.0],
            surface_pressure=[1010.0, 1010.0],
            relative_humidity=[50.0, 50.0],
        )
        report = generate_quality_report(samples)
        assert report.complete_records == 1
        assert report.outlier_count == 1


class TestAtmosphericEngine:
    """Test suite for the full research pipeline."""

    def test_full_report(self, week_of_weather):
        research = generate_research_data(week_of_weather, label="Modesto, CA")

        assert research.label == "Modesto, CA"
        assert research.time_range == (week_of_weather[0].timestamp, week_of_weather[-1].timestamp)
        assert set(research.statistics) == {
            "temperature", "surface_pressure", "relative_humidity", "wind_speed", "solar_irradiance",
        }
        for stats in research.statistics.values():
            assert stats.count + stats.missing_count == len(week_of_weather)
        assert len(research.correlations.variables) == 5
        assert {t.variable for t in research.trends} == {
            "temperature", "surface_pressure", "wind_speed", "solar_irradiance",
        }
        assert research.data_quality.quality_score == pytest.approx(100.0)

    def test_deterministic(self, week_of_weather):
        engine = AtmosphericEngine()
        assert engine.analyze(week_of_weather, "x") == engine.analyze(week_of_weather, "x")

    def test_empty_series(self):
        research = AtmosphericEngine().analyze([], label="nowhere")
        assert research.time_range is None
        assert research.statistics == {}
        assert research.correlations is None
        assert research.trends == ()
        assert research.anomalies == ()
        assert research.data_quality.quality_score == 0.0

    def test_optional_sections(self, week_of_weather):
        research = generate_research_data(
            week_of_weather,
            include_correlations=False,
            include_trends=False,
            include_anomalies=False,
        )
        assert research.correlations is None
        assert research.trends is None
        assert research.anomalies is None
        assert research.statistics

    def test_mixed_offset_and_naive_timestamps(self):
        logger.info("[TEST] Research on a series mixing UTC-offset and naive times...")
        samples = [
            HourlySample(datetime(2025, 6, 1, 0), {"temperature": 10.0, "wind_speed": 3.0}),
            HourlySample(datetime(2025, 6, 1, 1, tzinfo=timezone.utc), {"temperature": 11.0, "wind_speed": 4.0}),
            HourlySample(datetime(2025, 6, 1, 2), {"temperature": 12.0, "wind_speed": 5.0}),
        ]
        research = generate_research_data(samples)

        assert research.time_range == (datetime(2025, 6, 1, 0), datetime(2025, 6, 1, 2))
        assert research.data_quality.total_records == 3

    def test_single_variable_skips_correlation(self, make_samples):
        research = generate_research_data(make_samples(temperature=[1.0, 2.0, 3.0, 4.0]))
        assert research.correlations is None
        assert research.data_quality.complete_records == 0

    def test_from_settings(self):
        class FakeSettings:
            anomaly_threshold = 2.5

        assert AtmosphericEngine.from_settings(FakeSettings()).anomaly_threshold == 2.5

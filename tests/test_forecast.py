"""
Tests for the forecast assembler and production analytics

Run with: python -m pytest tests/test_forecast.py -v
"""

import logging
from datetime import datetime

import pytest

from renewcast.errors import InvalidConfiguration, InvalidInput
from renewcast.forecast import (
    HOURS_PER_MONTH,
    HOURS_PER_YEAR,
    analyze_peak_production,
    forecast_to_frame,
    generate_forecast,
    generate_production_alerts,
    summarize_long_term,
)
from renewcast.models import SolarAsset, WindAsset

logger = logging.getLogger(__name__)


@pytest.fixture
def solar():
    return SolarAsset(dc_capacity_kw=7.0, system_losses_percent=14.0)


@pytest.fixture
def turbine():
    return WindAsset(rated_capacity_mw=1.5, hub_height_m=100.0)


class TestGenerateForecast:
    """Test suite for asset dispatch."""

    def test_solar_forecast(self, solar, make_samples):
        samples = make_samples(solar_irradiance=[0, 800, 400])
        forecast = generate_forecast(solar, samples, label="roof")

        assert forecast.label == "roof"
        assert forecast.asset is solar
        assert len(forecast.outputs) == len(samples)
        assert [o.timestamp for o in forecast.outputs] == [s.timestamp for s in samples]
        assert forecast.outputs[1].power == pytest.approx(4.816)

    def test_wind_forecast(self, turbine, make_samples):
        samples = make_samples(wind_speed=[10.0, 10.0])
        forecast = generate_forecast(turbine, samples)
        assert forecast.powers == [1.5, 1.5]
        assert forecast.total_energy == pytest.approx(3.0)
        assert forecast.average_capacity_percent == pytest.approx(100.0)

    def test_empty_series(self, solar):
        with pytest.raises(InvalidInput):
            generate_forecast(solar, [])

    @pytest.mark.parametrize("asset", [None, "solar", {"type": "solar", "dcCapacity": 7}])
    def test_not_an_asset(self, asset, make_samples):
        with pytest.raises(InvalidConfiguration):
            generate_forecast(asset, make_samples(solar_irradiance=[500]))

    def test_bad_reference_height(self, turbine, make_samples):
        with pytest.raises(InvalidConfiguration):
            generate_forecast(turbine, make_samples(wind_speed=[8.0]), reference_height=-10)

    def test_forecast_to_frame(self, solar, make_samples):
        forecast = generate_forecast(solar, make_samples(solar_irradiance=[0, 800]))
        frame = forecast_to_frame(forecast)
        assert list(frame.columns) == ["time", "power", "capacity_percent"]
        assert len(frame) == 2
        assert frame["power"].iloc[1] == pytest.approx(4.816)


class TestPeakAnalysis:
    """Test suite for peak production analysis."""

    def test_peak_and_hour_counts(self, solar, make_samples):
        # Powers: 0, 4.816, 2.408, 0.602 kW -> 0%, 68.8%, 34.4%, 8.6%
        forecast = generate_forecast(solar, make_samples(solar_irradiance=[0, 800, 400, 100]))
        peak = analyze_peak_production(forecast)

        assert peak.peak_time == forecast.outputs[1].timestamp
        assert peak.peak_power == pytest.approx(4.816)
        assert peak.average_power == pytest.approx(7.826 / 4)
        assert peak.peak_to_average_ratio == pytest.approx(4.816 / (7.826 / 4))
        assert peak.productive_hours == 1
        assert peak.low_production_hours == 2

    def test_idle_window(self, solar, make_samples):
        forecast = generate_forecast(solar, make_samples(solar_irradiance=[0, 0, 0]))
        peak = analyze_peak_production(forecast)
        assert peak.peak_power == 0.0
        assert peak.peak_to_average_ratio == 0.0
        assert peak.low_production_hours == 3


class TestProductionAlerts:
    """Test suite for production alerts."""

    def test_high_wind_alert(self, turbine, make_samples):
        samples = make_samples(wind_speed=[8.0, 22.0, 9.0])
        alerts = generate_production_alerts(generate_forecast(turbine, samples), samples)
        titles = [a.title for a in alerts]
        assert "High Wind Speed Alert" in titles
        assert "Peak Production Forecast" in titles

    def test_cloudy_alert_for_solar(self, solar, make_samples):
        samples = make_samples(solar_irradiance=[50, 600])
        alerts = generate_production_alerts(generate_forecast(solar, samples), samples)
        assert any(a.title == "Cloudy Conditions Expected" for a in alerts)

    def test_long_low_period(self, solar, make_samples):
        samples = make_samples(solar_irradiance=[0] * 30)
        alerts = generate_production_alerts(generate_forecast(solar, samples), samples)
        assert alerts[0].level == "warning"
        assert "30 hours" in alerts[0].message


class TestLongTermSummary:
    """Test suite for the monthly viability summary."""

    def test_solar_months(self, solar, make_samples):
        january = make_samples(start=datetime(2024, 1, 10), solar_irradiance=[500.0] * 24)
        june = make_samples(start=datetime(2024, 6, 10), solar_irradiance=[700.0, 900.0] * 12)
        summary = summarize_long_term(solar, january + june, label="roof")

        assert len(summary.monthly) == 12
        jan, feb, jun = summary.monthly[0], summary.monthly[1], summary.monthly[5]

        assert jan.month_name == "January"
        assert jan.mean_driver == pytest.approx(500.0)
        assert jan.average_production == pytest.approx(0.5 * 7.0 * 0.86 * HOURS_PER_MONTH)
        assert jun.mean_driver == pytest.approx(800.0)
        assert jun.average_production == pytest.approx(4.816 * HOURS_PER_MONTH)
        assert feb.mean_driver is None
        assert feb.average_production == 0.0

        expected_annual = (3.01 + 4.816) * HOURS_PER_MONTH
        assert summary.annual_production == pytest.approx(expected_annual)
        assert summary.average_capacity_factor == pytest.approx(
            expected_annual / (7.0 * HOURS_PER_YEAR) * 100
        )

    def test_wind_month_at_rated(self, turbine, make_samples):
        samples = make_samples(start=datetime(2024, 3, 1), wind_speed=[10.0] * 48)
        summary = summarize_long_term(turbine, samples)
        march = summary.monthly[2]
        assert march.average_production == pytest.approx(1.5 * HOURS_PER_MONTH)
        assert march.capacity_factor == pytest.approx(100.0)

    def test_no_driver_data(self, turbine, make_samples):
        summary = summarize_long_term(turbine, make_samples(temperature=[20.0] * 5))
        assert summary.annual_production == 0.0
        assert all(m.mean_driver is None for m in summary.monthly)

    def test_empty(self, solar):
        with pytest.raises(InvalidInput):
            summarize_long_term(solar, [])

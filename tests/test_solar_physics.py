"""
Tests for the PVWatts solar model

Run with: python -m pytest tests/test_solar_physics.py -v
"""

import logging

import pytest

from renewcast.errors import InvalidConfiguration
from renewcast.models import SolarAsset
from renewcast.solar_physics import (
    adjust_irradiance_for_clouds,
    calculate_capacity_factor,
    calculate_solar_power,
    capacity_percent,
    estimate_cell_temperature,
    generate_solar_forecast,
    monthly_average_daily_production,
    solar_power_output,
)

logger = logging.getLogger(__name__)


class TestSolarPower:
    """Test suite for instantaneous solar output."""

    def test_reference_case_without_temperature(self):
        """800 W/m2 on 7 kW DC with 14% losses."""
        logger.info("[TEST] Solar reference case, no temperature...")
        power, clamped, raw = solar_power_output(800, 7.0, 14.0)

        assert power == pytest.approx(4.816)
        assert clamped == pytest.approx(68.8)
        assert raw == pytest.approx(68.8)

    def test_reference_case_with_temperature(self):
        """25C ambient -> 50C cell -> 0.90 derate."""
        logger.info("[TEST] Solar reference case, 25C ambient...")
        assert estimate_cell_temperature(25.0, 800) == pytest.approx(50.0)

        power, _, _ = solar_power_output(800, 7.0, 14.0, ambient_temperature_c=25.0)
        assert power == pytest.approx(4.3344)

    @pytest.mark.parametrize("irradiance", [0, -50, None])
    def test_no_sun_no_power(self, irradiance):
        power, clamped, raw = solar_power_output(irradiance, 7.0, 14.0, ambient_temperature_c=30.0)
        assert power == 0.0
        assert clamped == 0.0
        assert raw == 0.0

    def test_clouds_attenuate(self):
        assert adjust_irradiance_for_clouds(800, 0) == pytest.approx(800)
        assert adjust_irradiance_for_clouds(800, 50) == pytest.approx(480)
        assert adjust_irradiance_for_clouds(800, 100) == pytest.approx(160)

        clear, _, _ = solar_power_output(800, 7.0, 14.0, cloud_cover_percent=0)
        cloudy, _, _ = solar_power_output(800, 7.0, 14.0, cloud_cover_percent=80)
        assert cloudy < clear

    def test_monotonic_in_irradiance(self):
        """Fixed temperature and losses: more sun never means less power."""
        previous = 0.0
        for irradiance in range(0, 1300, 50):
            power, _, _ = solar_power_output(irradiance, 7.0, 14.0, ambient_temperature_c=25.0)
            assert power >= previous
            previous = power

    def test_capacity_percent_is_clamped(self):
        power, clamped, raw = solar_power_output(1400, 7.0, 0.0)
        assert power == pytest.approx(9.8)
        assert clamped == 100.0
        assert raw == pytest.approx(140.0)

    def test_absurd_heat_never_negative(self):
        power, clamped, _ = solar_power_output(800, 7.0, 14.0, ambient_temperature_c=300.0)
        assert power == 0.0
        assert clamped == 0.0

    @pytest.mark.parametrize("dc_capacity, losses", [(0.0, 14.0), (-7.0, 14.0), (7.0, -1.0), (7.0, 101.0)])
    def test_invalid_system_rejected(self, dc_capacity, losses):
        with pytest.raises(InvalidConfiguration):
            solar_power_output(800, dc_capacity, losses)

    def test_base_power_never_negative(self):
        assert calculate_solar_power(-100, 7.0) == 0.0


class TestCapacity:
    """Test suite for capacity helpers."""

    def test_capacity_percent(self):
        assert capacity_percent(3.5, 7.0) == (50.0, 50.0)
        assert capacity_percent(1.0, 0.0) == (0.0, 0.0)

    def test_capacity_factor(self):
        assert calculate_capacity_factor(84.0, 7.0, 24) == pytest.approx(50.0)
        assert calculate_capacity_factor(10.0, 7.0, 0) == 0.0

    def test_monthly_average_daily_production(self):
        asset = SolarAsset(dc_capacity_kw=7.0)
        # 5 kWh/m2/day spread evenly over the day
        assert monthly_average_daily_production(asset, 5.0) == pytest.approx(30.1)


class TestSolarForecast:
    """Test suite for the solar forecast series."""

    def test_aligned_with_input(self, make_samples):
        samples = make_samples(
            solar_irradiance=[0, 400, 800, None],
            temperature=[15, 20, 25, 20],
        )
        outputs = generate_solar_forecast(SolarAsset(dc_capacity_kw=7.0), samples)

        assert len(outputs) == len(samples)
        assert [o.timestamp for o in outputs] == [s.timestamp for s in samples]
        assert outputs[0].power == 0.0
        assert outputs[2].power == pytest.approx(4.3344)
        # Missing irradiance -> zero output, not an error
        assert outputs[3].power == 0.0

    def test_every_hour_within_bounds(self, make_samples):
        samples = make_samples(solar_irradiance=[0, 300, 900, 1300, 1500], cloud_cover=[0, 20, 50, 0, 0])
        for output in generate_solar_forecast(SolarAsset(dc_capacity_kw=5.0, system_losses_percent=0), samples):
            assert output.power >= 0.0
            assert 0.0 <= output.capacity_percent <= 100.0


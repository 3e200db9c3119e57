"""
Solar Physics Module for Renewcast

Converts irradiance to AC power for a photovoltaic asset using the
simplified PVWatts model:

    P = (G / 1000) * P_dc * (100 - losses) / 100

Adjustments, applied in order:
1. Cloud attenuation: G' = G * (1 - 0.8 * cloud / 100)
2. Cell temperature derate (NOCT model, -0.4%/C above 25C)

Power is always floored at zero; capacity percent is clamped to 0-100.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from renewcast.errors import InvalidConfiguration
from renewcast.models import (
    CLOUD_COVER,
    SOLAR_IRRADIANCE,
    TEMPERATURE,
    HourlySample,
    PowerSample,
    SolarAsset,
)

logger = logging.getLogger(__name__)

# Standard Test Condition irradiance (W/m2)
STC_IRRADIANCE = 1000.0

# Standard Test Condition cell temperature (C)
STC_TEMPERATURE = 25.0

# Nominal Operating Cell Temperature (C) and its reference irradiance (W/m2)
NOCT = 45.0
NOCT_IRRADIANCE = 800.0

DEFAULT_TEMP_COEFFICIENT = -0.004  # per C

# At 100% cloud cover irradiance falls to 20% of clear sky
CLOUD_ATTENUATION = 0.8


def adjust_irradiance_for_clouds(irradiance: float, cloud_cover: float) -> float:
    """
    Attenuate irradiance for cloud cover.

    Args:
        irradiance: Clear-sky irradiance in W/m2
        cloud_cover: Cloud cover percentage (0-100)

    Returns:
        Adjusted irradiance in W/m2
    """
    return irradiance * (1.0 - CLOUD_ATTENUATION * cloud_cover / 100.0)


def calculate_solar_power(
    irradiance: float,
    dc_capacity_kw: float,
    system_losses: float = 14.0
) -> float:
    """
    Base PVWatts output in kW, never negative.

    Args:
        irradiance: Plane irradiance in W/m2
        dc_capacity_kw: DC capacity of the array in kW
        system_losses: System losses as a percentage (default 14%)
    """
    system_efficiency = (100.0 - system_losses) / 100.0
    power = (irradiance / STC_IRRADIANCE) * dc_capacity_kw * system_efficiency
    return max(0.0, power)


def estimate_cell_temperature(ambient_c: float, irradiance: float) -> float:
    """Cell temperature from ambient via NOCT: T + (45 - 20) * G / 800."""
    return ambient_c + (NOCT - 20.0) * (irradiance / NOCT_IRRADIANCE)


def apply_temperature_correction(
    power: float,
    ambient_c: float,
    irradiance: float,
    temp_coefficient: float = DEFAULT_TEMP_COEFFICIENT
) -> float:
    """
    Derate power for cell heating.

    factor = 1 + coefficient * (T_cell - 25)

    Returns:
        Temperature-adjusted power (may be negative for absurd inputs;
        callers clamp)
    """
    cell_temp = estimate_cell_temperature(ambient_c, irradiance)
    factor = 1.0 + temp_coefficient * (cell_temp - STC_TEMPERATURE)
    return power * factor


def capacity_percent(power: float, rated_capacity: float) -> Tuple[float, float]:
    """
    Output as a percentage of rated capacity.

    Returns:
        (clamped percent in 0-100, unclamped percent)
    """
    if rated_capacity <= 0:
        return 0.0, 0.0
    raw = power / rated_capacity * 100.0
    return min(100.0, max(0.0, raw)), raw


def calculate_capacity_factor(energy: float, rated_capacity: float, hours: float) -> float:
    """
    Capacity factor = produced energy / (rated capacity * hours), in percent.

    Shared by solar (kWh, kW) and wind (MWh, MW) assets.
    """
    max_possible = rated_capacity * hours
    if max_possible == 0:
        return 0.0
    return energy / max_possible * 100.0


def solar_power_output(
    irradiance: Optional[float],
    dc_capacity_kw: float,
    system_losses: float = 14.0,
    ambient_temperature_c: Optional[float] = None,
    cloud_cover_percent: Optional[float] = None,
    temp_coefficient: float = DEFAULT_TEMP_COEFFICIENT
) -> Tuple[float, float, float]:
    """
    Instantaneous solar output for one hour.

    Args:
        irradiance: W/m2; None or <= 0 means no production
        dc_capacity_kw: DC capacity in kW (> 0)
        system_losses: Losses in percent (0-100)
        ambient_temperature_c: Optional ambient temperature for the derate
        cloud_cover_percent: Optional cloud cover for attenuation

    Returns:
        (power_kw, capacity_percent, unclamped_capacity_percent)

    Raises:
        InvalidConfiguration: non-positive capacity or losses outside 0-100
    """
    if not dc_capacity_kw > 0:
        raise InvalidConfiguration(f"DC capacity must be positive, got {dc_capacity_kw}")
    if not 0 <= system_losses <= 100:
        raise InvalidConfiguration(f"System losses must be within 0-100, got {system_losses}")

    power = 0.0

    if irradiance is not None and irradiance > 0:
        adjusted = irradiance
        if cloud_cover_percent is not None:
            adjusted = adjust_irradiance_for_clouds(irradiance, cloud_cover_percent)

        power = calculate_solar_power(adjusted, dc_capacity_kw, system_losses)

        if ambient_temperature_c is not None:
            power = apply_temperature_correction(
                power, ambient_temperature_c, adjusted, temp_coefficient
            )

    power = max(0.0, power)
    clamped, raw = capacity_percent(power, dc_capacity_kw)
    return power, clamped, raw


def generate_solar_forecast(
    asset: SolarAsset,
    samples: Sequence[HourlySample]
) -> List[PowerSample]:
    """
    Solar power series aligned with the weather samples.

    Reads solar_irradiance, cloud_cover and temperature from each sample;
    any of them may be missing.
    """
    logger.info(f"[generate_solar_forecast] {len(samples)} hours, "
                f"{asset.dc_capacity_kw} kW DC, {asset.system_losses_percent}% losses")

    outputs = []
    missing_irradiance = 0
    for sample in samples:
        irradiance = sample.get(SOLAR_IRRADIANCE)
        if irradiance is None:
            missing_irradiance += 1

        power, clamped, raw = solar_power_output(
            irradiance,
            asset.dc_capacity_kw,
            asset.system_losses_percent,
            ambient_temperature_c=sample.get(TEMPERATURE),
            cloud_cover_percent=sample.get(CLOUD_COVER),
        )
        outputs.append(PowerSample(
            timestamp=sample.timestamp,
            power=power,
            capacity_percent=clamped,
            unclamped_capacity_percent=raw,
        ))

    if missing_irradiance:
        logger.warning(f"[generate_solar_forecast] {missing_irradiance} hours without irradiance "
                       f"(treated as zero output)")

    return outputs


def monthly_average_daily_production(asset: SolarAsset, kwh_per_m2_day: float) -> float:
    """
    Average daily production (kWh/day) for a month's mean daily insolation.

    Args:
        asset: Solar asset configuration
        kwh_per_m2_day: Average daily irradiation for the month (kWh/m2/day)
    """
    # Spread the daily energy evenly over 24 hours
    average_irradiance = kwh_per_m2_day * 1000.0 / 24.0
    average_power = calculate_solar_power(
        average_irradiance, asset.dc_capacity_kw, asset.system_losses_percent
    )
    return average_power * 24.0


if __name__ == "__main__":
    """Exercise the solar model with reference cases."""
    logging.basicConfig(level=logging.DEBUG)

    print("=" * 60)
    print("Testing Solar Physics Module")
    print("=" * 60)

    for irr, temp, cloud, desc in [
        (800, None, None, "800 W/m2, no temperature"),
        (800, 25.0, None, "800 W/m2, 25C ambient"),
        (800, 25.0, 50.0, "800 W/m2, 25C, 50% cloud"),
        (0, 25.0, None, "Night"),
    ]:
        power, cap, _ = solar_power_output(irr, 7.0, 14.0, temp, cloud)
        print(f"   {desc}: {power:.4f} kW ({cap:.1f}%)")

    print("\n" + "=" * 60)

"""
Wind Physics Module for Renewcast

Converts a measured wind speed to turbine output in three steps:

1. Hub-height extrapolation (power law): v_hub = v_ref * (h_hub / h_ref) ** alpha
2. Four-region power curve:
   - v < cut_in            -> 0
   - cut_in <= v < rated   -> cubic ramp to rated capacity
   - rated <= v <= cut_out -> rated capacity
   - v > cut_out           -> 0 (safety shutdown)
3. Optional air-density correction: (288.15 / T_K) * exp(-altitude / 8500)

The density correction can push output above rated capacity; capacity
percent is clamped to 0-100 while the unclamped value is kept on the sample.
"""

import math
import logging
from typing import List, Optional, Sequence, Tuple

from renewcast.errors import InvalidConfiguration
from renewcast.models import TEMPERATURE, WIND_SPEED, HourlySample, PowerSample, WindAsset
from renewcast.solar_physics import capacity_percent

logger = logging.getLogger(__name__)

# Typical anemometer height for weather data (m)
DEFAULT_REFERENCE_HEIGHT = 10.0

# Power-law exponent for open terrain (0.2-0.25 for urban areas)
DEFAULT_ALPHA = 0.14

# Standard temperature (K) and atmospheric scale height (m)
STANDARD_TEMPERATURE_K = 288.15
SCALE_HEIGHT_M = 8500.0


def extrapolate_wind_speed(
    wind_speed_at_reference: float,
    reference_height: float,
    target_height: float,
    alpha: float = DEFAULT_ALPHA
) -> float:
    """
    Extrapolate wind speed to hub height using the power law.

    Args:
        wind_speed_at_reference: Wind speed at reference height (m/s)
        reference_height: Measurement height (m), typically 10
        target_height: Hub height (m)
        alpha: Power-law exponent (default 0.14)

    Raises:
        InvalidConfiguration: if either height is not positive
    """
    if reference_height <= 0 or target_height <= 0:
        raise InvalidConfiguration(
            f"Heights must be positive values (reference={reference_height}, target={target_height})"
        )
    return wind_speed_at_reference * math.pow(target_height / reference_height, alpha)


def calculate_wind_power(wind_speed: float, asset: WindAsset) -> float:
    """
    Turbine output in MW at hub-height wind speed.

    Region 2 uses P = P_rated * (v^3 - v_in^3) / (v_rated^3 - v_in^3),
    clamped to [0, P_rated].
    """
    cut_in = asset.cut_in_speed
    rated = asset.rated_speed
    cut_out = asset.cut_out_speed

    # Region 1: below cut-in
    if wind_speed < cut_in:
        return 0.0

    # Region 4: safety shutdown
    if wind_speed > cut_out:
        return 0.0

    # Region 3: rated output
    if wind_speed >= rated:
        return asset.rated_capacity_mw

    # Region 2: cubic ramp
    v_cubed = wind_speed ** 3
    cut_in_cubed = cut_in ** 3
    rated_cubed = rated ** 3
    power = asset.rated_capacity_mw * ((v_cubed - cut_in_cubed) / (rated_cubed - cut_in_cubed))

    return max(0.0, min(asset.rated_capacity_mw, power))


def air_density_ratio(
    temperature_c: Optional[float] = None,
    altitude_m: Optional[float] = None
) -> float:
    """
    Air density relative to standard conditions.

    Temperature term: 288.15 / (T + 273.15), only above absolute zero
    Altitude term:    exp(-altitude / 8500), only for altitude > 0
    """
    ratio = 1.0

    # At or below absolute zero the reading is treated as missing
    if temperature_c is not None and temperature_c + 273.15 > 0:
        ratio *= STANDARD_TEMPERATURE_K / (temperature_c + 273.15)

    if altitude_m is not None and altitude_m > 0:
        ratio *= math.exp(-altitude_m / SCALE_HEIGHT_M)

    return ratio


def apply_air_density_correction(
    base_power: float,
    temperature_c: Optional[float] = None,
    altitude_m: Optional[float] = None
) -> float:
    """Scale power by the air density ratio."""
    return base_power * air_density_ratio(temperature_c, altitude_m)


def wind_power_output(
    wind_speed: Optional[float],
    asset: WindAsset,
    reference_height: float = DEFAULT_REFERENCE_HEIGHT,
    temperature_c: Optional[float] = None,
    altitude_m: Optional[float] = None,
    alpha: float = DEFAULT_ALPHA
) -> Tuple[float, float, float]:
    """
    Instantaneous wind output for one hour.

    Args:
        wind_speed: Measured speed at reference height (m/s); None or <= 0 means no output
        asset: Wind asset configuration
        reference_height: Measurement height (m)
        temperature_c: Optional ambient temperature for density correction
        altitude_m: Optional site altitude for density correction
        alpha: Power-law exponent

    Returns:
        (power_mw, capacity_percent, unclamped_capacity_percent)
    """
    if reference_height <= 0:
        raise InvalidConfiguration(f"Reference height must be positive, got {reference_height}")

    power = 0.0

    if wind_speed is not None and wind_speed > 0:
        hub_speed = extrapolate_wind_speed(wind_speed, reference_height, asset.hub_height_m, alpha)
        power = calculate_wind_power(hub_speed, asset)

        if power > 0 and (temperature_c is not None or altitude_m is not None):
            power = apply_air_density_correction(power, temperature_c, altitude_m)

    power = max(0.0, power)
    clamped, raw = capacity_percent(power, asset.rated_capacity_mw)
    return power, clamped, raw


def generate_wind_forecast(
    asset: WindAsset,
    samples: Sequence[HourlySample],
    reference_height: float = DEFAULT_REFERENCE_HEIGHT,
    altitude_m: Optional[float] = None,
    alpha: float = DEFAULT_ALPHA
) -> List[PowerSample]:
    """
    Wind power series aligned with the weather samples.

    Reads wind_speed and temperature from each sample; either may be missing.
    """
    logger.info(f"[generate_wind_forecast] {len(samples)} hours, {asset.rated_capacity_mw} MW "
                f"@ {asset.hub_height_m} m hub (ref {reference_height} m, alpha={alpha})")

    outputs = []
    missing_wind = 0
    shutdown_hours = 0
    for sample in samples:
        wind_speed = sample.get(WIND_SPEED)
        if wind_speed is None:
            missing_wind += 1

        power, clamped, raw = wind_power_output(
            wind_speed,
            asset,
            reference_height=reference_height,
            temperature_c=sample.get(TEMPERATURE),
            altitude_m=altitude_m,
            alpha=alpha,
        )
        if power == 0 and wind_speed is not None and wind_speed > 0:
            hub_speed = extrapolate_wind_speed(wind_speed, reference_height, asset.hub_height_m, alpha)
            if hub_speed > asset.cut_out_speed:
                shutdown_hours += 1

        outputs.append(PowerSample(
            timestamp=sample.timestamp,
            power=power,
            capacity_percent=clamped,
            unclamped_capacity_percent=raw,
        ))

    if missing_wind:
        logger.warning(f"[generate_wind_forecast] {missing_wind} hours without wind speed "
                       f"(treated as zero output)")
    if shutdown_hours:
        logger.warning(f"[generate_wind_forecast] {shutdown_hours} hours above cut-out "
                       f"({asset.cut_out_speed} m/s) - turbine shut down")

    return outputs


def estimate_rotor_diameter(rated_capacity_mw: float) -> float:
    """Rough rotor diameter (m) for a rated capacity: D = 60 * P ** 0.4."""
    if rated_capacity_mw <= 0:
        raise InvalidConfiguration(f"Rated capacity must be positive, got {rated_capacity_mw}")
    return 60.0 * math.pow(rated_capacity_mw, 0.4)


if __name__ == "__main__":
    """Exercise the wind model with reference cases."""
    logging.basicConfig(level=logging.DEBUG)

    print("=" * 60)
    print("Testing Wind Physics Module")
    print("=" * 60)

    turbine = WindAsset(rated_capacity_mw=1.5, hub_height_m=100.0)
    for speed in [2.0, 5.0, 8.0, 10.0, 20.0]:
        hub = extrapolate_wind_speed(speed, DEFAULT_REFERENCE_HEIGHT, turbine.hub_height_m)
        power, cap, raw = wind_power_output(speed, turbine)
        print(f"   {speed:4.1f} m/s @10m -> {hub:5.2f} m/s @hub -> {power:.3f} MW ({cap:.1f}%)")

    print(f"\n   Estimated rotor diameter: {estimate_rotor_diameter(1.5):.0f} m")
    print("\n" + "=" * 60)

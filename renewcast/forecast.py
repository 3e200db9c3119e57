"""
Forecast Assembler for Renewcast

Pairs a weather series with one asset configuration and runs the matching
physical model. The asset is a sum type (SolarAsset | WindAsset) and the
dispatch below is exhaustive: anything else is an InvalidConfiguration.

Also provides production analytics over a finished forecast:
- Peak production analysis (peak hour, productive / low-output hours)
- Production alerts (low output, high wind cut-out risk, cloudy periods)
- Long-term monthly summary from a multi-month historical series
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from renewcast.atmospheric import samples_to_frame
from renewcast.errors import InvalidConfiguration, InvalidInput
from renewcast.models import (
    SOLAR_IRRADIANCE,
    WIND_SPEED,
    AssetConfig,
    HourlySample,
    PowerForecast,
    SolarAsset,
    WindAsset,
)
from renewcast.solar_physics import calculate_capacity_factor, calculate_solar_power, generate_solar_forecast
from renewcast.wind_physics import (
    DEFAULT_ALPHA,
    DEFAULT_REFERENCE_HEIGHT,
    calculate_wind_power,
    extrapolate_wind_speed,
    generate_wind_forecast,
)

logger = logging.getLogger(__name__)

# Hours used for long-term production estimates
HOURS_PER_MONTH = 730
HOURS_PER_YEAR = 8760

PRODUCTIVE_THRESHOLD_PERCENT = 50.0
LOW_PRODUCTION_THRESHOLD_PERCENT = 20.0

# Alert thresholds
LOW_PRODUCTION_ALERT_HOURS = 24
PRODUCTIVE_ALERT_HOURS = 30
HIGH_WIND_ALERT_MS = 20.0
LOW_IRRADIANCE_ALERT_WM2 = 100.0


def generate_forecast(
    asset: AssetConfig,
    samples: Sequence[HourlySample],
    label: Any = None,
    reference_height: float = DEFAULT_REFERENCE_HEIGHT,
    altitude_m: Optional[float] = None,
    alpha: float = DEFAULT_ALPHA
) -> PowerForecast:
    """
    Power-output forecast aligned one-to-one with the weather series.

    Args:
        asset: SolarAsset or WindAsset
        samples: Ordered hourly weather samples (must not be empty)
        label: Opaque location label carried through to the result
        reference_height: Wind measurement height (m), wind assets only
        altitude_m: Site altitude for air-density correction, wind assets only
        alpha: Wind shear exponent, wind assets only

    Raises:
        InvalidInput: empty series
        InvalidConfiguration: not an asset variant, or bad heights
    """
    if isinstance(asset, SolarAsset):
        kind = "solar"
    elif isinstance(asset, WindAsset):
        kind = "wind"
    else:
        raise InvalidConfiguration(f"Unsupported asset configuration: {type(asset).__name__}")

    if not samples:
        raise InvalidInput("No weather data available for forecast")

    logger.info(f"[generate_forecast] Building {kind} forecast over {len(samples)} hours")

    if isinstance(asset, SolarAsset):
        outputs = generate_solar_forecast(asset, samples)
    else:
        outputs = generate_wind_forecast(
            asset, samples,
            reference_height=reference_height,
            altitude_m=altitude_m,
            alpha=alpha,
        )

    forecast = PowerForecast(asset=asset, label=label, outputs=tuple(outputs))
    logger.info(f"[generate_forecast] Total {forecast.total_energy:.2f} {asset.power_unit}h, "
                f"average {forecast.average_capacity_percent:.1f}% of capacity")
    return forecast


def forecast_to_frame(forecast: PowerForecast) -> pd.DataFrame:
    """Tabulate a forecast as time / power / capacity_percent columns."""
    return pd.DataFrame({
        "time": [o.timestamp for o in forecast.outputs],
        "power": [o.power for o in forecast.outputs],
        "capacity_percent": [o.capacity_percent for o in forecast.outputs],
    })


@dataclass(frozen=True)
class PeakAnalysis:
    """Peak and distribution of output over a forecast window."""
    peak_time: Optional[datetime]
    peak_power: float
    average_power: float
    peak_to_average_ratio: float
    productive_hours: int  # hours above 50% capacity
    low_production_hours: int  # hours below 20% capacity


def analyze_peak_production(forecast: PowerForecast) -> PeakAnalysis:
    """Find the peak hour and count productive / low-output hours."""
    if not forecast.outputs:
        return PeakAnalysis(None, 0.0, 0.0, 0.0, 0, 0)

    powers = np.array(forecast.powers, dtype=float)
    capacities = np.array([o.capacity_percent for o in forecast.outputs], dtype=float)

    peak_index = int(np.argmax(powers))  # first occurrence on ties
    peak_power = float(powers[peak_index])
    average_power = float(powers.mean())

    return PeakAnalysis(
        peak_time=forecast.outputs[peak_index].timestamp,
        peak_power=peak_power,
        average_power=average_power,
        peak_to_average_ratio=peak_power / average_power if average_power > 0 else 0.0,
        productive_hours=int(np.sum(capacities > PRODUCTIVE_THRESHOLD_PERCENT)),
        low_production_hours=int(np.sum(capacities < LOW_PRODUCTION_THRESHOLD_PERCENT)),
    )


@dataclass(frozen=True)
class ProductionAlert:
    """Informational message about a forecast window."""
    level: str  # "warning", "info", "success"
    title: str
    message: str


def generate_production_alerts(
    forecast: PowerForecast,
    samples: Sequence[HourlySample]
) -> List[ProductionAlert]:
    """Summarize notable conditions in a forecast window. Warn-only, never blocks."""
    peak = analyze_peak_production(forecast)
    unit = forecast.asset.power_unit
    alerts = []

    if peak.low_production_hours > LOW_PRODUCTION_ALERT_HOURS:
        alerts.append(ProductionAlert(
            "warning",
            "Low Production Period Detected",
            f"{peak.low_production_hours} hours of low production (<20% capacity) expected.",
        ))

    if peak.productive_hours > PRODUCTIVE_ALERT_HOURS:
        alerts.append(ProductionAlert(
            "success",
            "Optimal Production Period",
            f"{peak.productive_hours} hours of high production (>50% capacity) expected.",
        ))

    if peak.peak_time is not None:
        alerts.append(ProductionAlert(
            "info",
            "Peak Production Forecast",
            f"Peak production of {peak.peak_power:.2f} {unit} expected at {peak.peak_time.isoformat()}.",
        ))

    if isinstance(forecast.asset, WindAsset):
        if any((s.get(WIND_SPEED) or 0) > HIGH_WIND_ALERT_MS for s in samples):
            alerts.append(ProductionAlert(
                "warning",
                "High Wind Speed Alert",
                "Wind speeds exceeding 20 m/s expected. Turbine may enter cut-out mode for safety.",
            ))
    elif any(s.get(SOLAR_IRRADIANCE) is not None and s.get(SOLAR_IRRADIANCE) < LOW_IRRADIANCE_ALERT_WM2
             for s in samples):
        alerts.append(ProductionAlert(
            "info",
            "Cloudy Conditions Expected",
            "Low solar irradiance periods detected. Production may be reduced.",
        ))

    for alert in alerts:
        if alert.level == "warning":
            logger.warning(f"[generate_production_alerts] {alert.title}: {alert.message}")

    return alerts


@dataclass(frozen=True)
class MonthlyProduction:
    """Estimated production for one calendar month."""
    month: int  # 1-12
    month_name: str
    mean_driver: Optional[float]  # mean irradiance (W/m2) or wind speed (m/s)
    average_production: float  # kWh (solar) / MWh (wind) per 730-hour month
    capacity_factor: float  # percent


@dataclass(frozen=True)
class LongTermSummary:
    """Monthly and annual viability estimate for one site."""
    asset: AssetConfig
    label: Any
    monthly: Tuple[MonthlyProduction, ...]
    annual_production: float
    average_capacity_factor: float


def summarize_long_term(
    asset: AssetConfig,
    samples: Sequence[HourlySample],
    label: Any = None,
    reference_height: float = DEFAULT_REFERENCE_HEIGHT,
    alpha: float = DEFAULT_ALPHA
) -> LongTermSummary:
    """
    Long-term viability from a historical hourly series.

    Averages the driver variable per calendar month and pushes the mean
    through the asset model over a 730-hour month. Months without data
    contribute zero production.
    """
    if not isinstance(asset, (SolarAsset, WindAsset)):
        raise InvalidConfiguration(f"Unsupported asset configuration: {type(asset).__name__}")
    if not samples:
        raise InvalidInput("No historical weather data available for long-term analysis")

    driver = SOLAR_IRRADIANCE if isinstance(asset, SolarAsset) else WIND_SPEED
    frame = samples_to_frame(samples)
    if driver not in frame.columns:
        frame[driver] = np.nan
    # Calendar month in each sample's own (local) time
    frame["month"] = [s.timestamp.month for s in samples]
    monthly_means = frame.groupby("month")[driver].mean()

    logger.info(f"[summarize_long_term] {len(samples)} hours across "
                f"{monthly_means.notna().sum()} months with {driver} data")

    months = []
    for month in range(1, 13):
        mean = monthly_means.get(month, np.nan)
        mean_driver = None if pd.isna(mean) else float(mean)
        average_power = 0.0

        if mean_driver is not None:
            if isinstance(asset, SolarAsset):
                average_power = calculate_solar_power(
                    mean_driver, asset.dc_capacity_kw, asset.system_losses_percent
                )
            elif mean_driver > 0:
                hub_speed = extrapolate_wind_speed(mean_driver, reference_height, asset.hub_height_m, alpha)
                average_power = calculate_wind_power(hub_speed, asset)

        production = average_power * HOURS_PER_MONTH
        months.append(MonthlyProduction(
            month=month,
            month_name=calendar.month_name[month],
            mean_driver=mean_driver,
            average_production=production,
            capacity_factor=calculate_capacity_factor(production, asset.rated_capacity, HOURS_PER_MONTH),
        ))

    annual = float(sum(m.average_production for m in months))
    return LongTermSummary(
        asset=asset,
        label=label,
        monthly=tuple(months),
        annual_production=annual,
        average_capacity_factor=calculate_capacity_factor(annual, asset.rated_capacity, HOURS_PER_YEAR),
    )

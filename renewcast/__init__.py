"""
Renewcast: Renewable Output Forecasting & Atmospheric Research Core

Turns hourly atmospheric measurements into:
- A power-output forecast for one solar or wind asset
- A statistical research report on the weather record itself

This package is purely computational: no network retrieval, no storage,
no rendering. Every analysis is a deterministic function of its inputs.

Architecture:
    numerics.py      - Summary stats, Pearson r, OLS, t-approximation, z-score severity
    models.py        - Immutable value types (HourlySample, SolarAsset | WindAsset, results)
    solar_physics.py - PVWatts irradiance -> kW with cloud and temperature effects
    wind_physics.py  - Power-law hub extrapolation + four-region power curve
    atmospheric.py   - Statistics, correlation, trends, anomalies, data quality
    forecast.py      - Asset dispatch, peak analysis, long-term monthly summary
    batch.py         - Bounded-concurrency multi-site analysis and ranking
    config.py        - Environment settings and logging setup
    weather_file.py  - JSON weather loading (records or Open-Meteo hourly columns)

Entry Points:
    main.py          - Command-line forecast + research summary for a JSON weather file
"""

from renewcast.atmospheric import AtmosphericEngine, generate_research_data
from renewcast.errors import InvalidConfiguration, InvalidInput, RenewcastError
from renewcast.forecast import generate_forecast
from renewcast.models import HourlySample, SolarAsset, WindAsset, asset_from_dict

__version__ = "1.0.0"
__author__ = "Renewcast"

__all__ = [
    "AtmosphericEngine",
    "HourlySample",
    "InvalidConfiguration",
    "InvalidInput",
    "RenewcastError",
    "SolarAsset",
    "WindAsset",
    "asset_from_dict",
    "generate_forecast",
    "generate_research_data",
]

"""
Weather File Loader for Renewcast

Reads a weather series that the caller already retrieved and saved as JSON.
Two shapes are accepted:

1. A list of flat hourly records:
       [{"time": "2025-06-01T12:00", "temperature": 21.4, "solarIrradiance": 640}, ...]
2. An Open-Meteo style response with column arrays:
       {"hourly": {"time": [...], "temperature_2m": [...], "shortwave_radiation": [...]}}

Open-Meteo variable names are mapped onto the canonical field names. Wind
speeds are expected in m/s (request them with wind_speed_unit=ms).
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

from renewcast.errors import InvalidInput
from renewcast.models import (
    CLOUD_COVER,
    PRECIPITATION,
    RELATIVE_HUMIDITY,
    SOLAR_IRRADIANCE,
    SURFACE_PRESSURE,
    TEMPERATURE,
    WIND_SPEED,
    HourlySample,
)

logger = logging.getLogger(__name__)

# Open-Meteo hourly variable -> canonical field name
OPEN_METEO_FIELDS: Dict[str, str] = {
    "temperature_2m": TEMPERATURE,
    "surface_pressure": SURFACE_PRESSURE,
    "relative_humidity_2m": RELATIVE_HUMIDITY,
    "wind_speed_10m": WIND_SPEED,
    "shortwave_radiation": SOLAR_IRRADIANCE,
    "precipitation": PRECIPITATION,
    "cloud_cover": CLOUD_COVER,
    "dew_point_2m": "dew_point",
    "dewpoint_2m": "dew_point",
    "apparent_temperature": "apparent_temperature",
    "pressure_msl": "sea_level_pressure",
    "wind_direction_10m": "wind_direction",
    "direct_radiation": "direct_radiation",
    "diffuse_radiation": "diffuse_radiation",
    "uv_index": "uv_index",
    "visibility": "visibility",
}


def samples_from_hourly_columns(hourly: Mapping[str, List[Any]]) -> List[HourlySample]:
    """Convert Open-Meteo column arrays into samples, one per entry of 'time'."""
    times = hourly.get("time")
    if not times:
        raise InvalidInput("Hourly block has no 'time' column")

    samples = []
    for i, t in enumerate(times):
        record: Dict[str, Any] = {"time": t}
        for column, values in hourly.items():
            if column == "time":
                continue
            name = OPEN_METEO_FIELDS.get(column, column)
            # Short columns leave the tail missing
            record[name] = values[i] if i < len(values) else None
        samples.append(HourlySample.from_record(record))

    return samples


def parse_weather(data: Union[List[Mapping[str, Any]], Mapping[str, Any]]) -> List[HourlySample]:
    """
    Build samples from decoded JSON in either supported shape.

    Raises:
        InvalidInput: unrecognised shape or an unparseable record
    """
    is_columns = isinstance(data, Mapping) and "hourly" in data
    if not is_columns and not isinstance(data, list):
        raise InvalidInput("Expected a list of hourly records or an object with an 'hourly' block")

    try:
        if is_columns:
            samples = samples_from_hourly_columns(data["hourly"])
        else:
            samples = [HourlySample.from_record(record) for record in data]
        samples.sort(key=lambda s: s.timestamp)
    except InvalidInput:
        raise
    except (ValueError, TypeError, AttributeError) as e:
        raise InvalidInput(f"Malformed weather data: {e}") from e

    return samples


def load_weather_file(path: Union[str, Path]) -> List[HourlySample]:
    """Read a JSON weather file into time-ordered samples."""
    path = Path(path)
    logger.info(f"[load_weather_file] Reading {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidInput(f"{path} is not valid JSON: {e}") from e

    samples = parse_weather(data)
    logger.info(f"[load_weather_file] Loaded {len(samples)} hourly samples")
    return samples

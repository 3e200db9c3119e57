"""
Configuration for Renewcast

Settings come from environment variables (optionally from a .env file via
python-dotenv). Library code never reads the environment on its own:
callers fetch a Settings object once and pass its values in.

Environment:
    RENEWCAST_LOG_LEVEL (or LOG_LEVEL)   logging level, default INFO
    RENEWCAST_ANOMALY_THRESHOLD          sigma reporting threshold, default 3.0
    RENEWCAST_WIND_SHEAR_ALPHA           power-law exponent, default 0.14
    RENEWCAST_REFERENCE_HEIGHT_M         anemometer height, default 10
    RENEWCAST_SITE_ALTITUDE_M            site altitude for air density, default unset
    RENEWCAST_MAX_CONCURRENCY            batch concurrency bound, default 4
"""

import os
import sys
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

from renewcast.errors import InvalidConfiguration
from renewcast.numerics import coerce_value

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@dataclass(frozen=True)
class Settings:
    """Runtime settings with the library defaults."""
    log_level: str = "INFO"
    anomaly_threshold: float = 3.0
    wind_shear_alpha: float = 0.14
    reference_height_m: float = 10.0
    site_altitude_m: Optional[float] = None
    max_concurrency: int = 4


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = coerce_value(float(raw))
    except ValueError:
        value = None
    if value is None:
        raise InvalidConfiguration(f"{name} must be a number, got {raw!r}")
    return value


def get_settings(env_file: Optional[Union[str, Path]] = None) -> Settings:
    """
    Load settings from the environment.

    Args:
        env_file: Optional .env path; defaults to python-dotenv's search

    Raises:
        InvalidConfiguration: when a variable is malformed or out of range
    """
    load_dotenv(env_file)

    settings = Settings(
        log_level=os.getenv("RENEWCAST_LOG_LEVEL", os.getenv("LOG_LEVEL", "INFO")).upper(),
        anomaly_threshold=_env_float("RENEWCAST_ANOMALY_THRESHOLD", 3.0),
        wind_shear_alpha=_env_float("RENEWCAST_WIND_SHEAR_ALPHA", 0.14),
        reference_height_m=_env_float("RENEWCAST_REFERENCE_HEIGHT_M", 10.0),
        site_altitude_m=_env_float("RENEWCAST_SITE_ALTITUDE_M", None),
        max_concurrency=int(_env_float("RENEWCAST_MAX_CONCURRENCY", 4)),
    )

    if settings.anomaly_threshold <= 0:
        raise InvalidConfiguration("RENEWCAST_ANOMALY_THRESHOLD must be positive")
    if settings.reference_height_m <= 0:
        raise InvalidConfiguration("RENEWCAST_REFERENCE_HEIGHT_M must be positive")
    if settings.max_concurrency < 1:
        raise InvalidConfiguration("RENEWCAST_MAX_CONCURRENCY must be at least 1")

    logger.debug(f"[get_settings] {settings}")
    return settings


def configure_logging(level: str = "INFO", log_file: Optional[Union[str, Path]] = None) -> None:
    """Console logging (plus an optional append-mode file) in the project format."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, mode='a', encoding='utf-8'))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)

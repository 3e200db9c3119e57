"""
Data Model for Renewcast

Immutable value types shared by the physical models, the atmospheric
statistics engine and the forecast assembler. Every result is a frozen
dataclass so two analyses of the same series compare equal field by field.

Asset configuration is an explicit sum type: SolarAsset | WindAsset.
Parameters are validated on construction and rejected with
InvalidConfiguration before any computation starts.
"""

import math
import re
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import pandas as pd

from renewcast.errors import InvalidConfiguration
from renewcast.numerics import coerce_value

logger = logging.getLogger(__name__)

# Canonical weather field names (snake_case)
TEMPERATURE = "temperature"
SURFACE_PRESSURE = "surface_pressure"
RELATIVE_HUMIDITY = "relative_humidity"
WIND_SPEED = "wind_speed"
SOLAR_IRRADIANCE = "solar_irradiance"
PRECIPITATION = "precipitation"
CLOUD_COVER = "cloud_cover"

# Record keys that carry metadata rather than measurements
NON_MEASUREMENT_KEYS = frozenset({"time", "timestamp", "data_quality", "missing_data_flags"})

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def normalize_field_name(name: str) -> str:
    """Convert camelCase field names (solarIrradiance) to snake_case."""
    return _CAMEL_BOUNDARY.sub(r"_\1", name).lower()


def naive_utc(value: datetime) -> datetime:
    """Offset-aware timestamps become naive UTC; naive ones are kept as given."""
    if value.tzinfo is None or value.utcoffset() is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """Parse an ISO timestamp string (or pass through a datetime) as a naive datetime."""
    if isinstance(value, datetime):
        return naive_utc(value)
    try:
        return naive_utc(pd.Timestamp(value).to_pydatetime())
    except (ValueError, TypeError) as e:
        raise ValueError(f"Unparseable timestamp: {value!r}") from e


@dataclass(frozen=True)
class HourlySample:
    """One hour of weather: a timestamp plus a sparse set of named fields."""
    timestamp: datetime
    values: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Mixed offset-aware and naive series must stay comparable
        object.__setattr__(self, "timestamp", naive_utc(self.timestamp))

    def get(self, name: str) -> Optional[float]:
        """Numeric value of a field, or None when absent or unusable."""
        return coerce_value(self.values.get(name))

    def has(self, name: str) -> bool:
        return self.get(name) is not None

    @property
    def field_names(self) -> List[str]:
        return [k for k in self.values if k not in NON_MEASUREMENT_KEYS]

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "HourlySample":
        """
        Build a sample from a flat record such as
        {"time": "2025-06-01T12:00", "temperature": 21.4, "solarIrradiance": 640}.
        """
        raw_time = record.get("time", record.get("timestamp"))
        if raw_time is None:
            raise ValueError("Record has no 'time' field")
        values = {
            normalize_field_name(k): v
            for k, v in record.items()
            if normalize_field_name(k) not in NON_MEASUREMENT_KEYS
        }
        return cls(timestamp=parse_timestamp(raw_time), values=values)


def _require_positive(name: str, value: Any) -> None:
    number = coerce_value(value)
    if number is None or number <= 0:
        raise InvalidConfiguration(f"{name} must be a positive number, got {value!r}")


def _require_optional_number(name: str, value: Any) -> None:
    if value is not None and coerce_value(value) is None:
        raise InvalidConfiguration(f"{name} must be a number when given, got {value!r}")


@dataclass(frozen=True)
class SolarAsset:
    """Photovoltaic system rated by DC capacity (kW)."""
    dc_capacity_kw: float
    system_losses_percent: float = 14.0
    tilt_deg: Optional[float] = None
    azimuth_deg: Optional[float] = None

    def __post_init__(self):
        _require_positive("dc_capacity_kw", self.dc_capacity_kw)
        losses = coerce_value(self.system_losses_percent)
        if losses is None or not 0 <= losses <= 100:
            raise InvalidConfiguration(
                f"system_losses_percent must be within 0-100, got {self.system_losses_percent!r}"
            )
        _require_optional_number("tilt_deg", self.tilt_deg)
        _require_optional_number("azimuth_deg", self.azimuth_deg)

    @property
    def rated_capacity(self) -> float:
        return self.dc_capacity_kw

    @property
    def power_unit(self) -> str:
        return "kW"


@dataclass(frozen=True)
class WindAsset:
    """Wind turbine rated in MW with a four-region power curve."""
    rated_capacity_mw: float
    hub_height_m: float
    cut_in_speed: float = 3.0
    rated_speed: float = 12.0
    cut_out_speed: float = 25.0

    def __post_init__(self):
        _require_positive("rated_capacity_mw", self.rated_capacity_mw)
        _require_positive("hub_height_m", self.hub_height_m)
        speeds = [coerce_value(s) for s in (self.cut_in_speed, self.rated_speed, self.cut_out_speed)]
        if any(s is None for s in speeds):
            raise InvalidConfiguration("Wind curve speeds must be numbers")
        cut_in, rated, cut_out = speeds
        if not (0 <= cut_in < rated <= cut_out):
            raise InvalidConfiguration(
                f"Wind curve requires 0 <= cut_in < rated <= cut_out, "
                f"got {cut_in}/{rated}/{cut_out} m/s"
            )

    @property
    def rated_capacity(self) -> float:
        return self.rated_capacity_mw

    @property
    def power_unit(self) -> str:
        return "MW"


AssetConfig = Union[SolarAsset, WindAsset]


def asset_from_dict(data: Mapping[str, Any]) -> AssetConfig:
    """
    Build an asset from a tagged mapping, e.g.
    {"type": "solar", "dcCapacity": 7} or
    {"type": "wind", "ratedCapacity": 1.5, "hubHeight": 100}.

    Unknown tags, missing fields or mixed-variant fields raise InvalidConfiguration.
    """
    fields = {normalize_field_name(k): v for k, v in data.items()}
    asset_type = str(fields.pop("type", "")).lower()

    solar_keys = {"dc_capacity": "dc_capacity_kw", "system_losses": "system_losses_percent",
                  "tilt": "tilt_deg", "azimuth": "azimuth_deg"}
    wind_keys = {"rated_capacity": "rated_capacity_mw", "hub_height": "hub_height_m",
                 "cut_in_speed": "cut_in_speed", "rated_speed": "rated_speed",
                 "cut_out_speed": "cut_out_speed", "cut_in": "cut_in_speed",
                 "rated": "rated_speed", "cut_out": "cut_out_speed"}

    if asset_type == "solar":
        own, other = solar_keys, wind_keys
        cls = SolarAsset
    elif asset_type == "wind":
        own, other = wind_keys, solar_keys
        cls = WindAsset
    else:
        raise InvalidConfiguration(f"Unknown asset type: {asset_type!r}")

    mixed = [k for k in fields if k in other and k not in own]
    if mixed:
        raise InvalidConfiguration(f"{asset_type} asset cannot carry fields {mixed}")

    kwargs = {}
    for key, value in fields.items():
        target = own.get(key, key if key in own.values() else None)
        if target is None:
            raise InvalidConfiguration(f"Unexpected {asset_type} asset field: {key!r}")
        if value is not None:
            kwargs[target] = value

    try:
        return cls(**kwargs)
    except TypeError as e:
        raise InvalidConfiguration(f"Incomplete {asset_type} asset: {e}") from e


@dataclass(frozen=True)
class PowerSample:
    """Instantaneous output for one hour."""
    timestamp: datetime
    power: float
    capacity_percent: float
    unclamped_capacity_percent: float


class Severity(Enum):
    """Anomaly severity, ordered low < medium < high < extreme."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EXTREME = "extreme"

    @property
    def rank(self) -> int:
        return list(Severity).index(self)

    def __lt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank


class TrendDirection(Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


@dataclass(frozen=True)
class VariableStatistics:
    """Descriptive statistics for one variable."""
    mean: float
    median: float
    std_dev: float
    min: float
    max: float
    percentile25: float
    percentile75: float
    percentile95: float
    count: int
    missing_count: int


@dataclass(frozen=True)
class CorrelationMatrix:
    """Symmetric Pearson r matrix with matching p-values."""
    variables: Tuple[str, ...]
    matrix: Tuple[Tuple[float, ...], ...]
    p_values: Tuple[Tuple[float, ...], ...]

    def r(self, a: str, b: str) -> float:
        return self.matrix[self.variables.index(a)][self.variables.index(b)]

    def p(self, a: str, b: str) -> float:
        return self.p_values[self.variables.index(a)][self.variables.index(b)]


@dataclass(frozen=True)
class TrendResult:
    """Linear trend of a variable against elapsed hours."""
    variable: str
    slope: float  # units per hour
    intercept: float
    r_squared: float
    p_value: float
    trend: TrendDirection
    confidence: float  # 0-1


@dataclass(frozen=True)
class AnomalyRecord:
    """A value lying more than the reporting threshold from its series mean."""
    timestamp: datetime
    variable: str
    value: float
    expected_value: float
    deviation: float  # standard deviations from mean
    severity: Severity


@dataclass(frozen=True)
class SuspiciousValue:
    """A reading outside the physical range of its variable."""
    timestamp: datetime
    variable: str
    value: float
    reason: str


@dataclass(frozen=True)
class QualityReport:
    """Completeness and plausibility summary of a weather record."""
    total_records: int
    complete_records: int
    missing_data_percentage: float
    quality_score: float  # 0-100
    variable_completeness: Dict[str, float]  # percentage complete per variable
    outlier_count: int
    suspicious_values: Tuple[SuspiciousValue, ...]


@dataclass(frozen=True)
class AtmosphericResearchData:
    """Everything the statistics engine reports about one weather series."""
    label: Any  # opaque location / time-range label, never interpreted
    time_range: Optional[Tuple[datetime, datetime]]
    statistics: Dict[str, VariableStatistics]
    correlations: Optional[CorrelationMatrix]
    trends: Optional[Tuple[TrendResult, ...]]
    anomalies: Optional[Tuple[AnomalyRecord, ...]]
    data_quality: QualityReport


@dataclass(frozen=True)
class PowerForecast:
    """Power output aligned one-to-one with the input weather series."""
    asset: AssetConfig
    label: Any
    outputs: Tuple[PowerSample, ...]

    @property
    def powers(self) -> List[float]:
        return [o.power for o in self.outputs]

    @property
    def total_energy(self) -> float:
        """Energy over the series assuming hourly steps (kWh solar, MWh wind)."""
        return float(sum(o.power for o in self.outputs))

    @property
    def average_capacity_percent(self) -> float:
        if not self.outputs:
            return 0.0
        return float(sum(o.capacity_percent for o in self.outputs) / len(self.outputs))


def _plain_factory(items: List[Tuple[str, Any]]) -> Dict[str, Any]:
    result = {}
    for key, value in items:
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, tuple) and value and all(isinstance(v, datetime) for v in value):
            value = [v.isoformat() for v in value]
        elif isinstance(value, float) and not math.isfinite(value):
            value = None
        result[key] = value
    return result


def as_plain_dict(result: Any) -> Dict[str, Any]:
    """Convert any result dataclass into JSON-friendly builtins."""
    return asdict(result, dict_factory=_plain_factory)

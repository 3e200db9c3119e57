"""
Atmospheric Statistics Engine for Renewcast

Characterizes a weather record independently of any power asset.

Pipeline (single pass, deterministic):
1. Frame: samples -> pandas DataFrame, missing fields as NaN
2. Descriptive statistics per variable (count + missing_count == length)
3. Pearson correlation matrix over the key driver variables
4. Linear trend per variable against elapsed hours (stable unless p < 0.05)
5. Z-score anomaly flags (> 3 sigma by default, severity at 3.5/4/5 sigma)
6. Data quality report (critical-variable completeness + physical ranges)

Missing or NaN readings never raise: they are excluded from the math and
counted in missing counts and the quality report. Degenerate inputs
(< 3 pairs, zero variance) return defined neutral results.
"""

import math
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from renewcast.models import (
    PRECIPITATION,
    RELATIVE_HUMIDITY,
    SOLAR_IRRADIANCE,
    SURFACE_PRESSURE,
    TEMPERATURE,
    WIND_SPEED,
    AnomalyRecord,
    AtmosphericResearchData,
    CorrelationMatrix,
    HourlySample,
    QualityReport,
    Severity,
    SuspiciousValue,
    TrendDirection,
    TrendResult,
    VariableStatistics,
)
from renewcast.numerics import (
    linear_regression,
    pearson_correlation,
    severity_label,
    summarize,
    to_array,
    z_scores,
)

logger = logging.getLogger(__name__)

# Variables summarised in a research report (when at least one value exists)
RESEARCH_VARIABLES = [
    TEMPERATURE,
    SURFACE_PRESSURE,
    RELATIVE_HUMIDITY,
    WIND_SPEED,
    SOLAR_IRRADIANCE,
    PRECIPITATION,
    "cloud_cover",
    "dew_point",
    "apparent_temperature",
    "sea_level_pressure",
    "wind_direction",
    "direct_radiation",
    "diffuse_radiation",
    "uv_index",
    "visibility",
]

CORRELATION_VARIABLES = [TEMPERATURE, SURFACE_PRESSURE, RELATIVE_HUMIDITY, WIND_SPEED, SOLAR_IRRADIANCE]
TREND_VARIABLES = [TEMPERATURE, SURFACE_PRESSURE, WIND_SPEED, SOLAR_IRRADIANCE]
ANOMALY_VARIABLES = [TEMPERATURE, SURFACE_PRESSURE, WIND_SPEED]

# A sample is complete only when all of these are present
CRITICAL_VARIABLES = (TEMPERATURE, SURFACE_PRESSURE, RELATIVE_HUMIDITY)

# Physically plausible ranges (inclusive)
PHYSICAL_RANGES: Dict[str, Tuple[float, float]] = {
    TEMPERATURE: (-60.0, 60.0),           # C
    SURFACE_PRESSURE: (800.0, 1100.0),    # hPa
    RELATIVE_HUMIDITY: (0.0, 100.0),      # %
    WIND_SPEED: (0.0, 100.0),             # m/s
    SOLAR_IRRADIANCE: (0.0, 1500.0),      # W/m2
    PRECIPITATION: (0.0, 500.0),          # mm
}

MAX_SUSPICIOUS_VALUES = 50
SIGNIFICANCE_LEVEL = 0.05
DEFAULT_ANOMALY_THRESHOLD = 3.0
MIN_PAIRED_OBSERVATIONS = 3


def samples_to_frame(samples: Sequence[HourlySample]) -> pd.DataFrame:
    """
    Tabulate samples into a DataFrame.

    Columns: 'time' plus one float column per field name seen in any sample
    (first-appearance order). Missing or non-numeric readings become NaN.
    """
    if not samples:
        return pd.DataFrame({"time": pd.Series([], dtype="datetime64[ns]")})

    columns: List[str] = []
    for sample in samples:
        for name in sample.field_names:
            if name not in columns:
                columns.append(name)

    data: Dict[str, Any] = {"time": [s.timestamp for s in samples]}
    for name in columns:
        data[name] = to_array([s.values.get(name) for s in samples])

    return pd.DataFrame(data, columns=["time"] + columns)


def _column(frame: pd.DataFrame, name: str) -> np.ndarray:
    if name not in frame.columns:
        return np.full(len(frame), np.nan)
    return frame[name].to_numpy(dtype=float)


def calculate_statistics(values: Sequence[Any]) -> VariableStatistics:
    """
    Descriptive statistics for one variable.

    Missing / non-numeric values are excluded and counted in missing_count.
    Population standard deviation; nearest-rank percentiles.
    """
    s = summarize(values)
    return VariableStatistics(
        mean=s.mean,
        median=s.median,
        std_dev=s.std_dev,
        min=s.minimum,
        max=s.maximum,
        percentile25=s.p25,
        percentile75=s.p75,
        percentile95=s.p95,
        count=s.count,
        missing_count=s.missing_count,
    )


def calculate_correlation_matrix(data: Mapping[str, Sequence[Any]]) -> CorrelationMatrix:
    """
    Pearson correlation matrix between variables.

    Each pair uses only the timestamps where both are present. The diagonal
    is exactly 1.0 with p = 0; off-diagonal entries are computed once and
    mirrored so the matrix is symmetric.
    """
    variables = list(data.keys())
    n = len(variables)
    matrix = [[0.0] * n for _ in range(n)]
    p_values = [[0.0] * n for _ in range(n)]

    for i in range(n):
        matrix[i][i] = 1.0
        p_values[i][i] = 0.0
        for j in range(i + 1, n):
            r, p = pearson_correlation(data[variables[i]], data[variables[j]])
            matrix[i][j] = matrix[j][i] = r
            p_values[i][j] = p_values[j][i] = p

    return CorrelationMatrix(
        variables=tuple(variables),
        matrix=tuple(tuple(row) for row in matrix),
        p_values=tuple(tuple(row) for row in p_values),
    )


def elapsed_hours(timestamps: Sequence[datetime]) -> List[float]:
    """Hours since the first timestamp."""
    if not timestamps:
        return []
    first = timestamps[0]
    return [(t - first).total_seconds() / 3600.0 for t in timestamps]


def analyze_trend(
    timestamps: Sequence[datetime],
    values: Sequence[Any],
    variable: str,
    significance: float = SIGNIFICANCE_LEVEL
) -> TrendResult:
    """
    Linear trend of a variable against elapsed hours.

    Fewer than 3 valid points yields slope 0, p 1, 'stable'. The direction
    is reported only when p < significance; confidence is R^2.
    """
    fit = linear_regression(elapsed_hours(timestamps), values)

    if fit.n < MIN_PAIRED_OBSERVATIONS:
        logger.debug(f"[analyze_trend] {variable}: only {fit.n} valid points, reporting stable")
        return TrendResult(
            variable=variable,
            slope=0.0,
            intercept=0.0,
            r_squared=0.0,
            p_value=1.0,
            trend=TrendDirection.STABLE,
            confidence=0.0,
        )

    trend = TrendDirection.STABLE
    if fit.p_value < significance:
        trend = TrendDirection.INCREASING if fit.slope > 0 else TrendDirection.DECREASING

    return TrendResult(
        variable=variable,
        slope=fit.slope,
        intercept=fit.intercept,
        r_squared=fit.r_squared,
        p_value=fit.p_value,
        trend=trend,
        confidence=fit.r_squared,
    )


def detect_anomalies(
    timestamps: Sequence[datetime],
    values: Sequence[Any],
    variable: str,
    threshold: float = DEFAULT_ANOMALY_THRESHOLD
) -> List[AnomalyRecord]:
    """
    Flag values more than `threshold` standard deviations from the series mean.

    A zero standard deviation produces no anomalies.
    """
    stats = calculate_statistics(values)
    if stats.count == 0 or stats.std_dev == 0:
        return []

    data = to_array(values)
    deviations = z_scores(values, stats.mean, stats.std_dev)

    anomalies = []
    for i, deviation in enumerate(deviations):
        if np.isnan(deviation) or deviation <= threshold:
            continue
        anomalies.append(AnomalyRecord(
            timestamp=timestamps[i],
            variable=variable,
            value=float(data[i]),
            expected_value=stats.mean,
            deviation=float(deviation),
            severity=Severity(severity_label(float(deviation))),
        ))

    if anomalies:
        worst = max(a.severity for a in anomalies)
        logger.info(f"[detect_anomalies] {variable}: {len(anomalies)} anomalies "
                    f"(worst: {worst.value})")
    return anomalies


def _raw_number(value: Any) -> Optional[float]:
    """Numeric reading for range checks; unlike coerce_value, keeps +/-inf."""
    if value is None or isinstance(value, (bool, np.bool_)):
        return None
    if not isinstance(value, (int, float, np.integer, np.floating)):
        return None
    number = float(value)
    return None if math.isnan(number) else number


def generate_quality_report(samples: Sequence[HourlySample]) -> QualityReport:
    """
    Completeness and plausibility of a weather record.

    - complete_records: samples carrying every critical variable
    - variable_completeness: % of samples with a valid value, per field seen
    - suspicious_values: out-of-range readings, first 50 only;
      outlier_count counts them all
    - quality_score = max(0, 100 - missing% - outliers / total * 100)

    An empty series scores 0 with 100% missing.
    """
    total = len(samples)
    if total == 0:
        logger.warning("[generate_quality_report] Empty weather series")
        return QualityReport(
            total_records=0,
            complete_records=0,
            missing_data_percentage=100.0,
            quality_score=0.0,
            variable_completeness={},
            outlier_count=0,
            suspicious_values=(),
        )

    complete = 0
    present_counts: Dict[str, int] = {}
    suspicious: List[SuspiciousValue] = []
    outlier_count = 0

    for sample in samples:
        if all(sample.has(name) for name in CRITICAL_VARIABLES):
            complete += 1

        for name in sample.field_names:
            present_counts.setdefault(name, 0)
            if sample.has(name):
                present_counts[name] += 1

            bounds = PHYSICAL_RANGES.get(name)
            value = _raw_number(sample.values.get(name))
            if bounds is None or value is None:
                continue
            low, high = bounds
            if value < low or value > high:
                outlier_count += 1
                if len(suspicious) < MAX_SUSPICIOUS_VALUES:
                    suspicious.append(SuspiciousValue(
                        timestamp=sample.timestamp,
                        variable=name,
                        value=value,
                        reason=f"Out of expected range [{low:g}, {high:g}]",
                    ))

    completeness = {name: count / total * 100.0 for name, count in present_counts.items()}
    missing_pct = (total - complete) / total * 100.0
    score = max(0.0, min(100.0, 100.0 - missing_pct - (outlier_count / total) * 100.0))

    if outlier_count:
        logger.warning(f"[generate_quality_report] {outlier_count} out-of-range readings "
                       f"(reporting first {len(suspicious)})")
    logger.info(f"[generate_quality_report] {complete}/{total} complete records, "
                f"score={score:.1f}")

    return QualityReport(
        total_records=total,
        complete_records=complete,
        missing_data_percentage=missing_pct,
        quality_score=score,
        variable_completeness=completeness,
        outlier_count=outlier_count,
        suspicious_values=tuple(suspicious),
    )


@dataclass(frozen=True)
class AtmosphericEngine:
    """
    Research report builder with fixed analysis settings.

    Stateless: every call to analyze() depends only on its arguments and
    the thresholds given here, so one engine can serve concurrent callers.
    """
    anomaly_threshold: float = DEFAULT_ANOMALY_THRESHOLD
    significance: float = SIGNIFICANCE_LEVEL
    include_correlations: bool = True
    include_trends: bool = True
    include_anomalies: bool = True

    @classmethod
    def from_settings(cls, settings) -> "AtmosphericEngine":
        return cls(anomaly_threshold=settings.anomaly_threshold)

    def analyze(
        self,
        samples: Sequence[HourlySample],
        label: Any = None
    ) -> AtmosphericResearchData:
        """Run the full statistics pipeline over one weather series."""
        logger.info(f"[AtmosphericEngine] Analyzing {len(samples)} hourly samples "
                    f"(label={label!r})")

        frame = samples_to_frame(samples)
        timestamps = [s.timestamp for s in samples]
        time_range = (timestamps[0], timestamps[-1]) if timestamps else None

        # === DESCRIPTIVE STATISTICS ===
        statistics: Dict[str, VariableStatistics] = {}
        for name in RESEARCH_VARIABLES:
            values = _column(frame, name)
            if np.any(~np.isnan(values)):
                statistics[name] = calculate_statistics(values)
        logger.info(f"[AtmosphericEngine] Statistics for {len(statistics)} variables")

        # === CORRELATION ===
        correlations = None
        if self.include_correlations:
            correlation_data = {
                name: _column(frame, name)
                for name in CORRELATION_VARIABLES
                if np.any(~np.isnan(_column(frame, name)))
            }
            if len(correlation_data) > 1:
                correlations = calculate_correlation_matrix(correlation_data)
            else:
                logger.info("[AtmosphericEngine] Fewer than 2 correlation variables present - skipped")

        # === TRENDS ===
        trends = None
        if self.include_trends:
            trends = tuple(
                analyze_trend(timestamps, _column(frame, name), name, self.significance)
                for name in TREND_VARIABLES
                if np.any(~np.isnan(_column(frame, name)))
            )
            significant = [t for t in trends if t.trend != TrendDirection.STABLE]
            if significant:
                logger.info(f"[AtmosphericEngine] Significant trends: "
                            f"{', '.join(f'{t.variable} {t.trend.value}' for t in significant)}")

        # === ANOMALIES ===
        anomalies = None
        if self.include_anomalies:
            found: List[AnomalyRecord] = []
            for name in ANOMALY_VARIABLES:
                values = _column(frame, name)
                if np.any(~np.isnan(values)):
                    found.extend(detect_anomalies(timestamps, values, name, self.anomaly_threshold))
            anomalies = tuple(found)
            extreme = sum(1 for a in found if a.severity == Severity.EXTREME)
            if extreme:
                logger.warning(f"[AtmosphericEngine] {extreme} EXTREME anomalies (>5 sigma)")

        # === QUALITY ===
        quality = generate_quality_report(samples)

        return AtmosphericResearchData(
            label=label,
            time_range=time_range,
            statistics=statistics,
            correlations=correlations,
            trends=trends,
            anomalies=anomalies,
            data_quality=quality,
        )


def generate_research_data(
    samples: Sequence[HourlySample],
    label: Any = None,
    anomaly_threshold: float = DEFAULT_ANOMALY_THRESHOLD,
    include_correlations: bool = True,
    include_trends: bool = True,
    include_anomalies: bool = True
) -> AtmosphericResearchData:
    """
    Convenience wrapper around AtmosphericEngine.analyze().

    Example:
        report = generate_research_data(samples, label="Modesto, CA / June 2025")
        print(report.statistics["temperature"].mean)
    """
    engine = AtmosphericEngine(
        anomaly_threshold=anomaly_threshold,
        include_correlations=include_correlations,
        include_trends=include_trends,
        include_anomalies=include_anomalies,
    )
    return engine.analyze(samples, label)

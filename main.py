"""
Renewcast: Renewable Output Forecast & Atmospheric Research

Reads an hourly weather series saved as JSON, runs the physical model for
one solar or wind asset, and characterizes the weather record itself.

Single site:
    python main.py weather.json --asset solar --dc-capacity 7
    python main.py weather.json --asset wind --rated-capacity 1.5 --hub-height 100

Several candidate sites, ranked by production score:
    python main.py --sites sites.json

sites.json holds [{"id": ..., "name": ..., "asset": {"type": "wind", ...},
"weather": "path/to/weather.json"}, ...]; weather paths are relative to
the sites file.

Exit codes: 0 success, 1 unexpected failure, 2 invalid configuration / input.
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

from renewcast.atmospheric import AtmosphericEngine
from renewcast.batch import SiteRequest, analyze_sites
from renewcast.config import configure_logging, get_settings
from renewcast.errors import InvalidConfiguration, InvalidInput
from renewcast.forecast import (
    analyze_peak_production,
    generate_forecast,
    generate_production_alerts,
    summarize_long_term,
)
from renewcast.models import SolarAsset, WindAsset, as_plain_dict, asset_from_dict
from renewcast.weather_file import load_weather_file

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description='Renewcast - Renewable Output Forecast & Atmospheric Research'
    )
    parser.add_argument('weather', nargs='?', help='JSON weather file (records or Open-Meteo hourly block)')
    parser.add_argument('--asset', choices=['solar', 'wind'], default='solar', help='Asset type')
    parser.add_argument('--label', help='Location label carried into the results')

    solar = parser.add_argument_group('solar asset')
    solar.add_argument('--dc-capacity', type=float, help='DC capacity (kW)')
    solar.add_argument('--losses', type=float, default=14.0, help='System losses (%%, default 14)')
    solar.add_argument('--tilt', type=float, help='Panel tilt (degrees)')
    solar.add_argument('--azimuth', type=float, help='Panel azimuth (degrees)')

    wind = parser.add_argument_group('wind asset')
    wind.add_argument('--rated-capacity', type=float, help='Rated capacity (MW)')
    wind.add_argument('--hub-height', type=float, help='Hub height (m)')
    wind.add_argument('--cut-in', type=float, default=3.0, help='Cut-in speed (m/s, default 3)')
    wind.add_argument('--rated-speed', type=float, default=12.0, help='Rated speed (m/s, default 12)')
    wind.add_argument('--cut-out', type=float, default=25.0, help='Cut-out speed (m/s, default 25)')

    parser.add_argument('--long-term', action='store_true', help='Add a monthly long-term summary')
    parser.add_argument('--sites', help='JSON file of sites to analyze and rank')
    parser.add_argument('--output', help='Write results as JSON to this path')
    parser.add_argument('--log-file', help='Also append logs to this file')
    parser.add_argument('--env-file', help='.env file to load settings from')

    args = parser.parse_args(argv)
    if not args.weather and not args.sites:
        parser.error('a weather file or --sites is required')
    return args


def build_asset(args):
    """Asset configuration from command-line flags."""
    if args.asset == 'solar':
        if args.dc_capacity is None:
            raise InvalidConfiguration("--dc-capacity is required for a solar asset")
        return SolarAsset(
            dc_capacity_kw=args.dc_capacity,
            system_losses_percent=args.losses,
            tilt_deg=args.tilt,
            azimuth_deg=args.azimuth,
        )

    if args.rated_capacity is None or args.hub_height is None:
        raise InvalidConfiguration("--rated-capacity and --hub-height are required for a wind asset")
    return WindAsset(
        rated_capacity_mw=args.rated_capacity,
        hub_height_m=args.hub_height,
        cut_in_speed=args.cut_in,
        rated_speed=args.rated_speed,
        cut_out_speed=args.cut_out,
    )


def load_site_requests(path):
    """Read the sites file into SiteRequests."""
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        entries = json.load(f)

    requests = []
    for i, entry in enumerate(entries):
        site_id = str(entry.get("id", i + 1))
        name = entry.get("name", f"Site {site_id}")
        weather_path = path.parent / entry["weather"]
        requests.append(SiteRequest(
            site_id=site_id,
            name=name,
            asset=asset_from_dict(entry["asset"]),
            samples=load_weather_file(weather_path),
            label=entry.get("label"),
        ))
    return requests


def print_forecast(forecast, peak, alerts):
    """Forecast summary block."""
    unit = forecast.asset.power_unit
    print("\nPOWER FORECAST")
    print("-" * 40)
    print(f"   Hours:            {len(forecast.outputs)}")
    print(f"   Total energy:     {forecast.total_energy:.2f} {unit}h")
    print(f"   Avg capacity:     {forecast.average_capacity_percent:.1f}%")
    if peak.peak_time is not None:
        print(f"   Peak:             {peak.peak_power:.3f} {unit} at {peak.peak_time.isoformat()}")
    print(f"   Productive hours: {peak.productive_hours} (>50%)")
    print(f"   Low hours:        {peak.low_production_hours} (<20%)")
    for alert in alerts:
        print(f"   [{alert.level.upper()}] {alert.title}: {alert.message}")


def print_research(research):
    """Research summary block."""
    print("\nATMOSPHERIC RESEARCH")
    print("-" * 40)
    for name, stats in research.statistics.items():
        print(f"   {name:<22} mean={stats.mean:9.2f}  sd={stats.std_dev:8.2f}  "
              f"min={stats.min:9.2f}  max={stats.max:9.2f}  n={stats.count}")

    if research.trends:
        for trend in research.trends:
            print(f"   Trend {trend.variable:<16} {trend.trend.value:<10} "
                  f"slope={trend.slope:+.4f}/h  p={trend.p_value:.3f}")

    if research.anomalies:
        print(f"   Anomalies: {len(research.anomalies)}")

    quality = research.data_quality
    print(f"   Data quality: {quality.quality_score:.1f}/100 "
          f"({quality.complete_records}/{quality.total_records} complete, "
          f"{quality.outlier_count} out-of-range)")


def print_long_term(summary):
    """Monthly production table."""
    unit = summary.asset.power_unit
    print("\nLONG-TERM (per 730 h month)")
    print("-" * 40)
    for month in summary.monthly:
        driver = "-" if month.mean_driver is None else f"{month.mean_driver:.2f}"
        print(f"   {month.month_name:<10} driver={driver:>8}  "
              f"{month.average_production:12.1f} {unit}h  CF={month.capacity_factor:5.1f}%")
    print(f"   Annual: {summary.annual_production:.1f} {unit}h, "
          f"CF={summary.average_capacity_factor:.1f}%")


def print_ranking(results):
    """Site ranking table."""
    print("\nSITE RANKING")
    print("-" * 40)
    for result in results:
        if result.ok:
            print(f"   #{result.rank} {result.name}: score={result.score:.1f}")
        else:
            print(f"   -- {result.name}: {result.error_message}")


def save_output(path, payload):
    """Write results as JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, default=str)
    print(f"\nResults saved: {path}")
    logger.info(f"[save_output] JSON saved to: {path}")


async def run_sites(args, settings, engine):
    requests = load_site_requests(args.sites)
    results = await analyze_sites(
        requests,
        max_concurrency=settings.max_concurrency,
        engine=engine,
        reference_height=settings.reference_height_m,
        altitude_m=settings.site_altitude_m,
        alpha=settings.wind_shear_alpha,
    )
    print_ranking(results)

    if args.output:
        save_output(args.output, [
            {
                "site_id": r.site_id,
                "name": r.name,
                "rank": r.rank,
                "score": r.score,
                "error_type": r.error_type.value if r.error_type else None,
                "error_message": r.error_message,
            }
            for r in results
        ])


def run_single(args, settings, engine):
    samples = load_weather_file(args.weather)
    asset = build_asset(args)
    label = args.label or Path(args.weather).stem

    forecast = generate_forecast(
        asset, samples, label=label,
        reference_height=settings.reference_height_m,
        altitude_m=settings.site_altitude_m,
        alpha=settings.wind_shear_alpha,
    )
    peak = analyze_peak_production(forecast)
    alerts = generate_production_alerts(forecast, samples)
    research = engine.analyze(samples, label=label)

    print_forecast(forecast, peak, alerts)
    print_research(research)

    long_term = None
    if args.long_term:
        long_term = summarize_long_term(
            asset, samples, label=label,
            reference_height=settings.reference_height_m,
            alpha=settings.wind_shear_alpha,
        )
        print_long_term(long_term)

    if args.output:
        payload = {
            "forecast": as_plain_dict(forecast),
            "peak": as_plain_dict(peak),
            "research": as_plain_dict(research),
        }
        if long_term is not None:
            payload["long_term"] = as_plain_dict(long_term)
        save_output(args.output, payload)


async def main(args=None):
    """Main entry point for Renewcast."""
    if args is None:
        args = parse_args()

    try:
        settings = get_settings(args.env_file)
    except InvalidConfiguration as e:
        print(f"CONFIGURATION ERROR: {e}")
        return 2

    configure_logging(settings.log_level, args.log_file)
    engine = AtmosphericEngine.from_settings(settings)
    start_time = datetime.now()

    print("=" * 60)
    print("   RENEWCAST - Renewable Output & Atmospheric Research")
    print("=" * 60)
    logger.info(f"[main] Run started: {start_time.isoformat(timespec='seconds')}")

    try:
        if args.sites:
            await run_sites(args, settings, engine)
        else:
            run_single(args, settings, engine)

    except (InvalidConfiguration, InvalidInput) as e:
        logger.error(f"[main] {type(e).__name__}: {e}")
        print(f"\nERROR: {e}")
        return 2

    except Exception as e:
        logger.error(f"FAILED: {e}", exc_info=True)
        print(f"\nERROR: {e}")
        return 1

    duration = (datetime.now() - start_time).total_seconds()
    print(f"\n{'=' * 60}")
    print(f"   Done in {duration:.2f} seconds")
    print("=" * 60)
    return 0


def cli():
    """Console-script entry point."""
    args = parse_args()
    sys.exit(asyncio.run(main(args)))


if __name__ == "__main__":
    args = parse_args()
    exit_code = asyncio.run(main(args))
    sys.exit(exit_code)

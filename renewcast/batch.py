"""
Batch Site Analysis for Renewcast

Evaluates several candidate sites (asset + weather series each) and ranks
them by a simple production score:

    score = total energy over the series * average capacity percent

Each site is independent: one failing site is categorized and reported,
never raised, and never blocks the others. Concurrency is bounded by a
semaphore; the analyses themselves run in worker threads since the core is
synchronous.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, List, Optional, Sequence

from renewcast.atmospheric import AtmosphericEngine
from renewcast.errors import ErrorType, categorize_error
from renewcast.forecast import generate_forecast
from renewcast.models import (
    AssetConfig,
    AtmosphericResearchData,
    HourlySample,
    PowerForecast,
)
from renewcast.wind_physics import DEFAULT_ALPHA, DEFAULT_REFERENCE_HEIGHT

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 4


@dataclass(frozen=True)
class SiteRequest:
    """One candidate site to analyze."""
    site_id: str
    name: str
    asset: AssetConfig
    samples: Sequence[HourlySample]
    label: Any = None


@dataclass(frozen=True)
class SiteResult:
    """Outcome for one site; forecast/research are None when the site failed."""
    site_id: str
    name: str
    forecast: Optional[PowerForecast] = None
    research: Optional[AtmosphericResearchData] = None
    score: Optional[float] = None
    rank: Optional[int] = None
    error_type: Optional[ErrorType] = None
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error_type is None


def analyze_site(
    request: SiteRequest,
    engine: Optional[AtmosphericEngine] = None,
    reference_height: float = DEFAULT_REFERENCE_HEIGHT,
    altitude_m: Optional[float] = None,
    alpha: float = DEFAULT_ALPHA
) -> SiteResult:
    """
    Forecast + research report for one site.

    Returns:
        SiteResult with score set, or with error_type/error_message on failure
    """
    engine = engine or AtmosphericEngine()
    label = request.label if request.label is not None else request.name

    try:
        forecast = generate_forecast(
            request.asset, request.samples, label=label,
            reference_height=reference_height, altitude_m=altitude_m, alpha=alpha,
        )
        research = engine.analyze(request.samples, label=label)
    except Exception as e:
        error_type, message = categorize_error(e)
        if error_type == ErrorType.UNKNOWN:
            logger.error(f"[analyze_site] {request.name}: {message}", exc_info=True)
        else:
            logger.warning(f"[analyze_site] {request.name}: {message}")
        return SiteResult(
            site_id=request.site_id,
            name=request.name,
            error_type=error_type,
            error_message=message,
        )

    score = forecast.total_energy * forecast.average_capacity_percent
    logger.info(f"[analyze_site] {request.name}: score={score:.2f} "
                f"(quality {research.data_quality.quality_score:.0f}/100)")

    return SiteResult(
        site_id=request.site_id,
        name=request.name,
        forecast=forecast,
        research=research,
        score=score,
    )


def rank_results(results: Sequence[SiteResult]) -> List[SiteResult]:
    """
    Order by descending score and assign ranks 1..n to successful sites.

    Failed sites keep rank None and follow in input order.
    """
    succeeded = sorted((r for r in results if r.ok), key=lambda r: r.score, reverse=True)
    failed = [r for r in results if not r.ok]
    ranked = [replace(r, rank=i + 1) for i, r in enumerate(succeeded)]
    return ranked + failed


async def analyze_sites(
    requests: Sequence[SiteRequest],
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    engine: Optional[AtmosphericEngine] = None,
    reference_height: float = DEFAULT_REFERENCE_HEIGHT,
    altitude_m: Optional[float] = None,
    alpha: float = DEFAULT_ALPHA
) -> List[SiteResult]:
    """
    Analyze all sites with at most `max_concurrency` running at once.

    Returns:
        Ranked SiteResults (see rank_results)
    """
    if max_concurrency < 1:
        max_concurrency = 1

    engine = engine or AtmosphericEngine()
    semaphore = asyncio.Semaphore(max_concurrency)

    logger.info(f"[analyze_sites] Starting {len(requests)} site analyses "
                f"(max {max_concurrency} concurrent)...")

    async def _run(request: SiteRequest) -> SiteResult:
        async with semaphore:
            return await asyncio.to_thread(
                analyze_site, request, engine, reference_height, altitude_m, alpha
            )

    results = await asyncio.gather(*(_run(r) for r in requests))

    failed = sum(1 for r in results if not r.ok)
    logger.info(f"[analyze_sites] Complete: {len(results) - failed} succeeded, {failed} failed")

    return rank_results(results)

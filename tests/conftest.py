"""Shared fixtures for the renewcast test suite."""

import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from renewcast.models import HourlySample


@pytest.fixture
def make_samples():
    """
    Factory building an hourly series from column lists, e.g.
    make_samples(temperature=[20, 21], wind_speed=[5, None]).

    None entries are left out of that hour's values.
    """
    def _build(start=datetime(2025, 6, 1, 0, 0), step_hours=1, **columns):
        length = max((len(v) for v in columns.values()), default=0)
        samples = []
        for i in range(length):
            values = {
                name: series[i]
                for name, series in columns.items()
                if i < len(series) and series[i] is not None
            }
            samples.append(HourlySample(
                timestamp=start + timedelta(hours=i * step_hours),
                values=values,
            ))
        return samples

    return _build

"""Shared fixtures for the layer_export test suite.

Layer factories return fresh Layer objects so tests can mutate them freely.
Sizes are chosen far from the 4096-byte chunk floor:
    - big: 300 rows per year (~20KB per year)
    - tiny: 2 rows per year (~30 bytes per year)
"""

import numpy as np
import pandas as pd
import pytest

from layer_export import Layer, PanelRanges, PlotInfo, SelectorRegistry

YEARS = list(range(2000, 2011))


@pytest.fixture
def registry():
    return SelectorRegistry()


@pytest.fixture
def plot():
    return PlotInfo(panel_ranges={1: PanelRanges(x=(0, 100), y=(0, 100))})


def _years_layer(rows_per_year, name="geom1_point_scatter", extra=None):
    rng = np.random.default_rng(42)
    n = rows_per_year * len(YEARS)
    data = pd.DataFrame({
        "x": rng.uniform(0, 100, n),
        "y": rng.uniform(0, 100, n),
        "label": [f"row-{i:020d}" for i in range(n)],
        "showSelected": np.repeat(YEARS, rows_per_year),
    })
    aes = {"x": "gdp", "y": "life", "label": "country", "showSelected": "year"}
    for col, (var, values) in (extra or {}).items():
        data[col] = values if not callable(values) else values(n)
        aes[col] = var
    return Layer(name=name, aes=aes, data=data)


@pytest.fixture
def big_years_layer():
    """Factory: ~20KB of rows for each year 2000-2010."""
    def make(**kwargs):
        return _years_layer(300, **kwargs)
    return make


@pytest.fixture
def tiny_years_layer():
    """Factory: 2 short rows for each year 2000-2010."""
    def make(name="geom1_point_tiny"):
        n = 2 * len(YEARS)
        data = pd.DataFrame({
            "x": np.arange(n),
            "y": np.arange(n) % 7,
            "showSelected": np.repeat(YEARS, 2),
        })
        return Layer(name=name, aes={"x": "gdp", "y": "life", "showSelected": "year"}, data=data)
    return make


@pytest.fixture
def gap_path_layer():
    """Path layer, 10 rows in one group, y missing on the 5th row."""
    y = [1.0, 2.0, 3.0, 4.0, np.nan, 6.0, 7.0, 8.0, 9.0, 10.0]
    data = pd.DataFrame({"x": np.arange(10, dtype=float), "y": y, "group": [1] * 10})
    return Layer(name="geom1_path_trace", aes={"x": "t", "y": "v", "group": "id"}, data=data)

"""Tests for geom kinds and their pre-processing hook."""

import pandas as pd
import pytest

from layer_export.errors import ConfigurationError, DataError
from layer_export.geoms import GeomKind
from layer_export.schemas import LayerManifest, PanelRanges


def _manifest(geom):
    return LayerManifest(geom=geom, classed=f"geom1_{geom}_test")


def test_parse_known_and_unknown():
    assert GeomKind.parse("path") is GeomKind.PATH
    with pytest.raises(ConfigurationError, match="unknown geom kind"):
        GeomKind.parse("sparkle", layer_name="geom1_sparkle_x")


def test_point_passes_through():
    data = pd.DataFrame({"x": [1.0]})
    g, out = GeomKind.POINT.pre_process(_manifest("point"), data, {})
    assert g.geom == "point"
    assert out is data


def test_abline_becomes_segment_across_panel():
    ranges = {1: PanelRanges(x=(0, 10), y=(0, 100)), 2: PanelRanges(x=(-5, 5), y=(0, 100))}
    data = pd.DataFrame({"slope": [2.0, 1.0], "intercept": [1.0, 0.0], "PANEL": [1, 2]})
    g, out = GeomKind.ABLINE.pre_process(_manifest("abline"), data, ranges)
    assert g.geom == "segment"
    assert out["x"].tolist() == [0.0, -5.0]
    assert out["xend"].tolist() == [10.0, 5.0]
    assert out["y"].tolist() == [1.0, -5.0]
    assert out["yend"].tolist() == [21.0, 5.0]


def test_abline_needs_slope_and_intercept():
    with pytest.raises(DataError, match="slope and intercept"):
        GeomKind.ABLINE.pre_process(_manifest("abline"), pd.DataFrame({"slope": [1.0]}), {})


def test_hline_and_vline_span_the_panel():
    ranges = {1: PanelRanges(x=(0, 10), y=(-1, 1))}
    _, h = GeomKind.HLINE.pre_process(_manifest("hline"), pd.DataFrame({"yintercept": [0.5]}), ranges)
    assert h[["x", "xend", "y", "yend"]].iloc[0].tolist() == [0.0, 10.0, 0.5, 0.5]
    g, v = GeomKind.VLINE.pre_process(_manifest("vline"), pd.DataFrame({"xintercept": [3.0]}), ranges)
    assert g.geom == "vline"
    assert v[["y", "yend", "x", "xend"]].iloc[0].tolist() == [-1.0, 1.0, 3.0, 3.0]

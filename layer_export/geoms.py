"""
Module: geoms.py
Purpose:
    Geom kinds known to the exporter and their pre-processing hook:
      - GeomKind: closed enum of geom tags (point, path, abline, ...)
      - GeomKind.parse(): tag → GeomKind (ConfigurationError on unknown tags)
      - pre_process(): (manifest, rows, ranges) → (manifest, rows), one call per layer

Design:
    - Complex geoms are rewritten as basic ones here so the generic export logic
      never branches on geom kind (abline → segment across the panel's x range,
      hline/vline get end points from the panel ranges).
    - Kinds without special handling pass through unchanged.

Usage:
    from layer_export.geoms import GeomKind, DATA_OBJECT_GEOMS, NO_FILL_GEOMS
"""

from __future__ import annotations
from enum import Enum
from typing import Callable, Dict, Mapping, Optional, Tuple
import pandas as pd

from layer_export.dataframe_ops import panel_numbers
from layer_export.errors import ConfigurationError, DataError
from layer_export.schemas import LayerManifest, PanelRanges


class GeomKind(str, Enum):
    ABLINE = "abline"
    AREA = "area"
    BAR = "bar"
    BLANK = "blank"
    BOXPLOT = "boxplot"
    COL = "col"
    CONTOUR = "contour"
    CROSSBAR = "crossbar"
    DENSITY = "density"
    ERRORBAR = "errorbar"
    ERRORBARH = "errorbarh"
    HLINE = "hline"
    LABEL = "label"
    LINE = "line"
    LINERANGE = "linerange"
    PATH = "path"
    POINT = "point"
    POINTRANGE = "pointrange"
    POLYGON = "polygon"
    RASTER = "raster"
    RECT = "rect"
    RIBBON = "ribbon"
    SEGMENT = "segment"
    SMOOTH = "smooth"
    STEP = "step"
    TEXT = "text"
    TILE = "tile"
    VIOLIN = "violin"
    VLINE = "vline"
    WIDERECT = "widerect"

    @classmethod
    def parse(cls, tag: str, layer_name: Optional[str] = None) -> "GeomKind":
        try:
            return cls(tag)
        except ValueError:
            raise ConfigurationError(f"unknown geom kind {tag!r}", layer=layer_name) from None

    def pre_process(
        self, g: LayerManifest, data: pd.DataFrame, ranges: Mapping[int, PanelRanges]
    ) -> Tuple[LayerManifest, pd.DataFrame]:
        hook = _PRE_PROCESS.get(self, _identity)
        return hook(g, data, ranges)


# Geoms drawn as one connected mark per group.
DATA_OBJECT_GEOMS = {"line", "path", "ribbon", "polygon"}

# Geoms that never render a fill.
NO_FILL_GEOMS = {"path", "line", "segment", "linerange", "hline", "vline"}


def _identity(g, data, ranges):
    return g, data


def _checked_panels(g: LayerManifest, data: pd.DataFrame, ranges: Mapping[int, PanelRanges]) -> pd.Series:
    panels = panel_numbers(data)
    unknown = sorted(set(panels) - set(ranges))
    if unknown:
        raise DataError("no axis ranges recorded for panels", layer=g.classed, variables=[str(p) for p in unknown])
    return panels


def _abline(g: LayerManifest, data: pd.DataFrame, ranges: Mapping[int, PanelRanges]):
    missing = [c for c in ("slope", "intercept") if c not in data.columns]
    if missing:
        raise DataError("abline needs slope and intercept columns", layer=g.classed, variables=missing)
    panels = _checked_panels(g, data, ranges)
    df = data.copy()
    df["x"] = panels.map(lambda p: ranges[p].x[0]).astype(float)
    df["xend"] = panels.map(lambda p: ranges[p].x[1]).astype(float)
    df["y"] = df["intercept"] + df["slope"] * df["x"]
    df["yend"] = df["intercept"] + df["slope"] * df["xend"]
    g.geom = GeomKind.SEGMENT.value
    return g, df


def _reference_line(axis: str):
    """hline spans the panel's x range at yintercept; vline spans y at xintercept."""
    other = "x" if axis == "y" else "y"
    intercept = f"{axis}intercept"

    def hook(g: LayerManifest, data: pd.DataFrame, ranges: Mapping[int, PanelRanges]):
        if intercept not in data.columns:
            raise DataError(f"{g.geom} needs an {intercept} column", layer=g.classed, variables=[intercept])
        panels = _checked_panels(g, data, ranges)
        df = data.copy()
        df[other] = panels.map(lambda p: ranges[p].range_for(other)[0]).astype(float)
        df[f"{other}end"] = panels.map(lambda p: ranges[p].range_for(other)[1]).astype(float)
        df[axis] = df[intercept]
        df[f"{axis}end"] = df[intercept]
        return g, df

    return hook


_PRE_PROCESS: Dict[GeomKind, Callable] = {
    GeomKind.ABLINE: _abline,
    GeomKind.HLINE: _reference_line("y"),
    GeomKind.VLINE: _reference_line("x"),
}

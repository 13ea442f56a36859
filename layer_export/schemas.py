"""
Module: schemas.py
Purpose:
    Central Pydantic models and type aliases used by classification, planning and writing:
    - SelectorType, PanelRanges, PlotInfo, Layer
    - SelectorAes, SelectorAesthetics (classified aesthetic names)
    - ColumnGroups, LayerManifest, SelectorDescriptor, TimeInfo, PlotManifest

Design:
    - Field names follow the keys the client reads from plot.json.
    - No business logic here: pure data contracts (plus tiny derived accessors).
    - Layer carries its row table as a pandas DataFrame (arbitrary type).

Usage:
    from layer_export.schemas import (
        SelectorType, PanelRanges, PlotInfo, Layer,
        SelectorAes, SelectorAesthetics,
        ColumnGroups, LayerManifest, SelectorDescriptor, TimeInfo, PlotManifest
    )
"""

from __future__ import annotations
from typing import Any, Dict, List, Literal, Optional, Tuple
import pandas as pd
from pydantic import BaseModel, ConfigDict, Field


SelectorType = Literal["single", "multiple"]
SELECTOR_TYPES = ("single", "multiple")


class PanelRanges(BaseModel):
    x: Tuple[float, float]
    y: Tuple[float, float]

    def range_for(self, axis: str) -> Tuple[float, float]:
        return self.x if axis == "x" else self.y


class PlotInfo(BaseModel):
    panel_ranges: Dict[int, PanelRanges] = Field(default_factory=dict)
    panel_count: Optional[int] = None
    coord_flip: bool = False
    time_var: Optional[str] = None
    selector_types: Dict[str, SelectorType] = Field(default_factory=dict)

    @property
    def n_panels(self) -> int:
        if self.panel_count is not None:
            return self.panel_count
        return max(1, len(self.panel_ranges))

    @property
    def has_panels(self) -> bool:
        return self.n_panels > 1


class Layer(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str                                  # classed name, e.g. geom1_point_scatter
    geom: Optional[str] = None
    aes: Dict[str, str] = Field(default_factory=dict)
    params: Dict[str, Any] = Field(default_factory=dict)
    aes_params: Dict[str, Any] = Field(default_factory=dict)
    stat: str = "identity"
    position: str = "identity"
    data: pd.DataFrame = Field(default_factory=pd.DataFrame)
    selector_types: Dict[str, SelectorType] = Field(default_factory=dict)

    @property
    def geom_kind(self) -> str:
        if self.geom:
            return self.geom
        parts = self.name.split("_")
        return parts[1] if len(parts) > 1 else self.name


class SelectorAes(BaseModel):
    one: List[str] = Field(default_factory=list)
    several: List[Tuple[str, str]] = Field(default_factory=list)  # (variable aes, value aes)
    ignored: List[str] = Field(default_factory=list)


class SelectorAesthetics(BaseModel):
    clickSelects: SelectorAes = Field(default_factory=SelectorAes)
    showSelected: SelectorAes = Field(default_factory=SelectorAes)
    plain: List[str] = Field(default_factory=list)


class ColumnGroups(BaseModel):
    common: List[str] = Field(default_factory=list)
    varied: List[str] = Field(default_factory=list)


class LayerManifest(BaseModel):
    geom: str
    classed: str
    aes: Dict[str, str] = Field(default_factory=dict)
    params: Dict[str, Any] = Field(default_factory=dict)
    types: Dict[str, str] = Field(default_factory=dict)
    subset_order: List[str] = Field(default_factory=list)
    nest_order: List[str] = Field(default_factory=list)
    chunk_order: List[str] = Field(default_factory=list)
    chunks: Any = 1                            # chunk-value index → chunk number
    total: int = 0
    columns: ColumnGroups = Field(default_factory=ColumnGroups)
    common: Optional[str] = None               # artifact name of the common chunk


class SelectorDescriptor(BaseModel):
    type: SelectorType
    is_variable_value: bool = False
    clickSelects: bool = False
    showSelected: bool = False
    chunks: List[str] = Field(default_factory=list)
    levels: List[str] = Field(default_factory=list)
    update: List[str] = Field(default_factory=list)


class TimeInfo(BaseModel):
    variable: str
    sequence: List[str] = Field(default_factory=list)


class PlotManifest(BaseModel):
    geoms: Dict[str, LayerManifest] = Field(default_factory=dict)
    selectors: Dict[str, SelectorDescriptor] = Field(default_factory=dict)
    time: Optional[TimeInfo] = None
    errors: Dict[str, str] = Field(default_factory=dict)

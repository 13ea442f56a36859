"""
Package: layer_export
Purpose:
    Convenience exports for the layer-export compiler so downstream code can:
        from layer_export import Layer, PlotInfo, SelectorRegistry, compile_layer, export_plot, write_plot

    Keeps import paths short and stable.

Notes:
    Ray is imported lazily by export_plot(parallel=True) only.
"""

from .config import *
from .errors import LayerExportError, ConfigurationError, DataError, UsageWarning
from .schemas import (
    SelectorType, PanelRanges, PlotInfo, Layer,
    SelectorAes, SelectorAesthetics,
    ColumnGroups, LayerManifest, SelectorDescriptor, TimeInfo, PlotManifest
)
from .aesthetics import classify_aesthetics, interactive_rows, cols_not_to_copy
from .selectors import SelectorRegistry
from .planning import ChunkPlan, plan_chunks, register_chunk_group
from .partition import Branch, Leaf, Node, split_recursive, iter_leaves
from .geoms import GeomKind
from .pipeline import ChunkArtifact, LayerExport, PlotExport, compile_layer, export_plot
from .writer import write_layer, write_plot

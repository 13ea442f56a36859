"""
Module: pipeline.py
Purpose:
    Orchestrates the export of interactive layers:
      - compile_layer(): one layer → LayerExport (manifest + chunk tables + common table)
        classify aes → register selectors → checks → geom pre_process → colours/types
        → plan chunks → orders → NA groups → clamp → drop missing → common → partition
      - export_plot(): all layers with one SelectorRegistry; per-layer failures are
        recorded and do not stop the run; optional Ray fan-out over layers

Design:
    - Each layer compiles against a copy of the registry that is merged back only on
      success, so a failing layer leaves no selector state behind.
    - The same copy/merge step is the fan-in for Ray tasks. Declared selector types
      are recorded on the shared registry before any copy is taken, so every copy
      agrees on them and the merged result does not depend on task order.

Public API:
    - compile_layer(layer, registry, plot) -> LayerExport
    - export_plot(layers, plot, parallel=None) -> PlotExport
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple
import numpy as np
import pandas as pd

from layer_export.aesthetics import (
    classify_aesthetics, interactive_rows, cols_not_to_copy, has_click_selects, has_interactive
)
from layer_export.config import MAX_PARALLEL_LAYERS, MIN_CHUNK_BYTES, SIZE_SAMPLE_ROWS
from layer_export.dataframe_ops import (
    apply_aes_params, normalize_colors, switch_axes, column_types, remove_unique_panel,
    split_na_groups, clamp_to_ranges, drop_missing, extract_common, unique_values, format_value
)
from layer_export.errors import LayerExportError
from layer_export.features import (
    FEATURE_COMMON_CHUNK, FEATURE_SPLIT_NA_GROUPS, FEATURE_PARALLEL_LAYERS, _now, _dur
)
from layer_export.geoms import GeomKind, DATA_OBJECT_GEOMS
from layer_export.partition import Node, split_recursive, iter_leaves, index_tree
from layer_export.planning import plan_chunks, register_chunk_group
from layer_export.schemas import (
    Layer, LayerManifest, PlotInfo, PlotManifest, SelectorAesthetics, TimeInfo
)
from layer_export.selectors import SelectorRegistry
from layer_export.validation import check_stat_position, check_zero_size, check_off_params


@dataclass
class ChunkArtifact:
    name: str
    key: Tuple[str, ...]
    rows: pd.DataFrame
    nest: Node


@dataclass
class LayerExport:
    manifest: LayerManifest
    chunks: List[ChunkArtifact] = field(default_factory=list)
    common: Optional[pd.DataFrame] = None
    time_values: List[str] = field(default_factory=list)
    data: pd.DataFrame = field(default_factory=pd.DataFrame)  # cleaned table before common factoring


@dataclass
class PlotExport:
    manifest: PlotManifest
    layers: Dict[str, LayerExport] = field(default_factory=dict)


def _jsonable(v: Any) -> Any:
    if isinstance(v, dict):
        return {str(k): _jsonable(x) for k, x in v.items()}
    if isinstance(v, (list, tuple, np.ndarray, pd.Series)):
        return [_jsonable(x) for x in v]
    if isinstance(v, np.generic):
        return v.item()
    return v


# --------- selectors ----------
def _register_selectors(
    g: LayerManifest, data: pd.DataFrame, s_aes: SelectorAesthetics,
    registry: SelectorRegistry,
) -> None:
    for row_i, (variable, value) in enumerate(interactive_rows(g.aes, s_aes), start=1):
        is_variable_value = value is not None
        if is_variable_value:
            names = unique_values(data[variable]) if variable in data.columns else []
            selectors = [(value, name) for name in names]
        else:
            selectors = [(variable, g.aes[variable])]
        for sel_i, (value_col, selector_name) in enumerate(selectors, start=1):
            registry.register_reference(
                selector_name,
                is_click="clickSelects" in variable,
                is_show="showSelected" in variable,
                is_variable_value=is_variable_value,
                layer=g.classed,
            )
            if value_col not in data.columns:
                continue
            values = data[value_col]
            if is_variable_value:
                values = values[data[variable].map(format_value) == selector_name]
            registry.record_values(
                selector_name, f"{g.classed} {row_i} {sel_i}", unique_values(values), update=g.classed
            )


def _time_values(g: LayerManifest, data: pd.DataFrame, s_aes: SelectorAesthetics, time_var: str) -> Tuple[Optional[str], List[str]]:
    time_col: Optional[str] = None
    collected: List[pd.Series] = []
    for kind in ("clickSelects", "showSelected"):
        group = getattr(s_aes, kind)
        for a in group.one:
            if g.aes[a] == time_var and a in data.columns:
                collected.append(data[a])
                if kind == "showSelected":
                    time_col = a
        for variable, value in group.several:
            if variable in data.columns and value in data.columns:
                collected.append(data.loc[data[variable].map(format_value) == time_var, value])
    if not collected:
        return time_col, []
    u_vals = pd.unique(pd.concat(collected, ignore_index=True).dropna())
    return time_col, _sorted_values(format_value(v) for v in u_vals)


def _sorted_values(values) -> List[str]:
    """Unique formatted values, numerically sorted when they are all numbers."""
    unique = list(dict.fromkeys(values))
    try:
        return sorted(unique, key=float)
    except ValueError:
        return sorted(unique)


# --------- one layer ----------
def compile_layer(
    layer: Layer,
    registry: SelectorRegistry,
    plot: Optional[PlotInfo] = None,
    min_bytes: int = MIN_CHUNK_BYTES,
    sample_rows: int = SIZE_SAMPLE_ROWS,
) -> LayerExport:
    """
    Compile one layer. Raises ConfigurationError/DataError for this layer;
    warnings are issued as UsageWarning.
    """
    plot = plot or PlotInfo()
    t0 = _now()
    kind = GeomKind.parse(layer.geom_kind, layer.name)
    g = LayerManifest(
        geom=kind.value,
        classed=layer.name,
        aes=dict(layer.aes),
        params=_jsonable({**layer.params, **layer.aes_params}),
    )

    s_aes = classify_aesthetics(g.aes, g.classed)
    data = apply_aes_params(layer.data, layer.aes_params, g.classed)
    do_not_copy = set(cols_not_to_copy(g.aes, s_aes))
    data = data[[c for c in data.columns if c not in do_not_copy]]
    subset_vec = [a for a in g.aes if a in s_aes.showSelected.one]

    registry.declare_types(plot.selector_types, layer=g.classed, plot_level=True)
    registry.declare_types(layer.selector_types, layer=g.classed)
    _register_selectors(g, data, s_aes, registry)

    check_stat_position(g.classed, layer.stat, layer.position, has_interactive(s_aes))

    g, data = kind.pre_process(g, data, plot.panel_ranges)
    data, g.params = normalize_colors(data, g.params, g.classed)
    check_zero_size(g.classed, g.geom, data)
    g.params = check_off_params(g.classed, g.geom, g.params, has_click_selects(s_aes))

    if plot.coord_flip:
        data = switch_axes(data)

    time_values: List[str] = []
    if plot.time_var:
        time_col, time_values = _time_values(g, data, s_aes, plot.time_var)
        if time_col in subset_vec:
            subset_vec = [time_col] + [c for c in subset_vec if c != time_col]

    plan = plan_chunks(
        data, subset_vec, g.aes, registry, g.params, g.classed,
        min_bytes=min_bytes, sample_rows=sample_rows,
    )
    chunk_cols, nest_cols = plan.chunk_cols, plan.nest_cols

    data = remove_unique_panel(data, plot.has_panels)
    data, g.types = column_types(data)

    selector_names = [g.aes[c] for c in chunk_cols]
    register_chunk_group(registry, selector_names)
    g.chunk_order = selector_names
    g.nest_order = list(nest_cols)
    g.subset_order = list(nest_cols)
    if plot.has_panels:
        g.subset_order.append("PANEL")
        g.nest_order.append("PANEL")
    for variable, value in s_aes.showSelected.several:
        g.nest_order.extend([variable, value])
        g.subset_order.append(variable)
    if "group" in g.aes and g.geom in DATA_OBJECT_GEOMS:
        g.nest_order.append("group")

    if FEATURE_SPLIT_NA_GROUPS and "group" in g.aes and "group" in data.columns and data.isna().any().any():
        data = split_na_groups(data, chunk_cols + g.nest_order)

    data = clamp_to_ranges(data, plot.panel_ranges, g.classed)
    data = drop_missing(data, keep=chunk_cols + g.nest_order + ["group"])

    common: Optional[pd.DataFrame] = None
    varied = data
    if FEATURE_COMMON_CHUNK:
        key_cols = set(chunk_cols) | set(g.nest_order) | {"group", "PANEL"}
        common, varied = extract_common(data, key_cols)
    if common is not None:
        g.columns.common = list(common.columns)
        g.common = f"{g.classed}_chunk_common"
    g.columns.varied = list(varied.columns)

    chunk_tree = split_recursive(varied, chunk_cols)
    nest_vars = [c for c in g.nest_order if c in varied.columns]
    chunks: List[ChunkArtifact] = []
    numbers: Dict[Tuple[str, ...], int] = {}
    for number, (key, rows) in enumerate(iter_leaves(chunk_tree), start=1):
        numbers[key] = number
        chunks.append(ChunkArtifact(
            name=f"{g.classed}_chunk{number}",
            key=key,
            rows=rows,
            nest=split_recursive(rows, nest_vars),
        ))
    g.chunks = index_tree(chunk_tree, lambda path, rows: numbers[path])
    g.total = len(chunks)

    print(
        f"[Export] {g.classed}: chunk_order={g.chunk_order} nest_order={g.nest_order} "
        f"chunks={g.total} common={g.common is not None} in {_dur(t0)}"
    )
    return LayerExport(manifest=g, chunks=chunks, common=common, time_values=time_values, data=data)


# --------- whole plot ----------
def _compile_layer_task(layer: Layer, registry: SelectorRegistry, plot: PlotInfo):
    """Run compile_layer on a private registry; errors are returned, not raised."""
    try:
        return compile_layer(layer, registry, plot), registry, None
    except LayerExportError as e:
        return None, registry, str(e)


def _record(
    result: PlotExport, registry: SelectorRegistry, layer: Layer,
    export: Optional[LayerExport], scratch: Optional[SelectorRegistry], error: Optional[str],
) -> None:
    if error is None:
        try:
            registry.merge(scratch, layer=layer.name)
        except LayerExportError as e:
            export, error = None, str(e)
    if error is not None:
        print(f"[Export][ERROR] {error}")
        result.manifest.errors[layer.name] = error
        return
    result.layers[layer.name] = export
    result.manifest.geoms[layer.name] = export.manifest


def _declare_selector_types(
    layers: Sequence[Layer], registry: SelectorRegistry, plot: PlotInfo, result: PlotExport
) -> List[Layer]:
    """
    Fix every declared selector type before any layer compiles, so layers
    compiled on separate registry copies agree on types. Layers whose
    declarations conflict are recorded as failed and left out.
    """
    registry.declare_types(plot.selector_types, plot_level=True)
    ready: List[Layer] = []
    for layer in layers:
        try:
            registry.declare_types(layer.selector_types, layer=layer.name)
        except LayerExportError as e:
            _record(result, registry, layer, None, None, str(e))
            continue
        ready.append(layer)
    return ready


def _run_local(tasks: Sequence[Tuple[Layer, SelectorRegistry]], plot: PlotInfo) -> list:
    return [_compile_layer_task(layer, scratch, plot) for layer, scratch in tasks]


def _export_batch(batch: Sequence[Layer], registry: SelectorRegistry, plot: PlotInfo, result: PlotExport, run=_run_local) -> None:
    """Compile a batch on registry copies taken before any of them is merged back."""
    tasks = [(layer, registry.copy()) for layer in batch]
    for layer, (export, scratch, error) in zip(batch, run(tasks, plot)):
        _record(result, registry, layer, export, scratch, error)


def _export_layers_parallel(layers: Sequence[Layer], registry: SelectorRegistry, plot: PlotInfo, result: PlotExport) -> None:
    import ray

    if not ray.is_initialized():
        ray.init(ignore_reinit_error=True, log_to_driver=True)
        print("[Ray] initialized.")
    remote = ray.remote(num_cpus=0.25, max_retries=1)(_compile_layer_task)

    def run_remote(tasks, plot):
        return ray.get([remote.remote(layer, scratch, plot) for layer, scratch in tasks])

    print(f"[Export] Launching {len(layers)} Ray tasks (cap {MAX_PARALLEL_LAYERS})…")
    for i in range(0, len(layers), MAX_PARALLEL_LAYERS):
        _export_batch(layers[i:i + MAX_PARALLEL_LAYERS], registry, plot, result, run=run_remote)


def export_plot(
    layers: Sequence[Layer],
    plot: Optional[PlotInfo] = None,
    registry: Optional[SelectorRegistry] = None,
    parallel: Optional[bool] = None,
) -> PlotExport:
    """Compile every layer; returns the plot manifest and per-layer exports."""
    plot = plot or PlotInfo()
    registry = registry if registry is not None else SelectorRegistry()
    parallel = FEATURE_PARALLEL_LAYERS if parallel is None else parallel
    t0 = _now()
    print(f"\n[Main] === Export {len(layers)} layers (parallel={parallel}) ===")
    result = PlotExport(manifest=PlotManifest())
    ready = _declare_selector_types(layers, registry, plot, result)

    if parallel and len(ready) > 1:
        _export_layers_parallel(list(ready), registry, plot, result)
    else:
        for layer in ready:
            _export_batch([layer], registry, plot, result)

    result.manifest.selectors = registry.descriptors()
    print(f"[Selectors] {len(result.manifest.selectors)} selectors: {', '.join(result.manifest.selectors)}")
    if plot.time_var:
        sequence = _sorted_values(v for export in result.layers.values() for v in export.time_values)
        result.manifest.time = TimeInfo(variable=plot.time_var, sequence=sequence)
    print(f"[Main] Done in {_dur(t0)} (errors={len(result.manifest.errors)})")
    return result

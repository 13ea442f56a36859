"""
Module: planning.py
Purpose:
    Decide which showSelected variables split a layer into separate chunk files:
      - plan_chunks(): (chunk_cols, nest_cols) for one layer
      - estimate_bytes_per_row(): TSV size of a head+tail sample / sample rows
      - cell_bytes(): estimated bytes of each observed value combination
      - column_to_drop(): pure cost step, which eligible column to stop chunking on
      - register_chunk_group(): point selectors at the chunk group they download

Design:
    - Fixed-point loop over an eligibility list; each step removes one column, so it
      ends after at most len(candidates) steps.
    - `multiple` selectors are never chunk-eligible (any combination may be requested).
    - A designer `chunk_vars` list bypasses the size model entirely.

Usage:
    from layer_export.planning import plan_chunks, register_chunk_group
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
import pandas as pd

from layer_export.config import MIN_CHUNK_BYTES, SIZE_SAMPLE_ROWS
from layer_export.errors import ConfigurationError
from layer_export.selectors import SelectorRegistry


@dataclass
class ChunkPlan:
    chunk_cols: List[str] = field(default_factory=list)
    nest_cols: List[str] = field(default_factory=list)


# --------- size model ----------
def estimate_bytes_per_row(data: pd.DataFrame, sample_rows: int = SIZE_SAMPLE_ROWS) -> float:
    if data.empty:
        return 0.0
    some = pd.concat([data.head(sample_rows), data.tail(sample_rows)])
    text = some.to_csv(sep="\t", header=False, index=False, na_rep="NA")
    return len(text.encode("utf-8")) / len(some)


def cell_bytes(keys: pd.DataFrame, cols: Sequence[str], bytes_per_row: float) -> pd.Series:
    """Estimated bytes per observed combination of `cols` (values compared as text).

    Only observed combinations are cells, and rows with a missing key belong to
    none. A full cross-product would also count empty combinations as 0-byte
    cells, which drops a column whenever the keys are not fully crossed.
    """
    if not cols:
        return pd.Series([len(keys) * bytes_per_row])
    return keys.groupby(list(cols), sort=True).size() * bytes_per_row


def column_to_drop(
    keys: pd.DataFrame,
    eligible: Sequence[str],
    bytes_per_row: float,
    min_bytes: int = MIN_CHUNK_BYTES,
) -> Optional[str]:
    """
    None when every cell of the eligible columns exceeds `min_bytes`
    (a column with no observed cell never qualifies).
    Otherwise the column whose removal leaves the largest smallest cell.
    """
    if not eligible:
        return None
    sizes = cell_bytes(keys, eligible, bytes_per_row)
    if len(sizes) and (sizes > min_bytes).all():
        return None
    if len(eligible) == 1:
        return eligible[0]
    best, best_min = None, None
    for col in eligible:
        rest = [c for c in eligible if c != col]
        rest_sizes = cell_bytes(keys, rest, bytes_per_row)
        smallest = rest_sizes.min() if len(rest_sizes) else 0.0
        if best_min is None or smallest > best_min:
            best, best_min = col, smallest
    return best


# --------- public API ----------
def _designer_chunks(
    chunk_vars: Any, subset_vec: Sequence[str], aes: Dict[str, str],
    registry: SelectorRegistry, layer_name: Optional[str],
) -> ChunkPlan:
    if isinstance(chunk_vars, str):
        chunk_vars = [chunk_vars]
    if not isinstance(chunk_vars, (list, tuple)) or not all(isinstance(v, str) for v in chunk_vars):
        raise ConfigurationError(
            "chunk_vars must be a list of strings; use chunk_vars=[] to specify 1 chunk",
            layer=layer_name,
        )
    possible = [aes[c] for c in subset_vec]
    not_subset = [v for v in chunk_vars if v not in possible]
    if not_subset:
        raise ConfigurationError(
            f"invalid chunk_vars; possible showSelected variables: {' '.join(possible)}",
            layer=layer_name, variables=not_subset,
        )
    multiple = [v for v in chunk_vars if registry.type_of(v) == "multiple"]
    if multiple:
        raise ConfigurationError(
            "chunk_vars cannot name selectors of type 'multiple'",
            layer=layer_name, variables=multiple,
        )
    chunk_cols = [c for c in subset_vec if aes[c] in chunk_vars]
    return ChunkPlan(chunk_cols, [c for c in subset_vec if c not in chunk_cols])


def plan_chunks(
    data: pd.DataFrame,
    subset_vec: Sequence[str],
    aes: Dict[str, str],
    registry: SelectorRegistry,
    params: Optional[Dict[str, Any]] = None,
    layer_name: Optional[str] = None,
    min_bytes: int = MIN_CHUNK_BYTES,
    sample_rows: int = SIZE_SAMPLE_ROWS,
) -> ChunkPlan:
    """
    Split `subset_vec` (showSelected aesthetic names, time variable first)
    into chunk columns and nest columns.

    Args:
        data: the layer's row table, columns named by aesthetic.
        subset_vec: candidate showSelected aesthetic names.
        aes: aesthetic → variable mapping; aes[c] is the selector name of c.
        registry: selector types are read from here.
        params: layer params; `chunk_vars` overrides the size model.
        min_bytes: smallest acceptable estimated chunk file.

    Returns:
        ChunkPlan with chunk_cols and nest_cols, both in subset_vec order.
    """
    params = params or {}
    subset_vec = list(subset_vec)
    if "chunk_vars" in params:
        return _designer_chunks(params["chunk_vars"], subset_vec, aes, registry, layer_name)
    if len(registry) == 0 or not subset_vec or data.empty:
        return ChunkPlan([], subset_vec)

    eligible = [c for c in subset_vec if registry.type_of(aes[c]) != "multiple"]
    bytes_per_row = estimate_bytes_per_row(data, sample_rows)
    keys = data[eligible].astype(str).where(data[eligible].notna())
    while True:
        bad = column_to_drop(keys, eligible, bytes_per_row, min_bytes)
        if bad is None:
            break
        eligible.remove(bad)
        print(f"[Chunks] {layer_name}: not chunking on '{bad}' (chunks under {min_bytes} bytes)")

    if not eligible:
        return ChunkPlan([], subset_vec)
    return ChunkPlan(eligible, [c for c in subset_vec if c not in eligible])


def register_chunk_group(registry: SelectorRegistry, selector_names: Sequence[str]) -> Optional[str]:
    """Associate each chunk selector with the group label "<sel1>_<sel2>..."."""
    if not selector_names:
        return None
    label = "_".join(selector_names)
    for name in selector_names:
        registry.associate_chunk_group(name, label)
    return label

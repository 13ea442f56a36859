"""
Module: dataframe_ops.py
Purpose:
    Transform a layer's row table (pandas DataFrame) before it is partitioned:
      - apply_aes_params(): constant aesthetics from parameters (length 1 or n, else DataError)
      - normalize_colors(): colour columns/params → "#rrggbb"
      - switch_axes(): x*/y* column swap for flipped coordinates
      - column_types(): per-column type tags for the client (+ ordered → unordered factors)
      - split_na_groups(): restart `group` at missing values and partition boundaries
      - clamp_to_ranges(): clamp x*/y* columns to each panel's range
      - drop_missing(): remove all-missing columns, then rows with any missing value
      - extract_common(): factor constant columns into a one-row common table

Design:
    - Avoids heavy logic: pure pandas ops with small helpers.
    - Every function returns a new DataFrame; the caller's table is never mutated.

Usage:
    from layer_export.dataframe_ops import (
        apply_aes_params, normalize_colors, switch_axes, column_types,
        split_na_groups, clamp_to_ranges, drop_missing, extract_common, format_value
    )
"""

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import numpy as np
import pandas as pd

from layer_export.colors import COLOR_VARS, is_linetype, is_rgb, to_rgb
from layer_export.errors import DataError
from layer_export.schemas import PanelRanges


# --------- value formatting ----------
def format_value(v: Any) -> str:
    """Render a partition/selector value the way the client compares it (2008.0 → "2008")."""
    if isinstance(v, (bool, np.bool_)):
        return str(bool(v))
    if isinstance(v, (int, np.integer)):
        return str(int(v))
    if isinstance(v, (float, np.floating)):
        f = float(v)
        return str(int(f)) if f.is_integer() else repr(f)
    return str(v)


def unique_values(s: pd.Series) -> List[str]:
    """Formatted unique non-missing values in first-appearance order."""
    out: List[str] = []
    seen = set()
    for v in pd.unique(s.dropna()):
        text = format_value(v)
        if text not in seen:
            out.append(text); seen.add(text)
    return out


# --------- aesthetic parameters ----------
def _param_length(v: Any) -> int:
    if isinstance(v, (str, bytes)) or np.isscalar(v) or v is None:
        return 1
    try:
        return len(v)
    except TypeError:
        return 1


def apply_aes_params(data: pd.DataFrame, aes_params: Mapping[str, Any], layer_name: Optional[str] = None) -> pd.DataFrame:
    if not aes_params:
        return data
    n = len(data)
    bad = [k for k, v in aes_params.items() if _param_length(v) not in (1, n)]
    if bad:
        raise DataError(
            f"Aesthetics must be either length 1 or the same as the data ({n})",
            layer=layer_name, variables=bad,
        )
    df = data.copy()
    for k, v in aes_params.items():
        if _param_length(v) == 1:
            if not (isinstance(v, (str, bytes)) or np.isscalar(v) or v is None):
                v = list(v)[0]
            df[k] = v
        else:
            df[k] = list(v)
    return df


# --------- colours ----------
def _convert_colors(values: Any, name: str, layer_name: Optional[str]) -> Any:
    try:
        if isinstance(values, (list, tuple)):
            return [to_rgb(v) for v in values]
        return to_rgb(values)
    except ValueError as e:
        raise DataError(f"invalid colour: {e}", layer=layer_name, variables=[name]) from e


def normalize_colors(
    data: pd.DataFrame, params: Dict[str, Any], layer_name: Optional[str] = None
) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    df = data.copy()
    out_params = dict(params)
    for var in COLOR_VARS:
        if var in df.columns:
            df[var] = [_convert_colors(v, var, layer_name) for v in df[var].astype(object)]
        if var in out_params:
            out_params[var] = _convert_colors(out_params[var], var, layer_name)
    return df, out_params


# --------- coord_flip ----------
def _switch_axis_name(name: str) -> str:
    if name.startswith("x"):
        return "y" + name[1:]
    if name.startswith("y"):
        return "x" + name[1:]
    return name


def switch_axes(data: pd.DataFrame) -> pd.DataFrame:
    return data.rename(columns={c: _switch_axis_name(c) for c in data.columns})


# --------- type tags ----------
def _character_type(name: str, s: pd.Series) -> str:
    vals = s.dropna()
    if len(vals) and all(is_rgb(v) for v in vals):
        return "rgb"
    if len(vals) and all(is_linetype(v, allow_hex=(name == "linetype")) for v in vals):
        return "linetype"
    return "character"


def column_types(data: pd.DataFrame) -> Tuple[pd.DataFrame, Dict[str, str]]:
    """
    Tag each column for the client: numeric, character, factor, logical,
    rgb, linetype, or the raw dtype name. Ordered categoricals are exported
    as plain factors.
    """
    df = data.copy()
    types: Dict[str, str] = {}
    for col in df.columns:
        s = df[col]
        if isinstance(s.dtype, pd.CategoricalDtype):
            if s.dtype.ordered:
                df[col] = s.cat.as_unordered()
            types[col] = "factor"
            continue
        inferred = pd.api.types.infer_dtype(s, skipna=True)
        if pd.api.types.is_bool_dtype(s.dtype) or inferred == "boolean":
            types[col] = "logical"
        elif pd.api.types.is_numeric_dtype(s.dtype):
            types[col] = "numeric"
        elif inferred in ("string", "empty"):
            types[col] = _character_type(col, s)
        else:
            types[col] = str(s.dtype)
    if "group" in types:
        types["group"] = "character"
    return df, types


# --------- panels ----------
def panel_numbers(data: pd.DataFrame) -> pd.Series:
    """Panel of each row as int; tables without PANEL are all panel 1."""
    if "PANEL" not in data.columns:
        return pd.Series(1, index=data.index, dtype="int64")
    return data["PANEL"].astype(str).astype(int)


def remove_unique_panel(data: pd.DataFrame, plot_has_panels: bool) -> pd.DataFrame:
    if plot_has_panels or "PANEL" not in data.columns:
        return data
    return data.drop(columns=["PANEL"])


# --------- missing-value groups ----------
def split_na_groups(data: pd.DataFrame, split_cols: Sequence[str]) -> pd.DataFrame:
    """
    Sort by `split_cols` and renumber `group` from 0: a new group starts
    where a row with a missing value follows a complete row, or where any
    split column changes value.
    """
    cols = [c for c in dict.fromkeys(split_cols) if c in data.columns]
    df = data.sort_values(cols, kind="mergesort", na_position="last") if cols else data.copy()
    is_missing = df.isna().any(axis=1).to_numpy()
    new_group = np.zeros(len(df), dtype=bool)
    if len(df) > 1:
        new_group[1:] = is_missing[1:] & ~is_missing[:-1]
        for c in cols:
            s = df[c]
            changed = s.ne(s.shift()).fillna(True).to_numpy(dtype=bool)
            new_group[1:] |= changed[1:]
    df = df.copy()
    df["group"] = np.cumsum(new_group)
    return df


# --------- ranges ----------
def clamp_to_ranges(data: pd.DataFrame, panel_ranges: Mapping[int, PanelRanges], layer_name: Optional[str] = None) -> pd.DataFrame:
    """Clamp every numeric x*/y* column to the min/max of the row's panel."""
    if not panel_ranges or data.empty:
        return data
    panels = panel_numbers(data)
    missing = sorted(set(panels) - set(panel_ranges))
    if missing:
        raise DataError("no axis ranges recorded for panels", layer=layer_name, variables=[str(p) for p in missing])
    df = data.copy()
    for axis in ("x", "y"):
        cols = [
            c for c in df.columns
            if c.startswith(axis)
            and pd.api.types.is_numeric_dtype(df[c].dtype)
            and not pd.api.types.is_bool_dtype(df[c].dtype)
        ]
        if not cols:
            continue
        lo = panels.map(lambda p: panel_ranges[p].range_for(axis)[0]).astype(float)
        hi = panels.map(lambda p: panel_ranges[p].range_for(axis)[1]).astype(float)
        for c in cols:
            df[c] = df[c].clip(lower=lo, upper=hi)
    return df


# --------- missing rows ----------
def drop_missing(data: pd.DataFrame, keep: Iterable[str] = ()) -> pd.DataFrame:
    """Drop all-missing columns (except partition keys in `keep`), then incomplete rows."""
    if data.empty:
        return data.reset_index(drop=True)
    keys = set(keep)
    all_missing = [c for c in data.columns if c not in keys and data[c].isna().all()]
    df = data.drop(columns=all_missing)
    return df.dropna().reset_index(drop=True)


# --------- common data ----------
def extract_common(data: pd.DataFrame, key_cols: Iterable[str]) -> Tuple[Optional[pd.DataFrame], pd.DataFrame]:
    """
    Return (common, varied). `common` is a one-row table of the non-key
    columns whose value is the same on every row, or None when there are
    none or when no column would be left in `varied`; `varied` is `data`
    without those columns.
    """
    keys = set(key_cols)
    if len(data) < 2:
        return None, data
    common_cols = [
        c for c in data.columns
        if c not in keys and data[c].nunique(dropna=False) == 1
    ]
    if not common_cols or len(common_cols) == len(data.columns):
        return None, data
    common = data[common_cols].iloc[[0]].reset_index(drop=True)
    return common, data.drop(columns=common_cols)

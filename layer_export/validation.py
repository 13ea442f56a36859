"""
Module: validation.py
Purpose:
    Non-fatal checks on a layer; each issues a UsageWarning and lets export continue:
      - check_stat_position(): interactive aesthetics with non-identity stat/position
      - check_zero_size(): size 0 on geoms without fill (invisible marks)
      - check_off_params(): *_off params without clickSelects, fill_off on no-fill geoms

Usage:
    from layer_export.validation import check_stat_position, check_zero_size, check_off_params
"""

from __future__ import annotations
from typing import Any, Dict
import warnings

import pandas as pd

from layer_export.errors import UsageWarning
from layer_export.geoms import NO_FILL_GEOMS

_IDENTITY = {"identity", "statidentity", "positionidentity"}


def _is_identity(kind: str) -> bool:
    return (kind or "identity").replace("_", "").lower() in _IDENTITY


def check_stat_position(classed: str, stat: str, position: str, interactive: bool) -> None:
    if not interactive:
        return
    if not _is_identity(stat):
        warnings.warn(
            f"{classed}: clickSelects/showSelected with stat={stat} may not work, "
            "since the stat may drop or merge the rows a selector depends on",
            UsageWarning, stacklevel=3,
        )
    if not _is_identity(position):
        warnings.warn(
            f"{classed}: showSelected only works with position=identity, got position={position}",
            UsageWarning, stacklevel=3,
        )


def check_zero_size(classed: str, geom: str, data: pd.DataFrame) -> None:
    if geom not in ("path", "line") or "size" not in data.columns:
        return
    size = pd.to_numeric(data["size"], errors="coerce")
    if (size == 0).any():
        warnings.warn(f"geom_{geom} with size=0 will be invisible ({classed})", UsageWarning, stacklevel=3)


def check_off_params(classed: str, geom: str, params: Dict[str, Any], has_click: bool) -> Dict[str, Any]:
    """Warn about ineffective *_off params; returns params without fill_off on no-fill geoms."""
    off = [name for name in params if name.endswith("_off")]
    if off and not has_click:
        names = ", ".join(off)
        warnings.warn(
            f"{classed} has {names} which is not used because this geom has no clickSelects; "
            f"please specify clickSelects or remove {names}",
            UsageWarning, stacklevel=3,
        )
    if geom in NO_FILL_GEOMS and "fill_off" in params:
        warnings.warn(f"{classed} has fill_off which is not supported.", UsageWarning, stacklevel=3)
        return {k: v for k, v in params.items() if k != "fill_off"}
    return params

"""
Module: features.py
Purpose:
    Central place for feature toggles of the export passes.
    Also provides tiny time helpers used across the pipeline.

Performance notes:
    - Import-only module: constant-time.
    - No heavy libs imported here to keep startup time minimal.

How to use:
    from layer_export.features import (
        FEATURE_COMMON_CHUNK, FEATURE_SPLIT_NA_GROUPS, FEATURE_PARALLEL_LAYERS,
        _now, _dur
    )
"""

from __future__ import annotations
import time

# =========================
# === Feature toggles ====
# =========================
FEATURE_COMMON_CHUNK    = True   # factor constant columns into <layer>_chunk_common.tsv
FEATURE_SPLIT_NA_GROUPS = True   # break `group` at missing values and partition boundaries
FEATURE_PARALLEL_LAYERS = False  # export_plot() default; Ray fan-out over layers

def _now() -> float:
    return time.time()

def _dur(t0: float) -> str:
    return f"{time.time() - t0:.2f}s"

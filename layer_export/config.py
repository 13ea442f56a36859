"""
Module: config.py
Purpose:
    Centralizes configuration and environment knobs used across the export:
    - Minimum chunk artifact size and the row sample used to estimate it
    - Default output directory for the CLI
    - Batch size for parallel layer export

Design notes:
    - Keep read-only constants lightweight to avoid runtime overhead.
    - Do not perform any heavy imports (e.g., pandas/Ray) here.
    - Favor environment variables with safe defaults so local runs "just work".

How to use:
    from layer_export.config import (
        MIN_CHUNK_BYTES, SIZE_SAMPLE_ROWS, OUTPUT_DIR, MAX_PARALLEL_LAYERS
    )
"""

from __future__ import annotations
import os
from dotenv import load_dotenv

load_dotenv()

def _as_int(env_name: str, default: int) -> int:
    v = os.getenv(env_name)
    try:
        return int(v) if v is not None else default
    except ValueError:
        return default

# Chunk planning
MIN_CHUNK_BYTES  = _as_int("MIN_CHUNK_BYTES", 4096)
SIZE_SAMPLE_ROWS = _as_int("SIZE_SAMPLE_ROWS", 6)  # rows from each end of the table

# Output
OUTPUT_DIR = os.getenv("OUTPUT_DIR") or "animint-export"

# Parallel layer export (Ray)
MAX_PARALLEL_LAYERS = _as_int("MAX_PARALLEL_LAYERS", 8)

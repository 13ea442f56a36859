"""
Module: writer.py
Purpose:
    Write compiled layers to an output directory:
      - write_layer(): <classed>_chunk<N>.tsv per chunk (+ <classed>_chunk_common.tsv)
      - write_plot(): every layer plus plot.json (geoms, selectors, time, errors)

Design:
    - Tab-separated, no quoting of the index, "NA" for missing values.
    - Artifacts are independent files; write order does not matter.

Usage:
    from layer_export.writer import write_plot, write_layer
"""

from __future__ import annotations
from pathlib import Path
from typing import List, Union
import json

import pandas as pd

from layer_export.pipeline import LayerExport, PlotExport

PathLike = Union[str, Path]


def _write_tsv(df: pd.DataFrame, path: Path) -> None:
    df.to_csv(path, sep="\t", index=False, na_rep="NA")


def write_layer(export: LayerExport, out_dir: PathLike) -> List[Path]:
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for chunk in export.chunks:
        path = out / f"{chunk.name}.tsv"
        _write_tsv(chunk.rows, path)
        written.append(path)
    if export.common is not None and export.manifest.common:
        path = out / f"{export.manifest.common}.tsv"
        _write_tsv(export.common, path)
        written.append(path)
    print(f"[Write] {export.manifest.classed}: {len(written)} files → {out}")
    return written


def write_plot(result: PlotExport, out_dir: PathLike) -> Path:
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    for export in result.layers.values():
        write_layer(export, out)
    path = out / "plot.json"
    path.write_text(json.dumps(result.manifest.model_dump(mode="json"), indent=2), encoding="utf-8")
    print(f"[Write] plot.json ({len(result.manifest.geoms)} geoms, {len(result.manifest.selectors)} selectors)")
    return path

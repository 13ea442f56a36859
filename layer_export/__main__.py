"""
Entrypoint: python -m layer_export
Purpose:
    Compile layers described by a JSON file into chunk TSVs + plot.json.

Plot file:
    {
      "layers": [{"name": "geom1_point_scatter", "aes": {...}, "params": {...}, "data": "points.csv"}],
      "panel_ranges": {"1": {"x": [0, 10], "y": [0, 5]}},
      "time_var": null,
      "selector_types": {"country": "multiple"}
    }
    Data paths are relative to the plot file.

Usage:
    python -m layer_export plot.json -o out/ [--parallel]
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List
import argparse
import json
import sys

import pandas as pd

from layer_export.config import OUTPUT_DIR
from layer_export.pipeline import export_plot
from layer_export.schemas import Layer, PlotInfo
from layer_export.writer import write_plot


def load_plot(path: Path):
    description: Dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
    layers: List[Layer] = []
    for entry in description.get("layers", []):
        entry = dict(entry)
        data_path = entry.pop("data", None)
        data = pd.read_csv(path.parent / data_path) if data_path else pd.DataFrame()
        layers.append(Layer(data=data, **entry))
    plot = PlotInfo(**{k: v for k, v in description.items() if k != "layers"})
    return layers, plot


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="layer_export", description="Compile interactive layers into chunk TSVs + plot.json.")
    parser.add_argument("plot", type=Path, help="plot description (JSON)")
    parser.add_argument("-o", "--out-dir", default=OUTPUT_DIR)
    parser.add_argument("--parallel", action="store_true", help="compile layers with Ray")
    args = parser.parse_args(argv)

    layers, plot = load_plot(args.plot)
    result = export_plot(layers, plot, parallel=args.parallel)
    write_plot(result, args.out_dir)
    return 1 if result.manifest.errors else 0

if __name__ == "__main__":
    sys.exit(main())

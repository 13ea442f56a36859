"""
Module: errors.py
Purpose:
    Error and warning categories raised while exporting a layer:
      - ConfigurationError: plot-authoring mistakes (bad selector pairing, chunk_vars, type clash)
      - DataError: row data that cannot be exported (bad aesthetic lengths)
      - UsageWarning: suspicious but exportable layers

Design:
    - Both errors abort only the offending layer; export_plot() records them and moves on.
    - Messages carry the layer's classed name and the offending variables.

Usage:
    from layer_export.errors import ConfigurationError, DataError, UsageWarning
"""

from __future__ import annotations
from typing import Iterable, List, Optional


class LayerExportError(ValueError):
    """Base class for errors that abort the export of a single layer."""

    def __init__(self, message: str, layer: Optional[str] = None, variables: Iterable[str] = ()):
        self.layer = layer
        self.variables: List[str] = [str(v) for v in variables]
        text = message
        if layer:
            text = f"{layer}: {text}"
        if self.variables:
            text = f"{text} (variables: {', '.join(self.variables)})"
        super().__init__(text)


class ConfigurationError(LayerExportError):
    pass


class DataError(LayerExportError):
    pass


class UsageWarning(UserWarning):
    pass

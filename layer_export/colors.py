"""
Module: colors.py
Purpose:
    Colour and linetype helpers for the exported tables:
      - to_rgb(): any matplotlib/CSS colour (plus grey0..grey100) → "#rrggbb"
      - is_rgb(), is_linetype(): detect columns the client parses specially

Design:
    - Missing colours export as "transparent" so the client draws nothing.
    - Unknown colour names raise ValueError; callers attach layer context.

Usage:
    from layer_export.colors import to_rgb, is_rgb, is_linetype, COLOR_VARS
"""

from __future__ import annotations
from typing import Any
import re

import pandas as pd
from matplotlib import colors as mcolors

COLOR_VARS = ("colour", "color", "fill", "colour_off", "color_off", "fill_off")

LINETYPE_NAMES = {"blank", "solid", "dashed", "dotted", "dotdash", "longdash", "twodash"}

_GREY = re.compile(r"^gr[ae]y(\d{1,3})$")
_RGB = re.compile(r"^#[0-9A-Fa-f]{6}$")
_HEX_DASH = re.compile(r"^(?:[0-9A-Fa-f]{2}){1,4}$")


def to_rgb(value: Any) -> str:
    if value is None or (not isinstance(value, (list, tuple)) and pd.isna(value)):
        return "transparent"
    text = str(value).strip()
    if text.lower() in ("", "na", "transparent"):
        return "transparent"
    m = _GREY.match(text.lower())
    if m and int(m.group(1)) <= 100:
        level = round(int(m.group(1)) * 255 / 100)
        return "#{0:02x}{0:02x}{0:02x}".format(level)
    return mcolors.to_hex(text)


def is_rgb(value: Any) -> bool:
    return isinstance(value, str) and (value == "transparent" or bool(_RGB.match(value)))


def is_linetype(value: Any, allow_hex: bool = False) -> bool:
    if not isinstance(value, str):
        return False
    if value in LINETYPE_NAMES:
        return True
    return allow_hex and bool(_HEX_DASH.match(value))

"""
Module: aesthetics.py
Purpose:
    Classify a layer's aesthetic names into interactive groups:
      - classify_aesthetics(): clickSelects/showSelected × one/several (+ ignored, plain)
      - interactive_rows(): (variable aes, value aes or None) rows that construct selectors
      - cols_not_to_copy(): columns that never reach the exported table

Design:
    - Pure functions over the ordered aes mapping; first-appearance order is preserved.
    - `clickSelects2`/`showSelected3` style numeric suffixes name extra selectors on one layer.
    - A `.variable` aesthetic without its `.value` (or vice versa) is a ConfigurationError.

Usage:
    from layer_export.aesthetics import classify_aesthetics, interactive_rows, cols_not_to_copy
"""

from __future__ import annotations
from typing import Dict, List, Optional, Tuple
import re

from layer_export.errors import ConfigurationError
from layer_export.schemas import SelectorAes, SelectorAesthetics

SELECTOR_KINDS = ("clickSelects", "showSelected")

_SELECTOR_AES = re.compile(
    r"^(?P<kind>clickSelects|showSelected)(?P<index>[1-9][0-9]*)?(?:\.(?P<part>variable|value))?$"
)


def parse_selector_aes(name: str) -> Optional[Tuple[str, str, Optional[str]]]:
    """Return (kind, index, part) for an interactive aesthetic name, else None."""
    m = _SELECTOR_AES.match(name)
    if not m:
        return None
    return m.group("kind"), m.group("index") or "", m.group("part")


def classify_aesthetics(aes: Dict[str, str], layer_name: Optional[str] = None) -> SelectorAesthetics:
    """
    Split the aes mapping into clickSelects/showSelected groups.

    `.one` keeps one aesthetic per mapped variable; later aesthetics mapping
    an already-seen variable go to `.ignored`. `.several` pairs each
    `<kind>N.variable` with its `<kind>N.value`.
    """
    out = SelectorAesthetics()
    pairs: Dict[Tuple[str, str], Dict[str, str]] = {}

    for name, var in aes.items():
        parsed = parse_selector_aes(name)
        if parsed is None:
            out.plain.append(name)
            continue
        kind, index, part = parsed
        group: SelectorAes = getattr(out, kind)
        if part is None:
            seen = {aes[a] for a in group.one}
            if var in seen:
                group.ignored.append(name)
            else:
                group.one.append(name)
        else:
            pairs.setdefault((kind, index), {})[part] = name

    unpaired: List[str] = []
    for (kind, index), halves in pairs.items():
        if "variable" in halves and "value" in halves:
            getattr(out, kind).several.append((halves["variable"], halves["value"]))
        else:
            unpaired.extend(halves.values())
    if unpaired:
        raise ConfigurationError(
            ".variable and .value aesthetics must be specified together",
            layer=layer_name, variables=unpaired,
        )
    return out


def interactive_rows(aes: Dict[str, str], s_aes: SelectorAesthetics) -> List[Tuple[str, Optional[str]]]:
    """Rows that construct selectors: several pairs first, then `.one` names in aes order."""
    rows: List[Tuple[str, Optional[str]]] = []
    for kind in SELECTOR_KINDS:
        rows.extend(getattr(s_aes, kind).several)
    one = set(s_aes.clickSelects.one) | set(s_aes.showSelected.one)
    rows.extend((name, None) for name in aes if name in one)
    return rows


def cols_not_to_copy(aes: Dict[str, str], s_aes: SelectorAesthetics) -> List[str]:
    do_not_copy: List[str] = []
    if "group" not in aes:
        do_not_copy.append("group")
    do_not_copy.extend(s_aes.showSelected.ignored)
    do_not_copy.extend(s_aes.clickSelects.ignored)
    return do_not_copy


def has_click_selects(s_aes: SelectorAesthetics) -> bool:
    return bool(s_aes.clickSelects.one or s_aes.clickSelects.several)


def has_interactive(s_aes: SelectorAesthetics) -> bool:
    return any(getattr(s_aes, k).one or getattr(s_aes, k).several for k in SELECTOR_KINDS)

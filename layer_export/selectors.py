"""
Module: selectors.py
Purpose:
    SelectorRegistry: accumulator of selector metadata for one multi-layer export run.
      - declare_types(): plot/layer type declarations, fixed before layers compile
      - register_reference(): merge click/show flags and fix the selector type once
      - record_values(): per-key (overwrite) record of the values a layer shows for a selector
      - associate_chunk_group(): remember which chunk groups a selector downloads
      - merge()/copy(): transactional per-layer updates and parallel fan-in
      - descriptors(): selector table for plot.json

Design:
    - Explicit object passed through the export call chain; no module-level state.
    - Type is assigned at most once; a conflicting declaration is a ConfigurationError.
    - Declared and defaulted ("single") types are told apart, so merging copies only
      fails when both sides declared different types.
    - Updates take an RLock so layers compiled on threads serialize per registry.

Usage:
    from layer_export.selectors import SelectorRegistry
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple
import copy
import threading

from layer_export.errors import ConfigurationError
from layer_export.schemas import SELECTOR_TYPES, SelectorDescriptor


@dataclass
class _ValueRecord:
    values: List[str]
    update: Optional[str] = None


@dataclass
class _SelectorState:
    type: Optional[str] = None
    declared: bool = False
    is_variable_value: bool = False
    drives_click: bool = False
    drives_show: bool = False
    chunks: List[str] = field(default_factory=list)
    values: Dict[str, _ValueRecord] = field(default_factory=dict)


def _check_type(name: str, selector_type: str, layer: Optional[str]) -> None:
    if selector_type not in SELECTOR_TYPES:
        raise ConfigurationError(
            f"selector type must be one of {', '.join(SELECTOR_TYPES)}, got {selector_type!r}",
            layer=layer, variables=[name],
        )


def _conflict(name: str, new: str, old: str, layer: Optional[str]) -> ConfigurationError:
    return ConfigurationError(
        f"selector type {new!r} conflicts with previously declared {old!r}",
        layer=layer, variables=[name],
    )


def _append_unique(items: List[str], new: Iterable[str]) -> None:
    for item in new:
        if item not in items:
            items.append(item)


class SelectorRegistry:
    def __init__(self) -> None:
        self._selectors: Dict[str, _SelectorState] = {}
        # name -> (type, declared at plot level)
        self._declared: Dict[str, Tuple[str, bool]] = {}
        self._lock = threading.RLock()

    # Locks do not pickle; Ray ships registries to workers by value.
    def __getstate__(self):
        return {"_selectors": self._selectors, "_declared": self._declared}

    def __setstate__(self, state):
        self._selectors = state["_selectors"]
        self._declared = state.get("_declared", {})
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._selectors)

    def __contains__(self, name: str) -> bool:
        return name in self._selectors

    def names(self) -> List[str]:
        return list(self._selectors)

    def type_of(self, name: str) -> Optional[str]:
        state = self._selectors.get(name)
        return state.type if state else None

    def declared_type(self, name: str) -> Optional[str]:
        decl = self._declared.get(name)
        return decl[0] if decl else None

    def chunks_of(self, name: str) -> List[str]:
        state = self._selectors.get(name)
        return list(state.chunks) if state else []

    # --------- updates ----------
    def declare_types(
        self, types: Mapping[str, str], layer: Optional[str] = None, plot_level: bool = False
    ) -> None:
        """
        Record declared selector types. A layer declaration overrides the
        plot-level one; two layers declaring different types conflict, as does
        a declaration that disagrees with a type already in use. Nothing is
        recorded when any name fails.
        """
        with self._lock:
            updates: Dict[str, Tuple[str, bool]] = {}
            for name, selector_type in types.items():
                _check_type(name, selector_type, layer)
                current = self._declared.get(name)
                if current is not None:
                    cur_type, cur_plot = current
                    if plot_level and not cur_plot:
                        continue
                    if not cur_plot and cur_type != selector_type:
                        raise _conflict(name, selector_type, cur_type, layer)
                state = self._selectors.get(name)
                if state is not None and state.type not in (None, selector_type):
                    raise _conflict(name, selector_type, state.type, layer)
                updates[name] = (selector_type, plot_level)
            for name, decl in updates.items():
                self._declared[name] = decl
                state = self._selectors.get(name)
                if state is not None and state.type is not None:
                    state.declared = True

    def register_reference(
        self,
        name: str,
        is_click: bool,
        is_show: bool,
        declared_type: Optional[str] = None,
        is_variable_value: bool = False,
        layer: Optional[str] = None,
    ) -> str:
        """Merge flags for `name` and return its (now fixed) type."""
        with self._lock:
            if declared_type is not None:
                self.declare_types({name: declared_type}, layer=layer)
            decl = self._declared.get(name)
            state = self._selectors.setdefault(name, _SelectorState())
            if state.type is None:
                state.type = decl[0] if decl else "single"
                state.declared = decl is not None
            state.drives_click = state.drives_click or is_click
            state.drives_show = state.drives_show or is_show
            state.is_variable_value = state.is_variable_value or is_variable_value
            return state.type

    def record_values(self, name: str, key: str, values: Iterable[str], update: Optional[str] = None) -> None:
        with self._lock:
            state = self._selectors.setdefault(name, _SelectorState())
            state.values[key] = _ValueRecord(values=[str(v) for v in values], update=update)

    def associate_chunk_group(self, name: str, label: str) -> None:
        with self._lock:
            state = self._selectors.setdefault(name, _SelectorState())
            _append_unique(state.chunks, [label])

    # --------- fan-in ----------
    def copy(self) -> "SelectorRegistry":
        with self._lock:
            other = SelectorRegistry()
            other._selectors = copy.deepcopy(self._selectors)
            other._declared = dict(self._declared)
            return other

    def merge(self, other: "SelectorRegistry", layer: Optional[str] = None) -> None:
        """
        Fold `other` into this registry. Only two declared types can conflict;
        a declared type replaces a defaulted one. All conflicts are checked
        before anything is written, so a failed merge leaves this registry
        untouched.
        """
        with self._lock:
            for name, theirs in other._selectors.items():
                mine = self._selectors.get(name)
                if mine and mine.declared and theirs.declared and mine.type != theirs.type:
                    raise _conflict(name, theirs.type, mine.type, layer)
            for name, theirs in other._selectors.items():
                mine = self._selectors.setdefault(name, _SelectorState())
                if mine.type is None or (theirs.declared and not mine.declared):
                    mine.type = theirs.type
                    mine.declared = theirs.declared
                mine.drives_click = mine.drives_click or theirs.drives_click
                mine.drives_show = mine.drives_show or theirs.drives_show
                mine.is_variable_value = mine.is_variable_value or theirs.is_variable_value
                _append_unique(mine.chunks, theirs.chunks)
                for key, record in theirs.values.items():
                    mine.values[key] = _ValueRecord(values=list(record.values), update=record.update)
            for name, decl in other._declared.items():
                self._declared.setdefault(name, decl)

    # --------- output ----------
    def descriptors(self) -> Dict[str, SelectorDescriptor]:
        out: Dict[str, SelectorDescriptor] = {}
        with self._lock:
            for name, state in self._selectors.items():
                levels: List[str] = []
                update: List[str] = []
                for record in state.values.values():
                    _append_unique(levels, record.values)
                    if record.update:
                        _append_unique(update, [record.update])
                out[name] = SelectorDescriptor(
                    type=state.type or "single",
                    is_variable_value=state.is_variable_value,
                    clickSelects=state.drives_click,
                    showSelected=state.drives_show,
                    chunks=list(state.chunks),
                    levels=levels,
                    update=update,
                )
        return out

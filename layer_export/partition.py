"""
Module: partition.py
Purpose:
    Recursive partitioning of a row table into a nested index:
      - Branch / Leaf: closed tree type (Node = Branch | Leaf)
      - split_recursive(): group rows by each variable in order, one leaf per key tuple
      - iter_leaves(), count_leaves(), index_tree(), flatten()

Design:
    - Branch children are keyed by formatted values (format_value) in sorted group order.
    - Rows with a missing value in a partitioning column belong to no cell and are dropped.
    - Empty cells are never created.

Usage:
    from layer_export.partition import Branch, Leaf, Node, split_recursive, iter_leaves
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Sequence, Tuple, Union
import pandas as pd

from layer_export.dataframe_ops import format_value


@dataclass
class Leaf:
    rows: pd.DataFrame


@dataclass
class Branch:
    variable: str
    children: Dict[str, "Node"] = field(default_factory=dict)


Node = Union[Branch, Leaf]


def split_recursive(data: pd.DataFrame, variables: Sequence[str]) -> Node:
    if not variables:
        return Leaf(data.reset_index(drop=True))
    var, rest = variables[0], list(variables[1:])
    node = Branch(var)
    for value, sub in data.groupby(var, sort=True, dropna=True, observed=True):
        if isinstance(value, tuple):
            value = value[0]
        node.children[format_value(value)] = split_recursive(sub, rest)
    return node


def iter_leaves(node: Node, path: Tuple[str, ...] = ()) -> Iterator[Tuple[Tuple[str, ...], pd.DataFrame]]:
    if isinstance(node, Leaf):
        yield path, node.rows
        return
    for key, child in node.children.items():
        yield from iter_leaves(child, path + (key,))


def count_leaves(node: Node) -> int:
    return sum(1 for _ in iter_leaves(node))


def index_tree(node: Node, leaf_value: Callable[[Tuple[str, ...], pd.DataFrame], Any], path: Tuple[str, ...] = ()) -> Any:
    """Replace each leaf by leaf_value(path, rows); branches become plain dicts."""
    if isinstance(node, Leaf):
        return leaf_value(path, node.rows)
    return {key: index_tree(child, leaf_value, path + (key,)) for key, child in node.children.items()}


def flatten(node: Node) -> pd.DataFrame:
    frames: List[pd.DataFrame] = [rows for _, rows in iter_leaves(node)]
    if not frames:
        return pd.DataFrame()
    return pd.concat(frames, ignore_index=True)

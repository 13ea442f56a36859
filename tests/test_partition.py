"""Tests for the recursive partition tree."""

import numpy as np
import pandas as pd

from layer_export.partition import (
    Branch, Leaf, count_leaves, flatten, index_tree, iter_leaves, split_recursive
)


def _table():
    return pd.DataFrame({
        "year": [2001, 2000, 2000, 2001, 2000],
        "country": ["b", "a", "b", "b", np.nan],
        "y": [1, 2, 3, 4, 5],
    })


def test_no_variables_is_one_leaf():
    node = split_recursive(_table(), [])
    assert isinstance(node, Leaf)
    assert len(node.rows) == 5


def test_nested_branches_in_variable_order():
    node = split_recursive(_table(), ["year", "country"])
    assert isinstance(node, Branch)
    assert node.variable == "year"
    assert list(node.children) == ["2000", "2001"]
    inner = node.children["2000"]
    assert isinstance(inner, Branch) and inner.variable == "country"
    assert list(inner.children) == ["a", "b"]
    assert list(node.children["2001"].children) == ["b"]


def test_leaves_partition_rows_without_missing_keys():
    node = split_recursive(_table(), ["year", "country"])
    leaves = dict(iter_leaves(node))
    assert set(leaves) == {("2000", "a"), ("2000", "b"), ("2001", "b")}
    assert leaves[("2001", "b")]["y"].tolist() == [1, 4]
    assert count_leaves(node) == 3
    # the row with a missing country belongs to no cell
    assert sorted(flatten(node)["y"].tolist()) == [1, 2, 3, 4]


def test_index_tree_replaces_leaves():
    node = split_recursive(_table(), ["year"])
    assert index_tree(node, lambda path, rows: len(rows)) == {"2000": 3, "2001": 2}
    assert index_tree(Leaf(_table()), lambda path, rows: 1) == 1


def test_empty_table():
    node = split_recursive(_table().iloc[0:0], ["year"])
    assert isinstance(node, Branch)
    assert node.children == {}
    assert flatten(node).empty

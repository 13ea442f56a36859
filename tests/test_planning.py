"""Tests for chunk planning: size model, eligibility loop, designer overrides."""

import numpy as np
import pandas as pd
import pytest

from layer_export.errors import ConfigurationError
from layer_export.planning import (
    cell_bytes, column_to_drop, estimate_bytes_per_row, plan_chunks, register_chunk_group
)

SUBSET = ["showSelected"]
AES = {"x": "gdp", "y": "life", "label": "country", "showSelected": "year"}


def _register(registry, name, selector_type=None):
    registry.register_reference(name, is_click=False, is_show=True, declared_type=selector_type)


class TestSizeModel:
    def test_bytes_per_row_uses_head_and_tail(self):
        df = pd.DataFrame({"a": ["abc"] * 4})
        # 4 rows from the head and 4 from the tail, each "abc\n"
        assert estimate_bytes_per_row(df, sample_rows=6) == 4.0

    def test_empty_table_has_zero_bytes(self):
        assert estimate_bytes_per_row(pd.DataFrame({"a": []})) == 0.0

    def test_drop_column_leaving_largest_smallest_cell(self):
        keys = pd.DataFrame({
            "a": [str(i % 2) for i in range(200)],
            "b": [str(i // 20) for i in range(200)],
        })
        # 20 cells of 100 bytes; without b: 2 cells of 1000, without a: 10 cells of 200
        assert column_to_drop(keys, ["a", "b"], bytes_per_row=10, min_bytes=500) == "b"
        assert column_to_drop(keys, ["a"], bytes_per_row=10, min_bytes=500) is None
        assert column_to_drop(keys, ["a"], bytes_per_row=10, min_bytes=4096) == "a"

    def test_missing_keys_are_not_cells(self):
        keys = pd.DataFrame({"a": [np.nan] * 100})
        assert cell_bytes(keys, ["a"], bytes_per_row=100).empty
        assert column_to_drop(keys, ["a"], bytes_per_row=100, min_bytes=500) == "a"

    def test_unobserved_combinations_are_not_cells(self):
        keys = pd.DataFrame({
            "a": [str(i % 2) for i in range(200)],
            "b": [str(i % 2) for i in range(200)],
        })
        # only the two diagonal combinations occur, each 1000 bytes
        assert cell_bytes(keys, ["a", "b"], bytes_per_row=10).tolist() == [1000, 1000]
        assert column_to_drop(keys, ["a", "b"], bytes_per_row=10, min_bytes=500) is None

    def test_nothing_to_drop_without_eligible_columns(self):
        assert column_to_drop(pd.DataFrame(), [], bytes_per_row=10) is None


class TestPlanChunks:
    def test_big_chunks_are_kept(self, registry, big_years_layer):
        layer = big_years_layer()
        _register(registry, "year")
        plan = plan_chunks(layer.data, SUBSET, AES, registry)
        assert plan.chunk_cols == ["showSelected"]
        assert plan.nest_cols == []

    def test_small_chunks_are_nested(self, registry, tiny_years_layer):
        layer = tiny_years_layer()
        _register(registry, "year")
        plan = plan_chunks(layer.data, SUBSET, layer.aes, registry)
        assert plan.chunk_cols == []
        assert plan.nest_cols == ["showSelected"]

    def test_empty_registry_nests_everything(self, registry, big_years_layer):
        layer = big_years_layer()
        plan = plan_chunks(layer.data, SUBSET, AES, registry)
        assert plan.chunk_cols == []
        assert plan.nest_cols == SUBSET

    def test_multiple_selectors_never_chunk(self, registry, big_years_layer):
        layer = big_years_layer()
        _register(registry, "year", "multiple")
        plan = plan_chunks(layer.data, SUBSET, AES, registry)
        assert plan.chunk_cols == []

    def test_chunk_estimates_clear_the_floor(self, registry, big_years_layer):
        layer = big_years_layer()
        _register(registry, "year")
        plan = plan_chunks(layer.data, SUBSET, AES, registry)
        bytes_per_row = estimate_bytes_per_row(layer.data)
        sizes = layer.data.groupby(plan.chunk_cols).size() * bytes_per_row
        assert (sizes >= 4096).all()


class TestDesignerChunkVars:
    def test_override(self, registry, tiny_years_layer):
        layer = tiny_years_layer()
        _register(registry, "year")
        plan = plan_chunks(layer.data, SUBSET, layer.aes, registry, params={"chunk_vars": ["year"]})
        assert plan.chunk_cols == ["showSelected"]

    def test_empty_override_means_one_chunk(self, registry, big_years_layer):
        layer = big_years_layer()
        _register(registry, "year")
        plan = plan_chunks(layer.data, SUBSET, AES, registry, params={"chunk_vars": []})
        assert plan.chunk_cols == []
        assert plan.nest_cols == SUBSET

    def test_unknown_variable(self, registry, big_years_layer):
        layer = big_years_layer()
        _register(registry, "year")
        with pytest.raises(ConfigurationError, match="invalid chunk_vars") as exc_info:
            plan_chunks(layer.data, SUBSET, AES, registry, params={"chunk_vars": ["month"]}, layer_name="geom1_point_s")
        assert exc_info.value.variables == ["month"]

    def test_non_string_chunk_vars(self, registry, big_years_layer):
        layer = big_years_layer()
        _register(registry, "year")
        with pytest.raises(ConfigurationError, match="list of strings"):
            plan_chunks(layer.data, SUBSET, AES, registry, params={"chunk_vars": 3})


def test_register_chunk_group(registry):
    assert register_chunk_group(registry, ["year", "country"]) == "year_country"
    assert registry.chunks_of("year") == ["year_country"]
    assert registry.chunks_of("country") == ["year_country"]
    assert register_chunk_group(registry, []) is None

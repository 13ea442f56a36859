"""Parallel export with Ray gives the same plot manifest as the sequential run."""

import pytest

from layer_export import export_plot

ray = pytest.importorskip("ray")


@pytest.fixture(scope="module")
def ray_session():
    ray.init(num_cpus=2, ignore_reinit_error=True, include_dashboard=False)
    yield
    ray.shutdown()


def test_parallel_matches_sequential(ray_session, plot, big_years_layer, tiny_years_layer):
    layers = [big_years_layer(), tiny_years_layer(name="geom2_point_tiny")]
    sequential = export_plot(layers, plot, parallel=False)
    parallel = export_plot(layers, plot, parallel=True)
    assert parallel.manifest.model_dump() == sequential.manifest.model_dump()
    assert list(parallel.layers) == ["geom1_point_scatter", "geom2_point_tiny"]


def test_declared_type_reaches_every_task(ray_session, plot, big_years_layer):
    declares = big_years_layer(name="geom1_point_a")
    declares.selector_types = {"year": "multiple"}
    silent = big_years_layer(name="geom2_point_b")
    result = export_plot([declares, silent], plot, parallel=True)
    assert result.manifest.errors == {}
    assert result.manifest.selectors["year"].type == "multiple"
    assert result.manifest.geoms["geom2_point_b"].chunk_order == []

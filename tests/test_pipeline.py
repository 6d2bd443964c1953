"""End-to-end tests for the sample frame pipeline."""

from pathlib import Path

import geopandas as gpd
import numpy as np
import pandas as pd
import pytest
from pyproj import Transformer
from rasterio.transform import from_origin
from shapely.geometry import box

from sampleframe.errors import EmptyRoiError, InfeasibleDesignError
from sampleframe.pipeline import run_pipeline, sample_from_mask
from sampleframe.sampling.types import SamplingMethod
from sampleframe.scripts.export import read_sample_csv
from sampleframe.scripts.roi import RasterStack, build_roi_mask

CROPLAND_CELLS = [(0, 0), (0, 2), (1, 1), (2, 3), (3, 0), (3, 2), (1, 3)]


@pytest.fixture
def small_stack() -> RasterStack:
    """4x4 stack: seven cropland cells, one of them far from buildings."""
    cropland = np.zeros((4, 4), dtype="float32")
    distance = np.full((4, 4), 0.2, dtype="float32")
    for row, col in CROPLAND_CELLS:
        cropland[row, col] = 1
    distance[1, 3] = 0.9
    return RasterStack(
        bands={"cropland": cropland, "building_distance": distance},
        transform=from_origin(800000.0, 9801000.0, 100.0, 100.0),
        crs="EPSG:32736",
    )


@pytest.fixture
def small_admin() -> gpd.GeoDataFrame:
    """Two wards split along a pixel edge, in WGS84."""
    west = box(799000.0, 9799000.0, 800200.0, 9802000.0)
    east = box(800200.0, 9799000.0, 802000.0, 9802000.0)
    gdf = gpd.GeoDataFrame(
        {
            "NAME_1": ["Kagera", "Kagera"],
            "NAME_2": ["Karagwe", "Karagwe"],
            "NAME_3": ["Ward W", "Ward E"],
        },
        geometry=[west, east],
        crs="EPSG:32736",
    )
    return gdf.to_crs("EPSG:4326")


def test_four_by_four_scenario(small_stack, small_admin, country_config) -> None:
    """Six ROI cells, n=2, seed 6405: two complete records inside the ROI."""
    mask = build_roi_mask(small_stack, cp=1, bd=0.5)
    assert int(mask.sum()) == 6

    result = sample_from_mask(
        mask,
        small_stack.transform,
        small_stack.crs,
        small_admin,
        country_config,
        sample_size=2,
    )
    table = result.table

    assert len(table) == 2
    assert table.notna().all().all()
    assert table["GID"].str.match(r"^[EW]\d+[NS]\d+$").all()

    rows, cols = np.nonzero(mask)
    to_wgs84 = Transformer.from_crs("EPSG:32736", "EPSG:4326", always_xy=True)
    xs = 800000.0 + (cols + 0.5) * 100.0
    ys = 9801000.0 - (rows + 0.5) * 100.0
    lon, lat = to_wgs84.transform(xs, ys)
    assert table["lon"].between(lon.min() - 1e-9, lon.max() + 1e-9).all()
    assert table["lat"].between(lat.min() - 1e-9, lat.max() + 1e-9).all()

    again = sample_from_mask(
        mask,
        small_stack.transform,
        small_stack.crs,
        small_admin,
        country_config,
        sample_size=2,
    )
    pd.testing.assert_frame_equal(table, again.table)


def test_empty_roi_stops_before_sampling(small_stack, small_admin, country_config):
    mask = build_roi_mask(small_stack, cp=2, bd=0.5)
    with pytest.raises(EmptyRoiError):
        sample_from_mask(
            mask, small_stack.transform, small_stack.crs, small_admin, country_config
        )


def test_oversized_request_is_infeasible(small_stack, small_admin, country_config):
    mask = build_roi_mask(small_stack, cp=1, bd=0.5)
    with pytest.raises(InfeasibleDesignError):
        sample_from_mask(
            mask,
            small_stack.transform,
            small_stack.crs,
            small_admin,
            country_config,
            sample_size=7,
        )


def test_run_pipeline_writes_outputs(
    tmp_path: Path, stack_path: Path, admin_path: Path, country_config
) -> None:
    workspace = tmp_path / "work"
    result = run_pipeline(
        country_config, workspace, raster_path=stack_path, admin_path=admin_path
    )

    # N=40, n=round(40 / 16 * 2.0)
    assert result.frame.size == 40
    assert abs(len(result.table) - 5) <= 1
    assert set(result.outputs) == {"roi", "csv", "geojson", "map"}
    for path in result.outputs.values():
        assert path.exists()
        assert path.parent == workspace

    csv = read_sample_csv(result.outputs["csv"], gid_column="GID")
    assert list(csv.columns) == country_config.output_columns
    np.testing.assert_allclose(csv["lon"], result.table["lon"], atol=1e-6, rtol=0)
    np.testing.assert_allclose(csv["lat"], result.table["lat"], atol=1e-6, rtol=0)
    assert csv["Region"].isin(["North", "South"]).all()
    assert result.balance.loc["x", "relative_bias"] == pytest.approx(0, abs=0.5)


def test_run_pipeline_simple_method_without_map(
    tmp_path: Path, stack_path: Path, admin_path: Path, country_config
) -> None:
    result = run_pipeline(
        country_config,
        tmp_path / "work",
        raster_path=stack_path,
        admin_path=admin_path,
        method=SamplingMethod.SIMPLE,
        sample_size=8,
        write_map=False,
    )
    assert len(result.table) == 8
    assert "map" not in result.outputs

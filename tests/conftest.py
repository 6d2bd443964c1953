"""Pytest bootstrap helpers and synthetic geodata shared by all tests."""

from __future__ import annotations

import sys
from pathlib import Path

import geopandas as gpd
import numpy as np
import pytest
import rasterio
from rasterio.transform import from_origin
from shapely.geometry import box


def _append_repo_root() -> None:
    """Ensure repository root is present in import path."""
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_text = str(repo_root)
    if repo_root_text in sys.path:
        return
    sys.path.insert(0, repo_root_text)


_append_repo_root()

from sampleframe.model.config import CountryConfig  # noqa: E402

UTM_CRS = "EPSG:32736"
ORIGIN_X = 800000.0
ORIGIN_Y = 9801000.0
PIXEL = 100.0
SIZE = 10


@pytest.fixture
def grid_transform():
    return from_origin(ORIGIN_X, ORIGIN_Y, PIXEL, PIXEL)


@pytest.fixture
def stack_bands():
    """Cropland and building-distance bands on a 10x10 grid."""
    rows, cols = np.mgrid[0:SIZE, 0:SIZE]
    cropland = np.where((rows + cols) % 3 != 0, 1, 0).astype("float32")
    distance = (rows * 0.1).astype("float32")
    return cropland, distance


@pytest.fixture
def stack_path(tmp_path: Path, grid_transform, stack_bands) -> Path:
    """Two-band GeoTIFF with band descriptions CP and BD."""
    cropland, distance = stack_bands
    path = tmp_path / "inputs" / "stack.tif"
    path.parent.mkdir(parents=True, exist_ok=True)
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=SIZE,
        width=SIZE,
        count=2,
        dtype="float32",
        crs=UTM_CRS,
        transform=grid_transform,
    ) as dst:
        dst.write(cropland, 1)
        dst.write(distance, 2)
        dst.set_band_description(1, "CP")
        dst.set_band_description(2, "BD")
    return path


@pytest.fixture
def admin_gdf() -> gpd.GeoDataFrame:
    """Four quadrants over the synthetic grid, in WGS84.

    Quadrant edges fall on pixel edges so no cell centre touches a boundary.
    """
    half = SIZE * PIXEL / 2
    pad = 1000.0
    xmin, xmax = ORIGIN_X - pad, ORIGIN_X + SIZE * PIXEL + pad
    ymin, ymax = ORIGIN_Y - SIZE * PIXEL - pad, ORIGIN_Y + pad
    xmid, ymid = ORIGIN_X + half, ORIGIN_Y - half
    quadrants = [
        ("North", "West", box(xmin, ymid, xmid, ymax)),
        ("North", "East", box(xmid, ymid, xmax, ymax)),
        ("South", "West", box(xmin, ymin, xmid, ymid)),
        ("South", "East", box(xmid, ymin, xmax, ymid)),
    ]
    gdf = gpd.GeoDataFrame(
        {
            "NAME_1": [q[0] for q in quadrants],
            "NAME_2": [f"{q[0]}-{q[1]}" for q in quadrants],
            "NAME_3": [f"Ward {i + 1}" for i in range(len(quadrants))],
        },
        geometry=[q[2] for q in quadrants],
        crs=UTM_CRS,
    )
    return gdf.to_crs("EPSG:4326")


@pytest.fixture
def admin_path(tmp_path: Path, admin_gdf) -> Path:
    path = tmp_path / "inputs" / "admin.geojson"
    path.parent.mkdir(parents=True, exist_ok=True)
    admin_gdf.to_file(path, driver="GeoJSON")
    return path


@pytest.fixture
def country_config() -> CountryConfig:
    return CountryConfig(
        name="testland",
        band_roles={"cropland": "CP", "building_distance": "BD"},
        cropland_value=1,
        building_distance=0.5,
        scale_factor=2.0,
        area_divisor=16.0,
        seed=6405,
        grid_resolution=1000.0,
        admin_columns={"Region": "NAME_1", "District": "NAME_2", "Ward": "NAME_3"},
        gid_column="GID",
        map_zoom=12,
    )

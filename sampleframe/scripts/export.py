"""Export of sample tables to CSV, GeoJSON and an HTML map."""

import logging
from pathlib import Path
from typing import Union

import geopandas as gpd
import pandas as pd
from ipywidgets.embed import embed_minimal_html

from sampleframe.widget.map import SampleMap

logger = logging.getLogger("sampleframe.scripts.export")

PathLike = Union[str, Path]

# Eight decimals of a degree is about a millimetre on the ground.
DEFAULT_FLOAT_FORMAT = "%.8f"


def export_sample_csv(
    table: pd.DataFrame, path: PathLike, float_format: str = DEFAULT_FLOAT_FORMAT
) -> Path:
    """Write the sample table with its header and without an index column."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    table.to_csv(path, index=False, float_format=float_format)
    logger.info(f"Wrote {len(table)} sample records to {path}")
    return path


def read_sample_csv(path: PathLike, gid_column: str = "gid") -> pd.DataFrame:
    """Read a sample CSV back, keeping grid ids and names as strings."""
    return pd.read_csv(path, dtype={gid_column: str})


def export_sample_geojson(
    table: pd.DataFrame,
    path: PathLike,
    lon_column: str = "lon",
    lat_column: str = "lat",
    crs: str = "EPSG:4326",
) -> Path:
    """Write the sample table as GeoJSON points."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    gdf = gpd.GeoDataFrame(
        table,
        geometry=gpd.points_from_xy(table[lon_column], table[lat_column]),
        crs=crs,
    )
    path.write_text(gdf.to_json())
    logger.info(f"Wrote GeoJSON to {path}")
    return path


def export_sample_map(
    table: pd.DataFrame,
    path: PathLike,
    zoom: int = 8,
    title: str = "Sample sites",
    lon_column: str = "lon",
    lat_column: str = "lat",
    label_column: str = "gid",
) -> Path:
    """Render the sample sites on a clustered marker map and save it as HTML."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    sample_map = SampleMap(zoom=zoom)
    sample_map.add_sample_points(
        table, lon_column=lon_column, lat_column=lat_column, label_column=label_column
    )
    embed_minimal_html(str(path), views=[sample_map], title=title)
    logger.info(f"Wrote map to {path}")
    return path

"""Grid identifiers and administrative names for sampled points."""

import logging
import math
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

import geopandas as gpd
import numpy as np
import pandas as pd
from pyproj import CRS, Transformer

from sampleframe.errors import ConfigError
from sampleframe.model.config import CountryConfig
from sampleframe.scripts.frame import SampleFrame

logger = logging.getLogger("sampleframe.scripts.metadata")

# Assumed when the admin layer carries no CRS
DEFAULT_CRS = "EPSG:4326"


def _grid_index(value: float, resolution: float, positive: str, negative: str) -> str:
    letter = negative if value < 0 else positive
    return f"{letter}{math.ceil(abs(value) / resolution)}"


def grid_id(x: float, y: float, resolution: float) -> str:
    """Grid cell identifier such as ``"E4N7"``.

    Each coordinate is divided by ``resolution`` in absolute value and rounded
    up; the hemisphere letter comes from the sign (zero counts as E / N).
    """
    if resolution <= 0:
        raise ValueError("Grid resolution must be greater than 0")
    return _grid_index(x, resolution, "E", "W") + _grid_index(y, resolution, "N", "S")


def grid_ids(x: Sequence[float], y: Sequence[float], resolution: float) -> List[str]:
    return [grid_id(float(a), float(b), resolution) for a, b in zip(x, y)]


def reproject_points(
    x: np.ndarray, y: np.ndarray, src_crs, dst_crs
) -> Tuple[np.ndarray, np.ndarray]:
    """Transform coordinates from ``src_crs`` to ``dst_crs`` (x/y order)."""
    if src_crs is None:
        logger.warning(
            f"Sample frame has no CRS; assuming coordinates are already in {dst_crs}"
        )
        return np.asarray(x, dtype=float), np.asarray(y, dtype=float)

    src = CRS.from_user_input(src_crs)
    dst = CRS.from_user_input(dst_crs)
    if src == dst:
        return np.asarray(x, dtype=float), np.asarray(y, dtype=float)

    transformer = Transformer.from_crs(src, dst, always_xy=True)
    out_x, out_y = transformer.transform(np.asarray(x), np.asarray(y))
    logger.debug(f"Reprojected {len(out_x)} points: {src.to_string()} -> {dst.to_string()}")
    return np.asarray(out_x, dtype=float), np.asarray(out_y, dtype=float)


def resolve_admin_columns(
    admin_gdf: gpd.GeoDataFrame, admin_columns: Mapping[str, Union[str, int]]
) -> Dict[str, str]:
    """Map output names to admin layer columns.

    Integer references are positions in the attribute table (geometry
    excluded).

    Raises:
        ConfigError: If a referenced column does not exist
    """
    attributes = [c for c in admin_gdf.columns if c != admin_gdf.geometry.name]
    resolved = {}
    errors = []
    for out_name, ref in admin_columns.items():
        if isinstance(ref, int) and not isinstance(ref, bool):
            if 0 <= ref < len(attributes):
                resolved[out_name] = attributes[ref]
            else:
                errors.append(
                    f"Admin column index {ref} for '{out_name}' is out of range "
                    f"({len(attributes)} attribute columns)"
                )
        elif ref in attributes:
            resolved[out_name] = ref
        else:
            errors.append(f"Admin column '{ref}' for '{out_name}' not found")

    if errors:
        errors.append(f"Available columns: {', '.join(map(str, attributes))}")
        raise ConfigError(errors)
    return resolved


def attach_admin_names(
    points: gpd.GeoDataFrame,
    admin_gdf: gpd.GeoDataFrame,
    admin_columns: Mapping[str, Union[str, int]],
) -> pd.DataFrame:
    """Look up the administrative unit containing each point.

    Points touching a shared boundary can match more than one polygon; the
    first match returned by the spatial join is kept and a warning is logged.
    Which polygon wins is left to geopandas. Points outside every polygon get
    null names.

    Returns:
        DataFrame indexed like ``points`` with one column per output name
    """
    columns = resolve_admin_columns(admin_gdf, admin_columns)

    if admin_gdf.crs is None:
        logger.warning(f"Admin layer has no CRS; assuming {DEFAULT_CRS}")
        admin_gdf = admin_gdf.set_crs(DEFAULT_CRS)
    if points.crs != admin_gdf.crs:
        points = points.to_crs(admin_gdf.crs)

    sources = list(dict.fromkeys(columns.values()))
    polygons = admin_gdf[sources + [admin_gdf.geometry.name]]
    joined = gpd.sjoin(
        points[[points.geometry.name]], polygons, how="left", predicate="intersects"
    )

    duplicated = joined.index.duplicated(keep="first")
    if duplicated.any():
        ambiguous = joined.index[duplicated].unique()
        logger.warning(
            f"{len(ambiguous)} points touch more than one administrative unit; "
            "keeping the first match"
        )
        joined = joined[~duplicated]

    names = pd.DataFrame(
        {out: joined[src].to_numpy() for out, src in columns.items()},
        index=joined.index,
    ).reindex(points.index)

    unmatched = int(names.isna().all(axis=1).sum())
    if unmatched:
        logger.warning(f"{unmatched} points fall outside every administrative unit")
    return names


def build_sample_table(
    frame: SampleFrame,
    indices: Sequence[int],
    admin_gdf: gpd.GeoDataFrame,
    config: CountryConfig,
    dst_crs: Optional[str] = None,
) -> pd.DataFrame:
    """Build the sample records: admin names, grid id, lon and lat.

    Coordinates are expressed in the admin layer's CRS unless ``dst_crs`` is
    given.
    """
    sample = frame.subset(indices)
    gids = grid_ids(sample.x, sample.y, config.grid_resolution)

    target_crs = dst_crs or admin_gdf.crs or DEFAULT_CRS
    lon, lat = reproject_points(sample.x, sample.y, frame.crs, target_crs)
    points = gpd.GeoDataFrame(geometry=gpd.points_from_xy(lon, lat), crs=target_crs)

    table = attach_admin_names(points, admin_gdf, config.admin_columns)
    table[config.gid_column] = gids
    table[config.lon_column] = lon
    table[config.lat_column] = lat

    logger.info(f"Sample table holds {len(table)} records")
    return table[config.output_columns].reset_index(drop=True)

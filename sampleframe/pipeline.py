"""End-to-end sample frame pipeline.

Stages run once, in order, each consuming the complete output of the previous
one: acquisition, ROI mask, sample frame, balanced selection, metadata and
export. Every stage works inside an explicit workspace directory.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union

import geopandas as gpd
import numpy as np
import pandas as pd
import requests
from rasterio.crs import CRS
from rasterio.transform import Affine

from sampleframe.model.config import CountryConfig
from sampleframe.sampling.service import SamplingService
from sampleframe.sampling.types import SamplingMethod, SamplingResults
from sampleframe.scripts.acquisition import acquire_inputs
from sampleframe.scripts.balance import balance_summary
from sampleframe.scripts.export import (
    export_sample_csv,
    export_sample_geojson,
    export_sample_map,
)
from sampleframe.scripts.frame import SampleFrame, extract_sample_frame
from sampleframe.scripts.metadata import build_sample_table
from sampleframe.scripts.roi import build_roi_mask, load_raster_stack, write_roi_raster

logger = logging.getLogger("sampleframe.pipeline")

PathLike = Union[str, Path]


@dataclass
class PipelineResult:
    """Outputs of one run."""

    table: pd.DataFrame
    frame: SampleFrame
    sampling: SamplingResults
    balance: pd.DataFrame
    outputs: Dict[str, Path] = field(default_factory=dict)


def sample_from_mask(
    mask: np.ndarray,
    transform: Affine,
    crs: Optional[CRS],
    admin_gdf: gpd.GeoDataFrame,
    config: CountryConfig,
    method: SamplingMethod = SamplingMethod.BALANCED,
    sample_size: Optional[int] = None,
) -> PipelineResult:
    """Run frame extraction, selection and metadata on an in-memory ROI mask.

    Raises:
        EmptyRoiError: If the mask holds no candidate cell
        InfeasibleDesignError: If the sample cannot be drawn
    """
    frame = extract_sample_frame(mask, transform, crs)
    sampling = SamplingService.select_from_config(frame, config, method, sample_size)
    table = build_sample_table(frame, sampling.indices, admin_gdf, config)
    balance = balance_summary(frame, sampling.indices)
    logger.info(
        f"Selected {sampling.sample_size} of {frame.size} cells "
        f"(x bias {balance.loc['x', 'relative_bias']:.3f}, "
        f"y bias {balance.loc['y', 'relative_bias']:.3f})"
    )
    return PipelineResult(table=table, frame=frame, sampling=sampling, balance=balance)


def run_pipeline(
    config: CountryConfig,
    workspace: PathLike,
    *,
    raster_path: Optional[PathLike] = None,
    admin_path: Optional[PathLike] = None,
    method: SamplingMethod = SamplingMethod.BALANCED,
    sample_size: Optional[int] = None,
    write_map: bool = True,
    session: Optional[requests.Session] = None,
) -> PipelineResult:
    """Run every stage for ``config`` inside ``workspace``.

    Args:
        config: Validated country configuration
        workspace: Directory for downloads and outputs
        raster_path: Use this raster stack instead of acquiring one
        admin_path: Use this admin layer instead of acquiring one
        method: Sampling method
        sample_size: Override the size derived from the scale factor
        write_map: Also render the HTML map
        session: Optional requests session for downloads

    Returns:
        PipelineResult with the sample table and output paths
    """
    config.check()
    workspace = Path(workspace)
    workspace.mkdir(parents=True, exist_ok=True)
    logger.info(f"Running {config.name} pipeline in {workspace}")

    if raster_path is None or admin_path is None:
        acquired = acquire_inputs(config, workspace, session=session)
        raster_path = raster_path or acquired.raster_path
        admin_path = admin_path or acquired.admin_path

    stack = load_raster_stack(raster_path, config.band_roles)
    mask = build_roi_mask(stack, config.cropland_value, config.building_distance)
    roi_path = write_roi_raster(mask, stack, workspace / "roi.tif")

    admin_gdf = gpd.read_file(admin_path)
    logger.info(f"Loaded {len(admin_gdf)} administrative units from {Path(admin_path).name}")

    result = sample_from_mask(
        mask, stack.transform, stack.crs, admin_gdf, config, method, sample_size
    )

    stem = f"{config.name}_sample"
    outputs = {
        "roi": roi_path,
        "csv": export_sample_csv(result.table, workspace / f"{stem}.csv"),
        "geojson": export_sample_geojson(
            result.table,
            workspace / f"{stem}.geojson",
            lon_column=config.lon_column,
            lat_column=config.lat_column,
            crs=admin_gdf.crs or "EPSG:4326",
        ),
    }
    if write_map:
        outputs["map"] = export_sample_map(
            result.table,
            workspace / f"{stem}_map.html",
            zoom=config.map_zoom,
            title=f"{config.name} sample sites",
            lon_column=config.lon_column,
            lat_column=config.lat_column,
            label_column=config.gid_column,
        )

    result.outputs = outputs
    logger.info(f"Pipeline finished: {len(result.table)} sample sites")
    return result

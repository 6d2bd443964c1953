"""Processing functions for the sample frame pipeline.

Contains the raster, frame, metadata and export stages.
"""

from .acquisition import acquire_inputs, fetch_archive, unpack_archive
from .balance import balance_summary, nearest_neighbour_distance
from .export import (
    export_sample_csv,
    export_sample_geojson,
    export_sample_map,
    read_sample_csv,
)
from .frame import SampleFrame, extract_sample_frame
from .metadata import (
    attach_admin_names,
    build_sample_table,
    grid_id,
    grid_ids,
    reproject_points,
)
from .roi import (
    RasterStack,
    build_roi_mask,
    load_raster_stack,
    resolve_band_roles,
    write_roi_raster,
)

__all__ = [
    # Acquisition
    "acquire_inputs",
    "fetch_archive",
    "unpack_archive",
    # ROI and frame
    "RasterStack",
    "resolve_band_roles",
    "load_raster_stack",
    "build_roi_mask",
    "write_roi_raster",
    "SampleFrame",
    "extract_sample_frame",
    # Metadata
    "grid_id",
    "grid_ids",
    "reproject_points",
    "attach_admin_names",
    "build_sample_table",
    # Export
    "export_sample_csv",
    "read_sample_csv",
    "export_sample_geojson",
    "export_sample_map",
    # Diagnostics
    "balance_summary",
    "nearest_neighbour_distance",
]

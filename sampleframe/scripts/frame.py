"""Sample frame extraction: ROI cells to a finite population of points."""

import logging
from dataclasses import dataclass
from typing import Optional

import geopandas as gpd
import numpy as np
from rasterio.crs import CRS
from rasterio.transform import Affine, xy

from sampleframe.errors import EmptyRoiError, RoiError

logger = logging.getLogger("sampleframe.scripts.frame")


@dataclass
class SampleFrame:
    """Candidate population: cell centres of the ROI in row-major order."""

    x: np.ndarray
    y: np.ndarray
    rows: np.ndarray
    cols: np.ndarray
    crs: Optional[CRS] = None

    @property
    def size(self) -> int:
        """Population size N."""
        return int(self.x.shape[0])

    def __len__(self) -> int:
        return self.size

    @property
    def coordinates(self) -> np.ndarray:
        """(N, 2) array of x, y."""
        return np.column_stack([self.x, self.y])

    def subset(self, indices) -> "SampleFrame":
        indices = np.asarray(indices, dtype=int)
        return SampleFrame(
            x=self.x[indices],
            y=self.y[indices],
            rows=self.rows[indices],
            cols=self.cols[indices],
            crs=self.crs,
        )

    def to_geodataframe(self) -> gpd.GeoDataFrame:
        return gpd.GeoDataFrame(
            {"row": self.rows, "col": self.cols},
            geometry=gpd.points_from_xy(self.x, self.y),
            crs=self.crs,
        )


def extract_sample_frame(
    mask: np.ndarray, transform: Affine, crs: Optional[CRS] = None
) -> SampleFrame:
    """Convert an ROI mask into cell-centre coordinates.

    Args:
        mask: 2-D boolean ROI grid
        transform: Affine transform of the grid
        crs: CRS of the grid

    Returns:
        SampleFrame with one point per true cell, in row-major order

    Raises:
        RoiError: If the mask is not two-dimensional
        EmptyRoiError: If no cell is true
    """
    mask = np.asarray(mask)
    if mask.ndim != 2:
        raise RoiError(f"ROI mask must be two-dimensional, got shape {mask.shape}")

    rows, cols = np.nonzero(mask.astype(bool))
    if rows.size == 0:
        raise EmptyRoiError()

    xs, ys = xy(transform, rows, cols, offset="center")
    frame = SampleFrame(
        x=np.asarray(xs, dtype=float),
        y=np.asarray(ys, dtype=float),
        rows=rows,
        cols=cols,
        crs=crs,
    )
    logger.info(f"Sample frame holds {frame.size} candidate cells")
    return frame

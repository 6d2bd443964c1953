"""Region-of-interest mask from the prediction raster stack."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

import numpy as np
import rasterio
from rasterio.crs import CRS
from rasterio.io import DatasetReader
from rasterio.transform import Affine

from sampleframe.errors import BandConfigError, RoiError
from sampleframe.model.config import REQUIRED_BAND_ROLES

logger = logging.getLogger("sampleframe.scripts.roi")


@dataclass
class RasterStack:
    """Co-registered bands keyed by semantic role."""

    bands: Dict[str, np.ndarray]
    transform: Affine
    crs: Optional[CRS]
    nodata: Dict[str, Optional[float]] = field(default_factory=dict)

    @property
    def shape(self):
        return next(iter(self.bands.values())).shape

    def check_consistent(self) -> None:
        """Raise RoiError if the bands do not share a single grid."""
        shapes = {role: band.shape for role, band in self.bands.items()}
        if len(set(shapes.values())) > 1:
            raise RoiError(f"Raster bands have inconsistent shapes: {shapes}")
        for role, band in self.bands.items():
            if band.ndim != 2:
                raise RoiError(f"Band '{role}' is not two-dimensional: {band.shape}")


def resolve_band_roles(
    src: DatasetReader, band_roles: Mapping[str, Union[str, int]]
) -> Dict[str, int]:
    """Resolve role -> band reference into role -> 1-based band index.

    Band references are either band descriptions or 1-based indexes.

    Raises:
        BandConfigError: If a role is unknown or missing, or a band is absent
    """
    unknown = sorted(set(band_roles) - set(REQUIRED_BAND_ROLES))
    if unknown:
        raise BandConfigError(f"Unknown band roles: {', '.join(unknown)}")
    missing = [role for role in REQUIRED_BAND_ROLES if role not in band_roles]
    if missing:
        raise BandConfigError(f"Missing band roles: {', '.join(missing)}")

    descriptions = list(src.descriptions or ())
    resolved = {}
    for role, ref in band_roles.items():
        if isinstance(ref, int) and not isinstance(ref, bool):
            if not 1 <= ref <= src.count:
                raise BandConfigError(
                    f"Band {ref} for role '{role}' is out of range (raster has {src.count} bands)"
                )
            resolved[role] = ref
        elif isinstance(ref, str) and ref in descriptions:
            resolved[role] = descriptions.index(ref) + 1
        else:
            raise BandConfigError(
                f"Band '{ref}' for role '{role}' not found; available: {descriptions}"
            )

    logger.debug(f"Resolved band roles: {resolved}")
    return resolved


def load_raster_stack(
    path: Union[str, Path], band_roles: Mapping[str, Union[str, int]]
) -> RasterStack:
    """Read the bands named by ``band_roles`` from a multi-band raster."""
    with rasterio.open(path) as src:
        indexes = resolve_band_roles(src, band_roles)
        bands = {}
        nodata = {}
        for role, index in indexes.items():
            bands[role] = src.read(index)
            nodata[role] = src.nodatavals[index - 1]
        logger.info(
            f"Loaded {len(bands)} bands from {Path(path).name} "
            f"({src.width}x{src.height}, CRS {src.crs})"
        )
        stack = RasterStack(
            bands=bands, transform=src.transform, crs=src.crs, nodata=nodata
        )

    stack.check_consistent()
    return stack


def _valid(band: np.ndarray, nodata: Optional[float]) -> np.ndarray:
    data = band.astype(float, copy=False)
    valid = np.isfinite(data)
    if nodata is not None and not np.isnan(nodata):
        valid &= data != nodata
    return valid


def build_roi_mask(stack: RasterStack, cp: float, bd: float) -> np.ndarray:
    """Boolean ROI: cropland band equals ``cp`` and building distance <= ``bd``.

    Nodata and non-finite cells are never part of the ROI.
    """
    stack.check_consistent()
    try:
        cropland = stack.bands["cropland"]
        distance = stack.bands["building_distance"]
    except KeyError as e:
        raise RoiError(f"Raster stack has no {e} band") from e

    valid = _valid(cropland, stack.nodata.get("cropland")) & _valid(
        distance, stack.nodata.get("building_distance")
    )
    with np.errstate(invalid="ignore"):
        mask = valid & (cropland == cp) & (distance <= bd)

    logger.info(
        f"ROI mask: {int(mask.sum())} of {mask.size} cells (cp={cp}, bd={bd})"
    )
    return mask


def write_roi_raster(mask: np.ndarray, stack: RasterStack, path: Union[str, Path]):
    """Write the ROI mask as a single-band uint8 GeoTIFF on the input grid."""
    if mask.shape != stack.shape:
        raise RoiError(
            f"Mask shape {mask.shape} does not match raster shape {stack.shape}"
        )
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    height, width = mask.shape
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=height,
        width=width,
        count=1,
        dtype="uint8",
        crs=stack.crs,
        transform=stack.transform,
    ) as dst:
        dst.write(mask.astype("uint8"), 1)
    logger.debug(f"ROI raster written to {path}")
    return path

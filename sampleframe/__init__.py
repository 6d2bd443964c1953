"""Spatially balanced field-sampling frames for cropland surveys."""

__version__ = "0.1.0"

"""Exceptions raised by the sample frame pipeline.

Every failure in the pipeline is fatal and surfaces synchronously to the
caller. Spatial-join ambiguity is not an error and is only logged.
"""

from typing import Iterable, Optional


class SampleFrameError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(SampleFrameError, ValueError):
    """Raised when a country configuration is incomplete or inconsistent.

    Attributes:
        problems -- list of validation messages
    """

    def __init__(self, problems: Iterable[str], source: Optional[str] = None):
        self.problems = list(problems)
        self.source = source
        message = "; ".join(self.problems) or "Invalid configuration"
        if source:
            message = f"{source}: {message}"
        super().__init__(message)


class AcquisitionError(SampleFrameError):
    """Raised when an input archive cannot be downloaded or unpacked."""

    def __init__(self, location: str, message: str):
        self.location = location
        super().__init__(f"{location}: {message}")


class BandConfigError(SampleFrameError, ValueError):
    """Raised when the band-role map does not match the raster stack."""


class RoiError(SampleFrameError, ValueError):
    """Raised when the region-of-interest mask cannot be built."""


class EmptyRoiError(RoiError):
    """Raised when the region of interest holds no candidate cells."""

    def __init__(self, message: str = "No candidates in ROI"):
        super().__init__(message)


class InfeasibleDesignError(SampleFrameError, ValueError):
    """Raised when a sampling request cannot be satisfied.

    Attributes:
        population_size -- N of the candidate population
        sample_size -- requested n
    """

    def __init__(
        self,
        message: str,
        population_size: Optional[int] = None,
        sample_size: Optional[int] = None,
    ):
        self.population_size = population_size
        self.sample_size = sample_size
        details = []
        if population_size is not None:
            details.append(f"N={population_size}")
        if sample_size is not None:
            details.append(f"n={sample_size}")
        if details:
            message = f"{message} ({', '.join(details)})"
        super().__init__(message)

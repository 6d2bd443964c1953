"""Inputs, outputs and method names for sample selection.

SamplingInputs carries the frame, n and seed into a strategy; SamplingResults
carries the selected indices back to the pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import numpy as np

from sampleframe.scripts.frame import SampleFrame


class SamplingMethod(Enum):
    """Selection designs known to the registry."""

    BALANCED = "balanced"
    SIMPLE = "simple"

    @classmethod
    def from_string(cls, value: str) -> "SamplingMethod":
        """Parse a CLI or config value such as "balanced" (case-insensitive)."""
        for method in cls:
            if method.value == value.lower():
                return method
        raise ValueError(f"Unknown sampling method: {value}")


@dataclass
class SamplingInputs:
    """Input parameters for sample selection.

    Each strategy uses only the parameters relevant to it.
    """

    frame: SampleFrame
    sample_size: int
    seed: Optional[int] = None
    sampling_method: SamplingMethod = SamplingMethod.BALANCED

    # Balanced-specific
    probabilities: Optional[np.ndarray] = None  # Defaults to n/N for every unit

    @property
    def population_size(self) -> int:
        return self.frame.size

    def make_rng(self) -> np.random.Generator:
        """Fresh generator for this request; never touches global state."""
        return np.random.default_rng(self.seed)


@dataclass
class SamplingResults:
    """Selected units and the design that produced them."""

    sampling_method: SamplingMethod
    indices: np.ndarray
    population_size: int
    target_sample_size: int
    seed: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def sample_size(self) -> int:
        return int(self.indices.shape[0])

    def to_dict(self) -> Dict[str, Any]:
        """Summary without the index array."""
        return {
            "sampling_method": self.sampling_method.value,
            "population_size": self.population_size,
            "target_sample_size": self.target_sample_size,
            "sample_size": self.sample_size,
            "seed": self.seed,
            **self.details,
        }

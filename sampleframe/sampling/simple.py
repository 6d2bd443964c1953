"""Simple random sampling strategy implementation.

Simple random sampling gives every candidate cell an equal probability
of being selected. It ignores location and serves as the baseline for
comparison with balanced sampling.
"""

import logging
from typing import List

import numpy as np

from sampleframe.sampling.base import SamplingStrategy
from sampleframe.sampling.types import SamplingInputs, SamplingMethod, SamplingResults

logger = logging.getLogger("sampleframe.sampling.simple")


class SimpleSamplingStrategy(SamplingStrategy):
    """Strategy for simple random sampling without replacement."""

    @property
    def method(self) -> SamplingMethod:
        return SamplingMethod.SIMPLE

    @property
    def display_name(self) -> str:
        return "Simple Random Sampling"

    @property
    def description(self) -> str:
        return (
            "Randomly draw candidate cells with equal probability. Sites may "
            "cluster; use as a baseline for balanced designs."
        )

    def validate_inputs(self, inputs: SamplingInputs) -> List[str]:
        """Validate inputs for simple random sampling."""
        return self._validate_common_inputs(inputs)

    def select(self, inputs: SamplingInputs) -> SamplingResults:
        """Draw a simple random sample of exactly ``sample_size`` cells."""
        self._raise_for_errors(inputs)

        rng = inputs.make_rng()
        indices = np.sort(
            rng.choice(inputs.population_size, inputs.sample_size, replace=False)
        )
        logger.info(
            f"Simple random sampling selected {indices.size} of {inputs.population_size} units"
        )

        return SamplingResults(
            sampling_method=self.method,
            indices=indices,
            population_size=inputs.population_size,
            target_sample_size=inputs.sample_size,
            seed=inputs.seed,
        )

"""Spatially balanced sampling strategy implementation.

Balanced sampling selects units with the local cube method so that the
sample reproduces the population mean of the unit coordinates and is spread
across the study area instead of clustering.
"""

import logging
from typing import List

import numpy as np

from sampleframe.sampling.base import SamplingStrategy
from sampleframe.sampling.cube import (
    balancing_matrix,
    cube_sample,
    inclusion_probabilities,
)
from sampleframe.sampling.types import SamplingInputs, SamplingMethod, SamplingResults

logger = logging.getLogger("sampleframe.sampling.balanced")


class BalancedSamplingStrategy(SamplingStrategy):
    """Strategy for spatially balanced sampling (local cube method).

    Balanced sampling is ideal when:
    - Field sites should cover the whole ROI evenly
    - Sample means of the coordinates must match the population means
    - The same plan must be reproducible from a seed
    """

    @property
    def method(self) -> SamplingMethod:
        return SamplingMethod.BALANCED

    @property
    def display_name(self) -> str:
        return "Spatially Balanced Sampling"

    @property
    def description(self) -> str:
        return (
            "Select candidate cells with the local cube method, balancing on the "
            "inclusion probability and cell coordinates. Best for field surveys "
            "that need well-spread sites."
        )

    @property
    def is_spatially_balanced(self) -> bool:
        return True

    def validate_inputs(self, inputs: SamplingInputs) -> List[str]:
        """Validate inputs for balanced sampling."""
        errors = self._validate_common_inputs(inputs)

        if inputs.probabilities is not None:
            prob = np.asarray(inputs.probabilities, dtype=float)
            if prob.shape != (inputs.population_size,):
                errors.append(
                    f"Expected {inputs.population_size} inclusion probabilities, got shape {prob.shape}"
                )
            elif not np.all(np.isfinite(prob)):
                errors.append("Inclusion probabilities contain non-finite values")
            elif np.any(prob <= 0) or np.any(prob > 1):
                errors.append("Inclusion probabilities must lie in (0, 1]")

        coords = inputs.frame.coordinates
        if coords.size and not np.all(np.isfinite(coords)):
            errors.append("Candidate coordinates contain non-finite values")

        return errors

    def select(self, inputs: SamplingInputs) -> SamplingResults:
        """Select a spatially balanced sample."""
        self._raise_for_errors(inputs)

        frame = inputs.frame
        if inputs.probabilities is not None:
            prob = np.asarray(inputs.probabilities, dtype=float)
        else:
            prob = inclusion_probabilities(frame.size, inputs.sample_size)

        balance = balancing_matrix(prob, frame.x, frame.y)
        indices = cube_sample(
            prob, balance, spread=frame.coordinates, rng=inputs.make_rng()
        )

        if abs(indices.size - inputs.sample_size) > 1:
            logger.warning(
                f"Balanced sample has {indices.size} units, expected {inputs.sample_size}"
            )

        return SamplingResults(
            sampling_method=self.method,
            indices=indices,
            population_size=frame.size,
            target_sample_size=inputs.sample_size,
            seed=inputs.seed,
            details={"expected_sample_size": float(prob.sum())},
        )

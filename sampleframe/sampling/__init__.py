"""Sampling strategies module.

Each sampling method is implemented as a Strategy class that handles
input validation and sample selection.

Usage:
    from sampleframe.sampling import get_sampling_strategy, SamplingMethod

    strategy = get_sampling_strategy(SamplingMethod.BALANCED)
    if strategy.is_ready(inputs):
        results = strategy.select(inputs)
"""

from sampleframe.sampling.base import SamplingStrategy
from sampleframe.sampling.cube import (
    balancing_matrix,
    cube_sample,
    inclusion_probabilities,
    target_sample_size,
)
from sampleframe.sampling.service import SamplingService, get_sampling_strategy
from sampleframe.sampling.types import (
    SamplingInputs,
    SamplingMethod,
    SamplingResults,
)

__all__ = [
    "SamplingStrategy",
    "SamplingMethod",
    "SamplingInputs",
    "SamplingResults",
    "SamplingService",
    "get_sampling_strategy",
    "balancing_matrix",
    "cube_sample",
    "inclusion_probabilities",
    "target_sample_size",
]

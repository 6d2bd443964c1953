"""Sampling service for orchestrating sample selection.

This module provides the main entry points for the pipeline to interact
with the balanced and simple selection strategies.
"""

import logging
from typing import Dict, Optional, Type

from sampleframe.model.config import CountryConfig
from sampleframe.sampling.balanced import BalancedSamplingStrategy
from sampleframe.sampling.base import SamplingStrategy
from sampleframe.sampling.cube import target_sample_size
from sampleframe.sampling.simple import SimpleSamplingStrategy
from sampleframe.sampling.types import SamplingInputs, SamplingMethod, SamplingResults
from sampleframe.scripts.frame import SampleFrame

logger = logging.getLogger("sampleframe.sampling.service")

# Strategy class per method
_STRATEGY_REGISTRY: Dict[SamplingMethod, Type[SamplingStrategy]] = {
    SamplingMethod.BALANCED: BalancedSamplingStrategy,
    SamplingMethod.SIMPLE: SimpleSamplingStrategy,
}

# Strategies are stateless; one instance per method
_strategy_instances: Dict[SamplingMethod, SamplingStrategy] = {}


def get_sampling_strategy(method: SamplingMethod) -> SamplingStrategy:
    """Return the shared strategy instance for ``method``.

    Raises:
        ValueError: If the method is not supported
    """
    if method not in _STRATEGY_REGISTRY:
        raise ValueError(f"Unsupported sampling method: {method}")

    if method not in _strategy_instances:
        _strategy_instances[method] = _STRATEGY_REGISTRY[method]()

    return _strategy_instances[method]


class SamplingService:
    """High-level service for sample selection.

    Converts a sample frame and a country configuration into strategy inputs.
    """

    @staticmethod
    def create_inputs(
        frame: SampleFrame,
        config: CountryConfig,
        method: SamplingMethod = SamplingMethod.BALANCED,
        sample_size: Optional[int] = None,
    ) -> SamplingInputs:
        """Create SamplingInputs for ``frame`` from ``config``.

        The sample size defaults to round(N / area_divisor * scale_factor).
        """
        if sample_size is None:
            sample_size = target_sample_size(
                frame.size, config.scale_factor, config.area_divisor
            )
            logger.info(
                f"Target sample size {sample_size} from N={frame.size}, "
                f"scale factor {config.scale_factor}, area divisor {config.area_divisor}"
            )

        return SamplingInputs(
            frame=frame,
            sample_size=sample_size,
            seed=config.seed,
            sampling_method=method,
        )

    @staticmethod
    def select(inputs: SamplingInputs) -> SamplingResults:
        """Select a sample using the appropriate strategy."""
        strategy = get_sampling_strategy(inputs.sampling_method)
        logger.debug(f"Selecting with {strategy.display_name}")
        if not strategy.is_spatially_balanced:
            logger.warning(
                f"{strategy.display_name} ignores cell locations; sites may cluster"
            )
        return strategy.select(inputs)

    @staticmethod
    def select_from_config(
        frame: SampleFrame,
        config: CountryConfig,
        method: SamplingMethod = SamplingMethod.BALANCED,
        sample_size: Optional[int] = None,
    ) -> SamplingResults:
        """Combine create_inputs and select into a single call."""
        inputs = SamplingService.create_inputs(frame, config, method, sample_size)
        return SamplingService.select(inputs)

    @staticmethod
    def get_available_methods() -> list:
        """List of (method_value, display_name, description) tuples."""
        methods = []
        for method in SamplingMethod:
            strategy = get_sampling_strategy(method)
            methods.append((method.value, strategy.display_name, strategy.description))
        return methods

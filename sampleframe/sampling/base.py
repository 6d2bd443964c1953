"""Selection strategy interface.

A strategy turns SamplingInputs over a sample frame into selected indices.
"""

import logging
from abc import ABC, abstractmethod
from typing import List

from sampleframe.errors import InfeasibleDesignError
from sampleframe.sampling.types import SamplingInputs, SamplingMethod, SamplingResults

logger = logging.getLogger("sampleframe.sampling")


class SamplingStrategy(ABC):
    """Selects units from a sample frame.

    Each sampling method (balanced, simple) implements this interface.
    """

    @property
    @abstractmethod
    def method(self) -> SamplingMethod:
        """SamplingMethod registered for this strategy."""
        pass

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Name shown in logs and the CLI."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """One-paragraph summary of the design."""
        pass

    @property
    def is_spatially_balanced(self) -> bool:
        """Whether the sample is balanced on the unit coordinates."""
        return False

    @abstractmethod
    def validate_inputs(self, inputs: SamplingInputs) -> List[str]:
        """Collect every problem that would make selection fail.

        Args:
            inputs: Frame, sample size and seed to check

        Returns:
            Messages describing each problem; empty when selection can run
        """
        pass

    @abstractmethod
    def select(self, inputs: SamplingInputs) -> SamplingResults:
        """Select the sample for this method.

        Args:
            inputs: Sampling inputs

        Returns:
            SamplingResults with the selected indices

        Raises:
            InfeasibleDesignError: If the inputs cannot be satisfied
        """
        pass

    def is_ready(self, inputs: SamplingInputs) -> bool:
        """True when validate_inputs finds nothing to report."""
        errors = self.validate_inputs(inputs)
        return not errors

    def _raise_for_errors(self, inputs: SamplingInputs) -> None:
        errors = self.validate_inputs(inputs)
        if errors:
            logger.error(f"{self.display_name}: {'; '.join(errors)}")
            raise InfeasibleDesignError(
                "; ".join(errors), inputs.population_size, inputs.sample_size
            )

    def _validate_common_inputs(self, inputs: SamplingInputs) -> List[str]:
        """Checks on N and n shared by every strategy."""
        errors = []

        if inputs.population_size == 0:
            errors.append("No candidates in ROI")
        if inputs.sample_size < 1:
            errors.append("Sample size must be at least 1")
        elif inputs.sample_size > inputs.population_size:
            errors.append("Sample size must not exceed the population size")

        return errors

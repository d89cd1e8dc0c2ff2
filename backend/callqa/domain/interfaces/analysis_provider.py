"""
Analysis Provider Interface
Abstract base class for LLM-backed call analysis
"""
from abc import ABC, abstractmethod

from callqa.domain.models.analysis import Analysis, AnalysisRequest, ModelInfo


class AnalysisProvider(ABC):
    """Abstract base class for analysis providers"""

    @abstractmethod
    async def initialize(self, config: dict) -> None:
        """Initialize the provider with configuration"""
        pass

    @abstractmethod
    async def analyze(self, request: AnalysisRequest) -> Analysis:
        """
        Score a transcript against the QA rubric

        Args:
            request: Segments, full text and optional call metadata

        Returns:
            Analysis: Validated assessment

        Raises:
            AnalysisSchemaError: Output could not be coerced to the Analysis shape
            AnalysisError: Provider call failed
        """
        pass

    @abstractmethod
    def get_model_info(self) -> ModelInfo:
        """Provider, model and version used for analysis"""
        pass

    async def cleanup(self) -> None:
        """Release resources"""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name"""
        pass

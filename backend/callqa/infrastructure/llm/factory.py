"""
Analysis Provider Factory
"""
from typing import Dict, Type

from callqa.domain.interfaces.analysis_provider import AnalysisProvider
from callqa.infrastructure.llm.groq_analysis import GroqAnalysisProvider
from callqa.infrastructure.llm.mock_analysis import MockAnalysisProvider


class AnalysisFactory:
    """Factory for creating analysis provider instances"""

    _providers: Dict[str, Type[AnalysisProvider]] = {}

    @classmethod
    def create(cls, provider_name: str) -> AnalysisProvider:
        """Create analysis provider instance"""
        if provider_name not in cls._providers:
            available = ", ".join(cls._providers.keys()) if cls._providers else "None"
            raise ValueError(f"Unknown analysis provider: {provider_name}. Available: {available}")

        provider_class = cls._providers[provider_name]
        return provider_class()

    @classmethod
    def register(cls, name: str, provider_class: Type[AnalysisProvider]) -> None:
        """Register a provider"""
        cls._providers[name] = provider_class

    @classmethod
    def list_providers(cls) -> list[str]:
        """List available providers"""
        return list(cls._providers.keys())


AnalysisFactory.register("groq", GroqAnalysisProvider)
AnalysisFactory.register("mock", MockAnalysisProvider)

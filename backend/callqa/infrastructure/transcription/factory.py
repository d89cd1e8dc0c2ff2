"""
Transcription Provider Factory
"""
from typing import Dict, Type

from callqa.domain.interfaces.transcription_provider import TranscriptionProvider
from callqa.infrastructure.transcription.assemblyai import AssemblyAITranscriptionProvider
from callqa.infrastructure.transcription.mock import MockTranscriptionProvider


class TranscriptionFactory:
    """Factory for creating transcription provider instances"""

    _providers: Dict[str, Type[TranscriptionProvider]] = {}

    @classmethod
    def create(cls, provider_name: str) -> TranscriptionProvider:
        """Create transcription provider instance"""
        if provider_name not in cls._providers:
            available = ", ".join(cls._providers.keys()) if cls._providers else "None"
            raise ValueError(f"Unknown transcription provider: {provider_name}. Available: {available}")

        provider_class = cls._providers[provider_name]
        return provider_class()

    @classmethod
    def register(cls, name: str, provider_class: Type[TranscriptionProvider]) -> None:
        """Register a provider"""
        cls._providers[name] = provider_class

    @classmethod
    def list_providers(cls) -> list[str]:
        """List available providers"""
        return list(cls._providers.keys())


TranscriptionFactory.register("assemblyai", AssemblyAITranscriptionProvider)
TranscriptionFactory.register("mock", MockTranscriptionProvider)

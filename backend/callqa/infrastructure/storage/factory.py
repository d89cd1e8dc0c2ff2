"""
Storage Provider Factory
"""
from typing import Dict, Type

from callqa.domain.interfaces.storage_provider import StorageProvider
from callqa.infrastructure.storage.mock_storage import MockStorageProvider
from callqa.infrastructure.storage.supabase_storage import SupabaseStorageProvider


class StorageFactory:
    """Factory for creating storage provider instances"""

    _providers: Dict[str, Type[StorageProvider]] = {}

    @classmethod
    def create(cls, provider_name: str) -> StorageProvider:
        """Create storage provider instance"""
        if provider_name not in cls._providers:
            available = ", ".join(cls._providers.keys()) if cls._providers else "None"
            raise ValueError(f"Unknown storage provider: {provider_name}. Available: {available}")

        provider_class = cls._providers[provider_name]
        return provider_class()

    @classmethod
    def register(cls, name: str, provider_class: Type[StorageProvider]) -> None:
        """Register a provider"""
        cls._providers[name] = provider_class

    @classmethod
    def list_providers(cls) -> list[str]:
        """List available providers"""
        return list(cls._providers.keys())


StorageFactory.register("supabase", SupabaseStorageProvider)
StorageFactory.register("mock", MockStorageProvider)

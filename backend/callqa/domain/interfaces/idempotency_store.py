"""
Idempotency Store Interface
Keyed dedup table for webhook and poll deliveries
"""
from abc import ABC, abstractmethod


class IdempotencyStore(ABC):
    """Atomic check-and-set over processed keys"""

    async def initialize(self) -> None:
        """Connect to the backing store"""
        pass

    @abstractmethod
    async def claim(self, key: str) -> bool:
        """
        Atomically mark a key as processed

        Returns:
            bool: True if this caller claimed the key, False if it was already claimed
        """
        pass

    @abstractmethod
    async def release(self, key: str) -> None:
        """Undo a claim so a later delivery can be processed"""
        pass

    @abstractmethod
    async def is_claimed(self, key: str) -> bool:
        pass

    async def close(self) -> None:
        pass

    @property
    @abstractmethod
    def backend(self) -> str:
        """Backend name reported in health output"""
        pass

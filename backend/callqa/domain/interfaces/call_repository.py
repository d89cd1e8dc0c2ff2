"""
Call Repository Interface
Persistence of Call aggregates (transcript and analysis embedded)
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from callqa.domain.models.call import Call


class CallRepository(ABC):
    """Abstract base class for call persistence"""

    @abstractmethod
    async def create(self, call: Call) -> Call:
        pass

    @abstractmethod
    async def get(self, call_id: str) -> Optional[Call]:
        pass

    @abstractmethod
    async def get_by_job_id(self, job_id: str) -> Optional[Call]:
        """Look up a call by its transcription job id"""
        pass

    @abstractmethod
    async def update(self, call: Call) -> Call:
        """Replace the stored record with the given call"""
        pass

    @abstractmethod
    async def list_for_user(self, user_id: str, limit: int = 50) -> List[Call]:
        """Calls owned by user_id, newest first"""
        pass

    @abstractmethod
    async def delete(self, call_id: str) -> bool:
        """Delete a call and its embedded data. Returns False if absent."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        pass

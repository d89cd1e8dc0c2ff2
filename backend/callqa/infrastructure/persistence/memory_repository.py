"""
In-Memory Call Repository
Process-local store used when Supabase is not configured and in tests
"""
import asyncio
from typing import Dict, List, Optional

from callqa.domain.exceptions import NotFoundError
from callqa.domain.interfaces.call_repository import CallRepository
from callqa.domain.models.call import Call


class InMemoryCallRepository(CallRepository):
    """Stores deep copies so callers never share state with the store"""

    def __init__(self):
        self._calls: Dict[str, Call] = {}
        self._lock = asyncio.Lock()

    async def create(self, call: Call) -> Call:
        async with self._lock:
            self._calls[call.id] = call.model_copy(deep=True)
        return call

    async def get(self, call_id: str) -> Optional[Call]:
        stored = self._calls.get(call_id)
        return stored.model_copy(deep=True) if stored else None

    async def get_by_job_id(self, job_id: str) -> Optional[Call]:
        for stored in self._calls.values():
            if stored.transcription_job_id == job_id:
                return stored.model_copy(deep=True)
        return None

    async def update(self, call: Call) -> Call:
        async with self._lock:
            if call.id not in self._calls:
                raise NotFoundError(f"Call {call.id} not found", details={"callId": call.id})
            self._calls[call.id] = call.model_copy(deep=True)
        return call

    async def list_for_user(self, user_id: str, limit: int = 50) -> List[Call]:
        owned = [c for c in self._calls.values() if c.user_id == user_id]
        owned.sort(key=lambda c: c.created_at, reverse=True)
        return [c.model_copy(deep=True) for c in owned[:limit]]

    async def delete(self, call_id: str) -> bool:
        async with self._lock:
            return self._calls.pop(call_id, None) is not None

    @property
    def name(self) -> str:
        return "memory"

    def __len__(self) -> int:
        return len(self._calls)

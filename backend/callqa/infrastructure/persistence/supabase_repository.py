"""
Supabase Call Repository
One row per call in the `calls` table; transcript and analysis are jsonb columns.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi.concurrency import run_in_threadpool
from supabase import Client

from callqa.domain.exceptions import NotFoundError, ProviderError
from callqa.domain.interfaces.call_repository import CallRepository
from callqa.domain.models.call import Call

logger = logging.getLogger(__name__)


def call_to_row(call: Call) -> Dict[str, Any]:
    """Flatten a Call into a table row (snake_case columns, camelCase jsonb)"""
    return {
        "id": call.id,
        "user_id": call.user_id,
        "audio_path": call.audio_path,
        "duration_sec": call.duration_sec,
        "call_type": call.call_type.value if call.call_type else None,
        "status": call.status.value,
        "transcription_job_id": call.transcription_job_id,
        "created_at": call.created_at,
        "updated_at": call.updated_at,
        "transcript": call.transcript.to_wire() if call.transcript else None,
        "analysis": call.analysis.to_wire() if call.analysis else None,
    }


def row_to_call(row: Dict[str, Any]) -> Call:
    data = {key: value for key, value in row.items() if value is not None}
    return Call.model_validate(data)


class SupabaseCallRepository(CallRepository):
    """
    Call persistence on Supabase Postgres

    The supabase client is synchronous, so each query runs in the
    threadpool to keep the event loop free.
    """

    def __init__(self, client: Client, table: str = "calls"):
        self._client = client
        self._table = table

    async def _execute(self, action: str, query) -> Any:
        try:
            return await run_in_threadpool(query.execute)
        except Exception as e:
            logger.error(f"Supabase {action} on {self._table} failed: {e}")
            raise ProviderError(f"Database {action} failed: {str(e)}") from e

    async def create(self, call: Call) -> Call:
        query = self._client.table(self._table).insert(call_to_row(call))
        await self._execute("insert", query)
        return call

    async def get(self, call_id: str) -> Optional[Call]:
        query = self._client.table(self._table).select("*").eq("id", call_id).limit(1)
        response = await self._execute("select", query)
        return row_to_call(response.data[0]) if response.data else None

    async def get_by_job_id(self, job_id: str) -> Optional[Call]:
        query = (
            self._client.table(self._table)
            .select("*")
            .eq("transcription_job_id", job_id)
            .limit(1)
        )
        response = await self._execute("select", query)
        return row_to_call(response.data[0]) if response.data else None

    async def update(self, call: Call) -> Call:
        row = call_to_row(call)
        row.pop("id")
        query = self._client.table(self._table).update(row).eq("id", call.id)
        response = await self._execute("update", query)
        if not response.data:
            raise NotFoundError(f"Call {call.id} not found", details={"callId": call.id})
        return call

    async def list_for_user(self, user_id: str, limit: int = 50) -> List[Call]:
        query = (
            self._client.table(self._table)
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(limit)
        )
        response = await self._execute("select", query)
        return [row_to_call(row) for row in response.data or []]

    async def delete(self, call_id: str) -> bool:
        query = self._client.table(self._table).delete().eq("id", call_id)
        response = await self._execute("delete", query)
        return bool(response.data)

    @property
    def name(self) -> str:
        return "supabase"

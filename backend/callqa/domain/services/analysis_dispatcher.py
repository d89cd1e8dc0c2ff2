"""
Analysis Dispatcher
Supervised background handoff from transcript ingestion to analysis.

Webhook and poll handlers must answer the transcription provider quickly,
so analysis runs as a tracked asyncio task instead of inline. Every task's
outcome is recorded and can be queried or awaited.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from callqa.domain.models.base import now_ms

logger = logging.getLogger(__name__)


AnalysisRunner = Callable[[str], Awaitable[Any]]


class DispatchState(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class DispatchRecord:
    """Observable state of one analysis handoff"""
    call_id: str
    state: DispatchState = DispatchState.QUEUED
    submitted_at: int = field(default_factory=now_ms)
    started_at: Optional[int] = None
    finished_at: Optional[int] = None
    error: Optional[str] = None
    attempts: int = 1
    task: Optional[asyncio.Task] = field(default=None, repr=False)

    @property
    def is_active(self) -> bool:
        return self.state in (DispatchState.QUEUED, DispatchState.RUNNING)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "callId": self.call_id,
            "state": self.state.value,
            "submittedAt": self.submitted_at,
            "startedAt": self.started_at,
            "finishedAt": self.finished_at,
            "error": self.error,
            "attempts": self.attempts,
        }


class AnalysisDispatcher:
    """
    Spawns and supervises analysis tasks, one active task per call.

    A submission for a call whose task is still queued or running is
    coalesced into the existing task. Finished records are kept for
    status queries up to max_finished, oldest evicted first.
    """

    def __init__(self, runner: AnalysisRunner, max_finished: int = 1000):
        self._runner = runner
        self._max_finished = max_finished
        self._records: Dict[str, DispatchRecord] = {}

    def submit(self, call_id: str) -> DispatchRecord:
        """Hand a call off for analysis without awaiting it"""
        existing = self._records.get(call_id)
        if existing and existing.is_active:
            logger.info(f"Analysis for call {call_id} already {existing.state.value}, not resubmitting")
            return existing

        record = DispatchRecord(call_id=call_id)
        if existing:
            record.attempts = existing.attempts + 1
        record.task = asyncio.create_task(self._run(record), name=f"analysis-{call_id}")
        # Re-insert so eviction order follows the latest submission
        self._records.pop(call_id, None)
        self._records[call_id] = record
        logger.info(f"Analysis queued for call {call_id} (attempt {record.attempts})")
        return record

    async def _run(self, record: DispatchRecord) -> None:
        record.state = DispatchState.RUNNING
        record.started_at = now_ms()
        try:
            await self._runner(record.call_id)
        except asyncio.CancelledError:
            record.state = DispatchState.CANCELLED
            record.finished_at = now_ms()
            raise
        except Exception as e:
            record.state = DispatchState.FAILED
            record.error = str(e)
            record.finished_at = now_ms()
            logger.error(f"Background analysis failed for call {record.call_id}: {e}", exc_info=True)
        else:
            record.state = DispatchState.SUCCEEDED
            record.finished_at = now_ms()
            logger.info(f"Background analysis complete for call {record.call_id}")
        self._evict_finished()

    def _evict_finished(self) -> None:
        finished = [call_id for call_id, record in self._records.items() if not record.is_active]
        for call_id in finished[:max(0, len(finished) - self._max_finished)]:
            del self._records[call_id]

    def get(self, call_id: str) -> Optional[DispatchRecord]:
        return self._records.get(call_id)

    async def wait(self, call_id: str, timeout: Optional[float] = None) -> Optional[DispatchRecord]:
        """Wait for a call's current task to finish"""
        record = self._records.get(call_id)
        if record is None or record.task is None:
            return record
        await asyncio.wait({record.task}, timeout=timeout)
        return record

    def active_count(self) -> int:
        return sum(1 for record in self._records.values() if record.is_active)

    async def shutdown(self) -> None:
        """Cancel outstanding tasks"""
        tasks = [r.task for r in self._records.values() if r.task and not r.task.done()]
        if not tasks:
            return
        logger.info(f"Cancelling {len(tasks)} outstanding analysis task(s)")
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        # Tasks cancelled before their first step never reach _run's handler
        for record in self._records.values():
            if record.is_active:
                record.state = DispatchState.CANCELLED
                record.finished_at = now_ms()

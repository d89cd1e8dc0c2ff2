"""
Analysis Endpoints
Manual analysis runs, dispatch status and model info
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import Field

from callqa.api.v1.dependencies import get_orchestrator
from callqa.domain.models.base import CamelModel
from callqa.domain.services.call_orchestrator import CallOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analysis", tags=["analysis"])


class RunAnalysisRequest(CamelModel):
    call_id: str = Field(..., min_length=1)


class RunAnalysisResponse(CamelModel):
    success: bool
    call_id: str
    analysis_id: Optional[str] = None


@router.post("/run")
async def run_analysis(
    body: RunAnalysisRequest,
    orchestrator: CallOrchestrator = Depends(get_orchestrator)
):
    """
    Analyse a transcribed call and wait for the result.

    On failure the call is already marked failed when the error response
    is returned.
    """
    call = await orchestrator.run_analysis(body.call_id)
    return RunAnalysisResponse(
        success=True,
        call_id=call.id,
        analysis_id=f"{call.id}-analysis-{call.analysis.created_at}" if call.analysis else None,
    ).to_wire()


@router.get("/model")
async def get_model_info(orchestrator: CallOrchestrator = Depends(get_orchestrator)):
    return orchestrator.get_model_info().to_wire()


@router.get("/{call_id}/status")
async def get_analysis_status(
    call_id: str,
    orchestrator: CallOrchestrator = Depends(get_orchestrator)
):
    """
    Status of the background analysis task for a call.

    Calls that were analysed only through /analysis/run have no task
    record; their call status is returned alone.
    """
    call = await orchestrator.get_call(call_id)
    record = orchestrator.get_dispatch_record(call_id)
    return {
        "callId": call_id,
        "callStatus": call.status.value,
        "task": record.to_dict() if record else None,
    }

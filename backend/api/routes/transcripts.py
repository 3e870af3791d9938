"""Transcript submission API - POST /api/transcripts."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from jobs import JobStatus

from .. import state as api_state
from ..schemas import SubmitResponse, TranscriptSubmitRequest

router = APIRouter()


@router.post("")
async def submit_transcript(body: TranscriptSubmitRequest):
    """Create a job for the transcript, or return the cached one for identical content.
    202 while processing; 200 when data is already available (cache hit or fast path)."""
    job, cached = await api_state.manager.submit(body.transcript)
    data = job.data_payload()
    if cached:
        message = "Returning cached result for identical transcript"
    elif job.status == JobStatus.COMPLETED:
        message = "Transcript processed"
    elif job.status == JobStatus.FAILED:
        message = job.error
    else:
        message = "Transcript accepted; poll /api/jobs/{jobId} for status"
    response = SubmitResponse(job_id=job.id, status=job.status.value, cached=cached, message=message, data=data)
    return JSONResponse(
        status_code=200 if data is not None else 202,
        content=response.model_dump(by_alias=True, exclude_none=True),
    )

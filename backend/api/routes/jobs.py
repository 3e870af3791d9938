"""Jobs API - list, status polling, task completion."""

from fastapi import APIRouter

from .. import state as api_state
from ..schemas import CompleteTaskResponse

router = APIRouter()


@router.get("")
async def list_jobs():
    """Job summaries. No ordering guarantee across calls."""
    return {"success": True, "jobs": api_state.manager.list_jobs()}


@router.get("/{job_id}")
async def get_job_status(job_id: str):
    """Poll target: data present iff completed, error present iff failed."""
    job = api_state.manager.get_job(job_id)
    return {"success": True, **job.status_payload()}


@router.put("/{job_id}/tasks/{task_id}/complete")
async def complete_task(job_id: str, task_id: str):
    """Complete a ready task; returns the full re-resolved task list."""
    tasks = await api_state.manager.complete_task(job_id, task_id)
    response = CompleteTaskResponse(updated_tasks=[t.to_payload() for t in tasks])
    return response.model_dump(by_alias=True)

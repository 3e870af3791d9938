"""DB API routes - archived job snapshots."""

from fastapi import APIRouter

from db import clear_db, list_job_ids

router = APIRouter()


@router.get("/jobs")
async def archived_jobs():
    """List archived job IDs (newest first)."""
    return {"jobIds": await list_job_ids()}


@router.post("/clear")
async def clear():
    """Clear DB: remove all archived job folders."""
    return await clear_db()

"""API route modules."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from jobs import JobManager
from shared.errors import InsightBoardError, InvalidState, NotFound, ValidationFailure

from . import db, jobs, settings, transcripts
from ..state import init_api_state

ERROR_STATUS_CODES = {
    ValidationFailure: 400,
    NotFound: 404,
    InvalidState: 409,
}


async def _insightboard_error_handler(request: Request, exc: InsightBoardError):
    status_code = next((code for cls, code in ERROR_STATUS_CODES.items() if isinstance(exc, cls)), 500)
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": str(exc), "code": type(exc).__name__},
    )


def register_routes(app: FastAPI, manager: JobManager):
    """Register all API routers and error handlers. Call after app and manager are created."""
    init_api_state(manager)

    app.add_exception_handler(InsightBoardError, _insightboard_error_handler)
    app.include_router(transcripts.router, prefix="/api/transcripts", tags=["transcripts"])
    app.include_router(jobs.router, prefix="/api/jobs", tags=["jobs"])
    app.include_router(settings.router, prefix="/api/settings", tags=["settings"])
    app.include_router(db.router, prefix="/api/db", tags=["db"])

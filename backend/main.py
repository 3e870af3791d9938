"""
InsightBoard Backend - FastAPI + Socket.io entry point.
Transcript -> task dependency graph, served through submit/poll/complete endpoints.
Socket.io pushes job-update events alongside polling.
"""

import os
import sys
from contextlib import asynccontextmanager
from typing import Optional

import socketio
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from api import register_routes
from jobs import JobManager

LOG_LEVEL = os.environ.get("INSIGHTBOARD_LOG_LEVEL", "INFO")


def configure_logging(level: str = LOG_LEVEL) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def create_app(manager: Optional[JobManager] = None, sio: Optional[socketio.AsyncServer] = None) -> FastAPI:
    """Build the FastAPI app. A fresh JobManager is created unless one is given."""
    sio = sio or socketio.AsyncServer(async_mode="asgi", cors_allowed_origins="*")
    if manager is None:
        manager = JobManager(notify=sio.emit)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await manager.aclose()

    app = FastAPI(title="InsightBoard Backend", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.manager = manager
    app.state.sio = sio

    register_routes(app, manager)

    @app.get("/api/health")
    async def health():
        return {"status": "ok", "jobs": len(manager.list_jobs())}

    @sio.event
    async def connect(sid, environ, auth):
        logger.info("Client connected: {}", sid)

    @sio.event
    def disconnect(sid):
        logger.info("Client disconnected: {}", sid)

    return app


app = create_app()
# ASGI app for uvicorn (Socket.io + FastAPI)
asgi_app = socketio.ASGIApp(app.state.sio, app)


def run() -> None:
    """Console entry point: serve asgi_app with uvicorn."""
    configure_logging()
    host = os.environ.get("INSIGHTBOARD_HOST", "127.0.0.1")
    port = int(os.environ.get("INSIGHTBOARD_PORT", "5000"))
    uvicorn.run(asgi_app, host=host, port=port)


if __name__ == "__main__":
    run()

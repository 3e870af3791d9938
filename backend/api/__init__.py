"""
API module - routes and schemas.
Routes are split by domain: transcripts, jobs, settings, db.
"""

from .routes import register_routes

__all__ = ["register_routes"]

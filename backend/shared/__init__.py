"""Shared utilities for extraction, jobs and the API: dependency graph and error taxonomy."""

from .errors import ExtractionFailure, InsightBoardError, InvalidState, NotFound, ValidationFailure
from .graph import TaskGraph

__all__ = [
    "ExtractionFailure",
    "InsightBoardError",
    "InvalidState",
    "NotFound",
    "TaskGraph",
    "ValidationFailure",
]

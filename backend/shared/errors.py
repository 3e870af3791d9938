"""
Error taxonomy.
Cycles and dangling dependencies are data, not exceptions: they surface as task
statuses. Only lifecycle and request-level problems are raised.
"""


class InsightBoardError(Exception):
    """Base class for errors surfaced to API callers."""


class ValidationFailure(InsightBoardError):
    """Malformed submission, rejected before a job is created."""


class ExtractionFailure(InsightBoardError):
    """Transcript could not be turned into a task list. Fails the job."""


class NotFound(InsightBoardError):
    """Unknown job id or task id."""


class InvalidState(InsightBoardError):
    """Operation not allowed in the current status (e.g. completing a blocked task)."""

"""Transcript extraction: LLM or Mock AI -> validated task records."""

from .index import extract_tasks, parse_task_records

__all__ = ["extract_tasks", "parse_task_records"]

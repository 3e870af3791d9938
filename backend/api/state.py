"""
Shared API state - the job manager.
Initialized by main.py after creating app and services.
"""

from typing import Optional

from jobs import JobManager

# Set by main.py
manager: Optional[JobManager] = None


def init_api_state(job_manager: JobManager):
    global manager
    manager = job_manager

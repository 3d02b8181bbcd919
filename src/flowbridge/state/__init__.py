"""
State Management module.

Handles persistence of job and chunk runs.
"""

from flowbridge.state.job_store import JobStore, init_job_store

__all__ = [
    "JobStore",
    "init_job_store",
]

"""
Job Runtime.

Executes batch jobs asynchronously in quota-bounded chunks.
"""

from flowbridge.runtime.job_runner import AsyncJobRunner, BatchJob, chunked

__all__ = [
    "AsyncJobRunner",
    "BatchJob",
    "chunked",
]

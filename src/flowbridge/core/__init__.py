"""
Core Flow Bridge components.

This module contains the data types shared by aggregation and dispatch:
invocation requests, outbound calls, job runs and error types.
"""

from flowbridge.core.call import GroupKey, OutboundCall
from flowbridge.core.errors import DispatchError, ErrorKind, FlowBridgeError, ValidationError
from flowbridge.core.job import ChunkRun, ChunkStatus, JobRun, JobStatus
from flowbridge.core.request import InvocationRequest

__all__ = [
    "GroupKey",
    "OutboundCall",
    "InvocationRequest",
    "ErrorKind",
    "FlowBridgeError",
    "ValidationError",
    "DispatchError",
    "ChunkRun",
    "ChunkStatus",
    "JobRun",
    "JobStatus",
]

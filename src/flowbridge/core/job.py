"""
Job run model.

Tracks one asynchronous dispatch job and the chunks it was split into.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from flowbridge.core.call import OutboundCall


class ChunkStatus(str, Enum):
    """Status of a chunk run."""
    PENDING = "pending"           # Waiting for the runtime to execute it
    RUNNING = "running"           # Calls being sent
    SUCCEEDED = "succeeded"       # Every call returned status < 400
    FAILED = "failed"             # Stopped at the first failing call


class JobStatus(str, Enum):
    """Status of a job run."""
    QUEUED = "queued"                           # Submitted, not started
    RUNNING = "running"                         # Chunks executing
    COMPLETED = "completed"                     # All chunks succeeded
    COMPLETED_WITH_ERRORS = "completed_with_errors"  # At least one chunk failed


@dataclass
class ChunkRun:
    """
    One quota-bounded slice of a job.

    Attributes:
        index: Position of the chunk within the job
        calls: Calls executed by this chunk, in order
        status: Current processing status
        calls_sent: Number of calls issued so far
        error_message: Failure description for failed chunks
        status_code: HTTP status of the failing call (None for transport faults)
    """

    index: int
    calls: List[OutboundCall]
    chunk_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: ChunkStatus = ChunkStatus.PENDING
    calls_sent: int = 0
    error_message: Optional[str] = None
    status_code: Optional[int] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def __post_init__(self):
        if isinstance(self.status, str):
            self.status = ChunkStatus(self.status)

    @property
    def size(self) -> int:
        return len(self.calls)

    def record_sent(self) -> None:
        """Count one issued call."""
        self.calls_sent += 1

    def mark_running(self) -> None:
        self.status = ChunkStatus.RUNNING
        self.started_at = datetime.utcnow()

    def mark_succeeded(self) -> None:
        self.status = ChunkStatus.SUCCEEDED
        self.finished_at = datetime.utcnow()

    def mark_failed(self, error: str, status_code: Optional[int] = None) -> None:
        self.status = ChunkStatus.FAILED
        self.error_message = error
        self.status_code = status_code
        self.finished_at = datetime.utcnow()

    @property
    def is_finished(self) -> bool:
        return self.status in (ChunkStatus.SUCCEEDED, ChunkStatus.FAILED)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "chunk_id": self.chunk_id,
            "index": self.index,
            "status": self.status.value,
            "size": self.size,
            "calls_sent": self.calls_sent,
            "error_message": self.error_message,
            "status_code": self.status_code,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


@dataclass
class JobRun:
    """
    A dispatch job: the full call list plus its chunk runs.

    Attributes:
        job_id: Unique identifier for the job
        quota: Maximum chunk size declared by the job at submission
        chunks: Chunk runs created by the runtime
        status: Current processing status
    """

    job_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    quota: int = 0
    chunks: List[ChunkRun] = field(default_factory=list)
    status: JobStatus = JobStatus.QUEUED
    created_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None

    def __post_init__(self):
        if isinstance(self.status, str):
            self.status = JobStatus(self.status)

    @property
    def call_count(self) -> int:
        """Total number of calls across all chunks."""
        return sum(c.size for c in self.chunks)

    @property
    def calls_sent(self) -> int:
        return sum(c.calls_sent for c in self.chunks)

    @property
    def failed_chunks(self) -> List[ChunkRun]:
        return [c for c in self.chunks if c.status == ChunkStatus.FAILED]

    @property
    def succeeded(self) -> bool:
        return self.status == JobStatus.COMPLETED

    def mark_running(self) -> None:
        self.status = JobStatus.RUNNING

    def mark_finished(self) -> None:
        """Derive the final status from the chunk outcomes."""
        self.status = (
            JobStatus.COMPLETED_WITH_ERRORS if self.failed_chunks
            else JobStatus.COMPLETED
        )
        self.finished_at = datetime.utcnow()

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "job_id": self.job_id,
            "status": self.status.value,
            "quota": self.quota,
            "call_count": self.call_count,
            "calls_sent": self.calls_sent,
            "created_at": self.created_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "chunks": [c.to_dict() for c in self.chunks],
        }

    def __repr__(self) -> str:
        return f"JobRun(id={self.job_id[:8]}..., status={self.status.value}, chunks={len(self.chunks)})"

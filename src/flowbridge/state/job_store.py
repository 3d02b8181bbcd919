"""
Job store for durable dispatch records.

Uses SQLAlchemy for async database operations with SQLite by default.
Each chunk keeps its serialized calls, so failed chunks can be inspected
and resubmitted by an operator.
"""

import json
from datetime import datetime
from typing import List, Optional

import structlog
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from flowbridge.config import BridgeConfig, get_config
from flowbridge.core.call import OutboundCall
from flowbridge.core.job import ChunkRun, ChunkStatus, JobRun, JobStatus

logger = structlog.get_logger(__name__)

Base = declarative_base()


class JobRecord(Base):
    """Database model for job runs."""

    __tablename__ = "jobs"

    job_id = Column(String(50), primary_key=True)
    status = Column(String(30), nullable=False, default="queued")
    quota = Column(Integer, nullable=False)
    call_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    finished_at = Column(DateTime, nullable=True)


class ChunkRecord(Base):
    """Database model for chunk runs."""

    __tablename__ = "chunks"

    chunk_id = Column(String(50), primary_key=True)
    job_id = Column(String(50), ForeignKey("jobs.job_id"), nullable=False, index=True)
    chunk_index = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="pending")

    calls_json = Column(Text, nullable=False)  # JSON encoded list of OutboundCall dicts
    calls_sent = Column(Integer, default=0)

    error_message = Column(Text, nullable=True)
    status_code = Column(Integer, nullable=True)

    started_at = Column(DateTime, nullable=True)
    finished_at = Column(DateTime, nullable=True)


class JobStore:
    """
    Async store for job and chunk runs.

    Provides methods to save and load runs and to collect the calls of
    failed chunks.
    """

    def __init__(self, config: Optional[BridgeConfig] = None, database_url: Optional[str] = None):
        """
        Initialize the store.

        Args:
            config: Bridge configuration
            database_url: Overrides config.database_url
        """
        self.config = config or get_config()
        self.database_url = database_url or self.config.database_url or "sqlite+aiosqlite:///flowbridge.db"
        self._engine = None
        self._session_factory = None

    async def connect(self) -> None:
        """Initialize database connection and create tables."""
        self._engine = create_async_engine(self.database_url, echo=False)

        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("job_store_connected", url=self.database_url.split("///")[0])

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            logger.info("job_store_disconnected")

    def _get_session(self) -> AsyncSession:
        """Get a new database session."""
        if not self._session_factory:
            raise RuntimeError("Job store not connected")
        return self._session_factory()

    # Job operations

    async def save_job(self, job: JobRun) -> None:
        """Save or update a job run and all of its chunks."""
        async with self._get_session() as session:
            existing = await session.get(JobRecord, job.job_id)

            if existing:
                existing.status = job.status.value
                existing.call_count = job.call_count
                existing.finished_at = job.finished_at
            else:
                session.add(JobRecord(
                    job_id=job.job_id,
                    status=job.status.value,
                    quota=job.quota,
                    call_count=job.call_count,
                    created_at=job.created_at,
                    finished_at=job.finished_at,
                ))
                # Chunk rows reference the job row
                await session.flush()

            for chunk in job.chunks:
                await self._merge_chunk(session, job.job_id, chunk)

            await session.commit()

    async def save_chunk(self, job_id: str, chunk: ChunkRun) -> None:
        """Save or update a single chunk run."""
        async with self._get_session() as session:
            await self._merge_chunk(session, job_id, chunk)
            await session.commit()

    async def _merge_chunk(self, session: AsyncSession, job_id: str, chunk: ChunkRun) -> None:
        existing = await session.get(ChunkRecord, chunk.chunk_id)

        if existing:
            existing.status = chunk.status.value
            existing.calls_sent = chunk.calls_sent
            existing.error_message = chunk.error_message
            existing.status_code = chunk.status_code
            existing.started_at = chunk.started_at
            existing.finished_at = chunk.finished_at
        else:
            session.add(ChunkRecord(
                chunk_id=chunk.chunk_id,
                job_id=job_id,
                chunk_index=chunk.index,
                status=chunk.status.value,
                calls_json=json.dumps([c.to_dict() for c in chunk.calls]),
                calls_sent=chunk.calls_sent,
                error_message=chunk.error_message,
                status_code=chunk.status_code,
                started_at=chunk.started_at,
                finished_at=chunk.finished_at,
            ))

    async def load_job(self, job_id: str) -> Optional[JobRun]:
        """Load a job run and its chunks by ID."""
        async with self._get_session() as session:
            record = await session.get(JobRecord, job_id)
            if not record:
                return None

            result = await session.execute(
                select(ChunkRecord)
                .where(ChunkRecord.job_id == job_id)
                .order_by(ChunkRecord.chunk_index)
            )
            chunks = [self._record_to_chunk(r) for r in result.scalars().all()]

            return JobRun(
                job_id=record.job_id,
                quota=record.quota,
                chunks=chunks,
                status=JobStatus(record.status),
                created_at=record.created_at,
                finished_at=record.finished_at,
            )

    async def load_jobs_by_status(self, status: JobStatus) -> List[JobRun]:
        """Load all job runs with a given status."""
        async with self._get_session() as session:
            result = await session.execute(
                select(JobRecord.job_id).where(JobRecord.status == status.value)
            )
            job_ids = list(result.scalars().all())

        jobs = []
        for job_id in job_ids:
            job = await self.load_job(job_id)
            if job:
                jobs.append(job)
        return jobs

    async def load_failed_calls(self, job_id: str) -> List[OutboundCall]:
        """
        Get the calls of every failed chunk of a job, in chunk order.

        Includes the calls that were never sent because the chunk stopped
        early, as well as the failing call itself.
        """
        async with self._get_session() as session:
            result = await session.execute(
                select(ChunkRecord)
                .where(ChunkRecord.job_id == job_id)
                .where(ChunkRecord.status == ChunkStatus.FAILED.value)
                .order_by(ChunkRecord.chunk_index)
            )
            records = result.scalars().all()

        calls: List[OutboundCall] = []
        for record in records:
            sent_ok = max((record.calls_sent or 0) - 1, 0)
            calls.extend(self._decode_calls(record.calls_json)[sent_ok:])
        return calls

    def _decode_calls(self, calls_json: str) -> List[OutboundCall]:
        return [OutboundCall.from_dict(d) for d in json.loads(calls_json)]

    def _record_to_chunk(self, record: ChunkRecord) -> ChunkRun:
        """Convert database record to ChunkRun."""
        return ChunkRun(
            index=record.chunk_index,
            calls=self._decode_calls(record.calls_json),
            chunk_id=record.chunk_id,
            status=ChunkStatus(record.status),
            calls_sent=record.calls_sent or 0,
            error_message=record.error_message,
            status_code=record.status_code,
            started_at=record.started_at,
            finished_at=record.finished_at,
        )


async def init_job_store(config: Optional[BridgeConfig] = None) -> JobStore:
    """
    Initialize and connect the job store.

    Args:
        config: Bridge configuration

    Returns:
        Connected JobStore instance
    """
    store = JobStore(config)
    await store.connect()
    return store

"""
Asynchronous job runtime.

Runs batch jobs away from the caller: the full item list is submitted once,
split into chunks no larger than the job's declared quota, each chunk is
executed as an independent unit of work, and the job is finished once every
chunk has succeeded or failed.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Sequence, Set

import structlog

from flowbridge.config import BridgeConfig, get_config
from flowbridge.core.errors import DispatchError
from flowbridge.core.job import ChunkRun, ChunkStatus, JobRun
from flowbridge.state.job_store import JobStore

logger = structlog.get_logger(__name__)


class BatchJob(ABC):
    """
    Contract between a batch job and the job runtime.

    The runtime calls submit() once with the full item list, execute() once
    per chunk of at most `quota` items, then finish() exactly once.
    """

    @property
    @abstractmethod
    def quota(self) -> int:
        """Maximum number of items the job can process in one execution unit."""
        pass

    @abstractmethod
    def submit(self, items: Sequence[Any]) -> List[Any]:
        """Receive the full item list and return the items to be chunked."""
        pass

    @abstractmethod
    async def execute(self, chunk: Sequence[Any], run: Optional[ChunkRun] = None) -> Any:
        """Process one chunk. Raising marks the chunk as failed."""
        pass

    def finish(self, job: Optional[JobRun] = None) -> None:
        """Called once after every chunk has completed or failed."""


def chunked(items: Sequence[Any], size: int) -> List[List[Any]]:
    """Split items into consecutive lists of at most `size` entries."""
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class AsyncJobRunner:
    """
    Runs BatchJobs on the asyncio event loop.

    Chunks are independent: a failing chunk is recorded and does not stop
    or cancel the others. Nothing is retried. Up to max_concurrent_chunks
    chunks execute at the same time; with concurrency above one the order
    of chunks relative to each other is not defined.

    Usage:
        ```python
        runner = AsyncJobRunner(config)
        task = runner.enqueue(dispatcher, calls)   # fire-and-forget
        report = await runner.run(dispatcher, calls)  # or wait for the report
        ```
    """

    def __init__(
        self,
        config: Optional[BridgeConfig] = None,
        job_store: Optional[JobStore] = None,
        max_concurrent_chunks: Optional[int] = None,
    ):
        """
        Initialize the runner.

        Args:
            config: Bridge configuration
            job_store: Optional store that records job and chunk runs
            max_concurrent_chunks: Overrides config.max_concurrent_chunks
        """
        self.config = config or get_config()
        self.job_store = job_store
        self.max_concurrent_chunks = max_concurrent_chunks or self.config.max_concurrent_chunks

        self._pending: Set[asyncio.Task] = set()

        # Callbacks
        self._on_chunk_failed: Optional[Callable[[JobRun, ChunkRun], None]] = None
        self._on_job_finished: Optional[Callable[[JobRun], None]] = None

    async def run(self, job: BatchJob, items: Sequence[Any]) -> JobRun:
        """
        Run a job to completion.

        Args:
            job: Job to run
            items: Full item list

        Returns:
            The finished JobRun with per-chunk outcomes
        """
        submitted = job.submit(items)
        quota = job.quota

        run = JobRun(quota=quota)
        run.chunks = [
            ChunkRun(index=i, calls=chunk)
            for i, chunk in enumerate(chunked(submitted, quota))
        ]

        logger.info(
            "job_started",
            job_id=run.job_id,
            items=len(submitted),
            chunks=len(run.chunks),
            quota=quota,
        )

        run.mark_running()
        await self._save_job(run)

        semaphore = asyncio.Semaphore(self.max_concurrent_chunks)
        await asyncio.gather(*(
            self._run_chunk(job, run, chunk, semaphore) for chunk in run.chunks
        ))

        run.mark_finished()
        job.finish(run)

        await self._save_job(run)

        if self._on_job_finished:
            try:
                self._on_job_finished(run)
            except Exception:
                logger.exception("job_callback_failed", job_id=run.job_id)

        logger.info(
            "job_finished",
            job_id=run.job_id,
            status=run.status.value,
            failed_chunks=len(run.failed_chunks),
        )
        return run

    async def _save_job(self, run: JobRun) -> None:
        """Record the job run. A store failure is logged, never raised."""
        if not self.job_store:
            return
        try:
            await self.job_store.save_job(run)
        except Exception:
            logger.exception("job_save_failed", job_id=run.job_id, status=run.status.value)

    async def _run_chunk(
        self,
        job: BatchJob,
        run: JobRun,
        chunk: ChunkRun,
        semaphore: asyncio.Semaphore,
    ) -> None:
        """Execute one chunk, recording its outcome instead of raising."""
        async with semaphore:
            chunk.mark_running()
            logger.debug("chunk_started", job_id=run.job_id, chunk=chunk.index, size=chunk.size)

            try:
                await job.execute(chunk.calls, chunk)
                chunk.mark_succeeded()

            except DispatchError as e:
                chunk.mark_failed(e.response_text, e.status_code)
                logger.error(
                    "chunk_failed",
                    job_id=run.job_id,
                    chunk=chunk.index,
                    calls_sent=chunk.calls_sent,
                    status=e.status_code,
                    error=e.response_text,
                    body=e.response_body,
                )

            except Exception as e:
                chunk.mark_failed(str(e))
                logger.error(
                    "chunk_crashed",
                    job_id=run.job_id,
                    chunk=chunk.index,
                    error=str(e),
                )

            # The outcome is already on the chunk; bookkeeping must not undo it
            if self.job_store:
                try:
                    await self.job_store.save_chunk(run.job_id, chunk)
                except Exception:
                    logger.exception("chunk_save_failed", job_id=run.job_id, chunk=chunk.index)

            if chunk.status == ChunkStatus.FAILED and self._on_chunk_failed:
                try:
                    self._on_chunk_failed(run, chunk)
                except Exception:
                    logger.exception("chunk_callback_failed", job_id=run.job_id, chunk=chunk.index)

    def enqueue(self, job: BatchJob, items: Sequence[Any]) -> "asyncio.Task[JobRun]":
        """
        Schedule a job on the running event loop and return immediately.

        The returned task resolves to the JobRun; callers may ignore it.

        Raises:
            RuntimeError: If called outside a running event loop
        """
        task = asyncio.get_running_loop().create_task(self.run(job, items))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    @property
    def pending_jobs(self) -> int:
        return len(self._pending)

    async def drain(self) -> List[JobRun]:
        """Wait for every enqueued job to finish."""
        if not self._pending:
            return []
        return list(await asyncio.gather(*list(self._pending)))

    # Callback registration

    def on_chunk_failed(self, callback: Callable[[JobRun, ChunkRun], None]) -> None:
        """Register callback for failed chunks."""
        self._on_chunk_failed = callback

    def on_job_finished(self, callback: Callable[[JobRun], None]) -> None:
        """Register callback for finished jobs."""
        self._on_job_finished = callback


"""
Flow invoker - entry point for the workflow engine.

Coordinates aggregation and asynchronous dispatch.
"""

import asyncio
from typing import Callable, Iterable, List, Optional

import structlog

from flowbridge.config import BridgeConfig, get_config
from flowbridge.core.call import OutboundCall
from flowbridge.core.job import ChunkRun, JobRun
from flowbridge.core.request import RequestLike
from flowbridge.engine.aggregator import RequestAggregator
from flowbridge.engine.dispatcher import BatchDispatcher
from flowbridge.runtime.job_runner import AsyncJobRunner
from flowbridge.state.job_store import JobStore
from flowbridge.transport.httpx_transport import HttpxTransport
from flowbridge.transport.interface import Transport

logger = structlog.get_logger(__name__)


class FlowInvoker:
    """
    Invokes flows on behalf of the workflow engine.

    invoke() aggregates the requests right away, so validation errors reach
    the caller, then hands the calls to the job runner and returns without
    waiting for any network traffic.

    Usage:
        ```python
        invoker = FlowInvoker(config)
        await invoker.initialize()
        invoker.invoke(requests)        # fire-and-forget
        ...
        await invoker.shutdown()        # waits for pending jobs
        ```
    """

    def __init__(
        self,
        config: Optional[BridgeConfig] = None,
        transport: Optional[Transport] = None,
        job_store: Optional[JobStore] = None,
    ):
        """
        Initialize the invoker.

        Args:
            config: Bridge configuration
            transport: Custom transport (HttpxTransport if not provided)
            job_store: Custom job store (created from config.database_url if set)
        """
        self.config = config or get_config()
        self.transport = transport or HttpxTransport()

        if job_store is None and self.config.database_url:
            job_store = JobStore(self.config)
        self.job_store = job_store

        self.aggregator = RequestAggregator(self.config)
        self.dispatcher = BatchDispatcher(self.transport, quota=self.config.call_quota)
        self.runner = AsyncJobRunner(self.config, job_store=self.job_store)

        self._initialized = False

    async def initialize(self) -> None:
        """
        Open the transport and job store.

        Called automatically by invoke_and_wait().
        """
        if self._initialized:
            return

        await self.transport.connect()
        if self.job_store:
            await self.job_store.connect()

        self._initialized = True
        logger.info("invoker_initialized", quota=self.config.call_quota)

    async def shutdown(self) -> None:
        """Wait for pending jobs, then release resources."""
        await self.runner.drain()

        await self.transport.disconnect()
        if self.job_store:
            await self.job_store.disconnect()

        self._initialized = False
        logger.info("invoker_shutdown")

    def prepare(self, requests: Iterable[RequestLike]) -> List[OutboundCall]:
        """
        Aggregate requests into outbound calls without dispatching them.

        Raises:
            ValidationError: If any request lacks a target identifier
        """
        return self.aggregator.aggregate(requests)

    def invoke(self, requests: Iterable[RequestLike]) -> "asyncio.Task[JobRun]":
        """
        Aggregate requests and schedule their dispatch.

        Must be called from within a running event loop. Returns immediately;
        the returned task resolves to the JobRun and may be ignored.

        Raises:
            ValidationError: If any request lacks a target identifier. Nothing
                is scheduled in that case.
            RuntimeError: If a job store is configured and initialize()
                has not been called
        """
        if self.job_store and not self._initialized:
            raise RuntimeError("Invoker not initialized")

        calls = self.prepare(requests)
        logger.info("invocation_scheduled", call_count=len(calls))
        return self.runner.enqueue(self.dispatcher, calls)

    async def invoke_and_wait(self, requests: Iterable[RequestLike]) -> JobRun:
        """Aggregate requests, dispatch them and wait for the job report."""
        if not self._initialized:
            await self.initialize()

        calls = self.prepare(requests)
        return await self.runner.run(self.dispatcher, calls)

    # Callback registration

    def on_chunk_failed(self, callback: Callable[[JobRun, ChunkRun], None]) -> None:
        """Register callback for failed chunks."""
        self.runner.on_chunk_failed(callback)

    def on_job_finished(self, callback: Callable[[JobRun], None]) -> None:
        """Register callback for finished jobs."""
        self.runner.on_job_finished(callback)

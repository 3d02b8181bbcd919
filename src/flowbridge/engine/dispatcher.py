"""
Async Batch Dispatcher - executes outbound calls inside asynchronous jobs.

The dispatcher implements the job lifecycle expected by the job runtime:
submit once, execute once per quota-bounded chunk, finish once.
"""

from typing import List, Optional, Sequence

import structlog

from flowbridge.core.call import OutboundCall
from flowbridge.core.errors import DispatchError
from flowbridge.core.job import ChunkRun, JobRun
from flowbridge.runtime.job_runner import BatchJob
from flowbridge.transport.interface import Transport

logger = structlog.get_logger(__name__)


class BatchDispatcher(BatchJob):
    """
    Sends outbound calls chunk by chunk.

    Within a chunk calls are sent strictly in order, one at a time. The first
    call that fails stops the chunk: remaining calls are not sent and the
    chunk raises DispatchError. Other chunks are unaffected.

    Usage:
        ```python
        dispatcher = BatchDispatcher(transport, quota=100)
        report = await runner.run(dispatcher, calls)
        ```
    """

    def __init__(self, transport: Transport, quota: int):
        """
        Initialize the dispatcher.

        Args:
            transport: Transport used to send calls
            quota: Maximum number of calls this job can send in one execution unit
        """
        if quota < 1:
            raise ValueError("quota must be at least 1")
        self.transport = transport
        self._quota = quota

    @property
    def quota(self) -> int:
        return self._quota

    def submit(self, calls: Sequence[OutboundCall]) -> List[OutboundCall]:
        """
        Accept the full call list.

        Chunk boundaries are chosen by the runtime, never larger than quota.
        """
        items = list(calls)
        logger.info("dispatch_submitted", call_count=len(items), quota=self.quota)
        return items

    async def execute(
        self,
        chunk: Sequence[OutboundCall],
        run: Optional[ChunkRun] = None,
    ) -> int:
        """
        Send every call in the chunk, in order.

        Args:
            chunk: Calls to send, at most quota of them
            run: Chunk run to record progress on

        Returns:
            Number of calls sent

        Raises:
            DispatchError: On the first call with status >= 400 or a transport fault
            ValueError: If the chunk is larger than the declared quota
        """
        if len(chunk) > self.quota:
            raise ValueError(
                f"Chunk of {len(chunk)} calls exceeds the declared quota of {self.quota}"
            )

        sent = 0
        for call in chunk:
            sent += 1
            if run is not None:
                run.record_sent()

            response = await self.transport.send(call)

            if response.is_failure:
                logger.error(
                    "call_failed",
                    endpoint=call.endpoint,
                    status=response.status_code,
                    position=sent,
                    chunk_size=len(chunk),
                )
                raise DispatchError(
                    str(response),
                    status_code=response.status_code,
                    endpoint=call.endpoint,
                    response_body=response.text,
                )

            logger.debug("call_succeeded", endpoint=call.endpoint, status=response.status_code)

        return sent

    def finish(self, job: Optional[JobRun] = None) -> None:
        """Lifecycle hook called once after all chunks have run."""
        if job is not None:
            logger.info(
                "dispatch_finished",
                job_id=job.job_id,
                status=job.status.value,
                calls_sent=job.calls_sent,
            )

"""
Abstract interface for outbound call transports.

Defines the contract the dispatcher relies on to turn an OutboundCall into a
real request.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from flowbridge.core.call import OutboundCall


@dataclass(frozen=True)
class TransportResponse:
    """Response of one outbound call."""
    status_code: int
    reason: str = ""
    text: str = ""

    @property
    def is_failure(self) -> bool:
        """Any status code >= 400 is a failure."""
        return self.status_code >= 400

    def __str__(self) -> str:
        return f"HttpResponse[Status={self.reason}, StatusCode={self.status_code}]"


class Transport(ABC):
    """
    Abstract interface for sending outbound calls.

    Implementations build a transport-native request from the call's fields
    and never modify the call.
    """

    async def connect(self) -> None:
        """Open any underlying connections."""

    async def disconnect(self) -> None:
        """Release any underlying connections."""

    @abstractmethod
    async def send(self, call: OutboundCall) -> TransportResponse:
        """
        Send one call and wait for its response.

        Args:
            call: Call to send

        Returns:
            The response, whatever its status code

        Raises:
            DispatchError: If no response could be obtained (timeout,
                connection or protocol error)
        """
        pass

    async def __aenter__(self) -> "Transport":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.disconnect()

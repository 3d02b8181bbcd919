"""
httpx transport for the action API.

Sends outbound calls over HTTP(S) with an httpx.AsyncClient.
"""

import gzip
from typing import Optional

import httpx
import structlog

from flowbridge.core.call import OutboundCall
from flowbridge.core.errors import DispatchError
from flowbridge.transport.interface import Transport, TransportResponse

logger = structlog.get_logger(__name__)


class HttpxTransport(Transport):
    """
    HTTP transport backed by httpx.

    A single client is shared by all calls sent through this transport.
    Timeouts are taken from each call, not from the client.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        """
        Initialize the transport.

        Args:
            client: Pre-built client (e.g. with a mock transport). Created on
                connect() if not provided.
        """
        self._client = client
        self._owns_client = client is None

    async def connect(self) -> None:
        """Create the HTTP client."""
        if self._client is not None:
            return
        self._client = httpx.AsyncClient()
        self._owns_client = True
        logger.debug("http_transport_connected")

    async def disconnect(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None
            logger.debug("http_transport_disconnected")

    def build_request(self, call: OutboundCall) -> httpx.Request:
        """
        Build the httpx request for a call.

        Compressed calls carry a gzip body and a Content-Encoding header.
        """
        headers = dict(call.headers)
        content = call.body.encode("utf-8")
        if call.compressed:
            content = gzip.compress(content)
            headers["Content-Encoding"] = "gzip"

        return self._client.build_request(
            call.method,
            call.endpoint,
            content=content,
            headers=headers,
            timeout=httpx.Timeout(call.timeout_ms / 1000),
        )

    async def send(self, call: OutboundCall) -> TransportResponse:
        """Send one call and wait for its response."""
        if not self._client:
            await self.connect()

        request = self.build_request(call)
        try:
            response = await self._client.send(request)
        except httpx.TimeoutException as e:
            logger.warning("http_call_timeout", endpoint=call.endpoint, timeout_ms=call.timeout_ms)
            raise DispatchError(f"Timed out after {call.timeout_ms} ms: {e}", endpoint=call.endpoint)
        except httpx.RequestError as e:
            logger.warning("http_call_error", endpoint=call.endpoint, error=str(e))
            raise DispatchError(f"Request failed: {e}", endpoint=call.endpoint)

        return TransportResponse(
            status_code=response.status_code,
            reason=response.reason_phrase,
            text=response.text,
        )

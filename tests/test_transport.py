"""
Test suite for the httpx transport.

Uses httpx.MockTransport to check the wire format of outbound calls.
"""

import gzip
import json

import httpx
import pytest

from flowbridge.core.call import OutboundCall
from flowbridge.core.errors import DispatchError
from flowbridge.engine.dispatcher import BatchDispatcher
from flowbridge.transport.httpx_transport import HttpxTransport
from flowbridge.transport.interface import TransportResponse

BODY = '{"inputs":[{"targetId":"001"}]}'
ENDPOINT = "https://example.test/services/data/v58.0/actions/custom/flow/Notify_Owner"


def make_transport(handler) -> HttpxTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpxTransport(client=client)


class TestHttpxTransport:
    """Tests for HttpxTransport."""

    @pytest.mark.asyncio
    async def test_compressed_request(self):
        """Test method, headers and gzip body of a compressed call."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[{"isSuccess": True}])

        transport = make_transport(handler)
        response = await transport.send(OutboundCall(endpoint=ENDPOINT, body=BODY))

        assert response.status_code == 200
        assert response.is_failure is False

        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == ENDPOINT
        assert request.headers["Content-Type"] == "application/json; charset=UTF-8"
        assert request.headers["Accept"] == "application/json"
        assert request.headers["Content-Encoding"] == "gzip"
        assert json.loads(gzip.decompress(request.content)) == {"inputs": [{"targetId": "001"}]}

    @pytest.mark.asyncio
    async def test_uncompressed_request(self):
        """Test that an uncompressed call sends the plain body."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        transport = make_transport(handler)
        await transport.send(OutboundCall(endpoint=ENDPOINT, body=BODY, compressed=False))

        assert seen[0].content == BODY.encode("utf-8")
        assert "Content-Encoding" not in seen[0].headers

    @pytest.mark.asyncio
    async def test_per_call_timeout(self):
        """Test that the call's timeout is applied to the request."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        transport = make_transport(handler)
        await transport.send(OutboundCall(endpoint=ENDPOINT, body=BODY, timeout_ms=2_500))

        assert seen[0].extensions["timeout"]["read"] == 2.5

    @pytest.mark.asyncio
    async def test_error_status_returned(self):
        """Test that HTTP errors come back as responses, not exceptions."""
        transport = make_transport(lambda request: httpx.Response(500, text="boom"))

        response = await transport.send(OutboundCall(endpoint=ENDPOINT, body=BODY))

        assert response.is_failure is True
        assert response.text == "boom"
        assert str(response) == "HttpResponse[Status=Internal Server Error, StatusCode=500]"

    @pytest.mark.asyncio
    async def test_timeout_raises_dispatch_error(self):
        """Test that a timeout surfaces as a transport fault."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        transport = make_transport(handler)

        with pytest.raises(DispatchError) as exc_info:
            await transport.send(OutboundCall(endpoint=ENDPOINT, body=BODY))

        assert exc_info.value.status_code is None
        assert exc_info.value.endpoint == ENDPOINT

    @pytest.mark.asyncio
    async def test_connection_error_raises_dispatch_error(self):
        """Test that connection failures surface as transport faults."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        transport = make_transport(handler)

        with pytest.raises(DispatchError, match="refused"):
            await transport.send(OutboundCall(endpoint=ENDPOINT, body=BODY))

    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self):
        """Test that disconnect leaves a caller-owned client open."""
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        transport = HttpxTransport(client=client)

        await transport.disconnect()

        assert client.is_closed is False
        await client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_lifecycle(self):
        """Test that connect/disconnect manage an owned client."""
        async with HttpxTransport() as transport:
            assert transport._client is not None
        assert transport._client is None

    @pytest.mark.asyncio
    async def test_dispatch_over_http(self):
        """Test a chunk sent over the httpx transport stops at the first failure."""
        statuses = iter([200, 503, 200])
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(next(statuses), text='[{"isSuccess":false}]')

        dispatcher = BatchDispatcher(make_transport(handler), quota=3)
        calls = [
            OutboundCall(endpoint=f"{ENDPOINT}_{i}", body=BODY)
            for i in range(3)
        ]

        with pytest.raises(DispatchError) as exc_info:
            await dispatcher.execute(calls)

        assert seen == [f"{ENDPOINT}_0", f"{ENDPOINT}_1"]
        assert exc_info.value.status_code == 503
        assert exc_info.value.response_body == '[{"isSuccess":false}]'


class TestTransportResponse:
    """Tests for the TransportResponse model."""

    @pytest.mark.parametrize("status,failure", [(200, False), (399, False), (400, True), (500, True)])
    def test_is_failure(self, status, failure):
        assert TransportResponse(status_code=status).is_failure is failure

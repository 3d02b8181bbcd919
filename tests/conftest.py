"""
Pytest configuration and shared fixtures for the test suite.
"""

from typing import Dict, List, Optional

import pytest

from flowbridge.cli import setup_logging
from flowbridge.config import BridgeConfig
from flowbridge.core.call import OutboundCall, build_action_payload, encode_payload
from flowbridge.core.errors import DispatchError
from flowbridge.core.request import InvocationRequest
from flowbridge.transport.interface import Transport, TransportResponse


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Send structlog output through stdlib logging to stderr, as the CLI does."""
    setup_logging("WARNING")


@pytest.fixture
def test_config() -> BridgeConfig:
    """Create a test configuration."""
    return BridgeConfig(
        call_quota=3,
        call_timeout_ms=10_000,
        compress_requests=True,
        max_concurrent_chunks=1,
        credential_endpoints={"Sales_API": "https://example.my.salesforce.com"},
        database_url=None,
        log_level="DEBUG",
    )


# ============================================================================
# Test Data Generators
# ============================================================================

def make_call(index: int = 0, action: str = "Notify_Owner") -> OutboundCall:
    """Create a deterministic outbound call."""
    return OutboundCall(
        endpoint=f"https://example.test/services/data/v58.0/actions/custom/flow/{action}_{index}",
        body=encode_payload(build_action_payload([f"001{index:012d}"])),
    )


def make_calls(count: int) -> List[OutboundCall]:
    return [make_call(i) for i in range(count)]


@pytest.fixture
def sample_request() -> InvocationRequest:
    """Create a sample invocation request."""
    return InvocationRequest(
        action_name="Notify_Owner",
        credential_ref="Sales_API",
        api_version=58,
        target_ids=("001", "002"),
    )


@pytest.fixture
def sample_requests() -> List[InvocationRequest]:
    """Create requests spread over two destinations."""
    return [
        InvocationRequest("Notify_Owner", "Sales_API", 58, target_ids=("001", "002")),
        InvocationRequest("Close_Case", "Sales_API", 58, target_id="500"),
        InvocationRequest("Notify_Owner", "Sales_API", 58, target_id="003"),
    ]


# ============================================================================
# Mock Transport
# ============================================================================

class MockTransport(Transport):
    """
    Mock transport for testing.

    Returns scripted status codes keyed by send position (1-based);
    positions without an entry return 200.
    """

    def __init__(
        self,
        statuses: Optional[Dict[int, int]] = None,
        faults: Optional[Dict[int, str]] = None,
    ):
        self.statuses = statuses or {}
        self.faults = faults or {}
        self.sent: List[OutboundCall] = []
        self.connected = False

    async def connect(self) -> None:
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False

    async def send(self, call: OutboundCall) -> TransportResponse:
        self.sent.append(call)
        position = len(self.sent)

        if position in self.faults:
            raise DispatchError(self.faults[position], endpoint=call.endpoint)

        status = self.statuses.get(position, 200)
        reason = "OK" if status < 400 else "Internal Server Error"
        return TransportResponse(status_code=status, reason=reason, text="{}")


@pytest.fixture
def mock_transport() -> MockTransport:
    """Create a mock transport where every call succeeds."""
    return MockTransport()

"""
Transport Layer.

Turns captured outbound calls into real HTTP requests.
"""

from flowbridge.transport.interface import Transport, TransportResponse
from flowbridge.transport.httpx_transport import HttpxTransport

__all__ = [
    "Transport",
    "TransportResponse",
    "HttpxTransport",
]

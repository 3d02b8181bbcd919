"""
Error types raised by Flow Bridge.

Every error carries a `kind` tag so callers can branch on it directly:

    try:
        invoker.invoke(requests)
    except FlowBridgeError as e:
        if e.kind is ErrorKind.VALIDATION:
            ...
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Kinds of Flow Bridge errors."""
    VALIDATION = "validation"     # Request rejected during aggregation
    DISPATCH = "dispatch"         # Outbound call failed during chunk execution


class FlowBridgeError(Exception):
    """Base class for all Flow Bridge errors."""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FlowBridgeError):
    """Raised when an invocation request cannot be aggregated."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, request_index: Optional[int] = None):
        super().__init__(message)
        self.request_index = request_index


class DispatchError(FlowBridgeError):
    """
    Raised when an outbound call fails.

    Covers both HTTP failures (status >= 400) and transport faults such as
    timeouts or connection errors. For transport faults status_code is None.
    response_body holds the raw body the action API returned, if any.
    """

    kind = ErrorKind.DISPATCH

    def __init__(
        self,
        response_text: str,
        status_code: Optional[int] = None,
        endpoint: Optional[str] = None,
        response_body: Optional[str] = None,
    ):
        super().__init__(f"Flow action call failed: {response_text}")
        self.response_text = response_text
        self.status_code = status_code
        self.endpoint = endpoint
        self.response_body = response_body

    @property
    def is_transport_fault(self) -> bool:
        """True when no HTTP response was received."""
        return self.status_code is None

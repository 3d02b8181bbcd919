"""
Flow Bridge

Lets a declarative workflow engine invoke server-side flows through the HTTP
action API. Invocation requests are merged per destination, captured as
serializable outbound calls and dispatched later by an asynchronous job
runtime in quota-bounded chunks.
"""

__version__ = "0.1.0"

from flowbridge.core.call import GroupKey, OutboundCall
from flowbridge.core.errors import DispatchError, ErrorKind, FlowBridgeError, ValidationError
from flowbridge.core.request import InvocationRequest
from flowbridge.engine.aggregator import RequestAggregator, aggregate
from flowbridge.engine.dispatcher import BatchDispatcher
from flowbridge.service import FlowInvoker

__all__ = [
    "GroupKey",
    "OutboundCall",
    "InvocationRequest",
    "ErrorKind",
    "FlowBridgeError",
    "ValidationError",
    "DispatchError",
    "RequestAggregator",
    "aggregate",
    "BatchDispatcher",
    "FlowInvoker",
]

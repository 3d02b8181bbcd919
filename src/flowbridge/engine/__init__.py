"""
Aggregation and Dispatch Engine.

Merges invocation requests into outbound calls and sends them in chunks.
"""

from flowbridge.engine.aggregator import RequestAggregator, aggregate, group_key
from flowbridge.engine.dispatcher import BatchDispatcher

__all__ = [
    "RequestAggregator",
    "aggregate",
    "group_key",
    "BatchDispatcher",
]

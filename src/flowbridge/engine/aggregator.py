"""
Request Aggregator - merges invocation requests into outbound calls.

Requests that share a destination (credential reference, action name and
API version) are merged into a single call whose payload carries one input
per target record.
"""

from typing import Dict, Iterable, List, Optional

import structlog

from flowbridge.config import BridgeConfig, get_config
from flowbridge.core.call import (
    ACTION_PATH,
    DEFAULT_HEADERS,
    DEFAULT_METHOD,
    GroupKey,
    OutboundCall,
    build_action_payload,
    encode_payload,
    format_api_version,
)
from flowbridge.core.errors import ValidationError
from flowbridge.core.request import InvocationRequest, RequestLike, coerce_request

logger = structlog.get_logger(__name__)


def group_key(request: InvocationRequest) -> GroupKey:
    """Derive the grouping key of a request."""
    return GroupKey(
        credential_ref=request.credential_ref,
        action_name=request.action_name,
        api_version=format_api_version(request.api_version),
    )


class RequestAggregator:
    """
    Groups invocation requests into the minimum number of outbound calls.

    Aggregation is all-or-nothing: if any request is invalid a
    ValidationError is raised and no calls are produced.

    Usage:
        ```python
        aggregator = RequestAggregator(config)
        calls = aggregator.aggregate(requests)
        ```
    """

    def __init__(self, config: Optional[BridgeConfig] = None):
        """
        Initialize the aggregator.

        Args:
            config: Bridge configuration. Uses global config if not provided.
        """
        self.config = config or get_config()

    def aggregate(self, requests: Iterable[RequestLike]) -> List[OutboundCall]:
        """
        Merge requests into outbound calls.

        Args:
            requests: InvocationRequests, or mappings in the engine's format

        Returns:
            One OutboundCall per distinct group key, in order of first appearance

        Raises:
            ValidationError: If any request is malformed or lacks a target identifier
        """
        resolved = []
        for index, value in enumerate(requests):
            try:
                resolved.append(coerce_request(value))
            except ValidationError as e:
                raise ValidationError(
                    f"Request at index {index}: {e.message}",
                    request_index=index,
                ) from e

        # Validate everything up front so a bad request never yields partial output
        for index, request in enumerate(resolved):
            request.validate(index)

        grouped: Dict[GroupKey, List[str]] = {}
        for request in resolved:
            grouped.setdefault(group_key(request), []).extend(request.resolve_target_ids())

        calls = [self.build_call(key, target_ids) for key, target_ids in grouped.items()]

        logger.debug(
            "requests_aggregated",
            request_count=len(resolved),
            call_count=len(calls),
        )
        return calls

    def build_call(self, key: GroupKey, target_ids: List[str]) -> OutboundCall:
        """
        Build the outbound call for one group key.

        Args:
            key: Destination of the call
            target_ids: Target identifiers, in dispatch order

        Returns:
            Finalized OutboundCall
        """
        endpoint = self.config.endpoint_base(key.credential_ref) + ACTION_PATH.format(
            version=key.api_version,
            action=key.action_name,
        )
        return OutboundCall(
            endpoint=endpoint,
            body=encode_payload(build_action_payload(target_ids)),
            method=DEFAULT_METHOD,
            headers=DEFAULT_HEADERS,
            timeout_ms=self.config.call_timeout_ms,
            compressed=self.config.compress_requests,
        )


def aggregate(
    requests: Iterable[RequestLike],
    config: Optional[BridgeConfig] = None,
) -> List[OutboundCall]:
    """Merge requests into outbound calls using a default aggregator."""
    return RequestAggregator(config).aggregate(requests)

"""
Outbound call model.

An OutboundCall captures everything needed to send one HTTP request to the
action API. It holds plain values only, so it can cross into an asynchronous
job, sit in a queue, or be stored in the job store.
"""

import json
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, NamedTuple, Sequence, Union

from flowbridge.core.errors import ValidationError

DEFAULT_METHOD = "POST"
DEFAULT_TIMEOUT_MS = 10_000

ACTION_PATH = "/services/data/v{version}/actions/custom/flow/{action}"

_VERSION_PATTERN = re.compile(r"^\d+(\.\d+)?$")

DEFAULT_HEADERS: Mapping[str, str] = MappingProxyType({
    "Content-Type": "application/json; charset=UTF-8",
    "Accept": "application/json",
})


class GroupKey(NamedTuple):
    """Destination of one outbound call. Requests with equal keys are merged."""
    credential_ref: str
    action_name: str
    api_version: str


def format_api_version(api_version: Union[int, float, str]) -> str:
    """
    Normalize an API version to its path form.

    58 -> "58.0", 58.0 -> "58.0", "v59" -> "59.0"
    """
    text = str(api_version).strip()
    if text[:1] in ("v", "V"):
        text = text[1:]
    if isinstance(api_version, bool) or not _VERSION_PATTERN.match(text):
        raise ValidationError(f"Invalid apiVersion: {api_version!r}")
    if "." not in text:
        text += ".0"
    return text


def build_action_payload(target_ids: Sequence[str]) -> Dict[str, List[Dict[str, str]]]:
    """Build the action payload: one input per target id, in order."""
    return {"inputs": [{"targetId": target_id} for target_id in target_ids]}


def encode_payload(payload: Mapping[str, Any]) -> str:
    """JSON-encode a payload in compact form."""
    return json.dumps(payload, separators=(",", ":"))


@dataclass(frozen=True)
class OutboundCall:
    """
    Serializable capture of one outbound action API request.

    Instances are immutable; headers are exposed as a read-only mapping.

    Attributes:
        endpoint: Full request URL
        method: HTTP verb
        body: JSON-encoded request body
        headers: Request headers
        timeout_ms: Per-call timeout in milliseconds
        compressed: Whether the request body is sent gzip-compressed
    """

    endpoint: str
    body: str
    method: str = DEFAULT_METHOD
    headers: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_HEADERS))
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    compressed: bool = True

    def __post_init__(self):
        """Freeze the headers mapping."""
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    def __hash__(self):
        return hash((
            self.endpoint,
            self.body,
            self.method,
            tuple(sorted(self.headers.items())),
            self.timeout_ms,
            self.compressed,
        ))

    def __reduce__(self):
        return (OutboundCall.from_dict, (self.to_dict(),))

    def payload(self) -> Dict[str, Any]:
        """Decode the JSON body."""
        return json.loads(self.body)

    @property
    def input_count(self) -> int:
        """Number of action inputs carried by this call."""
        return len(self.payload().get("inputs", []))

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "endpoint": self.endpoint,
            "method": self.method,
            "body": self.body,
            "headers": dict(self.headers),
            "timeout_ms": self.timeout_ms,
            "compressed": self.compressed,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OutboundCall":
        """Create a call from its to_dict() form."""
        return cls(
            endpoint=data["endpoint"],
            body=data["body"],
            method=data.get("method", DEFAULT_METHOD),
            headers=data.get("headers", DEFAULT_HEADERS),
            timeout_ms=data.get("timeout_ms", DEFAULT_TIMEOUT_MS),
            compressed=data.get("compressed", True),
        )

    def __repr__(self) -> str:
        return f"OutboundCall({self.method} {self.endpoint}, inputs={self.input_count})"

"""
Invocation Request model.

Represents a single request from the workflow engine to run a flow
against one record or a set of records.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Union

from flowbridge.core.call import format_api_version
from flowbridge.core.errors import ValidationError

# Keys accepted by from_dict, engine (camelCase) name first
_FIELD_ALIASES = {
    "action_name": ("actionName", "action_name"),
    "credential_ref": ("credentialRef", "credential_ref"),
    "api_version": ("apiVersion", "api_version"),
    "target_id": ("targetId", "target_id"),
    "target_ids": ("targetIds", "target_ids"),
}


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


@dataclass(frozen=True)
class InvocationRequest:
    """
    A request to invoke a flow for one or more target records.

    Attributes:
        action_name: API name of the flow to invoke
        credential_ref: Opaque reference to the authenticated endpoint to use
        api_version: Version segment of the action API path (e.g. 58 or "58.0")
        target_id: Single record identifier
        target_ids: List of record identifiers, unioned with target_id
    """

    action_name: str
    credential_ref: str
    api_version: Union[int, float, str]
    target_id: Optional[str] = None
    target_ids: Optional[Sequence[str]] = None

    @classmethod
    def from_dict(cls, data: dict) -> "InvocationRequest":
        """
        Create a request from a mapping.

        Accepts the workflow engine's camelCase keys (actionName, targetIds, ...)
        as well as snake_case keys.
        """
        values: dict = {}
        for field_name, aliases in _FIELD_ALIASES.items():
            for alias in aliases:
                if alias in data:
                    values[field_name] = data[alias]
                    break

        missing = [
            name for name in ("action_name", "credential_ref", "api_version")
            if name not in values
        ]
        if missing:
            raise ValidationError(f"Request is missing required fields: {', '.join(missing)}")

        target_ids = values.get("target_ids")
        if target_ids is not None:
            if not isinstance(target_ids, (list, tuple)):
                raise ValidationError(
                    f"targetIds must be a list of record ids, got {type(target_ids).__name__}"
                )
            values["target_ids"] = tuple(target_ids)

        return cls(**values)

    @property
    def has_target(self) -> bool:
        """Check if the request resolves at least one target identifier."""
        return bool(self.target_ids) or not _is_blank(self.target_id)

    def resolve_target_ids(self) -> List[str]:
        """
        Get the target identifiers in dispatch order.

        All entries of target_ids in list order, then target_id if present.
        """
        ids = list(self.target_ids or [])
        if not _is_blank(self.target_id):
            ids.append(self.target_id)
        return ids

    def validate(self, index: Optional[int] = None) -> None:
        """
        Validate the request.

        Raises:
            ValidationError: If no target identifier is present, a target
                identifier is not a string, or a destination field is blank
                or malformed
        """
        where = f" at index {index}" if index is not None else ""

        if self.target_ids is not None and not isinstance(self.target_ids, (list, tuple)):
            raise ValidationError(
                f"Request{where} has targetIds that is not a list",
                request_index=index,
            )
        if any(not isinstance(i, str) for i in self.target_ids or ()):
            raise ValidationError(
                f"Request{where} has a non-string entry in targetIds",
                request_index=index,
            )
        if self.target_id is not None and not isinstance(self.target_id, str):
            raise ValidationError(
                f"Request{where} has a non-string targetId",
                request_index=index,
            )

        if not self.has_target:
            raise ValidationError(
                f"Request{where} for action '{self.action_name}' has no targetId or targetIds",
                request_index=index,
            )
        if _is_blank(self.action_name):
            raise ValidationError(f"Request{where} has a blank actionName", request_index=index)
        if _is_blank(self.credential_ref):
            raise ValidationError(f"Request{where} has a blank credentialRef", request_index=index)
        if self.api_version is None or (
            isinstance(self.api_version, str) and _is_blank(self.api_version)
        ):
            raise ValidationError(f"Request{where} has a blank apiVersion", request_index=index)
        try:
            format_api_version(self.api_version)
        except ValidationError as e:
            raise ValidationError(
                f"Request{where} has an invalid apiVersion: {self.api_version!r}",
                request_index=index,
            ) from e

    def to_dict(self) -> dict:
        """Convert to dictionary using the workflow engine's key names."""
        return {
            "actionName": self.action_name,
            "credentialRef": self.credential_ref,
            "apiVersion": self.api_version,
            "targetId": self.target_id,
            "targetIds": list(self.target_ids) if self.target_ids is not None else None,
        }


RequestLike = Union[InvocationRequest, dict]


def coerce_request(value: Any) -> InvocationRequest:
    """Accept an InvocationRequest or a mapping in the engine's format."""
    if isinstance(value, InvocationRequest):
        return value
    if isinstance(value, dict):
        return InvocationRequest.from_dict(value)
    raise ValidationError(f"Unsupported request type: {type(value).__name__}")

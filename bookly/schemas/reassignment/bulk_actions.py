"""
Bulk action schemas.

A bulk action is a tagged union keyed by ``action``; each variant carries
only the fields its transition needs, so malformed payloads are rejected
before any request is touched.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import Field, TypeAdapter, field_validator

from bookly.schemas.common.base import BaseSchema

__all__ = [
    "AcceptAction",
    "RejectAction",
    "CancelAction",
    "ExpireAction",
    "SetDeadlineAction",
    "SuggestResourceAction",
    "BulkAction",
    "BulkActionRequest",
    "parse_bulk_action",
]


class AcceptAction(BaseSchema):
    """Accept every request on behalf of its user."""

    action: Literal["accept"] = "accept"


class RejectAction(BaseSchema):
    """Reject every request on behalf of its user."""

    action: Literal["reject"] = "reject"


class CancelAction(BaseSchema):
    """Cancel every request."""

    action: Literal["cancel"] = "cancel"
    reason: Optional[str] = Field(
        None,
        max_length=1000,
        description="Appended to the internal notes",
    )


class ExpireAction(BaseSchema):
    """Expire every request."""

    action: Literal["expire"] = "expire"


class SetDeadlineAction(BaseSchema):
    """Move the response deadline of every request."""

    action: Literal["set_deadline"] = "set_deadline"
    deadline: datetime = Field(..., description="New response deadline")


class SuggestResourceAction(BaseSchema):
    """Propose the same replacement resource for every request."""

    action: Literal["suggest_resource"] = "suggest_resource"
    resource_id: str = Field(..., min_length=1, description="Replacement resource")


BulkAction = Annotated[
    Union[
        AcceptAction,
        RejectAction,
        CancelAction,
        ExpireAction,
        SetDeadlineAction,
        SuggestResourceAction,
    ],
    Field(discriminator="action"),
]

_bulk_action_adapter = TypeAdapter(BulkAction)


def parse_bulk_action(data: Any) -> BulkAction:
    """
    Validate a raw payload into its bulk action variant.

    Raises:
        pydantic.ValidationError: On an unknown action or missing fields
    """
    return _bulk_action_adapter.validate_python(data)


class BulkActionRequest(BaseSchema):
    """A bulk action together with the requests it applies to."""

    action: BulkAction
    request_ids: List[str] = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Requests to process",
    )

    @field_validator("request_ids")
    @classmethod
    def deduplicate_ids(cls, v: List[str]) -> List[str]:
        """Drop blank and repeated ids, keeping order."""
        unique = list(dict.fromkeys(item.strip() for item in v if item and item.strip()))
        if not unique:
            raise ValueError("At least one request id is required")
        return unique

"""Shared pydantic base classes.

Learn: The browser client speaks camelCase JSON (accessToken, authorId),
Python speaks snake_case. alias_generator maps between the two;
populate_by_name lets tests and internal callers use either form.
Request bodies forbid unknown fields so clients can't smuggle in
author_id or other server-owned columns.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Response base — camelCase on the wire, readable from ORM objects."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class RequestModel(ApiModel):
    """Request base — rejects fields the endpoint doesn't whitelist."""

    model_config = ConfigDict(extra="forbid")


class MessageResponse(ApiModel):
    message: str

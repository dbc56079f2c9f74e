"""Ownership guard for mutating posts and replies.

Learn: Authorization here is a plain comparison of the resource's
author_id against the acting identity. It is kept separate from
authentication so a failed check surfaces as 403 Forbidden, never
401 (no identity) or 404 (no resource).
"""

import uuid

from postboard.errors import ForbiddenError


def owns(resource_owner_id: uuid.UUID, acting_user_id: uuid.UUID) -> bool:
    """True when the acting identity is the resource's owner."""
    return resource_owner_id == acting_user_id


def ensure_owner(
    resource_owner_id: uuid.UUID,
    acting_user_id: uuid.UUID,
    message: str = "You do not own this resource",
) -> None:
    """Raise ForbiddenError unless acting_user_id owns the resource."""
    if not owns(resource_owner_id, acting_user_id):
        raise ForbiddenError(message)

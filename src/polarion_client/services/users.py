from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from polarion_client.client import PolarionClient
from polarion_client.core.batching import plan_batches
from polarion_client.core.codec import encode_document, encode_resource
from polarion_client.core.errors import (
    OversizedItemError,
    PolarionClientError,
    PolarionValidationError,
)
from polarion_client.core.fields import FieldKind
from polarion_client.core.observability import log_event
from polarion_client.core.resource import Resource
from polarion_client.core.schema import ResourceSchema, attr, is_empty, rel
from polarion_client.services._common import (
    adopt_created,
    decode_one,
    fetch_all,
    require,
    seg,
)

log = logging.getLogger("polarion_client.services.users")

USER_TYPE = "users"

USER_SCHEMA = ResourceSchema(
    resource_type=USER_TYPE,
    attributes=(
        attr("id", read_only=True),
        attr("name"),
        attr("email"),
        attr("initials"),
        attr("description", FieldKind.TEXT),
        attr("disabled", FieldKind.BOOLEAN),
        attr("disabledForUi", FieldKind.BOOLEAN),
        attr("vaultUser", FieldKind.BOOLEAN),
    ),
    relationships=(
        rel("avatar", read_only=True),
        rel("userGroups"),
        rel("globalRoles"),
        rel("projectRoles"),
    ),
)


def _user_url(user_id: str) -> str:
    return f"/users/{seg(user_id)}"


async def get_user(
    client: PolarionClient, user_id: str, *, fields: Optional[str] = None
) -> Resource:
    require(user_id, "id", "user ID is required")
    params = {"fields[users]": fields} if fields else None
    payload = await client.get(_user_url(user_id), params=params, tool="users")
    return decode_one(USER_SCHEMA, payload)


async def list_users(
    client: PolarionClient,
    *,
    query: str = "",
    page_size: Optional[int] = None,
) -> List[Resource]:
    params = {"query": query} if query else None
    return await fetch_all(
        client, "/users", USER_SCHEMA, params=params, page_size=page_size, tool="users"
    )


async def create_users(
    client: PolarionClient, users: Sequence[Resource]
) -> List[Resource]:
    """
    Create users in batches under the configured count and size limits.
    Each user needs an id (the login) and a name; created revisions are
    written back onto the given resources.
    """
    if not users:
        return []

    for index, user in enumerate(users):
        if not user.id:
            raise PolarionValidationError("id", f"user {index}: user ID is required")
        if is_empty(user.attributes.get("name")):
            raise PolarionValidationError("name", f"user {index}: name is required")
        user.type = user.type or USER_TYPE

    config = client.config
    plan = plan_batches(users, config.batch_size, config.max_content_size)
    if plan.oversized:
        raise OversizedItemError(
            [o.index for o in plan.oversized], config.max_content_size
        )

    for number, batch in enumerate(plan.batches):
        try:
            payload = await client.post(
                "/users", body=encode_document(batch.items), tool="users"
            )
        except PolarionClientError as exc:
            raise PolarionClientError(
                f"failed to create user batch {number}: {exc}"
            ) from exc
        adopt_created(batch.items, payload)
        log_event("users.batch_created", log, batch=number, items=len(batch))

    return list(users)


async def update_user(client: PolarionClient, user: Resource) -> None:
    user_id = require(user.id, "id", "user ID is required for update")
    await client.patch(
        _user_url(user_id),
        body={"data": encode_resource(user, exclude_read_only=True)},
        tool="users",
    )


__all__ = [
    "USER_SCHEMA",
    "USER_TYPE",
    "get_user",
    "list_users",
    "create_users",
    "update_user",
]

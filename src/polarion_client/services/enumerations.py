"""
Enumerations: the allowed values of enumerated fields (status, priority, ...).

An enumeration is addressed by (context, name, target type), e.g.
("~", "status", "requirement"). Every call takes ``project_id``; None selects
the global enumerations instead of a project's own.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from polarion_client.client import PolarionClient
from polarion_client.core.codec import encode_resource
from polarion_client.core.errors import PolarionDecodeError
from polarion_client.core.fields import FieldKind
from polarion_client.core.resource import Resource
from polarion_client.core.schema import ResourceSchema, attr
from polarion_client.services._common import decode_one, fetch_all, require, seg

ENUMERATION_TYPE = "enumerations"

ENUMERATION_SCHEMA = ResourceSchema(
    resource_type=ENUMERATION_TYPE,
    attributes=(attr("options", FieldKind.STRUCTURE),),
)


class EnumerationOption(BaseModel):
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    default: bool = False
    hidden: bool = False
    sequence: Optional[int] = None
    icon_url: Optional[str] = Field(None, alias="iconURL")

    model_config = ConfigDict(populate_by_name=True, extra="allow")


def enumeration_options(enumeration: Resource) -> List[EnumerationOption]:
    raw = enumeration.attributes.get("options") or []
    try:
        return [EnumerationOption.model_validate(o) for o in raw]
    except ValidationError as exc:
        raise PolarionDecodeError("options", str(exc)) from exc


def set_enumeration_options(
    enumeration: Resource, options: Sequence[EnumerationOption]
) -> None:
    enumeration.attributes.set(
        "options",
        [o.model_dump(by_alias=True, exclude_none=True) for o in options],
    )


def _base(project_id: Optional[str]) -> str:
    if project_id is None:
        return "/enumerations"
    return f"/projects/{seg(project_id)}/enumerations"


def _enum_url(
    context: str, name: str, target_type: str, project_id: Optional[str]
) -> str:
    require(name, "name", "enumeration name is required")
    return f"{_base(project_id)}/{seg(context)}/{seg(name)}/{seg(target_type)}"


async def get_enumeration(
    client: PolarionClient,
    context: str,
    name: str,
    target_type: str,
    *,
    project_id: Optional[str] = None,
) -> Resource:
    payload = await client.get(
        _enum_url(context, name, target_type, project_id), tool="enumerations"
    )
    return decode_one(ENUMERATION_SCHEMA, payload)


async def list_enumerations(
    client: PolarionClient,
    *,
    project_id: Optional[str] = None,
    page_size: Optional[int] = None,
) -> List[Resource]:
    return await fetch_all(
        client,
        _base(project_id),
        ENUMERATION_SCHEMA,
        page_size=page_size,
        tool="enumerations",
    )


async def update_enumeration(
    client: PolarionClient,
    enumeration: Resource,
    context: str,
    name: str,
    target_type: str,
    *,
    project_id: Optional[str] = None,
) -> None:
    """Replace the enumeration's options with the ones on ``enumeration``."""
    await client.patch(
        _enum_url(context, name, target_type, project_id),
        body={"data": encode_resource(enumeration, exclude_read_only=True)},
        tool="enumerations",
    )


__all__ = [
    "ENUMERATION_SCHEMA",
    "ENUMERATION_TYPE",
    "EnumerationOption",
    "enumeration_options",
    "set_enumeration_options",
    "get_enumeration",
    "list_enumerations",
    "update_enumeration",
]

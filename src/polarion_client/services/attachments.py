from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, model_validator

from polarion_client.client import FilePart, PolarionClient
from polarion_client.core.errors import PolarionClientError, PolarionValidationError
from polarion_client.core.fields import FieldKind
from polarion_client.core.query import FieldSelector
from polarion_client.core.resource import Resource
from polarion_client.core.schema import ResourceSchema, attr, rel
from polarion_client.services._common import (
    decode_many,
    decode_one,
    fetch_all,
    seg,
    short_id,
)

ATTACHMENT_TYPE = "workitem_attachments"

ATTACHMENT_SCHEMA = ResourceSchema(
    resource_type=ATTACHMENT_TYPE,
    attributes=(
        attr("id", read_only=True),
        attr("fileName"),
        attr("title"),
        attr("length", FieldKind.INTEGER, read_only=True),
        attr("updated", FieldKind.DATE_TIME, read_only=True),
    ),
    relationships=(
        rel("author", read_only=True),
        rel("project", read_only=True),
    ),
)


class AttachmentUpload(BaseModel):
    """One file to attach: raw ``content`` or a ``path`` on disk."""

    file_name: str
    content: Optional[bytes] = None
    path: Optional[Path] = None
    content_type: Optional[str] = None
    title: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _one_source(self) -> "AttachmentUpload":
        if not self.file_name:
            raise ValueError("file name is required")
        if (self.content is None) == (self.path is None):
            raise ValueError("provide exactly one of content or path")
        if self.content is not None and not self.content:
            raise ValueError("file content is required")
        return self

    def part(self) -> FilePart:
        source: Union[bytes, Path] = (
            self.content if self.content is not None else self.path  # type: ignore[assignment]
        )
        return (self.file_name, source, self.content_type)


def _attachments_url(project_id: str, work_item_id: str) -> str:
    return (
        f"/projects/{seg(project_id)}/workitems/{seg(short_id(work_item_id))}"
        "/attachments"
    )


def _attachment_url(project_id: str, work_item_id: str, attachment_id: str) -> str:
    return f"{_attachments_url(project_id, work_item_id)}/{seg(short_id(attachment_id))}"


async def list_attachments(
    client: PolarionClient,
    project_id: str,
    work_item_id: str,
    *,
    fields: Optional[FieldSelector] = None,
) -> List[Resource]:
    return await fetch_all(
        client,
        _attachments_url(project_id, work_item_id),
        ATTACHMENT_SCHEMA,
        params=fields.to_params() if fields else None,
        tool="attachments",
    )


async def get_attachment(
    client: PolarionClient, project_id: str, work_item_id: str, attachment_id: str
) -> Resource:
    payload = await client.get(
        _attachment_url(project_id, work_item_id, attachment_id), tool="attachments"
    )
    return decode_one(ATTACHMENT_SCHEMA, payload)


async def upload_attachment(
    client: PolarionClient,
    project_id: str,
    work_item_id: str,
    uploads: Sequence[AttachmentUpload],
) -> List[Resource]:
    """
    Upload one or more files to a work item in a single multipart request.
    The ``resource`` part lists the attachment metadata in file order.
    Not retried, so a timeout never produces duplicate attachments.
    """
    if not uploads:
        raise PolarionValidationError("uploads", "at least one file is required")

    resource = {
        "data": [
            {
                "type": ATTACHMENT_TYPE,
                "attributes": {
                    "fileName": u.file_name,
                    **({"title": u.title} if u.title else {}),
                },
            }
            for u in uploads
        ]
    }
    payload = await client.post_multipart(
        _attachments_url(project_id, work_item_id),
        resource=resource,
        files=[u.part() for u in uploads],
        tool="attachments",
    )
    return decode_many(ATTACHMENT_SCHEMA, payload)


async def delete_attachment(
    client: PolarionClient,
    project_id: str,
    work_item_id: str,
    attachment_ids: Sequence[str],
) -> None:
    for attachment_id in attachment_ids:
        try:
            await client.delete(
                _attachment_url(project_id, work_item_id, attachment_id),
                tool="attachments",
            )
        except PolarionClientError as exc:
            raise PolarionClientError(
                f"failed to delete attachment {attachment_id}: {exc}"
            ) from exc


__all__ = [
    "ATTACHMENT_SCHEMA",
    "ATTACHMENT_TYPE",
    "AttachmentUpload",
    "list_attachments",
    "get_attachment",
    "upload_attachment",
    "delete_attachment",
]

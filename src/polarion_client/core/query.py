from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class FieldSelector:
    """
    Sparse fieldsets for work-item reads.
    Values are "@basic", "@all" or a comma-separated list of field names.
    """

    work_items: str = ""
    linked_work_items: str = ""
    attachments: str = ""

    def with_work_item_fields(self, fields: str) -> "FieldSelector":
        return replace(self, work_items=fields)

    def with_linked_work_item_fields(self, fields: str) -> "FieldSelector":
        return replace(self, linked_work_items=fields)

    def with_attachment_fields(self, fields: str) -> "FieldSelector":
        return replace(self, attachments=fields)

    def to_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.work_items:
            params["fields[workitems]"] = self.work_items
        if self.linked_work_items:
            params["fields[linkedworkitems]"] = self.linked_work_items
        if self.attachments:
            params["fields[workitem_attachments]"] = self.attachments
        return params


FIELDS_BASIC = FieldSelector(work_items="@basic")
FIELDS_ALL = FieldSelector(
    work_items="@all", linked_work_items="@all", attachments="@all"
)
FIELDS_DEFAULT = FieldSelector(
    work_items="@basic",
    linked_work_items="id,role,suspect",
    attachments="@basic",
)


def page_params(page_size: int, page_number: int = 1) -> Dict[str, str]:
    return {
        "page[size]": str(max(1, page_size)),
        "page[number]": str(max(1, page_number)),
    }


@dataclass
class PageResult(Generic[T]):
    items: List[T] = field(default_factory=list)
    has_next: bool = False
    total_count: Optional[int] = None
    page_number: int = 1


__all__ = [
    "FieldSelector",
    "FIELDS_BASIC",
    "FIELDS_ALL",
    "FIELDS_DEFAULT",
    "PageResult",
    "page_params",
]

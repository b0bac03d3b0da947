"""
Resource services for the Polarion REST API.

Each module exposes plain async functions that take a PolarionClient as the
first argument, e.g. ``await work_items.get_work_item(client, "Proj", "WI-1")``.
"""

from . import approvals, attachments, enumerations, projects, users, work_items
from .approvals import ApprovalStatus
from .attachments import AttachmentUpload
from .enumerations import EnumerationOption
from .projects import PROJECT_SCHEMA
from .users import USER_SCHEMA
from .work_items import WORK_ITEM_SCHEMA, new_work_item

__all__ = [
    "approvals",
    "attachments",
    "enumerations",
    "projects",
    "users",
    "work_items",
    "ApprovalStatus",
    "AttachmentUpload",
    "EnumerationOption",
    "PROJECT_SCHEMA",
    "USER_SCHEMA",
    "WORK_ITEM_SCHEMA",
    "new_work_item",
]

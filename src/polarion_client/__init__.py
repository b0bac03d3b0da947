"""polarion_client package exports."""

from .client import FilePart, PolarionClient, create_client_from_env
from .core import (
    CLEAR,
    AttributeSet,
    ClientConfig,
    CustomFieldMapper,
    CustomFields,
    EncodingAmbiguityError,
    FieldKind,
    OversizedItemError,
    PolarionClientError,
    PolarionDecodeError,
    PolarionHTTPError,
    PolarionParseError,
    PolarionTransportError,
    PolarionValidationError,
    Relationship,
    Resource,
    ResourceSchema,
    RetryExhaustedError,
    RetryPolicy,
    diff,
    diff_resources,
)
from .services import (
    approvals,
    attachments,
    enumerations,
    projects,
    users,
    work_items,
)

__all__ = [
    # Client
    "PolarionClient",
    "ClientConfig",
    "RetryPolicy",
    "FilePart",
    "create_client_from_env",
    # Resource model
    "CLEAR",
    "AttributeSet",
    "CustomFields",
    "CustomFieldMapper",
    "FieldKind",
    "Relationship",
    "Resource",
    "ResourceSchema",
    "diff",
    "diff_resources",
    # Exceptions
    "PolarionClientError",
    "PolarionHTTPError",
    "PolarionTransportError",
    "PolarionParseError",
    "PolarionDecodeError",
    "PolarionValidationError",
    "EncodingAmbiguityError",
    "OversizedItemError",
    "RetryExhaustedError",
    # Services
    "approvals",
    "attachments",
    "enumerations",
    "projects",
    "users",
    "work_items",
]

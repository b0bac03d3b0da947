"""Resource synchronization core for polarion-client (transport-agnostic)."""

from .batching import (
    ENVELOPE_OVERHEAD,
    Batch,
    BatchPlan,
    OversizedItem,
    partition,
    plan_batches,
)
from .codec import (
    decode_attributes,
    decode_document,
    decode_relationships,
    decode_resource,
    dumps,
    encode_attributes,
    encode_document,
    encode_relationships,
    encode_resource,
    encoded_size,
)
from .config import ClientConfig, client_config_from_env, load_env_config
from .custom_fields import CustomFieldMapper, CustomFields
from .diff import diff, diff_relationships, diff_resources, equals
from .errors import (
    EncodingAmbiguityError,
    ErrorDetail,
    OversizedItemError,
    PolarionClientError,
    PolarionDecodeError,
    PolarionHTTPError,
    PolarionParseError,
    PolarionTransportError,
    PolarionValidationError,
    RetryExhaustedError,
    detailed_message,
    is_not_found,
    is_retryable,
)
from .fields import (
    FieldKind,
    Hyperlink,
    PolarionDuration,
    Reference,
    Relationship,
    TableField,
    TableRow,
    TextContent,
    format_duration,
    parse_duration,
)
from .query import (
    FIELDS_ALL,
    FIELDS_BASIC,
    FIELDS_DEFAULT,
    FieldSelector,
    PageResult,
)
from .resource import CLEAR, AttributeSet, RelationshipSet, Resource
from .retry import NO_RETRY, RetryPolicy, RetryState, execute
from .schema import FieldSpec, ResourceSchema, attr, rel

__all__ = [
    # Resource model
    "CLEAR",
    "AttributeSet",
    "RelationshipSet",
    "Resource",
    "FieldSpec",
    "ResourceSchema",
    "attr",
    "rel",
    # Value types
    "FieldKind",
    "Hyperlink",
    "PolarionDuration",
    "Reference",
    "Relationship",
    "TableField",
    "TableRow",
    "TextContent",
    "format_duration",
    "parse_duration",
    "CustomFields",
    "CustomFieldMapper",
    # Codec
    "decode_attributes",
    "encode_attributes",
    "decode_relationships",
    "encode_relationships",
    "decode_resource",
    "encode_resource",
    "decode_document",
    "encode_document",
    "dumps",
    "encoded_size",
    # Diff
    "diff",
    "equals",
    "diff_relationships",
    "diff_resources",
    # Batching
    "ENVELOPE_OVERHEAD",
    "Batch",
    "BatchPlan",
    "OversizedItem",
    "partition",
    "plan_batches",
    # Retry
    "NO_RETRY",
    "RetryPolicy",
    "RetryState",
    "execute",
    # Queries
    "FieldSelector",
    "FIELDS_ALL",
    "FIELDS_BASIC",
    "FIELDS_DEFAULT",
    "PageResult",
    # Config
    "ClientConfig",
    "client_config_from_env",
    "load_env_config",
    # Exceptions
    "PolarionClientError",
    "PolarionHTTPError",
    "PolarionTransportError",
    "PolarionParseError",
    "PolarionDecodeError",
    "EncodingAmbiguityError",
    "OversizedItemError",
    "RetryExhaustedError",
    "PolarionValidationError",
    "ErrorDetail",
    "detailed_message",
    "is_not_found",
    "is_retryable",
]

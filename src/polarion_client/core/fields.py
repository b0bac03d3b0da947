from __future__ import annotations

import re
from datetime import timedelta
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer


class FieldKind(str, Enum):
    """Polarion field type kinds, as reported by the custom-fields API."""

    STRING = "string"
    TEXT = "text"
    TEXT_HTML = "text/html"
    INTEGER = "integer"
    FLOAT = "float"
    TIME = "time"
    DATE = "date"
    DATE_TIME = "date-time"
    DURATION = "duration"
    BOOLEAN = "boolean"
    ENUMERATION = "enumeration"
    RELATIONSHIP = "relationship"
    CODE = "code"
    STRUCTURE = "structure"
    CURRENCY = "currency"
    TABLE = "table"
    # Not a Polarion kind: the standard ``hyperlinks`` attribute list.
    HYPERLINKS = "hyperlinks"


class TextContent(BaseModel):
    type: str = "text/plain"
    value: str = ""

    model_config = ConfigDict(frozen=True, extra="ignore")

    @classmethod
    def html(cls, value: str) -> "TextContent":
        return cls(type="text/html", value=value)

    @classmethod
    def plain(cls, value: str) -> "TextContent":
        return cls(type="text/plain", value=value)


class Hyperlink(BaseModel):
    uri: str = ""
    role: str = ""

    model_config = ConfigDict(frozen=True, extra="ignore")


class Reference(BaseModel):
    """Typed pointer to another resource, e.g. ``users/alice``."""

    type: str
    id: str

    model_config = ConfigDict(frozen=True, extra="ignore")


class Relationship(BaseModel):
    """
    A JSON:API relationship value.
    On the wire ``data`` is either one ``{type, id}`` object, a list of them,
    or null; in memory it is always a list, with ``to_many`` remembering
    which shape to write back. ``has_data`` is False when the server sent
    only links, so nothing is written for ``data`` on the way back.
    """

    refs: List[Reference] = Field(default_factory=list)
    to_many: bool = False
    has_data: bool = True
    links: Optional[Dict[str, Any]] = None
    meta: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def one(cls, type: str, id: str) -> "Relationship":
        return cls(refs=[Reference(type=type, id=id)], to_many=False)

    @classmethod
    def many(cls, *refs: Reference) -> "Relationship":
        return cls(refs=list(refs), to_many=True)

    @property
    def ref(self) -> Optional[Reference]:
        return self.refs[0] if self.refs else None

    @property
    def ids(self) -> List[str]:
        return [r.id for r in self.refs]


class TableRow(BaseModel):
    values: List[TextContent] = Field(default_factory=list)


class TableField(BaseModel):
    """Table custom field: column keys plus rows of typed cells."""

    keys: List[str] = Field(default_factory=list)
    rows: List[TableRow] = Field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.keys)

    def cell(self, row: int, col: int) -> TextContent:
        if not 0 <= row < len(self.rows):
            raise IndexError(
                f"row index {row} out of bounds (table has {len(self.rows)} rows)"
            )
        values = self.rows[row].values
        if not 0 <= col < len(values):
            raise IndexError(
                f"column index {col} out of bounds (row {row} has {len(values)} columns)"
            )
        return values[col]

    def cell_by_key(self, row: int, key: str) -> TextContent:
        try:
            col = self.keys.index(key)
        except ValueError:
            raise KeyError(f"column key {key!r} not found in table") from None
        return self.cell(row, col)

    def row_as_dict(self, row: int) -> Dict[str, TextContent]:
        if not 0 <= row < len(self.rows):
            raise IndexError(
                f"row index {row} out of bounds (table has {len(self.rows)} rows)"
            )
        values = self.rows[row].values
        return {k: values[i] for i, k in enumerate(self.keys) if i < len(values)}

    def rows_as_dicts(self) -> List[Dict[str, TextContent]]:
        return [self.row_as_dict(i) for i in range(len(self.rows))]

    def add_row(self, values: List[TextContent]) -> None:
        if len(values) != len(self.keys):
            raise ValueError(
                f"row has {len(values)} values but table has {len(self.keys)} columns"
            )
        self.rows.append(TableRow(values=values))


# --- Polarion durations ("2d 3h 30m") ---

DURATION_RE = re.compile(r"(\d+)\s*([dhms])")

_UNIT_SECONDS = {"d": 86400, "h": 3600, "m": 60, "s": 1}


class DurationParseError(ValueError):
    """Raised when a string is not a Polarion duration."""


def parse_duration(value: str) -> timedelta:
    """
    Parse Polarion durations like "1h", "2d 3h", "2d3h30m" into a timedelta.

    Units: d (days), h (hours), m (minutes), s (seconds).
    """
    if not value or not value.strip():
        raise DurationParseError("empty duration string")

    normalized = value.strip().lower()
    matches = DURATION_RE.findall(normalized)
    if not matches:
        raise DurationParseError(f"invalid duration format: {value}")

    total = sum(int(amount) * _UNIT_SECONDS[unit] for amount, unit in matches)
    return timedelta(seconds=total)


def format_duration(value: timedelta) -> str:
    """Inverse of parse_duration; only non-zero components are emitted."""
    remaining = int(value.total_seconds())
    if remaining <= 0:
        return "0s"

    parts = []
    for unit in ("d", "h", "m", "s"):
        size = _UNIT_SECONDS[unit]
        amount, remaining = divmod(remaining, size)
        if amount:
            parts.append(f"{amount}{unit}")
    return " ".join(parts)


def _coerce_duration(value: Any) -> Any:
    if isinstance(value, str):
        return parse_duration(value)
    return value


# timedelta that reads and writes Polarion's "2d 3h" notation in pydantic models
PolarionDuration = Annotated[
    timedelta,
    BeforeValidator(_coerce_duration),
    PlainSerializer(format_duration, return_type=str, when_used="json"),
]


__all__ = [
    "FieldKind",
    "PolarionDuration",
    "TextContent",
    "Hyperlink",
    "Reference",
    "Relationship",
    "TableRow",
    "TableField",
    "DurationParseError",
    "parse_duration",
    "format_duration",
]

"""
Typed access to the dynamic (custom) field bag.

CustomFields wraps the bag and converts JSON values on read; missing keys and
values of the wrong shape read as None. CustomFieldMapper binds a pydantic
model to dynamic keys through its field aliases, so a project's custom fields
can be loaded and saved as one typed object.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    Generic,
    MutableMapping,
    Optional,
    Type,
    TypeVar,
)

from pydantic import BaseModel, TypeAdapter, ValidationError

from .errors import EncodingAmbiguityError, PolarionDecodeError
from .fields import TableField, TextContent, parse_duration

if TYPE_CHECKING:
    from .resource import AttributeSet

M = TypeVar("M", bound=BaseModel)

_DATE = TypeAdapter(date)
_TIME = TypeAdapter(time)
_DATETIME = TypeAdapter(datetime)


class CustomFields:
    def __init__(self, values: MutableMapping[str, Any]):
        self._values = values

    def get_string(self, key: str) -> Optional[str]:
        val = self._values.get(key)
        return val if isinstance(val, str) else None

    get_enum = get_string

    def get_int(self, key: str) -> Optional[int]:
        val = self._values.get(key)
        if isinstance(val, bool):
            return None
        if isinstance(val, (int, float)):
            return int(val)
        return None

    def get_float(self, key: str) -> Optional[float]:
        val = self._values.get(key)
        if isinstance(val, bool):
            return None
        if isinstance(val, (int, float)):
            return float(val)
        if isinstance(val, str):
            # currency fields arrive as strings
            try:
                return float(val)
            except ValueError:
                return None
        return None

    def get_bool(self, key: str) -> Optional[bool]:
        val = self._values.get(key)
        return val if isinstance(val, bool) else None

    def get_text(self, key: str) -> Optional[TextContent]:
        val = self._values.get(key)
        if isinstance(val, TextContent):
            return val
        if isinstance(val, dict):
            return TextContent(
                type=str(val.get("type") or "text/plain"),
                value=str(val.get("value") or ""),
            )
        return None

    def get_date(self, key: str) -> Optional[date]:
        return self._parse(key, _DATE)

    def get_time(self, key: str) -> Optional[time]:
        return self._parse(key, _TIME)

    def get_datetime(self, key: str) -> Optional[datetime]:
        return self._parse(key, _DATETIME)

    def get_duration(self, key: str) -> Optional[timedelta]:
        val = self._values.get(key)
        if isinstance(val, timedelta):
            return val
        if not isinstance(val, str):
            return None
        try:
            return parse_duration(val)
        except ValueError:
            return None

    def get_table(self, key: str) -> Optional[TableField]:
        val = self._values.get(key)
        if isinstance(val, TableField):
            return val
        if isinstance(val, dict):
            try:
                return TableField.model_validate(val)
            except ValidationError:
                return None
        return None

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def has(self, key: str) -> bool:
        return key in self._values

    def delete(self, key: str) -> None:
        self._values.pop(key, None)

    def _parse(self, key: str, adapter: TypeAdapter) -> Any:
        val = self._values.get(key)
        if val is None:
            return None
        try:
            return adapter.validate_python(val)
        except ValidationError:
            return None


class CustomFieldMapper(Generic[M]):
    """
    Load/save a pydantic model from/to the dynamic bag.

    Each model field maps to the custom field named by its alias (or its own
    name). The table is built once from the model's declared fields:

        class Requirement(BaseModel):
            business_value: Optional[str] = Field(None, alias="businessValue")
            target_release: Optional[date] = Field(None, alias="targetRelease")

        mapper = CustomFieldMapper(Requirement)
        req = mapper.load(work_item.attributes)
    """

    def __init__(self, model: Type[M]):
        self.model = model
        self.fields: Dict[str, str] = {
            name: info.alias or name for name, info in model.model_fields.items()
        }

    @property
    def keys(self) -> list[str]:
        return list(self.fields.values())

    def load(self, attrs: "AttributeSet") -> M:
        data = {
            key: attrs.dynamic[key]
            for key in self.fields.values()
            if attrs.dynamic.get(key) is not None
        }
        try:
            return self.model.model_validate(data)
        except ValidationError as exc:
            bad = exc.errors()[0]["loc"][0] if exc.errors() else self.model.__name__
            raise PolarionDecodeError(str(bad), str(exc)) from exc

    def save(self, attrs: "AttributeSet", source: M) -> None:
        """Write every mapped field; None removes the key from the bag."""
        for key in self.fields.values():
            if attrs.schema.attribute(key) is not None:
                raise EncodingAmbiguityError(key, attrs.schema.resource_type)
        dumped = source.model_dump(by_alias=True, mode="json")
        for key in self.fields.values():
            value = dumped.get(key)
            if value is None:
                attrs.dynamic.pop(key, None)
            else:
                attrs.dynamic[key] = value


__all__ = ["CustomFields", "CustomFieldMapper"]

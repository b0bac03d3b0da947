from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence


class PolarionClientError(Exception):
    """Base error for client failures."""


@dataclass(frozen=True)
class ErrorDetail:
    """One entry of a JSON:API ``errors`` array."""

    status: str = ""
    title: str = ""
    detail: str = ""
    pointer: str = ""

    @classmethod
    def from_wire(cls, raw: Dict[str, Any]) -> "ErrorDetail":
        source = raw.get("source") if isinstance(raw.get("source"), dict) else {}
        return cls(
            status=str(raw.get("status") or ""),
            title=str(raw.get("title") or ""),
            detail=str(raw.get("detail") or ""),
            pointer=str(raw.get("pointer") or source.get("pointer") or ""),
        )

    def __str__(self) -> str:
        if self.pointer:
            return f"field '{self.pointer}': {self.detail}"
        if self.title:
            return f"{self.title}: {self.detail}"
        return self.detail


class PolarionHTTPError(PolarionClientError):
    def __init__(
        self,
        *,
        status_code: int,
        method: str,
        url: str,
        message: str,
        details: Optional[Sequence[ErrorDetail]] = None,
        response_json: Optional[Dict[str, Any]] = None,
        response_text: Optional[str] = None,
    ):
        self.details: List[ErrorDetail] = list(details or [])
        text = f"{status_code} {method} {url}: {message}"
        if self.details:
            text += " - " + "; ".join(str(d) for d in self.details)
        super().__init__(text)
        self.status_code = status_code
        self.method = method
        self.url = url
        self.message = message
        self.response_json = response_json
        self.response_text = response_text


class PolarionTransportError(PolarionClientError):
    """Network or timeout failure before a response was received."""


class PolarionParseError(PolarionClientError):
    pass


class PolarionDecodeError(PolarionParseError):
    """A known field carried a value its schema kind cannot decode."""

    def __init__(self, field: str, message: str):
        super().__init__(f"cannot decode field '{field}': {message}")
        self.field = field


class EncodingAmbiguityError(PolarionClientError):
    """A dynamic field name collides with a field the schema already knows."""

    def __init__(self, field: str, resource_type: str = ""):
        where = f" on '{resource_type}'" if resource_type else ""
        super().__init__(
            f"custom field '{field}'{where} shadows a known field; "
            "set it through the known attribute instead"
        )
        self.field = field
        self.resource_type = resource_type


class OversizedItemError(PolarionClientError):
    """One or more items cannot fit in any batch under the configured byte limit."""

    def __init__(self, indexes: Sequence[int], max_bytes: int):
        self.indexes = list(indexes)
        self.max_bytes = max_bytes
        super().__init__(
            f"items at index {self.indexes} exceed max batch size of {max_bytes} bytes"
        )


class RetryExhaustedError(PolarionClientError):
    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"max retries exceeded after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class PolarionValidationError(PolarionClientError, ValueError):
    """Client-side input validation failed before any request was made."""

    def __init__(self, field: str, message: str):
        super().__init__(f"validation error: {field} - {message}")
        self.field = field


def _root_http_error(exc: BaseException) -> Optional[PolarionHTTPError]:
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, PolarionHTTPError):
            return current
        if isinstance(current, RetryExhaustedError):
            current = current.last_error
            continue
        current = current.__cause__
    return None


def is_not_found(exc: BaseException) -> bool:
    err = _root_http_error(exc)
    return err is not None and err.status_code == 404


def is_retryable(exc: BaseException) -> bool:
    """
    Default retryability predicate.
    - Network/timeouts: retry
    - 429 and 5xx: retry
    - Everything else (4xx, parse/encode/validation errors): do not retry
    """
    if isinstance(exc, PolarionTransportError):
        return True
    if isinstance(exc, PolarionHTTPError):
        return exc.status_code == 429 or exc.status_code >= 500
    return False


def detailed_message(exc: BaseException) -> str:
    """Error text plus a raw body snippet when the server gave one."""
    err = _root_http_error(exc)
    if err is not None and err.response_text and len(err.response_text) < 1000:
        return f"{exc}\nRaw response: {err.response_text}"
    return str(exc)


__all__ = [
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
    "is_not_found",
    "is_retryable",
    "detailed_message",
]

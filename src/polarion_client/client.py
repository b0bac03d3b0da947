import logging
import mimetypes
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import httpx

from .core.codec import dumps
from .core.config import ClientConfig, client_config_from_env, load_env_config
from .core.errors import (
    ErrorDetail,
    PolarionClientError,
    PolarionHTTPError,
    PolarionParseError,
    PolarionTransportError,
    PolarionValidationError,
)
from .core.observability import log_event
from .core.retry import RetryState, execute

# (filename, bytes or path, content type or None)
FilePart = Tuple[str, Union[bytes, str, Path], Optional[str]]


JSON_HEADERS = {"Content-Type": "application/json"}


def _root_cause_name(exc: BaseException) -> str:
    # first cause outside our own wrappers, e.g. the httpx error behind
    # RetryExhaustedError -> PolarionTransportError
    while isinstance(exc, PolarionClientError) and exc.__cause__ is not None:
        exc = exc.__cause__
    return type(exc).__name__


class PolarionClient:
    """
    Shared HTTP client for the Polarion REST API (JSON:API).
    - Handles bearer auth, base URL, timeouts, retries
    - Bodies are written with codec.dumps so sizes match what batching measured
    - Returns raw dict payloads; services own decoding and domain decisions
    """

    def __init__(
        self,
        *,
        base_url: str,
        token: str,
        config: Optional[ClientConfig] = None,
        logger: Optional[logging.Logger] = None,
        http: Optional[httpx.AsyncClient] = None,
    ):
        base_url = (base_url or "").rstrip("/")
        token = token or ""

        if not base_url:
            raise ValueError("base_url must be provided.")
        if not token:
            raise ValueError("token must be provided.")

        self.base_url = base_url
        self.config = config if config is not None else ClientConfig()
        self.log = logger or logging.getLogger("polarion_client.client")

        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
            timeout=self.config.timeout_seconds,
        )

    @classmethod
    def from_env(cls, **kwargs) -> "PolarionClient":
        base_url, token = load_env_config()
        kwargs.setdefault("config", client_config_from_env(use_dotenv=False))
        return cls(base_url=base_url, token=token, **kwargs)

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def __aenter__(self) -> "PolarionClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
        tool: Optional[str] = None,
        retry: bool = True,
    ) -> Dict[str, Any]:
        """
        Core request method.
        - Retries per config.retry (network/timeouts, 429 and 5xx)
        - Raises PolarionHTTPError on non-2xx HTTP responses
        - Raises PolarionTransportError on network/timeout errors
        - Raises RetryExhaustedError once retries run out
        - Raises PolarionParseError if response isn't a JSON object
        - Returns parsed JSON dict on success ({} for empty bodies)
        """
        method = method.upper()
        content = dumps(body) if body is not None else None
        attempt = 0
        last_status: Optional[int] = None

        async def send() -> Dict[str, Any]:
            nonlocal attempt, last_status
            start = time.perf_counter()
            try:
                resp = await self.http.request(
                    method, url, params=params, content=content, headers=JSON_HEADERS
                )
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                raise PolarionTransportError(
                    f"Network/timeout error calling {method} {url}: {exc}"
                ) from exc
            except httpx.HTTPError as exc:
                # Other httpx exceptions (rare) - do not blindly retry
                raise PolarionClientError(
                    f"HTTPX error calling {method} {url}: {exc}"
                ) from exc
            finally:
                attempt += 1

            last_status = resp.status_code
            duration_ms = int((time.perf_counter() - start) * 1000)
            self.log.debug(
                "op.request",
                extra={
                    "tool": tool,
                    "method": method,
                    "url": str(resp.request.url),
                    "status": resp.status_code,
                    "duration_ms": duration_ms,
                    "bytes": len(content) if content is not None else None,
                    "attempt": attempt,
                },
            )

            if resp.status_code < 200 or resp.status_code >= 300:
                raise await self._to_http_error(resp, method=method)
            return self._safe_json(resp)

        def on_retry(state: RetryState) -> None:
            self.log.warning(
                "op.retry",
                extra={
                    "tool": tool,
                    "method": method,
                    "url": url,
                    "attempt": state.attempt + 1,
                    "wait_s": round(state.next_wait, 3),
                    "error": type(state.last_error).__name__,
                },
            )

        start = time.perf_counter()
        error_type: Optional[str] = None
        try:
            if not retry:
                return await send()
            return await execute(send, self.config.retry, on_retry=on_retry)
        except Exception as exc:
            error_type = _root_cause_name(exc)
            raise
        finally:
            log_event(
                "op_call",
                tool=tool,
                method=method,
                endpoint=url,
                status=last_status if last_status is not None else "exception",
                attempt=attempt,
                duration_ms=int((time.perf_counter() - start) * 1000),
                error_type=error_type,
            )

    def _safe_json(self, resp: httpx.Response) -> Dict[str, Any]:
        # 204 No Content and friends
        if not resp.content:
            return {}

        try:
            data = resp.json()
        except ValueError as exc:
            snippet = (resp.text or "")[:500]
            raise PolarionParseError(
                f"Expected JSON from {resp.request.method} "
                f"{resp.request.url}, got non-JSON body snippet: "
                f"{snippet!r}"
            ) from exc

        if not isinstance(data, dict):
            raise PolarionParseError(
                f"Expected top-level JSON object from "
                f"{resp.request.method} {resp.request.url}, "
                f"got {type(data).__name__}"
            )
        return data

    async def _to_http_error(
        self, resp: httpx.Response, *, method: str
    ) -> PolarionHTTPError:
        url = str(resp.request.url)
        response_json: Optional[Dict[str, Any]] = None
        response_text: Optional[str] = None
        details: List[ErrorDetail] = []
        message = resp.reason_phrase or "request failed"

        try:
            parsed = resp.json()
        except ValueError:
            parsed = None
            response_text = (resp.text or "")[:500]
            if response_text:
                message = response_text

        if isinstance(parsed, dict):
            response_json = parsed
            errors = parsed.get("errors")
            if isinstance(errors, list):
                details = [ErrorDetail.from_wire(e) for e in errors if isinstance(e, dict)]
            elif parsed.get("message"):
                message = str(parsed["message"])

        return PolarionHTTPError(
            status_code=resp.status_code,
            method=method,
            url=url,
            message=message,
            details=details,
            response_json=response_json,
            response_text=response_text,
        )

    async def get(
        self,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        tool: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self.request("GET", url, params=params, tool=tool)

    async def post(
        self,
        url: str,
        *,
        body: Dict[str, Any],
        params: Optional[Dict[str, Any]] = None,
        tool: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self.request("POST", url, params=params, body=body, tool=tool)

    async def patch(
        self, url: str, *, body: Dict[str, Any], tool: Optional[str] = None
    ) -> Dict[str, Any]:
        return await self.request("PATCH", url, body=body, tool=tool)

    async def delete(
        self,
        url: str,
        *,
        body: Optional[Dict[str, Any]] = None,
        tool: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self.request("DELETE", url, body=body, tool=tool)

    async def post_multipart(
        self,
        url: str,
        *,
        resource: Dict[str, Any],
        files: Sequence[FilePart],
        tool: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Upload files using multipart/form-data.
        - ``resource`` goes out as a JSON part, each file as a ``files`` part
        - Returns parsed JSON if present; {} on empty body.
        - Retries are NOT applied to avoid duplicate uploads.
        """
        parts: List[Tuple[str, Tuple[Optional[str], Any, str]]] = [
            ("resource", (None, dumps(resource), "application/json"))
        ]
        handles = []
        try:
            for filename, source, content_type in files:
                ctype = (
                    content_type
                    or mimetypes.guess_type(filename)[0]
                    or "application/octet-stream"
                )
                if isinstance(source, bytes):
                    payload: Any = source
                else:
                    path = Path(source)
                    if not path.is_file():
                        raise PolarionValidationError("files", f"File not found: {source}")
                    payload = path.open("rb")
                    handles.append(payload)
                parts.append(("files", (filename, payload, ctype)))

            start = time.perf_counter()
            try:
                resp = await self.http.post(url, files=parts)
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                raise PolarionTransportError(
                    f"Network/timeout error calling POST {url}: {exc}"
                ) from exc
            except httpx.HTTPError as exc:
                raise PolarionClientError(
                    f"HTTPX error calling POST {url}: {exc}"
                ) from exc
        finally:
            for fh in handles:
                fh.close()

        duration_ms = int((time.perf_counter() - start) * 1000)
        self.log.debug(
            "op.upload",
            extra={
                "tool": tool,
                "method": "POST",
                "url": str(resp.request.url),
                "status": resp.status_code,
                "duration_ms": duration_ms,
                "items": len(files),
            },
        )

        if resp.status_code < 200 or resp.status_code >= 300:
            raise await self._to_http_error(resp, method="POST")

        return self._safe_json(resp)


def create_client_from_env(**kwargs) -> PolarionClient:
    """Create a PolarionClient from POLARION_* environment variables."""
    base_url, token = load_env_config()
    if not base_url or not token:
        raise ValueError("Missing POLARION_URL or POLARION_TOKEN in environment.")
    kwargs.setdefault("config", client_config_from_env(use_dotenv=False))
    return PolarionClient(base_url=base_url, token=token, **kwargs)


__all__ = ["FilePart", "PolarionClient", "create_client_from_env"]

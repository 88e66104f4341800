from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, AsyncGenerator, AsyncIterator, Callable, Generator, Iterator

import httpx

from nimblebrain._errors import NimbleBrainAPIError, NoResponseBodyError, TransportInterruptedError

logger = logging.getLogger(__name__)

ENV_HTTP_DEBUG = "NIMBLEBRAIN_HTTP_DEBUG"
EVENT_STREAM = "text/event-stream"

# Status codes that never carry a body, whatever the headers say.
_BODYLESS_STATUS = frozenset({204, 205, 304})


@dataclass(frozen=True, slots=True)
class HttpConfig:
    base_url: str
    timeout_s: float = 120.0


def _parse_error_response(
    status_code: int,
    body_text: str,
    content_type: str,
) -> NimbleBrainAPIError:
    """
    Build a NimbleBrainAPIError from an error response.

    Plain-text bodies become the message as is. JSON bodies are searched for
    the ``error`` / ``message`` keys the API uses; unknown shapes fall back to
    the raw text.
    """
    message = f"HTTP {status_code}"
    error_code: str | None = None
    request_id: str | None = None
    details: dict[str, Any] | None = None

    stripped = body_text.strip() if body_text else ""

    data: Any = None
    if stripped and ("json" in content_type.lower() or stripped[:1] in "{["):
        try:
            data = json.loads(stripped)
        except ValueError:
            data = None

    if not isinstance(data, dict):
        if stripped:
            message = stripped
        return NimbleBrainAPIError(status_code=status_code, message=message, body=body_text)

    error_obj = data.get("error")

    if isinstance(error_obj, str) and error_obj.strip():
        message = error_obj.strip()
    elif isinstance(error_obj, dict):
        code = error_obj.get("code")
        if isinstance(code, str) and code.strip():
            error_code = code.strip()

        msg = error_obj.get("message")
        if isinstance(msg, str) and msg.strip():
            message = msg.strip()

        req_id = error_obj.get("requestId")
        if isinstance(req_id, str) and req_id.strip():
            request_id = req_id.strip()

        det = error_obj.get("details")
        if isinstance(det, dict):
            details = det
    else:
        msg = data.get("message")
        if isinstance(msg, str) and msg.strip():
            message = msg.strip()

    return NimbleBrainAPIError(
        status_code=status_code,
        message=message,
        body=body_text,
        error_code=error_code,
        request_id=request_id,
        details=details,
    )


def _redact_headers(headers: dict[str, Any]) -> dict[str, Any]:
    out = dict(headers)
    for k in ("authorization", "Authorization"):
        if k in out:
            out[k] = "Bearer ***REDACTED***"
    return out


def _log_request(request: httpx.Request) -> None:
    logger.warning("HTTPX REQUEST %s %s", request.method, request.url)
    logger.warning("HTTPX REQUEST headers=%s", _redact_headers(dict(request.headers)))
    if request.content:
        try:
            logger.warning("HTTPX REQUEST body=%s", request.content.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            logger.warning("HTTPX REQUEST body=(binary) len=%s", len(request.content))


def _log_response_head(response: httpx.Response) -> bool:
    """Log status and headers. Returns False when the body must not be read."""
    req = response.request
    logger.warning("HTTPX RESPONSE %s %s -> %s", req.method, req.url, response.status_code)
    logger.warning("HTTPX RESPONSE headers=%s", dict(response.headers))
    if EVENT_STREAM in response.headers.get("content-type", ""):
        logger.warning("HTTPX RESPONSE body=(event-stream; not auto-logged)")
        return False
    return True


def _has_body(response: httpx.Response) -> bool:
    if response.status_code in _BODYLESS_STATUS:
        return False
    return response.headers.get("content-length", "").strip() != "0"


def _iter_chunks(response: httpx.Response) -> Generator[bytes, None, None]:
    try:
        for chunk in response.iter_bytes():
            if chunk:
                yield chunk
    except (httpx.TransportError, httpx.StreamError) as e:
        raise TransportInterruptedError(f"Event stream interrupted: {e!r}") from e


async def _aiter_chunks(response: httpx.Response) -> AsyncGenerator[bytes, None]:
    try:
        async for chunk in response.aiter_bytes():
            if chunk:
                yield chunk
    except (httpx.TransportError, httpx.StreamError) as e:
        raise TransportInterruptedError(f"Event stream interrupted: {e!r}") from e


class NimbleBrainHttpClient:
    """
    Thin HTTPX wrapper with:
    - JSON requests (sync and async)
    - Event-stream transport: one scoped request exposing raw byte chunks
    - Optional debug logging, enabled with NIMBLEBRAIN_HTTP_DEBUG
    """

    def __init__(self, *, config: HttpConfig, api_key: str) -> None:
        self._config = config
        self._api_key = api_key
        self._debug_http = os.getenv(ENV_HTTP_DEBUG, "").lower() in {"1", "true", "yes", "on"}

        def _on_request(request: httpx.Request) -> None:
            if self._debug_http:
                _log_request(request)

        def _on_response(response: httpx.Response) -> None:
            if not self._debug_http or not _log_response_head(response):
                return
            try:
                response.read()
                logger.warning("HTTPX RESPONSE body=%s", response.text)
            except (httpx.HTTPError, httpx.StreamError) as e:
                logger.warning("HTTPX RESPONSE body=(unreadable) err=%r", e)

        async def _on_request_async(request: httpx.Request) -> None:
            _on_request(request)

        async def _on_response_async(response: httpx.Response) -> None:
            if not self._debug_http or not _log_response_head(response):
                return
            try:
                await response.aread()
                logger.warning("HTTPX RESPONSE body=%s", response.text)
            except (httpx.HTTPError, httpx.StreamError) as e:
                logger.warning("HTTPX RESPONSE body=(unreadable) err=%r", e)

        EventHooksDict = dict[str, list[Callable[..., Any]]]

        hooks_sync: EventHooksDict = {"request": [_on_request], "response": [_on_response]}
        hooks_async: EventHooksDict = {"request": [_on_request_async], "response": [_on_response_async]}

        self._client = httpx.Client(timeout=httpx.Timeout(config.timeout_s), event_hooks=hooks_sync)
        self._aclient = httpx.AsyncClient(timeout=httpx.Timeout(config.timeout_s), event_hooks=hooks_async)

    @property
    def config(self) -> HttpConfig:
        return self._config

    def close(self) -> None:
        self._client.close()

    async def aclose(self) -> None:
        await self._aclient.aclose()

    def _url(self, path: str) -> str:
        return f"{self._config.base_url.rstrip('/')}{path}"

    def _headers(self, *, accept: str | None = None, json_body: bool = False) -> dict[str, str]:
        headers: dict[str, str] = {"Authorization": f"Bearer {self._api_key}"}
        if accept:
            headers["Accept"] = accept
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    @staticmethod
    def raise_for_status(resp: httpx.Response) -> None:
        """Raise a structured NimbleBrainAPIError for any non-2xx response."""
        if 200 <= resp.status_code < 300:
            return

        body_text: str | None = None
        try:
            body_text = resp.text
        except (httpx.ResponseNotRead, UnicodeDecodeError):
            body_text = None

        raise _parse_error_response(
            status_code=resp.status_code,
            body_text=body_text or "",
            content_type=resp.headers.get("content-type", ""),
        )

    def post_json(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        resp = self._client.post(
            self._url(path),
            headers=self._headers(accept="application/json", json_body=True),
            json=payload,
        )
        self.raise_for_status(resp)
        return resp

    async def apost_json(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        resp = await self._aclient.post(
            self._url(path),
            headers=self._headers(accept="application/json", json_body=True),
            json=payload,
        )
        self.raise_for_status(resp)
        return resp

    def get(self, path: str, *, params: dict[str, Any] | None = None) -> httpx.Response:
        resp = self._client.get(self._url(path), headers=self._headers(accept="application/json"), params=params)
        self.raise_for_status(resp)
        return resp

    async def aget(self, path: str, *, params: dict[str, Any] | None = None) -> httpx.Response:
        resp = await self._aclient.get(
            self._url(path), headers=self._headers(accept="application/json"), params=params
        )
        self.raise_for_status(resp)
        return resp

    @contextlib.contextmanager
    def open_event_stream(
        self,
        path: str,
        payload: dict[str, Any] | None = None,
        *,
        method: str = "POST",
    ) -> Iterator[Iterator[bytes]]:
        """
        Open one event-stream request and expose its body as raw byte chunks.

        The response stays open for the lifetime of the ``with`` block and is
        closed on every exit path, including a consumer that stops early.

        Usage:
            with client.open_event_stream(path, payload) as chunks:
                for chunk in chunks:
                    ...

        Raises:
            NimbleBrainAPIError: Non-2xx status, raised before any chunk.
            NoResponseBodyError: 2xx status without a body to stream.
            TransportInterruptedError: While iterating, if the connection breaks.
        """
        headers = self._headers(accept=EVENT_STREAM, json_body=payload is not None)
        with self._client.stream(method, self._url(path), headers=headers, json=payload) as resp:
            if not 200 <= resp.status_code < 300:
                resp.read()
                self.raise_for_status(resp)
            if not _has_body(resp):
                raise NoResponseBodyError(resp.status_code)
            chunks = _iter_chunks(resp)
            try:
                yield chunks
            finally:
                chunks.close()

    @contextlib.asynccontextmanager
    async def aopen_event_stream(
        self,
        path: str,
        payload: dict[str, Any] | None = None,
        *,
        method: str = "POST",
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        """
        Async counterpart of open_event_stream.

        Usage:
            async with client.aopen_event_stream(path, payload) as chunks:
                async for chunk in chunks:
                    ...
        """
        headers = self._headers(accept=EVENT_STREAM, json_body=payload is not None)
        async with self._aclient.stream(method, self._url(path), headers=headers, json=payload) as resp:
            if not 200 <= resp.status_code < 300:
                await resp.aread()
                self.raise_for_status(resp)
            if not _has_body(resp):
                raise NoResponseBodyError(resp.status_code)
            chunks = _aiter_chunks(resp)
            try:
                yield chunks
            finally:
                await chunks.aclose()

"""
================================================================================
Request Executor
================================================================================

Executes a single declared HTTP request (RequestSpec) and returns a
NormalizedResponse.

    - Async, built on httpx.AsyncClient behind a small Transport protocol
    - Deterministic query serialization (sorted keys)
    - Form-encoded or JSON bodies, like the storefront expects
    - Structured request/response events through an ObservabilitySink
    - Secret redaction in every emitted event

A non-2xx status is a valid response. Only failures below HTTP (connect,
DNS, timeouts, protocol errors) raise TransportError. Retrying is never done
here: wrap calls with retry_policy.run_with_retry when needed.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import asyncio
import json
import time
from uuid import uuid4
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx
from loguru import logger

from .config_loader import ConfigLoader
from .models import HttpMethod, NormalizedResponse, OrchestrationError, RequestSpec
from .observability import (
    DEFAULT_BODY_PREVIEW_LENGTH,
    LoguruSink,
    ObservabilitySink,
    body_preview,
    default_sink,
    redact_headers,
    safe_emit,
)


DEFAULT_TIMEOUT = 30.0

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"


class HttpClientError(OrchestrationError):
    """Base exception for request execution errors."""
    pass


class TransportError(HttpClientError):
    """Connection, DNS, timeout or protocol failure below the HTTP layer."""

    def __init__(self, message: str, method: str = "", url: str = "") -> None:
        super().__init__(message)
        self.method = method
        self.url = url


class Transport(Protocol):
    """
    Abstract HTTP transport.

    Returns (status_code, headers, raw_body) and raises TransportError on
    failures below HTTP.
    """

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes],
    ) -> Tuple[int, Mapping[str, str], bytes]:
        ...


class HttpxTransport:
    """
    Transport backed by httpx.AsyncClient.

    When no client is supplied one is created and owned by this transport;
    an injected client is left open for its owner to close.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
        follow_redirects: bool = True,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=follow_redirects,
        )

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes],
    ) -> Tuple[int, Mapping[str, str], bytes]:
        try:
            response = await self._client.request(
                method, url, headers=dict(headers), content=body
            )
        except httpx.RequestError as e:
            raise TransportError(
                f"{method} {url} failed: {type(e).__name__}: {e}",
                method=method,
                url=url,
            ) from e
        return response.status_code, response.headers, response.content

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def serialize_query(pairs: List[Tuple[str, str]]) -> str:
    """Serialize query pairs with stable key ordering."""
    ordered = sorted(pairs, key=lambda kv: kv[0])
    return urlencode(ordered, safe="/")


def _flatten_form(data: Mapping[str, Any], prefix: str = "") -> List[Tuple[str, str]]:
    """Flatten nested mappings into PHP-style form keys (option[12]=red)."""
    pairs: List[Tuple[str, str]] = []
    for key, value in data.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if isinstance(value, Mapping):
            pairs.extend(_flatten_form(value, name))
        elif isinstance(value, (list, tuple)):
            for item in value:
                pairs.append((f"{name}[]", "" if item is None else str(item)))
        elif value is None:
            pairs.append((name, ""))
        else:
            pairs.append((name, str(value)))
    return pairs


def encode_body(body: Any, headers: Dict[str, str]) -> Optional[bytes]:
    """
    Encode a RequestSpec body, setting Content-Type when absent.

    Mappings are form-encoded unless the headers ask for JSON. Lists are
    sent as JSON. str/bytes go out verbatim.
    """
    if body is None:
        return None
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")

    content_type = next(
        (v for k, v in headers.items() if k.lower() == "content-type"), None
    )
    wants_json = content_type is not None and "json" in content_type.lower()

    if isinstance(body, Mapping) and not wants_json:
        if content_type is None:
            headers["Content-Type"] = FORM_CONTENT_TYPE
        return urlencode(_flatten_form(body)).encode("ascii")

    if content_type is None:
        headers["Content-Type"] = JSON_CONTENT_TYPE
    return json.dumps(body, ensure_ascii=False).encode("utf-8")


class RequestExecutor:
    """
    Issue RequestSpec values and normalize the replies.

    Holds no per-request state, so many execute() calls may run concurrently
    on one executor.

    Usage:
        >>> async with RequestExecutor("https://demo.opencart.com") as executor:
        ...     spec = RequestSpec("GET", "/index.php", query_params={"route": "checkout/cart"})
        ...     response = await executor.execute(spec)
        ...     response.status_code
        200
    """

    def __init__(
        self,
        base_url: str = "",
        transport: Optional[Transport] = None,
        sink: Optional[ObservabilitySink] = None,
        default_headers: Optional[Mapping[str, str]] = None,
        timeout: float = DEFAULT_TIMEOUT,
        body_preview_length: int = DEFAULT_BODY_PREVIEW_LENGTH,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.default_headers: Dict[str, str] = dict(default_headers or {})
        self.sink: ObservabilitySink = sink if sink is not None else LoguruSink()
        self.body_preview_length = body_preview_length
        self._owns_transport = transport is None
        self.transport: Transport = transport or HttpxTransport(timeout=timeout)

    @classmethod
    def from_config(
        cls,
        config: Optional[ConfigLoader] = None,
        **overrides: Any,
    ) -> "RequestExecutor":
        """Build an executor from api.* and logging.* configuration."""
        if config is None:
            config = ConfigLoader()

        options: Dict[str, Any] = {
            "base_url": config.get("api.base_url", "https://demo.opencart.com"),
            "timeout": float(config.get("api.timeout", DEFAULT_TIMEOUT)),
            "default_headers": config.get_section("api.default_headers"),
            "body_preview_length": int(
                config.get("logging.body_preview_length", DEFAULT_BODY_PREVIEW_LENGTH)
            ),
            "sink": default_sink(),
        }
        options.update(overrides)
        return cls(**options)

    async def __aenter__(self) -> "RequestExecutor":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the transport if this executor created it."""
        if self._owns_transport and hasattr(self.transport, "aclose"):
            await self.transport.aclose()

    def build_url(self, spec: RequestSpec) -> str:
        """
        Resolve spec.target against base_url and append the query string.

        Parameters already present in target are merged with
        spec.query_params (spec wins on clashes) and serialized sorted by key.
        """
        target = spec.target
        if not target.startswith(("http://", "https://")):
            target = f"{self.base_url}/{target.lstrip('/')}"

        parts = urlsplit(target)
        pairs = [
            (k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True)
            if k not in spec.query_params
        ]
        pairs.extend(spec.query_params.items())

        return urlunsplit(
            (parts.scheme, parts.netloc, parts.path, serialize_query(pairs), parts.fragment)
        )

    def build_headers(self, spec: RequestSpec) -> Dict[str, str]:
        """Default headers overlaid by the RequestSpec headers."""
        headers = dict(self.default_headers)
        lowered = {k.lower(): k for k in headers}
        for key, value in spec.headers.items():
            existing = lowered.get(key.lower())
            if existing is not None:
                del headers[existing]
            headers[key] = value
            lowered[key.lower()] = key
        return headers

    async def execute(self, spec: RequestSpec) -> NormalizedResponse:
        """
        Send one request.

        Raises:
            TransportError: On connection, DNS or transport timeout failures
        """
        method = spec.method.value
        url = self.build_url(spec)
        headers = self.build_headers(spec)
        content = encode_body(spec.body, headers)
        request_id = uuid4().hex

        safe_emit(self.sink, "request", {
            "request_id": request_id,
            "method": method,
            "url": url,
            "headers": redact_headers(headers),
            "body": body_preview(spec.body, self.body_preview_length),
        })

        started = time.perf_counter()
        try:
            status_code, response_headers, raw_body = await self.transport.send(
                method, url, headers, content
            )
        except TransportError as e:
            elapsed = time.perf_counter() - started
            logger.warning(f"Transport failure after {elapsed:.3f}s: {e}")
            safe_emit(self.sink, "error", {
                "request_id": request_id,
                "method": method,
                "url": url,
                "elapsed": elapsed,
                "error": str(e),
            })
            raise
        except asyncio.CancelledError:
            safe_emit(self.sink, "error", {
                "request_id": request_id,
                "method": method,
                "url": url,
                "elapsed": time.perf_counter() - started,
                "error": "cancelled",
            })
            raise
        elapsed = time.perf_counter() - started

        response = NormalizedResponse(
            status_code=status_code,
            headers=response_headers,
            raw_body=raw_body,
            elapsed=elapsed,
        )

        safe_emit(self.sink, "response", {
            "request_id": request_id,
            "method": method,
            "url": url,
            "status_code": response.status_code,
            "elapsed": elapsed,
            "body": body_preview(raw_body, self.body_preview_length),
        })
        return response

    async def request(
        self,
        method: Union[str, HttpMethod],
        target: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        body: Any = None,
    ) -> NormalizedResponse:
        """Build a RequestSpec from keyword arguments and execute it."""
        spec = RequestSpec(
            method=HttpMethod.parse(method),
            target=target,
            query_params=params or {},
            headers=headers or {},
            body=body,
        )
        return await self.execute(spec)

    async def get(self, target: str, **kwargs: Any) -> NormalizedResponse:
        return await self.request(HttpMethod.GET, target, **kwargs)

    async def post(self, target: str, **kwargs: Any) -> NormalizedResponse:
        return await self.request(HttpMethod.POST, target, **kwargs)

    async def put(self, target: str, **kwargs: Any) -> NormalizedResponse:
        return await self.request(HttpMethod.PUT, target, **kwargs)

    async def patch(self, target: str, **kwargs: Any) -> NormalizedResponse:
        return await self.request(HttpMethod.PATCH, target, **kwargs)

    async def delete(self, target: str, **kwargs: Any) -> NormalizedResponse:
        return await self.request(HttpMethod.DELETE, target, **kwargs)


__all__ = [
    "HttpClientError",
    "HttpxTransport",
    "RequestExecutor",
    "Transport",
    "TransportError",
    "encode_body",
    "serialize_query",
]

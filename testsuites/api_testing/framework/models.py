"""
================================================================================
Request / Response Models
================================================================================

Immutable value types that flow through the orchestration core:

    - HttpMethod: supported request verbs
    - RequestSpec: one declared HTTP call (method, target, params, headers, body)
    - NormalizedResponse: transport-agnostic view of an HTTP reply

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

import httpx


class OrchestrationError(Exception):
    """Base class for all errors raised by the orchestration core."""
    pass


class ResponseParseError(OrchestrationError, ValueError):
    """Raised when a response body is requested as JSON but is not JSON."""
    pass


class HttpMethod(str, Enum):
    """HTTP verbs accepted by RequestSpec."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    @classmethod
    def parse(cls, value: Union[str, "HttpMethod"]) -> "HttpMethod":
        """Accept an HttpMethod or a case-insensitive method name."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise ValueError(
                f"Unsupported HTTP method: {value!r}. Expected one of: {allowed}"
            ) from None


def _frozen_mapping(values: Optional[Mapping[str, Any]]) -> Mapping[str, str]:
    """Copy a mapping into a read-only view with string values."""
    if not values:
        return MappingProxyType({})
    return MappingProxyType({str(k): str(v) for k, v in values.items()})


@dataclass(frozen=True)
class RequestSpec:
    """
    Declarative description of a single HTTP request.

    Instances are immutable: query_params and headers are copied into
    read-only mappings on construction, so the caller's dictionaries may be
    reused freely afterwards.

    Attributes:
        method: HTTP verb
        target: Absolute URL or path relative to the executor base URL
        query_params: Query string parameters
        headers: Request headers
        body: Opaque payload (mapping, str, bytes or None)

    Usage:
        >>> spec = RequestSpec("GET", "/index.php", query_params={"route": "checkout/cart"})
        >>> spec.method
        <HttpMethod.GET: 'GET'>
    """
    method: HttpMethod
    target: str
    query_params: Mapping[str, str] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None

    def __post_init__(self) -> None:
        if not self.target:
            raise ValueError("RequestSpec.target must be a non-empty string")
        object.__setattr__(self, "method", HttpMethod.parse(self.method))
        object.__setattr__(self, "query_params", _frozen_mapping(self.query_params))
        object.__setattr__(self, "headers", _frozen_mapping(self.headers))

    def with_headers(self, extra: Mapping[str, str]) -> "RequestSpec":
        """Return a new spec with extra headers layered over the current ones."""
        merged = dict(self.headers)
        merged.update(extra)
        return RequestSpec(
            method=self.method,
            target=self.target,
            query_params=dict(self.query_params),
            headers=merged,
            body=self.body,
        )

    def with_query(self, extra: Mapping[str, Any]) -> "RequestSpec":
        """Return a new spec with extra query parameters."""
        merged = dict(self.query_params)
        merged.update({k: str(v) for k, v in extra.items()})
        return RequestSpec(
            method=self.method,
            target=self.target,
            query_params=merged,
            headers=dict(self.headers),
            body=self.body,
        )


_NOT_PARSED = object()


class NormalizedResponse:
    """
    Transport-agnostic HTTP response.

    Headers are case-insensitive. The JSON body is parsed lazily on first
    access of `parsed_json` and the outcome (value or failure) is memoized,
    so parsing happens at most once per response.
    """

    __slots__ = ("status_code", "headers", "raw_body", "elapsed", "_parsed")

    def __init__(
        self,
        status_code: int,
        headers: Union[httpx.Headers, Mapping[str, str], None] = None,
        raw_body: Union[bytes, str, None] = b"",
        elapsed: float = 0.0,
    ) -> None:
        if isinstance(raw_body, str):
            raw_body = raw_body.encode("utf-8")
        self.status_code = int(status_code)
        self.headers = httpx.Headers(headers or {})
        self.raw_body: bytes = raw_body or b""
        self.elapsed = elapsed
        self._parsed: Any = _NOT_PARSED

    def __repr__(self) -> str:
        return (
            f"NormalizedResponse(status_code={self.status_code}, "
            f"content_type={self.content_type!r}, bytes={len(self.raw_body)})"
        )

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")

    @property
    def ok(self) -> bool:
        """True for 2xx responses."""
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        """Body decoded with the declared charset, UTF-8 otherwise."""
        charset = "utf-8"
        for part in self.content_type.split(";")[1:]:
            name, _, value = part.strip().partition("=")
            if name.lower() == "charset" and value:
                charset = value.strip("\"'")
        try:
            return self.raw_body.decode(charset, errors="replace")
        except LookupError:
            return self.raw_body.decode("utf-8", errors="replace")

    @property
    def is_json_parsed(self) -> bool:
        """Whether parsed_json has been computed (successfully or not)."""
        return self._parsed is not _NOT_PARSED

    @property
    def parsed_json(self) -> Any:
        """
        Parsed JSON body.

        Raises:
            ResponseParseError: If the body is not valid JSON
        """
        if self._parsed is _NOT_PARSED:
            try:
                self._parsed = json.loads(self.text)
            except (json.JSONDecodeError, ValueError) as e:
                self._parsed = ResponseParseError(
                    f"Response body is not valid JSON (status {self.status_code}): {e}"
                )
        if isinstance(self._parsed, ResponseParseError):
            raise self._parsed
        return self._parsed


__all__ = [
    "HttpMethod",
    "NormalizedResponse",
    "OrchestrationError",
    "RequestSpec",
    "ResponseParseError",
]

"""
================================================================================
Observability Sinks
================================================================================

Pluggable destinations for structured request/response events emitted by the
RequestExecutor.

Sinks:
    - LoguruSink: structured loguru records (default)
    - AllureSink: Allure steps with request/response attachments and cURL
    - CompositeSink: fan-out to several sinks
    - RecordingSink: in-memory capture, handy in unit tests
    - NullSink: drop everything

Emitting must never break a request: `safe_emit` guards every call.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

import allure
from allure_commons.types import AttachmentType
from loguru import logger


# Default length of body previews in log events
DEFAULT_BODY_PREVIEW_LENGTH = 500

MASK = "***MASKED***"

SENSITIVE_HEADERS = {
    "authorization", "x-api-key", "x-app-auth", "cookie", "set-cookie",
}

SENSITIVE_BODY_TOKENS = (
    "password", "confirm", "secret", "token", "api_key", "authorization", "session",
)


class ObservabilitySink(Protocol):
    """
    Consumer of structured events.

    `event` is "request", "response" or "error". Every event of one call
    carries the same `request_id`, so sinks can pair them under concurrency.
    """

    def emit(self, event: str, fields: Mapping[str, Any]) -> None:
        ...


def safe_emit(sink: ObservabilitySink, event: str, fields: Mapping[str, Any]) -> None:
    """Emit to a sink, logging and discarding any sink failure."""
    try:
        sink.emit(event, fields)
    except Exception as e:
        logger.opt(exception=e).warning(
            f"Observability sink {type(sink).__name__} failed on '{event}': {e}"
        )


def truncate(text: str, limit: int = DEFAULT_BODY_PREVIEW_LENGTH) -> str:
    """Cut text to `limit` characters, noting the original length."""
    if limit <= 0 or len(text) <= limit:
        return text
    return f"{text[:limit]}... [truncated, {len(text)} chars]"


def redact_headers(headers: Mapping[str, Any]) -> Dict[str, Any]:
    """Mask sensitive header values before logging."""
    masked = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS:
            masked[key] = MASK
        else:
            masked[key] = value
    return masked


def redact_body(payload: Any) -> Any:
    """Recursively mask sensitive fields in request bodies."""
    if isinstance(payload, Mapping):
        redacted = {}
        for key, value in payload.items():
            if any(token in str(key).lower() for token in SENSITIVE_BODY_TOKENS):
                redacted[key] = MASK
            else:
                redacted[key] = redact_body(value)
        return redacted
    if isinstance(payload, (list, tuple)):
        return [redact_body(item) for item in payload]
    return payload


def body_preview(body: Any, limit: int = DEFAULT_BODY_PREVIEW_LENGTH) -> str:
    """Render any request/response body as a short, redacted string."""
    if body is None:
        return ""
    if isinstance(body, bytes):
        text = body.decode("utf-8", errors="replace")
    elif isinstance(body, str):
        text = body
    else:
        try:
            text = json.dumps(redact_body(body), ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            text = repr(body)
    return truncate(text, limit)


def build_curl(
    method: str,
    url: str,
    headers: Mapping[str, str],
    body: Optional[str],
) -> str:
    """
    Build cURL command for request reproduction.

    Headers and body are expected to be redacted already.
    """
    parts = [f"curl -X {method}"]
    for key, value in headers.items():
        parts.append(f"-H '{key}: {value}'")
    if body:
        parts.append(f"-d '{body}'")
    parts.append(f"'{url}'")
    return " \\\n  ".join(parts)


class LoguruSink:
    """Write events as loguru records with the fields bound as extras."""

    def __init__(self, level: str = "DEBUG") -> None:
        self.level = level

    def emit(self, event: str, fields: Mapping[str, Any]) -> None:
        bound = logger.bind(event=event, **fields)
        if event == "request":
            bound.log(self.level, f"→ {fields.get('method')} {fields.get('url')}")
        elif event == "response":
            bound.log(
                self.level,
                f"← {fields.get('status_code')} {fields.get('method')} "
                f"{fields.get('url')} ({fields.get('elapsed', 0.0):.3f}s)",
            )
        elif event == "error":
            bound.log(
                self.level,
                f"✗ {fields.get('method')} {fields.get('url')}: {fields.get('error')}"
            )
        else:
            bound.log(self.level, event)


class AllureSink:
    """
    Attach request/response details to the Allure report.

    The request event is buffered under its request_id and written together
    with the matching response (or error) as a single step, so each HTTP call
    shows up as one collapsible entry even when calls to the same URL overlap.
    """

    def __init__(self) -> None:
        self._pending: Dict[str, Mapping[str, Any]] = {}

    def emit(self, event: str, fields: Mapping[str, Any]) -> None:
        request_id = str(fields.get("request_id", ""))
        if event == "request":
            self._pending[request_id] = fields
            return
        if event not in ("response", "error"):
            return

        request = self._pending.pop(request_id, {})
        method, url = str(fields.get("method")), str(fields.get("url"))

        if event == "error":
            with allure.step(f"❌ {method} {url} → transport error"):
                self._attach_request(method, url, request)
                allure.attach(
                    str(fields.get("error")),
                    name="Transport Error",
                    attachment_type=AttachmentType.TEXT,
                )
            return

        status = fields.get("status_code", 0)
        status_emoji = "✅" if status < 400 else "❌"
        with allure.step(f"{status_emoji} {method} {url} → {status}"):
            self._attach_request(method, url, request)
            allure.attach(
                fields.get("body") or "<empty>",
                name=f"Response Body ({status})",
                attachment_type=AttachmentType.TEXT,
            )

    @staticmethod
    def _attach_request(method: str, url: str, request: Mapping[str, Any]) -> None:
        allure.attach(url, name="Request URL", attachment_type=AttachmentType.TEXT)
        headers = request.get("headers") or {}
        if headers:
            allure.attach(
                json.dumps(dict(headers), ensure_ascii=False, indent=2),
                name="Request Headers",
                attachment_type=AttachmentType.JSON,
            )
        if request.get("body"):
            allure.attach(
                request["body"],
                name="Request Body",
                attachment_type=AttachmentType.TEXT,
            )
        allure.attach(
            build_curl(method, url, headers, request.get("body")),
            name="cURL Command",
            attachment_type=AttachmentType.TEXT,
        )


class CompositeSink:
    """Forward every event to each wrapped sink independently."""

    def __init__(self, sinks: Iterable[ObservabilitySink]) -> None:
        self.sinks = list(sinks)

    def emit(self, event: str, fields: Mapping[str, Any]) -> None:
        for sink in self.sinks:
            safe_emit(sink, event, fields)


class RecordingSink:
    """Keep events in memory."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def emit(self, event: str, fields: Mapping[str, Any]) -> None:
        self.events.append((event, dict(fields)))

    def of(self, event: str) -> List[Dict[str, Any]]:
        return [f for name, f in self.events if name == event]


class NullSink:
    def emit(self, event: str, fields: Mapping[str, Any]) -> None:
        return None


def default_sink() -> ObservabilitySink:
    """Loguru for the console plus Allure for reports."""
    return CompositeSink([LoguruSink(), AllureSink()])


__all__ = [
    "AllureSink",
    "CompositeSink",
    "DEFAULT_BODY_PREVIEW_LENGTH",
    "LoguruSink",
    "NullSink",
    "ObservabilitySink",
    "RecordingSink",
    "body_preview",
    "build_curl",
    "default_sink",
    "redact_body",
    "redact_headers",
    "safe_emit",
    "truncate",
]

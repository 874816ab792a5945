"""
Shared builder for storefront routes.

Every storefront endpoint is served by index.php and selected with the
``route`` query parameter, e.g. ``index.php?route=checkout/cart``.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..framework.models import HttpMethod, RequestSpec


STORE_ENTRYPOINT = "/index.php"

FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded"}


def store_request(
    method: HttpMethod,
    route: str,
    params: Optional[Mapping[str, Any]] = None,
    body: Any = None,
    headers: Optional[Mapping[str, str]] = None,
) -> RequestSpec:
    """Build a RequestSpec for `route`; None-valued params are dropped."""
    query = {"route": route}
    for key, value in (params or {}).items():
        if value is not None:
            query[key] = str(value)

    merged_headers = dict(FORM_HEADERS) if body is not None else {}
    merged_headers.update(headers or {})

    return RequestSpec(
        method=method,
        target=STORE_ENTRYPOINT,
        query_params=query,
        headers=merged_headers,
        body=body,
    )
